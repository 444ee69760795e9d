from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Protocol, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from caselog.core.config import settings
from caselog.schemas.case import CaseOut
from caselog.services import case_crud
from caselog.services.case_crud import CreateIn, UpdateIn

T = TypeVar("T")


class CaseStore(Protocol):
    """
    Owner-scoped case store as seen by CaseRepository.
    Every method raises StoreUnavailable on transport failure;
    update / delete raise NotFoundOrForbidden for absent or foreign ids.
    """

    async def list(self, owner_id: str, limit: int) -> List[CaseOut]:
        ...

    async def create(self, owner_id: str, fields: CreateIn) -> CaseOut:
        ...

    async def update(self, owner_id: str, case_id: str,
                     fields: UpdateIn) -> CaseOut:
        ...

    async def delete(self, owner_id: str, case_id: str) -> None:
        ...


class SqlCaseStore:
    """
    CaseStore over a SQLAlchemy sessionmaker.
    Each call opens one short-lived session in a worker thread and returns
    detached CaseOut snapshots.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None) -> None:
        if session_factory is None:
            from caselog.db.session import SessionLocal
            session_factory = SessionLocal
        self._session_factory = session_factory

    def _run(self, fn: Callable[[Session], T]) -> T:
        db = self._session_factory()
        try:
            return fn(db)
        finally:
            db.close()

    async def _call(self, fn: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._run, fn)

    async def list(self, owner_id: str, limit: int = 0) -> List[CaseOut]:
        limit = limit or settings.CASE_LIST_LIMIT

        def op(db: Session) -> List[CaseOut]:
            rows = case_crud.list_cases(db, owner_id=owner_id, limit=limit)
            return [CaseOut.model_validate(r) for r in rows]

        return await self._call(op)

    async def create(self, owner_id: str, fields: CreateIn) -> CaseOut:

        def op(db: Session) -> CaseOut:
            row = case_crud.create_case(db, owner_id=owner_id, payload=fields)
            return CaseOut.model_validate(row)

        return await self._call(op)

    async def update(self, owner_id: str, case_id: str,
                     fields: UpdateIn) -> CaseOut:

        def op(db: Session) -> CaseOut:
            row = case_crud.update_case(db,
                                        owner_id=owner_id,
                                        case_id=case_id,
                                        payload=fields)
            return CaseOut.model_validate(row)

        return await self._call(op)

    async def delete(self, owner_id: str, case_id: str) -> None:

        def op(db: Session) -> None:
            case_crud.delete_case(db, owner_id=owner_id, case_id=case_id)

        await self._call(op)
