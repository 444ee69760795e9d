# FILE: caselog/api/routes_cases.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from caselog.api.deps import current_owner, get_db
from caselog.api.response import ok
from caselog.core.config import settings
from caselog.schemas.case import CaseCreate, CaseOut, CaseUpdate
from caselog.services import case_crud

router = APIRouter(prefix="/cases", tags=["Cases"])


@router.get("")
def list_cases(
        q: Optional[str] = Query(None, description="patient / hospital / diagnosis"),
        status_filter: Optional[str] = Query(None, alias="status"),
        limit: int = Query(settings.CASE_LIST_LIMIT, ge=1,
                           le=settings.CASE_LIST_LIMIT),
        db: Session = Depends(get_db),
        owner_id: str = Depends(current_owner),
):
    rows = case_crud.list_cases(db,
                                owner_id=owner_id,
                                limit=limit,
                                q=q,
                                status=status_filter)
    items = [CaseOut.model_validate(r) for r in rows]
    return ok(items, meta={"count": len(items)})


@router.get("/{case_id}")
def get_case(
        case_id: str,
        db: Session = Depends(get_db),
        owner_id: str = Depends(current_owner),
):
    row = case_crud.get_case(db, owner_id=owner_id, case_id=case_id)
    return ok(CaseOut.model_validate(row))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_case(
        payload: CaseCreate,
        db: Session = Depends(get_db),
        owner_id: str = Depends(current_owner),
):
    row = case_crud.create_case(db, owner_id=owner_id, payload=payload)
    return ok(CaseOut.model_validate(row), status_code=status.HTTP_201_CREATED)


@router.patch("/{case_id}")
def update_case(
        case_id: str,
        payload: CaseUpdate,
        db: Session = Depends(get_db),
        owner_id: str = Depends(current_owner),
):
    row = case_crud.update_case(db,
                                owner_id=owner_id,
                                case_id=case_id,
                                payload=payload)
    return ok(CaseOut.model_validate(row))


@router.delete("/{case_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_case(
        case_id: str,
        db: Session = Depends(get_db),
        owner_id: str = Depends(current_owner),
):
    case_crud.delete_case(db, owner_id=owner_id, case_id=case_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
