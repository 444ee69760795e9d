from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union

from caselog.core.config import settings
from caselog.core.errors import (
    CaseLogError,
    NotFoundOrForbidden,
    ValidationError,
)
from caselog.schemas.case import CaseCreate, CaseOut, CaseUpdate
from caselog.services.case_crud import CreateIn, parse_create, parse_update
from caselog.services.case_store import CaseStore
from caselog.services.duration import derive_duration

logger = logging.getLogger(__name__)

Snapshot = Tuple[CaseOut, ...]
Listener = Callable[[Snapshot], None]


def _newest_first(rows: Iterable[CaseOut]) -> List[CaseOut]:
    return sorted(rows, key=lambda c: (c.date, c.serial_number), reverse=True)


def _with_duration(fields: Union[CaseCreate, CaseUpdate]):
    dur = derive_duration(fields.start_time, fields.end_time, fields.duration)
    if dur == fields.duration:
        return fields
    return fields.model_copy(update={"duration": dur})


class CaseRepository:
    """
    In-memory view of one owner's cases, kept in step with a CaseStore.

    - refresh() replaces the view wholesale; only the most recently issued
      refresh is applied, so a slow older fetch cannot overwrite a newer one
    - add / update / remove patch the view only after the store confirms
    - switching or clearing the owner empties the view immediately
    - subscribers get the new snapshot after every change

    Derived figures (totals, summaries) are not cached here; pass `cases`
    to caselog.services.aggregation.
    """

    def __init__(
        self,
        store: CaseStore,
        owner_id: Optional[str] = None,
        *,
        limit: Optional[int] = None,
    ) -> None:
        self._store = store
        self._owner_id = owner_id
        self._limit = limit or settings.CASE_LIST_LIMIT
        self._cases: List[CaseOut] = []
        # bumped by every refresh issued, every confirmed write and every
        # owner switch; a refresh result is applied only if still current
        self._generation = 0
        self._listeners: List[Listener] = []
        self.last_error: Optional[CaseLogError] = None

    # ---------- state ----------

    @property
    def owner_id(self) -> Optional[str]:
        return self._owner_id

    @property
    def cases(self) -> Snapshot:
        return tuple(self._cases)

    def __len__(self) -> int:
        return len(self._cases)

    def get(self, case_id: str) -> Optional[CaseOut]:
        return next((c for c in self._cases if c.id == case_id), None)

    def search(self, query: str = "", status: Optional[str] = None) -> Snapshot:
        """
        Register filter: case-insensitive match on patient name, hospital
        or diagnosis, optionally narrowed to one payment status.
        """
        q = (query or "").strip().lower()
        s = (status or "ALL").upper()
        out = []
        for c in self._cases:
            if q and not (q in c.patient_name.lower() or q in c.hospital.lower()
                          or q in c.diagnosis.lower()):
                continue
            if s != "ALL" and (c.payment_status or "").upper() != s:
                continue
            out.append(c)
        return tuple(out)

    # ---------- subscription ----------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _replace(self, rows: List[CaseOut]) -> None:
        self._cases = rows
        snap = self.cases
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("case view listener failed")

    # ---------- owner ----------

    def switch_owner(self, owner_id: Optional[str]) -> None:
        if owner_id is not None and owner_id == self._owner_id:
            return
        logger.info("case view owner %s -> %s", self._owner_id, owner_id)
        self._owner_id = owner_id
        self._generation += 1
        self.last_error = None
        self._replace([])

    def clear(self) -> None:
        """Logout."""
        self.switch_owner(None)

    def _require_owner(self) -> str:
        if self._owner_id is None:
            raise NotFoundOrForbidden()
        return self._owner_id

    # ---------- store-backed operations ----------

    async def refresh(self) -> Snapshot:
        """
        Reload the view from the store and return the new snapshot.

        A result that is no longer current when it arrives (see _generation)
        is discarded: the call returns the view unchanged and logs
        "superseded refresh" at INFO.
        """
        owner = self._owner_id
        if owner is None:
            if self._cases:
                self._replace([])
            return self.cases

        self._generation += 1
        token = self._generation
        try:
            rows = await self._store.list(owner, self._limit)
        except CaseLogError as e:
            if token == self._generation:
                self.last_error = e
            logger.warning("refresh failed owner=%s: %s", owner, e)
            raise

        if token != self._generation:
            logger.info("superseded refresh dropped owner=%s token=%s", owner,
                        token)
            return self.cases

        self.last_error = None
        self._replace(_newest_first(rows))
        return self.cases

    async def add(self, payload: CreateIn) -> CaseOut:
        """
        Create a case. id / serial_number in `payload` are ignored; the
        store assigns both. Nothing is shown until the store confirms.
        """
        owner = self._require_owner()
        fields = _with_duration(parse_create(payload))

        created = await self._store.create(owner, fields)

        if owner == self._owner_id:
            self._generation += 1
            self._replace([created, *self._cases])
        return created

    async def update(self, entry: Union[CaseOut, Mapping[str, Any]]) -> CaseOut:
        owner = self._require_owner()
        if isinstance(entry, CaseOut):
            case_id = entry.id
            data = entry.update_fields()
        else:
            data = dict(entry)
            case_id = data.pop("id", None)
            data.pop("serial_number", None)
        # stored rows may carry values the write schema no longer accepts
        fields = parse_update(data)
        if not case_id:
            raise ValidationError("Case id is required for update")
        fields = _with_duration(fields)

        try:
            updated = await self._store.update(owner, case_id, fields)
        except NotFoundOrForbidden:
            logger.warning("update of unknown case id=%s owner=%s", case_id,
                           owner)
            raise

        if owner == self._owner_id:
            self._generation += 1
            self._replace(
                [updated if c.id == updated.id else c for c in self._cases])
        return updated

    async def remove(self, case_id: str) -> None:
        owner = self._require_owner()
        try:
            await self._store.delete(owner, case_id)
        except NotFoundOrForbidden:
            logger.warning("delete of unknown case id=%s owner=%s", case_id,
                           owner)
            raise

        if owner == self._owner_id:
            self._generation += 1
            self._replace([c for c in self._cases if c.id != case_id])
