"""CaseRepository: refresh ordering, write-through patching, owner switching."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Dict, List

import pytest

from caselog.core.errors import (
    NotFoundOrForbidden,
    StoreUnavailable,
    ValidationError,
)
from caselog.schemas.case import CaseOut
from caselog.services.case_repository import CaseRepository

from conftest import case_payload


def _row(case_id: str, date: str = "2024-01-05", serial: int = 1, **extra) -> CaseOut:
    data = dict(
        id=case_id,
        serial_number=serial,
        date=date,
        hospital="City Hospital",
        patient_name=f"Patient {case_id}",
        diagnosis="Fracture Tibia",
        payment_mode="UPI",
        payment_status="PENDING",
        amount=Decimal("1000"),
    )
    data.update(extra)
    return CaseOut(**data)


class GatedStore:
    """list() calls wait until the test releases them, in any order."""

    def __init__(self) -> None:
        self.pending: List[asyncio.Future] = []
        self.created: List = []

    async def list(self, owner_id, limit):
        fut = asyncio.get_running_loop().create_future()
        self.pending.append(fut)
        return await fut

    def release(self, index: int, rows) -> None:
        self.pending[index].set_result(rows)

    def fail(self, index: int, exc: Exception) -> None:
        self.pending[index].set_exception(exc)

    async def create(self, owner_id, fields):
        self.created.append(fields)
        return _row("new", date=fields.date, serial=1)

    async def update(self, owner_id, case_id, fields):
        raise NotFoundOrForbidden(case_id)

    async def delete(self, owner_id, case_id):
        raise NotFoundOrForbidden(case_id)


class BrokenStore(GatedStore):

    async def list(self, owner_id, limit):
        raise StoreUnavailable("connection refused")

    async def create(self, owner_id, fields):
        raise StoreUnavailable("connection refused")


async def _settle() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


# ---------- refresh ordering ----------


def test_last_issued_refresh_wins_when_older_resolves_later() -> None:

    async def scenario():
        store = GatedStore()
        repo = CaseRepository(store, "dr-a")

        first = asyncio.create_task(repo.refresh())
        await _settle()
        second = asyncio.create_task(repo.refresh())
        await _settle()

        store.release(1, [_row("fresh")])
        await second
        store.release(0, [_row("stale")])
        await first
        return repo

    repo = asyncio.run(scenario())
    assert [c.id for c in repo.cases] == ["fresh"]


def test_refresh_in_issue_order_applies_latest() -> None:

    async def scenario():
        store = GatedStore()
        repo = CaseRepository(store, "dr-a")
        first = asyncio.create_task(repo.refresh())
        await _settle()
        second = asyncio.create_task(repo.refresh())
        await _settle()
        store.release(0, [_row("older")])
        await first
        store.release(1, [_row("newer")])
        await second
        return repo

    repo = asyncio.run(scenario())
    assert [c.id for c in repo.cases] == ["newer"]


def test_refresh_sorts_by_date_then_serial_desc() -> None:

    async def scenario():
        store = GatedStore()
        repo = CaseRepository(store, "dr-a")
        task = asyncio.create_task(repo.refresh())
        await _settle()
        store.release(0, [
            _row("a", "2024-01-05", 1),
            _row("b", "2024-02-01", 1),
            _row("c", "2024-01-05", 2),
        ])
        await task
        return repo

    repo = asyncio.run(scenario())
    assert [c.id for c in repo.cases] == ["b", "c", "a"]


def test_failed_refresh_keeps_view_and_reports_error() -> None:

    async def scenario():
        store = GatedStore()
        repo = CaseRepository(store, "dr-a")
        task = asyncio.create_task(repo.refresh())
        await _settle()
        store.release(0, [_row("kept")])
        await task

        task = asyncio.create_task(repo.refresh())
        await _settle()
        store.fail(1, StoreUnavailable("timeout"))
        with pytest.raises(StoreUnavailable):
            await task
        return repo

    repo = asyncio.run(scenario())
    assert [c.id for c in repo.cases] == ["kept"]
    assert isinstance(repo.last_error, StoreUnavailable)


def test_owner_switch_drops_in_flight_refresh() -> None:

    async def scenario():
        store = GatedStore()
        repo = CaseRepository(store, "dr-a")
        task = asyncio.create_task(repo.refresh())
        await _settle()
        repo.switch_owner("dr-b")
        store.release(0, [_row("belongs-to-a")])
        await task
        return repo

    repo = asyncio.run(scenario())
    assert repo.owner_id == "dr-b"
    assert repo.cases == ()


def test_superseded_refresh_is_logged_and_returns_current_view(caplog) -> None:

    async def scenario():
        store = GatedStore()
        repo = CaseRepository(store, "dr-a")
        task = asyncio.create_task(repo.refresh())
        await _settle()
        repo.switch_owner("dr-b")
        store.release(0, [_row("belongs-to-a")])
        return await task

    with caplog.at_level(logging.INFO, logger="caselog.services.case_repository"):
        result = asyncio.run(scenario())
    assert result == ()
    assert "superseded refresh" in caplog.text


def test_refresh_without_owner_is_empty() -> None:
    store = GatedStore()
    repo = CaseRepository(store)
    assert asyncio.run(repo.refresh()) == ()
    assert store.pending == []


# ---------- writes ----------


def test_add_validates_before_calling_store() -> None:
    store = GatedStore()
    repo = CaseRepository(store, "dr-a")

    with pytest.raises(ValidationError):
        asyncio.run(repo.add({"hospital": "City Hospital", "amount": 10}))
    assert store.created == []
    assert repo.cases == ()


def test_add_failure_leaves_view_unchanged() -> None:
    repo = CaseRepository(BrokenStore(), "dr-a")
    with pytest.raises(StoreUnavailable):
        asyncio.run(repo.add(case_payload()))
    assert repo.cases == ()


def test_add_derives_overnight_duration() -> None:
    store = GatedStore()
    repo = CaseRepository(store, "dr-a")
    asyncio.run(
        repo.add(case_payload(start_time="23:30", end_time="00:15", duration=None)))
    assert store.created[0].duration == 45


def test_writes_without_owner_are_forbidden() -> None:
    repo = CaseRepository(GatedStore())
    with pytest.raises(NotFoundOrForbidden):
        asyncio.run(repo.add(case_payload()))
    with pytest.raises(NotFoundOrForbidden):
        asyncio.run(repo.remove("x"))


def test_not_found_is_reported_distinctly() -> None:
    repo = CaseRepository(GatedStore(), "dr-a")
    with pytest.raises(NotFoundOrForbidden):
        asyncio.run(repo.update(_row("ghost")))
    with pytest.raises(NotFoundOrForbidden):
        asyncio.run(repo.remove("ghost"))


def test_update_of_row_with_retired_payment_mode_is_validation_error() -> None:

    async def scenario():
        store = GatedStore()
        repo = CaseRepository(store, "dr-a")
        task = asyncio.create_task(repo.refresh())
        await _settle()
        store.release(0, [_row("legacy", payment_mode="Cheque")])
        await task
        with pytest.raises(ValidationError):
            await repo.update(repo.get("legacy"))
        return repo

    repo = asyncio.run(scenario())
    assert [(c.id, c.payment_mode) for c in repo.cases] == [("legacy", "Cheque")]


def test_update_mapping_requires_id() -> None:
    repo = CaseRepository(GatedStore(), "dr-a")
    with pytest.raises(ValidationError):
        asyncio.run(repo.update({"amount": 5}))


# ---------- against the SQL store ----------


def test_full_cycle_with_sql_store(store) -> None:
    seen: List[int] = []

    async def scenario():
        repo = CaseRepository(store, "dr-a")
        unsubscribe = repo.subscribe(lambda snap: seen.append(len(snap)))

        first = await repo.add(case_payload())
        second = await repo.add(case_payload(patient_name="Second"))
        assert [c.id for c in repo.cases] == [second.id, first.id]
        assert (first.serial_number, second.serial_number) == (1, 2)

        moved = await repo.update(
            second.model_copy(update={"date": "2024-02-01", "amount": Decimal("1500")}))
        assert moved.serial_number == 1
        assert repo.get(second.id).date == "2024-02-01"
        assert repo.get(second.id).amount == 1500

        await repo.remove(first.id)
        assert [c.id for c in repo.cases] == [second.id]

        unsubscribe()
        await repo.add(case_payload(date="2024-02-01"))

        await repo.refresh()
        return repo

    repo = asyncio.run(scenario())
    assert [(c.date, c.serial_number) for c in repo.cases] == [
        ("2024-02-01", 2),
        ("2024-02-01", 1),
    ]
    # add, add, update, remove; nothing after unsubscribe
    assert seen == [1, 2, 2, 1]


def test_owners_do_not_see_each_other(store) -> None:

    async def scenario():
        a = CaseRepository(store, "dr-a")
        b = CaseRepository(store, "dr-b")
        created = await a.add(case_payload())
        await b.refresh()
        with pytest.raises(NotFoundOrForbidden):
            await b.remove(created.id)
        await a.refresh()
        return a, b

    a, b = asyncio.run(scenario())
    assert len(a) == 1
    assert len(b) == 0


def test_logout_clears_view(store) -> None:

    async def scenario():
        repo = CaseRepository(store, "dr-a")
        await repo.add(case_payload())
        await repo.refresh()
        return repo

    repo = asyncio.run(scenario())
    assert len(repo) == 1
    repo.clear()
    assert repo.owner_id is None
    assert repo.cases == ()


def test_search_filters_view(store) -> None:

    async def scenario():
        repo = CaseRepository(store, "dr-a")
        await repo.add(case_payload(patient_name="Meera Nair", payment_status="SUCCESS"))
        await repo.add(case_payload(hospital="Wellness Clinic"))
        return repo

    repo = asyncio.run(scenario())
    assert [c.patient_name for c in repo.search("meera")] == ["Meera Nair"]
    assert len(repo.search("wellness")) == 1
    assert len(repo.search(status="SUCCESS")) == 1
    assert len(repo.search("", "ALL")) == 2


def test_unreachable_store_is_store_unavailable(tmp_path) -> None:
    from caselog.db.session import make_engine, make_session_factory
    from caselog.services.case_store import SqlCaseStore

    eng = make_engine(f"sqlite:///{tmp_path}/missing/dir/cases.db")
    repo = CaseRepository(SqlCaseStore(make_session_factory(eng)), "dr-a")
    with pytest.raises(StoreUnavailable):
        asyncio.run(repo.refresh())
    assert repo.cases == ()
