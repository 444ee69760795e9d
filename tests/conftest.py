from __future__ import annotations

from typing import Any, Dict

import pytest

from caselog.db.init_db import create_tables
from caselog.db.session import make_engine, make_session_factory
from caselog.services.case_store import SqlCaseStore


def case_payload(**overrides: Any) -> Dict[str, Any]:
    """A complete, valid create payload; override any field per test."""
    data: Dict[str, Any] = {
        "date": "2024-01-05",
        "hospital": "City Hospital",
        "patient_name": "Asha Rao",
        "age": 42,
        "sex": "Female",
        "diagnosis": "Acute Appendicitis",
        "anesthesia": "GA",
        "procedure": "Laparoscopic Appendectomy",
        "start_time": "09:00",
        "end_time": "10:30",
        "duration": 90,
        "payment_mode": "UPI",
        "payment_status": "PENDING",
        "surgeon_name": "Dr. Kapoor",
        "amount": 1000,
        "remarks": "Smooth recovery",
    }
    data.update(overrides)
    return data


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(session_factory) -> SqlCaseStore:
    return SqlCaseStore(session_factory)
