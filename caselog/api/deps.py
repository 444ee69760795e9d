# caselog/api/deps.py
from __future__ import annotations

from typing import Generator

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from caselog.core.config import settings
from caselog.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def current_owner(request: Request) -> str:
    """
    Opaque owner id placed on the request by the identity layer in front of
    this service. It is only used to scope queries, never verified here.
    """
    owner = (request.headers.get(settings.OWNER_HEADER) or "").strip()
    if not owner:
        raise HTTPException(status_code=401, detail="Missing owner identity")
    return owner
