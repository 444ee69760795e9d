# caselog/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All case-ledger tables inherit from this."""
    pass


# Import all models so metadata is complete for create_all()
from caselog.models import case  # noqa: F401,E402
