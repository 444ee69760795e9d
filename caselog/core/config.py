# caselog/core/config.py
import os
from typing import List

from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _as_bool(value: str) -> bool:
    return (value or "").lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Surgical Case Ledger")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")

    # ---------- Database ----------
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./caselog.db")
    DB_ECHO: bool = _as_bool(os.getenv("DB_ECHO", "false"))

    # ---------- Cases ----------
    # rows returned by a single list() / refresh()
    CASE_LIST_LIMIT: int = int(os.getenv("CASE_LIST_LIMIT", "1000"))
    # allocate-and-write attempts when two writers race for the same serial
    SERIAL_RETRY_ATTEMPTS: int = int(os.getenv("SERIAL_RETRY_ATTEMPTS", "3"))

    RECOMMENDED_HOSPITALS: List[str] = _split_csv(
        os.getenv(
            "RECOMMENDED_HOSPITALS",
            "City Hospital,Wellness Clinic,Sunrise Medical Center,General Hospital",
        ))

    # ---------- Identity ----------
    # opaque owner id supplied by the upstream identity provider
    OWNER_HEADER: str = os.getenv("OWNER_HEADER", "X-Owner-Id")

    # ---------- Misc ----------
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Kolkata")


settings = Settings()
