# caselog/db/init_db.py
from __future__ import annotations

import argparse
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from caselog.core.config import settings
from caselog.core.logging import configure_logging
from caselog.db.base import Base
from caselog.models.case import CaseEntry
from caselog.schemas.case import CaseCreate
from caselog.services.case_crud import create_case
from caselog.utils.timezone import today_local

logger = logging.getLogger(__name__)

DEMO_SURGEONS = ["Dr. Smith", "Dr. Kapoor", "Dr. Williams", "Dr. Garcia"]
DEMO_ANESTHESIAS = [
    "GA",
    "Spinal anesthesia",
    "Epidural + spinal",
    "Epidural",
    "Nerve block",
    "IV sedation",
    "LA",
    "MAC",
]
DEMO_PAYMENT_MODES = ["Bank Transfer", "UPI", "Credit", "Cash"]
DEMO_PAYMENT_STATUSES = ["SUCCESS", "PENDING", "CANCELLED", "REFUNDED"]


def create_tables(eng: Engine) -> None:
    Base.metadata.create_all(bind=eng)


def _months_back(d: date, n: int, day: int) -> date:
    month0 = d.month - 1 - n
    year = d.year + month0 // 12
    return date(year, month0 % 12 + 1, day)


def demo_cases(count: int = 24, today: Optional[date] = None) -> List[CaseCreate]:
    """
    Sample register: four cases a month going back count/4 months, cycling
    through hospitals, surgeons, anesthesia types and payment modes.
    """
    today = today or today_local()
    hospitals = settings.RECOMMENDED_HOSPITALS or ["General Hospital"]
    out: List[CaseCreate] = []
    for i in range(count):
        d = _months_back(today, i // 4, 1 + (i % 28))
        appendix = i % 3 == 0
        out.append(
            CaseCreate(
                date=d.isoformat(),
                hospital=hospitals[i % len(hospitals)],
                patient_name=f"Patient {i + 1}",
                age=25 + i * 2,
                sex="Male" if i % 2 == 0 else "Female",
                diagnosis="Acute Appendicitis" if appendix else "Fracture Tibia",
                anesthesia=DEMO_ANESTHESIAS[i % len(DEMO_ANESTHESIAS)],
                procedure=("Laparoscopic Appendectomy"
                           if appendix else "Open Reduction"),
                start_time="09:00",
                end_time="10:30",
                duration=90,
                payment_mode=DEMO_PAYMENT_MODES[i % len(DEMO_PAYMENT_MODES)],
                payment_status=DEMO_PAYMENT_STATUSES[i % len(DEMO_PAYMENT_STATUSES)],
                surgeon_name=DEMO_SURGEONS[i % len(DEMO_SURGEONS)],
                amount=5000 + i * 800,
                remarks="Smooth recovery",
            ))
    return out


def seed_demo_cases(db: Session, *, owner_id: str, count: int = 24) -> int:
    """
    Insert the sample register for `owner_id` through the normal create path,
    so serials come from the allocator. Skips owners that already have cases.
    """
    existing = db.query(CaseEntry.id).filter(
        CaseEntry.owner_id == owner_id).first()
    if existing:
        logger.info("owner %s already has cases, demo seed skipped", owner_id)
        return 0

    for payload in demo_cases(count):
        create_case(db, owner_id=owner_id, payload=payload)
    logger.info("seeded %s demo cases for owner %s", count, owner_id)
    return count


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Create case ledger tables")
    parser.add_argument("--seed-owner",
                        help="owner id to fill with the demo register")
    parser.add_argument("--count", type=int, default=24)
    args = parser.parse_args(argv)

    configure_logging()

    from caselog.db.session import SessionLocal, engine

    create_tables(engine)
    logger.info("tables ready on %s", engine.url.render_as_string(
        hide_password=True))

    if args.seed_owner:
        db = SessionLocal()
        try:
            seed_demo_cases(db, owner_id=args.seed_owner, count=args.count)
        finally:
            db.close()


if __name__ == "__main__":
    main()
