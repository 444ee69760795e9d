# caselog/core/logging.py
from __future__ import annotations

import logging
import sys
from typing import Optional

from caselog.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger once, at application start.
    Modules only ever call logging.getLogger(__name__).
    """
    lvl = (level or settings.LOG_LEVEL or "INFO").upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(lvl)

    # SQL echo is controlled by DB_ECHO, not by the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.captureWarnings(True)
