# caselog/models/__init__.py
from .case import CaseEntry

__all__ = [
    "CaseEntry",
]
