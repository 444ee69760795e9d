# caselog/core/errors.py
from __future__ import annotations

from typing import Any, Optional


class CaseLogError(Exception):
    """
    Base for every error the case ledger reports to its callers.
    `code` and `status_code` let the API layer map it to an envelope.
    """
    code = "caselog_error"
    status_code = 400

    def __init__(self, msg: str = "", *, details: Any = None) -> None:
        super().__init__(msg or self.__class__.__name__)
        self.msg = msg or self.__class__.__name__
        self.details = details


class ValidationError(CaseLogError):
    """Missing or invalid field, raised before any store call when checkable."""
    code = "validation_error"
    status_code = 422


class MalformedDate(ValidationError):
    code = "malformed_date"

    def __init__(self, value: Optional[str]) -> None:
        super().__init__(f"Malformed date: {value!r}", details={"date": value})
        self.value = value


class StoreUnavailable(CaseLogError):
    """The case store could not be reached."""
    code = "store_unavailable"
    status_code = 503


class NotFoundOrForbidden(CaseLogError):
    """
    Update / delete targeting a record that does not exist or belongs to
    another owner. Callers cannot tell the two apart.
    """
    code = "not_found"
    status_code = 404

    def __init__(self, case_id: Optional[str] = None) -> None:
        super().__init__("Case not found", details={"id": case_id})
        self.case_id = case_id
