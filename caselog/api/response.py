# FILE: caselog/api/response.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def _plain(data: Any) -> Any:
    # python-mode dump keeps Decimal, so amounts can go out as numbers
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, (list, tuple)):
        return [_plain(x) for x in data]
    if isinstance(data, dict):
        return {k: _plain(v) for k, v in data.items()}
    return data


def ok(
    data: Any = None,
    *,
    meta: Optional[Dict[str, Any]] = None,
    status_code: int = 200,
) -> JSONResponse:
    """Success envelope: {"ok": true, "data": ..., "meta": ... (if given)}."""
    payload: Dict[str, Any] = {"ok": True, "data": _plain(data)}
    if meta is not None:
        payload["meta"] = meta
    return _respond(status_code, payload)


def err(
    msg: str = "Something went wrong",
    *,
    status_code: int = 400,
    code: Optional[str] = None,
    details: Any = None,
) -> JSONResponse:
    """Failure envelope: {"ok": false, "error": {msg, code, details}}."""
    error = {"msg": msg, "code": code, "details": _plain(details)}
    return _respond(status_code, {"ok": False, "error": error})


def _respond(status_code: int, payload: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code,
                        content=jsonable_encoder(
                            payload, custom_encoder={Decimal: float}))
