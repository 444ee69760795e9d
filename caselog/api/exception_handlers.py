# FILE: caselog/api/exception_handlers.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from caselog.api.response import err
from caselog.core.errors import CaseLogError, StoreUnavailable

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(CaseLogError)
    async def caselog_error_handler(request: Request,
                                    exc: CaseLogError) -> JSONResponse:
        if isinstance(exc, StoreUnavailable):
            logger.error("%s %s -> store unavailable: %s", request.method,
                         request.url.path, exc.msg)
        return err(msg=exc.msg,
                   status_code=exc.status_code,
                   code=exc.code,
                   details=exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request,
                                     exc: StarletteHTTPException) -> JSONResponse:
        # exc.detail can be str/dict/list
        msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return err(msg=msg, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
            request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [{
            "loc": [str(p) for p in e.get("loc", ())],
            "msg": e.get("msg")
        } for e in exc.errors()]
        return err(msg="Validation error",
                   status_code=422,
                   code="validation_error",
                   details=details)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request,
                                          exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error in %s %s", request.method,
                         request.url.path)
        return err(msg="Internal server error", status_code=500)
