# caselog/api/router.py
from fastapi import APIRouter

from caselog.api import (
    routes_cases,
    routes_reports,
)

api_router = APIRouter()

api_router.include_router(routes_cases.router)
api_router.include_router(routes_reports.router)
