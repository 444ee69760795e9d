# caselog/main.py
from fastapi import FastAPI

from caselog.api.exception_handlers import register_exception_handlers
from caselog.api.router import api_router
from caselog.core.config import settings
from caselog.core.logging import configure_logging

configure_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    docs_url="/docs",
    redoc_url="/redoc",
)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)


# Health
@app.get("/")
def root():
    return {"message": f"{settings.PROJECT_NAME} API running", "version": "v1"}
