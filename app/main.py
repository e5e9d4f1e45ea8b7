from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import router
from logging_config import configure_logging
from services.reports import build_default_report_service
from services.scheduler import HourlyAggregationJob
from settings import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    job = HourlyAggregationJob(
        build_default_report_service(), interval_seconds=settings.job_interval_seconds
    )
    if settings.job_enabled:
        job.start()
    app.state.hourly_job = job
    try:
        yield
    finally:
        job.stop()
        build_default_report_service.cache_clear()


async def validation_exception_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Reports",
        description="Hourly aggregation and daily, monthly and weekly reports of sensor readings.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(router)
    return app

app = create_app()
