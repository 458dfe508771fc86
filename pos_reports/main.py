from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_reports.config import settings
from pos_reports.dashboard import build_dashboard_stats
from pos_reports.db import SessionLocal
from pos_reports.diagnostics import build_connection_report, connection_error_detail
from pos_reports.periods import Period, store_now
from pos_reports.reports import ReportType, build_report
from pos_reports.sales_history import build_sales_history

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(title="POS Reports", lifespan=lifespan)


class Meta(BaseModel):
    request_id: str
    warnings: list[str]


class Envelope(BaseModel):
    data: Any
    meta: Meta


def _meta(request_id: Optional[str] = None, warnings: Optional[list[str]] = None) -> dict:
    return {
        "request_id": request_id or f"req_{uuid4().hex}",
        "warnings": warnings or [],
    }


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_now() -> datetime:
    return store_now()


def _parse_period(value: str) -> Period:
    try:
        return Period.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _parse_report_type(value: str) -> ReportType:
    try:
        return ReportType.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.exception_handler(SQLAlchemyError)
def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "database error"})


@app.get("/", tags=["root"])
def read_root() -> dict:
    return {"status": "ok"}


@app.get("/health", tags=["health"])
def health_check() -> dict:
    return {"status": "healthy"}


@app.get("/api/dashboard-stats", tags=["Dashboard"], response_model=Envelope)
def dashboard_stats(
    period: str = Query(default=Period.MONTH.value),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> dict:
    stats, warnings = build_dashboard_stats(db, _parse_period(period), now)
    return {"data": stats, "meta": _meta(warnings=warnings)}


@app.get("/api/reports", tags=["Reports"], response_model=Envelope)
def reports(
    period: str = Query(default=Period.MONTH.value),
    report_type: str = Query(default=ReportType.ALL.value),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> dict:
    report, warnings = build_report(db, _parse_period(period), _parse_report_type(report_type), now)
    return {"data": report, "meta": _meta(warnings=warnings)}


@app.get("/api/sales-history", tags=["Sales History"], response_model=Envelope)
def sales_history(
    period: str = Query(default=Period.MONTH.value),
    limit: int = Query(default=settings.history_default_limit, ge=1, le=settings.history_max_limit),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> dict:
    history, warnings = build_sales_history(db, _parse_period(period), limit, offset, now)
    return {"data": history, "meta": _meta(warnings=warnings)}


@app.get("/api/test-connection", tags=["Diagnostics"], response_model=Envelope)
def connection_check(db: Session = Depends(get_db)) -> dict:
    try:
        report, warnings = build_connection_report(db)
    except SQLAlchemyError as exc:
        logger.error("database connection check failed: %s", exc)
        raise HTTPException(
            status_code=503,
            detail={"error": "database connection failed", **connection_error_detail(exc)},
        )
    return {"data": report, "meta": _meta(warnings=warnings)}
