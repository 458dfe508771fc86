from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import func, inspect, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_reports.aggregates import best_effort, iso, to_float, to_int
from pos_reports.config import settings
from pos_reports.models import CashRegister, Category, Customer, Product, Sale, StoreConfig, User

COUNTED_TABLES = {
    "users": User,
    "products": Product,
    "customers": Customer,
    "sales": Sale,
    "categories": Category,
}


def database_url_configured() -> bool:
    return "database_url" in settings.model_fields_set


def redacted_database_url() -> str:
    return make_url(settings.database_url).render_as_string(hide_password=True)


def connection_error_detail(exc: SQLAlchemyError) -> dict:
    orig = getattr(exc, "orig", None)
    return {
        "error_code": getattr(orig, "pgcode", None) or exc.code,
        "message": str(orig or exc),
        "database_url_configured": database_url_configured(),
    }


def _server_version(db: Session, dialect: str) -> Optional[str]:
    if dialect == "postgresql":
        return db.execute(select(func.version())).scalar()
    if dialect == "sqlite":
        return db.execute(select(func.sqlite_version())).scalar()
    version_info = db.get_bind().dialect.server_version_info
    return ".".join(str(part) for part in version_info) if version_info else None


def _store_config(db: Session) -> Optional[dict]:
    row = db.query(StoreConfig).filter(StoreConfig.id == 1).first()
    if not row:
        return None
    return {
        "name": row.name,
        "rnc": row.rnc,
        "tax_rate": to_float(row.tax_rate),
        "tax_enabled": row.tax_enabled,
    }


def _cash_register(db: Session) -> Optional[dict]:
    row = db.query(CashRegister).filter(CashRegister.id == 1).first()
    if not row:
        return None
    return {
        "current_balance": to_float(row.current_balance),
        "last_updated": iso(row.last_updated),
    }


def _record_counts(db: Session, warnings: list[str]) -> dict[str, Any]:
    counts: dict[str, Any] = {}
    for table_name, model in COUNTED_TABLES.items():
        counts[f"{table_name}_count"] = best_effort(
            db,
            f"{table_name}_count",
            lambda s, model=model: to_int(s.query(func.count(model.id)).scalar()),
            lambda: None,
            warnings,
        )
    return counts


def build_connection_report(db: Session) -> tuple[dict, list[str]]:
    """Probe the database and summarise what the reporting endpoints depend on.

    The first query doubles as the connectivity check: any error it raises is
    left for the caller to turn into an "unavailable" response.
    """
    warnings: list[str] = []
    current_time = db.execute(select(func.current_timestamp())).scalar()
    bind = db.get_bind()
    dialect = bind.dialect.name

    data = {
        "connection_info": {
            "current_time": iso(current_time),
            "server_version": _server_version(db, dialect),
            "dialect": dialect,
            "database_url_configured": database_url_configured(),
            "database_url": redacted_database_url(),
        },
        "tables": sorted(inspect(bind).get_table_names()),
        "record_counts": _record_counts(db, warnings),
        "store_config": best_effort(db, "store_config", _store_config, lambda: None, warnings),
        "cash_register": best_effort(db, "cash_register", _cash_register, lambda: None, warnings),
    }
    return data, warnings
