import json

from sqlalchemy.exc import SQLAlchemyError

from pos_reports.db import SessionLocal
from pos_reports.diagnostics import build_connection_report, connection_error_detail, redacted_database_url


def main() -> None:
    print(f"DATABASE_URL={redacted_database_url()}")
    db = SessionLocal()
    try:
        report, warnings = build_connection_report(db)
    except SQLAlchemyError as exc:
        print("DB connection FAILED")
        print(json.dumps(connection_error_detail(exc), indent=2))
        raise SystemExit(1)
    finally:
        db.close()
    print("DB connection OK")
    print(json.dumps(report, indent=2, default=str))
    for warning in warnings:
        print(f"WARNING: {warning}")


if __name__ == "__main__":
    main()
