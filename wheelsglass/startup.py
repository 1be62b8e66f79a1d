"""
startup.py — Database Startup Migrations (Idempotent)

Tables and indexes are defined in the ORM models and created via
Base.metadata.create_all(checkfirst=True). This file only adds what the ORM
does not express: PostgreSQL CHECK constraints on the status enums.

Called by: main.py lifespan
Depends on: database.py (engine), models (Base)
"""

import logging
import os

from sqlalchemy import text as sqltext

from .database import engine

log = logging.getLogger(__name__)

_CHECKS = {
    ("quote_submissions", "chk_quote_status"):
        "status IN ('submitted','processed','quoted','converted','archived')",
    ("quote_submissions", "chk_quote_division"): "division IN ('glass','wheels')",
    ("jobs", "chk_job_status"):
        "status IN ('pending','scheduled','in_progress','completed','cancelled')",
    ("customers", "chk_customer_account_type"):
        "account_type IN ('individual','business','fleet')",
}


def run_startup_migrations() -> None:
    """Execute all idempotent startup operations. Safe to call on every app boot."""
    if os.environ.get("TESTING"):
        log.info("TESTING mode, skipping startup migrations")
        return

    from .models import Base

    Base.metadata.create_all(bind=engine, checkfirst=True)
    log.info("ORM schema sync complete (create_all checkfirst=True)")

    if engine.dialect.name != "postgresql":
        return
    with engine.connect() as conn:
        _add_check_constraints(conn)
    log.info("Startup migrations complete")


def _exec(conn, stmt: str) -> None:
    """Execute a single DDL statement with rollback on failure."""
    try:
        conn.execute(sqltext(stmt))
        conn.commit()
    except Exception as e:
        log.warning("DDL failed: %s", e)
        conn.rollback()


def _add_check_constraints(conn) -> None:
    for (table, name), expr in _CHECKS.items():
        _exec(conn, f"""
            DO $$ BEGIN
                ALTER TABLE {table} ADD CONSTRAINT {name} CHECK ({expr});
            EXCEPTION WHEN duplicate_object THEN NULL;
            END $$;
        """)
