"""
core/db.py -- SQLAlchemy engine factory shared by every store.

Each store (auth/store.py, auth/sessions.py, beers/store.py) owns its own
Table definitions and MetaData but builds its engine here so SQLite tuning
lives in one place.

Layer rule: core/ is the kernel. No imports from api/, auth/, or beers/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine for db_url, applying SQLite-specific settings when relevant.

    check_same_thread=False is required because FastAPI runs sync store calls
    in a thread pool, so one pooled connection may be used from several threads.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
