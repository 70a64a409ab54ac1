"""
auth/sessions.py -- Server-side session store keyed by opaque session id.

Pattern: Repository. One row per session, independently addressable, no
cross-session locking. The session manager and the request dependency are
the only callers; route handlers never read this table directly.

Lifetime policy:
  Every session expires max_age seconds after it was last saved. An expired
  row reads as absent and is deleted on read. purge_expired() is called by a
  background task started in the API lifespan to trim rows nobody reads again.

Security:
  Session ids are secrets.token_urlsafe(32) (256 bits of entropy). The id is
  the only thing the client holds; it travels inside a signed cookie
  (auth/cookies.py). Session ids are never logged.

Layer rule: no imports from api/ or beers/.
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import Column, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from auth.models import Session
from core.config import get_settings
from core.db import make_engine, now_iso

logger = logging.getLogger("brewhouse.sessions")

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("sid", String(64), primary_key=True),
    Column("data", Text, nullable=False),  # JSON object
    Column("created_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False),
)


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def _expiry(max_age: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(seconds=max_age)).isoformat()


class SessionStore:
    """Create / read / update / destroy for server-side sessions.

    Usage:
        store = SessionStore()
        session = store.create({"user": projection})
        session = store.get(session.id)        # None once expired or destroyed
        store.save(session)                    # persists data, refreshes expiry
        store.destroy(session.id)
        store.close()
    """

    def __init__(self, db_url: Optional[str] = None, max_age: Optional[int] = None) -> None:
        settings = get_settings()
        self.max_age = max_age if max_age is not None else settings.session_max_age_seconds
        self.engine: Engine = make_engine(db_url or settings.database_url)
        _metadata.create_all(self.engine)

    def create(self, data: dict[str, Any]) -> Session:
        """Insert a new session holding `data` and return it with its fresh id."""
        session = Session(id=new_session_id(), data=dict(data), created_at=now_iso(), expires_at=_expiry(self.max_age))
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    sid=session.id,
                    data=json.dumps(session.data),
                    created_at=session.created_at,
                    expires_at=session.expires_at,
                )
            )
            conn.commit()
        return session

    def get(self, sid: str) -> Optional[Session]:
        """Return the live session for `sid`, or None if unknown or expired."""
        if not sid:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.sid == sid)).fetchone()
        if row is None:
            return None
        if row.expires_at <= now_iso():
            self.destroy(sid)
            return None
        return _row_to_session(row)

    def save(self, session: Session) -> Session:
        """Persist session.data and push the expiry forward.

        A session without an id, or whose row has disappeared (destroyed or
        purged concurrently), is created afresh under a new id.
        """
        if session.id is None:
            return self.create(session.data)
        session.expires_at = _expiry(self.max_age)
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.update()
                .where(_sessions.c.sid == session.id)
                .values(data=json.dumps(session.data), expires_at=session.expires_at)
            )
            conn.commit()
        if result.rowcount == 0:
            return self.create(session.data)
        return session

    def destroy(self, sid: str) -> bool:
        """Delete the session. Returns False if it did not exist (not an error)."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.sid == sid))
            conn.commit()
        return result.rowcount > 0

    def purge_expired(self) -> int:
        """Delete every expired session and return how many were removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= now_iso()))
            conn.commit()
        if result.rowcount:
            logger.info("Purged %d expired sessions", result.rowcount)
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def _row_to_session(row) -> Session:
    return Session(
        id=row.sid,
        data=json.loads(row.data),
        created_at=row.created_at,
        expires_at=row.expires_at,
    )
