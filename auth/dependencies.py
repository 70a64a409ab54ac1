"""
auth/dependencies.py -- FastAPI Depends() helpers for sessions.

get_session_id() reads and verifies the signed cookie; a missing or tampered
cookie yields None.

get_session() resolves that id against the session store through the session
manager. Requests without a live session get a fresh anonymous Session --
it is only written to the store once the client signs up or logs in.

get_session_user() is the soft variant routes use when authentication is
optional: the public projection, or None for anonymous clients.

Layer rule: no imports from api/ or beers/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import Depends, Request

from auth.cookies import unsign_session_id
from auth.manager import SessionManager
from auth.models import Session
from core.config import get_settings


def get_session_id(request: Request) -> Optional[str]:
    """Return the verified session id from the request cookie, or None."""
    return unsign_session_id(request.cookies.get(get_settings().session_cookie_name))


async def get_session(request: Request, sid: Optional[str] = Depends(get_session_id)) -> Session:
    """Load the caller's session, or start an anonymous one."""
    manager: SessionManager = request.app.state.session_manager
    return await manager.load(sid)


async def get_session_user(session: Session = Depends(get_session)) -> Optional[dict[str, Any]]:
    """Return the authenticated user's public projection, or None."""
    return session.user
