"""
auth/manager.py -- Session Manager: signup, login and logout.

State machine (per client session):
  ANONYMOUS     --signup ok-->  AUTHENTICATED
  ANONYMOUS     --login ok--->  AUTHENTICATED
  AUTHENTICATED --logout----->  ANONYMOUS
  Failed signup/login leaves the session untouched. Every successful signup or
  login moves the session data to a fresh id and destroys the old one, so an
  id planted before authentication never becomes an authenticated session.
  Signing up or logging in again while authenticated overwrites data["user"].

Failure policy:
  Every operation catches at its own boundary and raises exactly one of
  ValidationError (400), AuthenticationError (401) or InternalError (500).
  Anything unexpected is logged with its traceback and replaced by
  InternalError, so raw error detail never reaches the client. No retries.

Non-enumeration:
  "No such account" and "wrong password" raise the same AuthenticationError,
  and an unknown account still pays for one bcrypt comparison.

Concurrency:
  Store calls are blocking SQLAlchemy work and run in Starlette's thread pool;
  bcrypt runs there too (auth/passwords.py). The coroutine suspends on both.

Layer rule: no imports from api/ or beers/. FastAPI is not imported here --
the manager knows nothing about requests or cookies.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from starlette.concurrency import run_in_threadpool

from auth import passwords
from auth.models import Session, public_projection, username_or_email
from auth.sessions import SessionStore
from auth.store import UserStore
from core.errors import AuthenticationError, InternalError, ValidationError

logger = logging.getLogger("brewhouse.auth")


class SessionManager:
    def __init__(self, users: UserStore, sessions: SessionStore) -> None:
        self.users = users
        self.sessions = sessions

    async def load(self, sid: Optional[str]) -> Session:
        """Return the live session for `sid`, or a fresh anonymous one."""
        if sid:
            session = await run_in_threadpool(self.sessions.get, sid)
            if session is not None:
                return session
        return Session()

    async def signup(self, session: Session, fields: dict[str, Any]) -> tuple[Session, dict[str, Any]]:
        """Create the account, then authenticate the session as the new user.

        Returns the newly issued session and the public projection.

        The account is committed before the session is written. If the session
        write fails the account still exists: the client gets a 500, the user id
        is logged, and the user can log in normally afterwards.
        """
        try:
            user = await run_in_threadpool(self.users.create_user, fields)
        except ValidationError as exc:
            logger.info("Signup rejected: %s", exc.message)
            raise
        except Exception as exc:
            logger.exception("Signup failed")
            raise InternalError() from exc
        projection = public_projection(user)
        try:
            session = await self._authenticate(session, projection)
        except Exception as exc:
            logger.exception("Signup created user id=%s but no session could be started", projection["id"])
            raise InternalError() from exc
        logger.info("User signed up: id=%s", projection["id"])
        return session, projection

    async def login(self, session: Session, username: str, password: str) -> tuple[Session, dict[str, Any]]:
        """Verify credentials (`username` may also be an email) and authenticate the session."""
        try:
            user = await run_in_threadpool(self.users.find_user, username_or_email(username))
            if user is None:
                await passwords.burn_compare(password)
                matched = False
            else:
                matched = await self.users.compare(user, password)
            if not matched:
                logger.warning("Failed login attempt")
                raise AuthenticationError()
            projection = public_projection(user)
            session = await self._authenticate(session, projection)
        except AuthenticationError:
            raise
        except Exception as exc:
            logger.exception("Login failed")
            raise InternalError() from exc
        logger.info("User logged in: id=%s", projection["id"])
        return session, projection

    async def logout(self, sid: Optional[str]) -> None:
        """Destroy the session named by `sid`. A missing or already-destroyed session is fine."""
        if not sid:
            return
        try:
            await run_in_threadpool(self.sessions.destroy, sid)
        except Exception as exc:
            logger.exception("Logout failed")
            raise InternalError() from exc

    async def _authenticate(self, session: Session, projection: dict[str, Any]) -> Session:
        """Store the user under a new session id; the old id (if any) is destroyed."""
        data = dict(session.data, user=projection)
        if session.id is not None:
            await run_in_threadpool(self.sessions.destroy, session.id)
        return await run_in_threadpool(self.sessions.create, data)
