"""
api/routes/auth.py -- Signup, login and logout for the SPA client.

Routes:
  POST /auth/signup   -- create account; session cookie set; 200 + public user
  POST /auth/login    -- username or email + password; session cookie set; 200 + public user
  GET  /auth/logout   -- destroy session; cookie cleared; 205 with empty body

The SPA must send requests with credentials enabled (axios withCredentials,
fetch credentials: "include"), otherwise the browser neither stores nor sends
the session cookie. There are no server-side redirects.

Errors are raised by the session manager as ServiceError subclasses and
rendered as {"message": ...} by the handler in api/main.py:
  400 -- signup validation / uniqueness failure, Directory message passed through
  401 -- login failure, always "Invalid credentials."
  500 -- anything else, generic message only

[no-store] Cache-Control: no-store on signup and login responses -- they
carry identity data and set the session cookie.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.models import LoginRequest, MessageResponse, SignupRequest, UserPublic
from auth.cookies import clear_session_cookie, set_session_cookie
from auth.dependencies import get_session, get_session_id
from auth.manager import SessionManager
from auth.models import Session

# Auth policy: all three routes are public -- they are how a client becomes
# (or stops being) authenticated.
router = APIRouter()

_ERRORS = {
    400: {"model": MessageResponse},
    401: {"model": MessageResponse},
    500: {"model": MessageResponse},
}


def _authenticated_response(session: Session, projection: dict) -> JSONResponse:
    resp = JSONResponse(status_code=200, content=UserPublic(**projection).model_dump())
    set_session_cookie(resp, session.id)
    resp.headers["Cache-Control"] = "no-store"  # [no-store]
    return resp


@router.post("/auth/signup", response_model=UserPublic, responses=_ERRORS)
async def signup(
    request: Request,
    body: SignupRequest,
    session: Session = Depends(get_session),
) -> JSONResponse:
    """Create an account and log the new user in.

    Requiredness and username/email uniqueness are enforced by the User
    Directory; its message is returned as is with a 400.
    """
    manager: SessionManager = request.app.state.session_manager
    session, projection = await manager.signup(session, body.model_dump())
    return _authenticated_response(session, projection)


@router.post("/auth/login", response_model=UserPublic, responses=_ERRORS)
async def login(
    request: Request,
    body: LoginRequest,
    session: Session = Depends(get_session),
) -> JSONResponse:
    """Authenticate with username (or email) and password.

    Unknown account and wrong password return the identical 401 so the
    response does not reveal whether an account exists.
    """
    manager: SessionManager = request.app.state.session_manager
    session, projection = await manager.login(session, body.username, body.password)
    return _authenticated_response(session, projection)


@router.get("/auth/logout", status_code=205, responses={500: {"model": MessageResponse}})
async def logout(request: Request, sid: Optional[str] = Depends(get_session_id)) -> Response:
    """Destroy the session and tell the client to reset its view (205, no body).

    Logging out without a session (or twice) is not an error.
    """
    manager: SessionManager = request.app.state.session_manager
    await manager.logout(sid)
    resp = Response(status_code=205)
    clear_session_cookie(resp)
    return resp
