"""
auth/cookies.py -- Session cookie transport.

The cookie carries only the opaque session id, signed with SECRET_KEY so a
client cannot probe for other ids by editing it. A bad signature reads as
"no session" (anonymous), never as an error.

Cookie attributes:
  httponly=True: JS cannot read the cookie (XSS mitigation). The SPA never
      touches it; the browser sends it when the client enables credentials.
  samesite: from COOKIE_SAMESITE. "lax" suits same-site deploys; a SPA on
      another site needs "none" together with SECURE_COOKIES=true.
  secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
  max_age: matches the server-side session lifetime.

Layer rule: no imports from api/ or beers/.
"""

from __future__ import annotations

from typing import Optional

from itsdangerous import BadSignature, Signer

from core.config import get_settings

_SALT = "brewhouse.session"


def _signer() -> Signer:
    return Signer(get_settings().secret_key, salt=_SALT)


def sign_session_id(sid: str) -> str:
    return _signer().sign(sid).decode("utf-8")


def unsign_session_id(value: Optional[str]) -> Optional[str]:
    """Return the session id inside a signed cookie value, or None if absent or tampered."""
    if not value:
        return None
    try:
        return _signer().unsign(value).decode("utf-8")
    except BadSignature:
        return None


def set_session_cookie(response, sid: str) -> None:
    """Write the signed session id as an httpOnly cookie on the response."""
    settings = get_settings()
    response.set_cookie(
        settings.session_cookie_name,
        value=sign_session_id(sid),
        httponly=True,
        samesite=settings.cookie_samesite,
        secure=settings.secure_cookies,
        max_age=settings.session_max_age_seconds,
    )


def clear_session_cookie(response) -> None:
    settings = get_settings()
    response.delete_cookie(
        settings.session_cookie_name,
        httponly=True,
        samesite=settings.cookie_samesite,
        secure=settings.secure_cookies,
    )
