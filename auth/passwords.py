"""
auth/passwords.py -- Credential Verifier: bcrypt hashing and comparison.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). bcrypt embeds a fresh
       random salt in every hash, so hashing the same password twice yields two
       different strings that both verify. checkpw compares in constant time.

  Malformed hashes: bcrypt raises ValueError when the stored hash is not a
       bcrypt string. That is a data-integrity problem, not a wrong password, so
       it surfaces as MalformedHashError instead of False. The session manager
       turns it into a 500.

  Async comparison: bcrypt is CPU-bound by design (~250ms at cost 12). compare()
       runs it in Starlette's thread pool so the event loop keeps serving other
       requests while a login is being checked.

  Timing equalization: burn_compare() checks against a dummy hash computed once
       at import, so a login for an unknown account costs the same as a login
       with a wrong password.

Layer rule: no imports from api/ or beers/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging

import bcrypt
from starlette.concurrency import run_in_threadpool

from core.config import get_settings

logger = logging.getLogger("brewhouse.auth")


class MalformedHashError(ValueError):
    """The stored password hash is not a valid bcrypt hash."""


_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    # bcrypt only reads the first 72 bytes; recent releases raise instead of truncating.
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Raises MalformedHashError if `hashed` cannot be parsed as a bcrypt hash.
    """
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError as exc:
        raise MalformedHashError("stored password hash is not a valid bcrypt hash") from exc


async def compare(plain: str, hashed: str) -> bool:
    """Verify `plain` against `hashed` off the event loop."""
    return await run_in_threadpool(verify_password, plain, hashed)


_DUMMY_HASH: str = hash_password("brewhouse_timing_dummy")


async def burn_compare(plain: str) -> None:
    """Spend one bcrypt comparison against the dummy hash and discard the result."""
    await compare(plain, _DUMMY_HASH)
