"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost zero logic). Mirrors the
approach in beers/models.py -- dataclasses own domain shape; stores and the
session manager do the work.

Query predicates are plain data as well. The Directory (auth/store.py)
translates them into SQL; callers never build SQL or branch on "is this an
email?" themselves.

Layer rule: no imports from api/ or beers/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

# Fields a predicate may target. Anything else is rejected by the Directory.
QUERYABLE_FIELDS = frozenset({"id", "username", "email"})

PUBLIC_FIELDS = ("username", "email", "firstname", "lastname", "id")


@dataclass
class User:
    """A registered account.

    password_hash is the bcrypt hash produced at creation time. The plaintext
    password is never stored on this object.

    id is None before the record is written to the database.
    """

    username: str
    email: str
    firstname: str
    lastname: str
    password_hash: str
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert


def public_projection(user: User) -> dict[str, Any]:
    """Return the subset of a User that is safe to hand to the client.

    Exactly {username, email, firstname, lastname, id}. This dict is what
    lives on the session and what the signup/login responses return.
    """
    return {name: getattr(user, name) for name in PUBLIC_FIELDS}


# ---------------------------------------------------------------------------
# Query predicates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldEquals:
    field: str
    value: Any


@dataclass(frozen=True)
class AnyOf:
    """Matches when at least one of the wrapped predicates matches."""

    predicates: tuple[FieldEquals, ...]


Predicate = Union[FieldEquals, AnyOf]


def username_or_email(value: str) -> AnyOf:
    """Login lookup: the submitted "username" may be either a username or an email."""
    return AnyOf((FieldEquals("username", value), FieldEquals("email", value)))


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@dataclass
class Session:
    """Server-side session record, addressed by an opaque id carried in a cookie.

    id is None for an anonymous session that has never been saved -- every
    request starts with one of these unless its cookie names a live session.
    data["user"] holds the public projection once the client authenticates.
    """

    id: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    expires_at: str = ""

    @property
    def user(self) -> Optional[dict[str, Any]]:
        return self.data.get("user")

    @property
    def is_anonymous(self) -> bool:
        return self.user is None
