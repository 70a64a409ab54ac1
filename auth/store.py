"""
auth/store.py -- User Directory: SQLAlchemy Core persistence for user records.

Pattern: Repository + Data Mapper (same as beers/store.py).
UserStore is the repository; _row_to_user is the mapper. The session manager
never touches SQL directly.

Uniqueness:
  username and email are checked twice. create_user() first queries for an
  existing record and reports a readable ValidationError. The UNIQUE
  constraints on both columns are the second line of defence: two concurrent
  signups can both pass the pre-check, and the loser's IntegrityError is
  translated into the same ValidationError. The database is the sole arbiter.

Security:
  All queries use bound parameters. No f-strings in SQL.
  The plaintext password is hashed before the INSERT and is never persisted.

Layer rule: no imports from api/ or beers/.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, or_
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth import passwords
from auth.models import QUERYABLE_FIELDS, AnyOf, FieldEquals, Predicate, User
from core.config import get_settings
from core.db import make_engine, now_iso
from core.errors import ValidationError

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("firstname", String(255), nullable=False),
    Column("lastname", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

# Requiredness rules, checked in this order so error messages are stable.
_REQUIRED_FIELDS = ("username", "firstname", "lastname", "email", "password")

_UNIQUE_FIELDS = ("username", "email")

# Stored as String(255). The password is hashed, so its length is not capped here.
_MAX_LENGTH = 255
_LENGTH_CHECKED_FIELDS = ("username", "firstname", "lastname", "email")


def _required_message(name: str) -> str:
    return f"Path `{name}` is required."


def _duplicate_message(name: str) -> str:
    return f"A user with this {name} already exists."


def _too_long_message(name: str) -> str:
    return f"Path `{name}` is longer than the maximum allowed length ({_MAX_LENGTH})."


def _clean(value: Any) -> Optional[str]:
    """Coerce a submitted scalar to str; None and blank strings count as missing."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    return text if text.strip() else None


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore()
        user = store.create_user({"username": "MasterBrew", "email": "j@x.com", ...})
        found = store.find_user(username_or_email("j@x.com"))
        ok = await store.compare(found, "secret1")
        store.close()
    """

    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_user(self, fields: dict[str, Any]) -> User:
        """Validate, hash the password, and insert a new user.

        Unknown keys in `fields` are ignored. Raises ValidationError listing
        every missing or overlong field and every taken username/email.
        """
        values = {name: _clean(fields.get(name)) for name in _REQUIRED_FIELDS}

        errors: dict[str, str] = {}
        for name in _REQUIRED_FIELDS:
            if values[name] is None:
                errors[name] = _required_message(name)
            elif name in _LENGTH_CHECKED_FIELDS and len(values[name]) > _MAX_LENGTH:
                errors[name] = _too_long_message(name)
        for name in _UNIQUE_FIELDS:
            if name not in errors and self.find_user(FieldEquals(name, values[name])) is not None:
                errors[name] = _duplicate_message(name)
        if errors:
            raise ValidationError.from_fields("user", errors)

        user = User(
            username=values["username"],
            email=values["email"],
            firstname=values["firstname"],
            lastname=values["lastname"],
            password_hash=passwords.hash_password(values["password"]),
            created_at=now_iso(),
        )
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        email=user.email,
                        firstname=user.firstname,
                        lastname=user.lastname,
                        password_hash=user.password_hash,
                        created_at=user.created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent signup between the pre-check and the INSERT.
            raise self._duplicate_error(user) from exc
        user.id = result.inserted_primary_key[0]
        return user

    def _duplicate_error(self, user: User) -> ValidationError:
        errors = {
            name: _duplicate_message(name)
            for name in _UNIQUE_FIELDS
            if self.find_user(FieldEquals(name, getattr(user, name))) is not None
        }
        return ValidationError.from_fields("user", errors or {"username": _duplicate_message("username")})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_user(self, predicate: Predicate) -> Optional[User]:
        """Return the first user (lowest id) matching `predicate`, or None."""
        stmt = _users.select().where(_where(predicate)).order_by(_users.c.id).limit(1)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.find_user(FieldEquals("id", user_id))

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    async def compare(self, user: User, plaintext: str) -> bool:
        """Check `plaintext` against the user's stored hash (bcrypt, thread pool)."""
        return await passwords.compare(plaintext, user.password_hash)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Predicate -> SQL
# ---------------------------------------------------------------------------


def _where(predicate: Predicate):
    if isinstance(predicate, FieldEquals):
        if predicate.field not in QUERYABLE_FIELDS:
            raise ValueError(f"cannot query users by {predicate.field!r}")
        return _users.c[predicate.field] == predicate.value
    if isinstance(predicate, AnyOf):
        return or_(*(_where(p) for p in predicate.predicates))
    raise TypeError(f"unsupported predicate: {predicate!r}")


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        firstname=row.firstname,
        lastname=row.lastname,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
