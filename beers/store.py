"""
beers/store.py -- SQLAlchemy-backed persistence for the beer catalog.

Uses SQLAlchemy Core (not ORM) so the Beer dataclass in beers/models.py
remains the authoritative domain representation.

Pattern: Repository + Data Mapper. BeerStore is the repository; _row_to_beer
is the mapper. Route handlers never touch SQL directly.

Validation:
  validate() checks every field and reports all failures in one
  ValidationError ("beer validation failed: tagline: ..., name: ..."). Field
  order and messages are part of the API contract -- the SPA shows them as is.
  create_beer() runs it before every insert; POST /beers also runs it before
  uploading the image, so a rejected beer never leaves an orphaned upload.

  name is unique. Like user signup, the explicit pre-check gives a readable
  message and the UNIQUE constraint catches the race between two creators.

Search:
  search() is a simple full-text search over name, tagline, brewers_tips and
  description. Any query term may match (OR semantics), case-insensitively.
  Results are ordered by a weighted hit count, name hits first.
  SQLite's lower() only folds ASCII, so every row also stores search_text,
  the casefolded searchable fields, and terms are casefolded the same way.

Security: all queries use bound parameters. LIKE wildcards in user terms are
escaped (autoescape=True).

Usage:
    store = BeerStore()
    beer = store.create_beer({"name": "Buzz", "tagline": "A Real Bitter Experience.", ...})
    store.search("bitter hoppy")
    store.close()
"""

import logging
import math
import re
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, or_
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from beers.models import DEFAULT_IMAGE_URL, Beer
from core.config import get_settings
from core.db import make_engine, now_iso
from core.errors import ValidationError

logger = logging.getLogger("brewhouse.beers")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_beers = Table(
    "beers",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("tagline", Text, nullable=False),
    Column("description", Text, nullable=False),
    Column("first_brewed", String(10), nullable=False),  # YYYY-MM-DD
    Column("brewers_tips", Text, nullable=False),
    Column("attenuation_level", Float, nullable=False),
    Column("contributed_by", String(255), nullable=False),
    Column("image_url", Text, nullable=False),
    Column("owner", Integer),  # users.id, NULL for anonymous adds
    Column("search_text", Text, nullable=False),  # casefolded _SEARCH_FIELDS, one per line
    Column("created_at", String(32), nullable=False),
)

# ---------------------------------------------------------------------------
# Validation rules
# ---------------------------------------------------------------------------

# Ordered as the fields appear on the record; errors are reported in this order.
_REQUIRED_MESSAGES: dict[str, str] = {
    "tagline": "Beers need taglines.",
    "description": "Beers deserve descriptions!",
    "first_brewed": (
        "Beers should have a day of birth too. :( Please provide a date in the right format."
    ),
    "brewers_tips": (
        "What, no tips? How am I supposed to drink. With which food am I supposed to pair this. "
        "I'm so confused."
    ),
    "attenuation_level": "Which color has this beer? Please provide the attenuation_level as a number.",
    "contributed_by": "Come on! Are you not proud of this beer?",
    "name": "How am I supposed to call this beer?",
}

DUPLICATE_NAME_MESSAGE = "A beer with this name already exists."

_SEARCH_FIELDS: dict[str, int] = {
    "name": 3,
    "tagline": 1,
    "brewers_tips": 1,
    "description": 1,
}

_MONTH_YEAR = re.compile(r"^(\d{1,2})/(\d{4})$")


def parse_first_brewed(value: Any) -> str:
    """Normalize a brew date to YYYY-MM-DD.

    Accepts a date/datetime, "YYYY-MM-DD", a full ISO 8601 datetime, or the
    punkapi-style "MM/YYYY" (read as the first of that month).
    Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    match = _MONTH_YEAR.match(text)
    if match:
        return date(int(match.group(2)), int(match.group(1)), 1).isoformat()
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        return datetime.fromisoformat(text).date().isoformat()


def _parse_attenuation(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("booleans are not numbers")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError("attenuation_level must be finite")
    return number


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BeerStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def validate(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Check `fields` against the catalog rules and return the normalized values.

        Raises ValidationError listing every failing field. Unknown keys are ignored.
        """
        errors: dict[str, str] = {}
        values: dict[str, Any] = {}
        for name, message in _REQUIRED_MESSAGES.items():
            raw = fields.get(name)
            if _blank(raw):
                errors[name] = message
                continue
            try:
                if name == "first_brewed":
                    values[name] = parse_first_brewed(raw)
                elif name == "attenuation_level":
                    values[name] = _parse_attenuation(raw)
                else:
                    values[name] = str(raw).strip()
            except (TypeError, ValueError):
                errors[name] = message

        if "name" in values and self.get_by_name(values["name"]) is not None:
            errors["name"] = DUPLICATE_NAME_MESSAGE
        if errors:
            raise ValidationError.from_fields("beer", errors)
        return values

    def create_beer(self, fields: dict[str, Any]) -> Beer:
        """Validate `fields` and insert a new beer. Raises ValidationError."""
        values = self.validate(fields)
        beer = Beer(
            image_url=fields.get("image_url") or DEFAULT_IMAGE_URL,
            owner=fields.get("owner"),
            created_at=now_iso(),
            **values,
        )
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _beers.insert().values(
                        name=beer.name,
                        tagline=beer.tagline,
                        description=beer.description,
                        first_brewed=beer.first_brewed,
                        brewers_tips=beer.brewers_tips,
                        attenuation_level=beer.attenuation_level,
                        contributed_by=beer.contributed_by,
                        image_url=beer.image_url,
                        owner=beer.owner,
                        search_text=_search_text(beer),
                        created_at=beer.created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ValidationError.from_fields("beer", {"name": DUPLICATE_NAME_MESSAGE}) from exc
        beer.id = result.inserted_primary_key[0]
        logger.info("Beer created: id=%s", beer.id)
        return beer

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_beer(self, beer_id: int) -> Optional[Beer]:
        with self.engine.connect() as conn:
            row = conn.execute(_beers.select().where(_beers.c.id == beer_id)).fetchone()
        return _row_to_beer(row) if row is not None else None

    def get_by_name(self, name: str) -> Optional[Beer]:
        with self.engine.connect() as conn:
            row = conn.execute(_beers.select().where(_beers.c.name == name)).fetchone()
        return _row_to_beer(row) if row is not None else None

    def list_beers(self) -> list[Beer]:
        with self.engine.connect() as conn:
            rows = conn.execute(_beers.select().order_by(_beers.c.id)).fetchall()
        return [_row_to_beer(r) for r in rows]

    def search(self, query: str) -> list[Beer]:
        """Return beers matching any term of `query`, best matches first.

        A blank query matches nothing.
        """
        terms = list(dict.fromkeys(query.casefold().split()))
        if not terms:
            return []
        clauses = [_beers.c.search_text.contains(term, autoescape=True) for term in terms]
        with self.engine.connect() as conn:
            rows = conn.execute(_beers.select().where(or_(*clauses))).fetchall()
        beers = [_row_to_beer(r) for r in rows]
        beers.sort(key=lambda b: (-_score(b, terms), b.id))
        return beers

    def close(self) -> None:
        self.engine.dispose()


def _search_text(beer: Beer) -> str:
    # Terms never contain whitespace, so a match cannot span two fields.
    return "\n".join(getattr(beer, name).casefold() for name in _SEARCH_FIELDS)


def _score(beer: Beer, terms: list[str]) -> int:
    score = 0
    for name, weight in _SEARCH_FIELDS.items():
        text = getattr(beer, name).casefold()
        score += weight * sum(text.count(term) for term in terms)
    return score


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_beer(row) -> Beer:
    return Beer(
        id=row.id,
        name=row.name,
        tagline=row.tagline,
        description=row.description,
        first_brewed=row.first_brewed,
        brewers_tips=row.brewers_tips,
        attenuation_level=row.attenuation_level,
        contributed_by=row.contributed_by,
        image_url=row.image_url,
        owner=row.owner,
        created_at=row.created_at,
    )
