"""
API request and response models for Brewhouse REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
beers/models.py, which own the internal domain representation. Route handlers
map between the two.

Signup and login fields are deliberately loose at this layer. Requiredness,
length and uniqueness are the User Directory's rules, and a bad signup field
must come back as a 400 with the Directory's message rather than a generic 422
from Pydantic. A login with an overlong value is just an unknown account (401).
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from beers.models import Beer

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup. Extra keys are accepted and ignored."""

    model_config = ConfigDict(extra="ignore")

    # Any scalar is accepted; auth/store.py coerces it to str or reports it missing.
    username: Any = None
    firstname: Any = None
    lastname: Any = None
    email: Any = None
    password: Any = None


class LoginRequest(BaseModel):
    """Request body for POST /auth/login.

    `username` may hold either a username or an email address. Missing fields
    default to "" so the request fails as "Invalid credentials." (401), the
    same as any other unknown account.
    """

    username: str = ""
    password: str = ""

    @field_validator("username", "password", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        # Numbers are read as text; null and objects never match an account.
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            return str(value)
        return ""


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserPublic(BaseModel):
    """The public projection of a user -- the only user shape the API ever returns."""

    model_config = ConfigDict(frozen=True)

    username: str
    email: str
    firstname: str
    lastname: str
    id: int


class MessageResponse(BaseModel):
    """Error envelope: every non-2xx response body is {"message": ...}."""

    message: str


class BeerResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    tagline: str
    description: str
    first_brewed: str
    brewers_tips: str
    attenuation_level: float
    contributed_by: str
    image_url: str
    owner: Optional[int] = None

    @classmethod
    def from_beer(cls, beer: Beer) -> "BeerResponse":
        return cls(
            id=beer.id,
            name=beer.name,
            tagline=beer.tagline,
            description=beer.description,
            first_brewed=beer.first_brewed,
            brewers_tips=beer.brewers_tips,
            attenuation_level=beer.attenuation_level,
            contributed_by=beer.contributed_by,
            image_url=beer.image_url,
            owner=beer.owner,
        )


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
