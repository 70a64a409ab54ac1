"""
beers/models.py -- Domain dataclass for catalog entries.

Pure data container. Validation, uniqueness and search live in
beers/store.py.
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_IMAGE_URL = "https://images.punkapi.com/v2/2.png"


@dataclass
class Beer:
    """A beer in the catalog.

    first_brewed is stored as an ISO 8601 date (YYYY-MM-DD).
    owner is the id of the user who added the beer, None for anonymous adds.
    id is None before the record is written to the database.
    """

    name: str
    tagline: str
    description: str
    first_brewed: str
    brewers_tips: str
    attenuation_level: float
    contributed_by: str
    image_url: str = DEFAULT_IMAGE_URL
    owner: Optional[int] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
