"""
tests/test_beer_store.py -- Unit tests for BeerStore validation, persistence and search.

Coverage:
  - create_beer() normalizes first_brewed and attenuation_level
  - every missing field reported in field order with the catalog messages
  - duplicate names rejected
  - default image URL and owner handling
  - search(): blank query, OR semantics, case-insensitivity, name-weighted order,
    LIKE wildcards treated literally
"""

from __future__ import annotations

from datetime import date

import pytest

from beers.models import DEFAULT_IMAGE_URL
from beers.store import DUPLICATE_NAME_MESSAGE, BeerStore, parse_first_brewed
from core.errors import ValidationError


def _beer(buzz_fields: dict, **overrides) -> dict:
    return {**buzz_fields, **overrides}


class TestParseFirstBrewed:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("09/2007", "2007-09-01"),
            ("2007-09-15", "2007-09-15"),
            ("2007-09-15T10:30:00", "2007-09-15"),
            (date(2010, 1, 2), "2010-01-02"),
        ],
    )
    def test_accepted_formats(self, raw, expected) -> None:
        assert parse_first_brewed(raw) == expected

    @pytest.mark.parametrize("raw", ["yesterday", "13/2007", "2007/09"])
    def test_rejected_formats(self, raw) -> None:
        with pytest.raises(ValueError):
            parse_first_brewed(raw)


class TestCreateBeer:
    def test_create_normalizes_values(self, beer_store: BeerStore, buzz_fields) -> None:
        beer = beer_store.create_beer(buzz_fields)
        assert beer.id is not None
        assert beer.first_brewed == "2007-09-01"
        assert beer.attenuation_level == 75.0
        assert beer.image_url == DEFAULT_IMAGE_URL
        assert beer.owner is None

    def test_create_keeps_image_and_owner(self, beer_store: BeerStore, buzz_fields) -> None:
        beer = beer_store.create_beer(_beer(buzz_fields, image_url="https://img.example/buzz.png", owner=4))
        stored = beer_store.get_beer(beer.id)
        assert stored.image_url == "https://img.example/buzz.png"
        assert stored.owner == 4

    def test_missing_fields_reported_in_order(self, beer_store: BeerStore) -> None:
        with pytest.raises(ValidationError) as exc_info:
            beer_store.create_beer({"name": "", "attenuation_level": "lots"})
        err = exc_info.value
        assert list(err.errors) == [
            "tagline",
            "description",
            "first_brewed",
            "brewers_tips",
            "attenuation_level",
            "contributed_by",
            "name",
        ]
        assert err.message.startswith("beer validation failed: tagline: Beers need taglines.")

    def test_bad_date_is_field_error(self, beer_store: BeerStore, buzz_fields) -> None:
        with pytest.raises(ValidationError) as exc_info:
            beer_store.create_beer(_beer(buzz_fields, first_brewed="someday"))
        assert list(exc_info.value.errors) == ["first_brewed"]

    def test_duplicate_name_rejected(self, beer_store: BeerStore, buzz_fields) -> None:
        beer_store.create_beer(buzz_fields)
        with pytest.raises(ValidationError) as exc_info:
            beer_store.create_beer(buzz_fields)
        assert exc_info.value.errors == {"name": DUPLICATE_NAME_MESSAGE}

    def test_validate_does_not_insert(self, beer_store: BeerStore, buzz_fields) -> None:
        beer_store.validate(buzz_fields)
        assert beer_store.list_beers() == []

    def test_list_and_lookup(self, beer_store: BeerStore, buzz_fields) -> None:
        first = beer_store.create_beer(buzz_fields)
        second = beer_store.create_beer(_beer(buzz_fields, name="Trashy Blonde"))
        assert [b.id for b in beer_store.list_beers()] == [first.id, second.id]
        assert beer_store.get_by_name("Trashy Blonde").id == second.id
        assert beer_store.get_beer(9999) is None


class TestSearch:
    @pytest.fixture
    def catalog(self, beer_store: BeerStore, buzz_fields) -> BeerStore:
        beer_store.create_beer(buzz_fields)
        beer_store.create_beer(
            _beer(
                buzz_fields,
                name="Bitter Sweet",
                tagline="Toffee and caramel.",
                description="Malty and smooth.",
                brewers_tips="Serve cold.",
            )
        )
        beer_store.create_beer(
            _beer(
                buzz_fields,
                name="Pilsen Lager",
                tagline="Unleash the Yeast Series.",
                description="100% lager, brewed with 100% of the hops.",
                brewers_tips="Keep it fresh.",
            )
        )
        return beer_store

    def test_blank_query_matches_nothing(self, catalog: BeerStore) -> None:
        assert catalog.search("") == []
        assert catalog.search("   ") == []

    def test_case_insensitive(self, catalog: BeerStore) -> None:
        names = {b.name for b in catalog.search("LAGER")}
        assert names == {"Pilsen Lager"}

    def test_case_insensitive_beyond_ascii(self, catalog: BeerStore, buzz_fields) -> None:
        catalog.create_beer(_beer(buzz_fields, name="Äpfelwein", tagline="SÜSS UND HERB."))
        assert [b.name for b in catalog.search("äpfelwein")] == ["Äpfelwein"]
        assert [b.name for b in catalog.search("süss")] == ["Äpfelwein"]
        assert [b.name for b in catalog.search("ÄPFELWEIN")] == ["Äpfelwein"]

    def test_any_term_matches(self, catalog: BeerStore) -> None:
        names = {b.name for b in catalog.search("toffee lager")}
        assert names == {"Bitter Sweet", "Pilsen Lager"}

    def test_name_hits_rank_first(self, catalog: BeerStore) -> None:
        results = catalog.search("bitter")
        assert [b.name for b in results][:2] == ["Bitter Sweet", "Buzz"]

    def test_wildcards_are_literal(self, catalog: BeerStore) -> None:
        assert [b.name for b in catalog.search("100%")] == ["Pilsen Lager"]
        assert catalog.search("_") == []
