"""URL dispatch, fetch failures and merging with the URL guess."""

import pytest

from palm_comps.aliases import AliasResolver
from palm_comps.dispatcher import extractor_for, merge_resolutions, resolve
from palm_comps.errors import FetchError, InputError
from palm_comps.page import PageSnapshot
from palm_comps.schemas import PropertyFacts, ResolvedProperty

PALM_VIEWS_URL = "https://www.propertyfinder.ae/en/palm-views/2-bedroom-apartment"


def failing_fetch(url):
    raise FetchError("ConnectTimeout: timed out")


def test_unsupported_domain_is_an_input_error():
    with pytest.raises(InputError):
        extractor_for("https://www.example.com/listing/1")
    with pytest.raises(InputError):
        extractor_for("   ")


def test_supported_portals_have_an_extractor():
    assert extractor_for(PALM_VIEWS_URL)
    assert extractor_for("https://www.bayut.com/property/details-1.html")


def test_resolve_without_fetch_uses_the_url_guess():
    resolved = resolve(PALM_VIEWS_URL, AliasResolver(), fetch=None)

    assert resolved.building_name == "Palm Views"
    assert resolved.unit_type == "2BR"
    assert resolved.confidence == 1.0


def test_fetch_failure_falls_back_to_the_url_guess():
    resolved = resolve(PALM_VIEWS_URL, AliasResolver(), fetch=failing_fetch)

    assert resolved.building_name == "Palm Views"
    assert resolved.facts.source == "url_guess"


def test_unsupported_domain_still_gets_a_url_guess():
    resolved = resolve("https://www.example.com/palm-tower/studio", AliasResolver(), fetch=failing_fetch)

    assert resolved.building_name == "Palm Tower"
    assert resolved.unit_type == "Studio"


def test_resolve_never_raises_on_garbage():
    resolved = resolve("", AliasResolver(), fetch=failing_fetch)

    assert resolved.building_name is None
    assert resolved.unit_type is None


def test_complete_page_extraction_wins(page_builder):
    page = page_builder(title="Apartment for rent in Tiara Residences", details="Bedrooms: 1")

    resolved = resolve(PALM_VIEWS_URL, AliasResolver(), fetch=lambda url: page)

    assert resolved.building_name == "Tiara Residences"
    assert resolved.unit_type == "1BR"


def test_partial_page_is_completed_from_the_url():
    page = PageSnapshot("<html><body><p>Bedrooms: 2 Bathrooms: 2</p></body></html>")

    resolved = resolve(
        "https://www.bayut.com/property/shoreline-building-8-details.html",
        AliasResolver(),
        fetch=lambda url: page,
    )

    assert resolved.building_name == "Shoreline Bldg 8"
    assert resolved.unit_type == "2BR"
    assert resolved.facts.bathrooms == 2
    assert resolved.confidence == 0.8


def test_merge_keeps_primary_values_and_max_confidence():
    primary = ResolvedProperty(
        unit_type="3BR",
        confidence=0.8,
        facts=PropertyFacts(bedrooms=3, listing_type="rent"),
    )
    guess = ResolvedProperty(
        building_name="Palm Views",
        unit_type="2BR",
        confidence=1.0,
        facts=PropertyFacts(source="url_guess"),
    )

    merged = merge_resolutions(primary, guess)

    assert merged.building_name == "Palm Views"
    assert merged.unit_type == "3BR"
    assert merged.confidence == 1.0
    assert merged.facts.bedrooms == 3
    assert merged.facts.source == "url_guess"
