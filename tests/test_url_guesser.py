"""Building/unit guesses from the URL alone."""

import pytest

from palm_comps.aliases import AliasResolver
from palm_comps.url_guesser import guess_from_url, path_text


def test_palm_views_two_bedroom_from_path():
    resolved = guess_from_url("https://www.propertyfinder.ae/en/palm-views/2-bedroom-apartment", AliasResolver())

    assert resolved.building_name == "Palm Views"
    assert resolved.unit_type == "2BR"
    assert resolved.confidence == 1.0
    assert resolved.facts.source == "url_guess"


@pytest.mark.parametrize(
    "url, building, unit",
    [
        ("https://www.bayut.com/property/studio-palm-tower-for-rent.html", "Palm Tower", "Studio"),
        ("https://www.bayut.com/property/seven-palm-1br-sea-view", "Seven Palm", "1BR"),
        ("https://www.propertyfinder.ae/en/five-palm/three-bedroom-penthouse", "Five Palm", "3BR"),
        ("https://www.bayut.com/property/shoreline-building-8-2-bed", "Shoreline Bldg 8", "2BR"),
        ("https://www.bayut.com/property/shoreline/building-8/2-bed", "Shoreline Bldg 8", "2BR"),
        ("https://www.bayut.com/shoreline/12/studio", "Shoreline Bldg 12", "Studio"),
    ],
)
def test_known_path_tokens(url, building, unit):
    resolved = guess_from_url(url, AliasResolver())
    assert resolved.building_name == building
    assert resolved.unit_type == unit


def test_guessed_building_goes_through_the_alias_table(aliases):
    resolved = guess_from_url("https://www.bayut.com/property/seven-palm-2br", aliases)
    assert resolved.building_name == "Seven Palm Jumeirah"


def test_nothing_recognized_keeps_base_confidence():
    resolved = guess_from_url("https://www.bayut.com/property/details-9182.html", AliasResolver())

    assert resolved.building_name is None
    assert resolved.unit_type is None
    assert resolved.confidence == 0.4


def test_path_text_lowercases_and_decodes():
    assert path_text("https://example.com/Palm%20Views/2-Bed?ref=x") == "/palm views/2-bed"
