"""Canonical form, token matching and unit/building normalization."""

import pytest

from palm_comps.normalize import (
    best_match,
    canonical,
    clean_building_text,
    jaccard,
    lower_unit_class,
    normalize_building,
    normalize_unit_type,
    query_overlap,
    similarity,
    tokenize,
    unit_type_from_text,
)


@pytest.mark.parametrize("raw", ["  Palm   Views ", "PALM VIEWS", "palm\tviews\n", "Seven Palm"])
def test_canonical_is_idempotent(raw):
    assert canonical(canonical(raw)) == canonical(raw)


def test_canonical_ignores_case_and_spacing():
    assert canonical("  Palm   Views ") == canonical("palm views") == "palm views"


def test_canonical_and_tokenize_are_total():
    assert canonical(None) == ""
    assert canonical("") == ""
    assert tokenize(None) == set()
    assert tokenize("   ") == set()


def test_tokenize_drops_single_characters_and_duplicates():
    assert tokenize("Shoreline Bldg 8 a palm PALM") == {"shoreline", "bldg", "palm"}


@pytest.mark.parametrize(
    "a, b",
    [
        ("Seven Palm", "Seven Palm Jumeirah"),
        ("Palm Views East", "Palm Views West"),
        ("Azure Residences", "Tiara Residences"),
        ("Th8", "Club Vista Mare"),
    ],
)
def test_similarity_is_symmetric_and_bounded(a, b):
    assert similarity(a, b) == similarity(b, a)
    assert 0.0 <= similarity(a, b) <= 1.0


def test_similarity_of_a_name_with_itself_is_one():
    assert similarity("Fairmont Palm Residences", "fairmont  palm residences") == 1.0


def test_jaccard_empty_sets_score_zero():
    assert jaccard(set(), {"palm"}) == 0.0
    assert jaccard({"palm"}, set()) == 0.0


def test_query_overlap_scores_against_the_query_only():
    assert query_overlap({"seven", "palm"}, {"seven", "palm", "jumeirah"}) == 1.0
    assert jaccard({"seven", "palm"}, {"seven", "palm", "jumeirah"}) == pytest.approx(2 / 3)


def test_best_match_keeps_first_candidate_on_a_tie():
    matched, score = best_match("palm views", ["Palm Views East", "Palm Views West"], 0.5)
    assert matched == "Palm Views East"
    assert score == pytest.approx(2 / 3)


def test_best_match_replaces_on_a_strictly_greater_score():
    matched, score = best_match("seven palm", ["Seven Palm Jumeirah", "Seven Palm"], 0.6)
    assert matched == "Seven Palm"
    assert score == 1.0


def test_best_match_returns_none_below_threshold():
    assert best_match("marina residences", ["Palm Views", "Palm Tower"], 0.4) == (None, 0.0)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Studio", "Studio"),
        ("0", "Studio"),
        ("1", "1BR"),
        ("2br", "2BR"),
        ("3 BR", "3BR"),
        ("2 bedrooms", "2BR"),
        ("4 Bed", "4BR"),
        ("two bedroom", "2BR"),
        ("penthouse", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_unit_type(raw, expected):
    assert normalize_unit_type(raw) == expected


def test_unit_type_from_text_counts_a_maids_room():
    assert unit_type_from_text("Spacious 2 Bed + Maid with sea view") == "3BR"


def test_unit_type_from_text_ignores_maid_service():
    assert unit_type_from_text("2 bedroom with maid service included") == "2BR"


def test_lower_unit_class():
    assert lower_unit_class("3BR") == "2BR"
    assert lower_unit_class("1BR") == "Studio"
    assert lower_unit_class("Studio") is None
    assert lower_unit_class(None) is None


def test_clean_building_text_strips_portal_boilerplate():
    assert clean_building_text("Apartment for rent in Oceana Residences | Property Finder") == "Oceana Residences"


def test_clean_building_text_rejects_generic_locations():
    assert clean_building_text("Palm Jumeirah") is None
    assert clean_building_text("AB") is None


def test_normalize_building_prefers_known_names_in_text_then_url():
    assert normalize_building("Luxury 2BR in Seven Palm, Dubai") == "Seven Palm"
    assert normalize_building(None, "https://www.bayut.com/property/palm-tower-2-bed.html") == "Palm Tower"
    assert normalize_building(None, None) is None
