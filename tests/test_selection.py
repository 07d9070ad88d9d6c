"""Unit type selection for a matched building."""

from palm_comps.schemas import SelectionReason
from palm_comps.selection import most_common_unit, select_unit

AVAILABLE = ["2BR", "Studio", "1BR"]


def test_exact_match_is_case_insensitive():
    selection = select_unit("Palm Views", "1br", AVAILABLE)

    assert selection.unit_type_chosen == "1BR"
    assert selection.reason is SelectionReason.EXACT_MATCH
    assert selection.available_units == ["Studio", "1BR", "2BR"]


def test_maids_room_falls_back_one_class():
    selection = select_unit("Palm Views", "3BR", AVAILABLE, has_maids_room=True)

    assert selection.unit_type_requested == "3BR"
    assert selection.unit_type_chosen == "2BR"
    assert selection.reason is SelectionReason.MAIDS_ROOM_FALLBACK
    assert selection.fallback_message == "No 3BR comparables in Palm Views; showing 2BR instead"


def test_lower_class_fallback_needs_a_maids_room_by_default():
    selection = select_unit("Palm Views", "3BR", AVAILABLE)

    assert selection.unit_type_chosen is None
    assert selection.reason is SelectionReason.UNIT_TYPE_NOT_AVAILABLE
    assert selection.fallback_message is None


def test_ungated_lower_class_fallback():
    selection = select_unit("Palm Views", "3BR", AVAILABLE, maids_room_fallback_only=False)

    assert selection.unit_type_chosen == "2BR"
    assert selection.reason is SelectionReason.LOWER_CLASS_FALLBACK


def test_fallback_is_only_one_class_down():
    selection = select_unit("Palm Views", "4BR", AVAILABLE, has_maids_room=True)

    assert selection.unit_type_chosen is None
    assert selection.reason is SelectionReason.UNIT_TYPE_NOT_AVAILABLE


def test_studio_has_no_lower_class():
    selection = select_unit("Palm Views", "Studio", ["1BR"], has_maids_room=True)
    assert selection.unit_type_chosen is None


def test_missing_building_and_invalid_unit():
    assert select_unit(None, "1BR", AVAILABLE).reason is SelectionReason.BUILDING_NOT_FOUND
    assert select_unit("Palm Views", "penthouse", AVAILABLE).reason is SelectionReason.UNIT_TYPE_INVALID


def test_chosen_unit_is_always_available():
    for requested in ["Studio", "1BR", "2BR", "3BR", "4BR", "junk"]:
        for maid in (True, False):
            selection = select_unit("Palm Views", requested, AVAILABLE, has_maids_room=maid)
            if selection.unit_type_chosen is not None:
                assert selection.unit_type_chosen in selection.available_units


def test_most_common_unit_breaks_ties_alphabetically():
    selection = most_common_unit("Palm Views", {"2BR": 4, "1BR": 4, "Studio": 1})

    assert selection.unit_type_chosen == "1BR"
    assert selection.reason is SelectionReason.MOST_COMMON


def test_most_common_unit_without_data():
    assert most_common_unit("Palm Views", {}).reason is SelectionReason.UNIT_TYPE_NOT_AVAILABLE
    assert most_common_unit(None, {"1BR": 2}).reason is SelectionReason.BUILDING_NOT_FOUND
