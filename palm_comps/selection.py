"""Choose which unit type of a matched building to project economics for."""

from collections.abc import Iterable, Mapping

from .normalize import canonical, lower_unit_class, normalize_unit_type
from .registry import unit_sort_key
from .schemas import SelectionReason, UnitSelection


def select_unit(
    building_name: str | None,
    requested: str | None,
    available: Iterable[str],
    has_maids_room: bool = False,
    maids_room_fallback_only: bool = True,
) -> UnitSelection:
    """Use the requested unit type if the building has it, else one class down.

    A listing that counts its maid's room as a bedroom is really one class
    smaller, so the N-1 fallback is only taken on that signal unless
    `maids_room_fallback_only` is off.
    """
    units = sorted(set(available), key=unit_sort_key)
    by_key = {canonical(u): u for u in units}

    def selection(chosen: str | None, reason: SelectionReason, wanted: str | None = requested) -> UnitSelection:
        return UnitSelection(
            building_name=building_name,
            unit_type_requested=wanted,
            unit_type_chosen=chosen,
            reason=reason,
            available_units=units,
        )

    if not building_name:
        return selection(None, SelectionReason.BUILDING_NOT_FOUND)

    wanted = normalize_unit_type(requested)
    if wanted is None:
        return selection(None, SelectionReason.UNIT_TYPE_INVALID)

    if canonical(wanted) in by_key:
        return selection(by_key[canonical(wanted)], SelectionReason.EXACT_MATCH, wanted)

    lower = lower_unit_class(wanted)
    if lower and canonical(lower) in by_key:
        if has_maids_room:
            return selection(by_key[canonical(lower)], SelectionReason.MAIDS_ROOM_FALLBACK, wanted)
        if not maids_room_fallback_only:
            return selection(by_key[canonical(lower)], SelectionReason.LOWER_CLASS_FALLBACK, wanted)

    return selection(None, SelectionReason.UNIT_TYPE_NOT_AVAILABLE, wanted)


def most_common_unit(building_name: str | None, unit_counts: Mapping[str, int]) -> UnitSelection:
    """Default to the building's most frequent unit type; ties go alphabetically."""
    units = sorted(unit_counts, key=unit_sort_key)
    if not building_name:
        reason, chosen = SelectionReason.BUILDING_NOT_FOUND, None
    elif not unit_counts:
        reason, chosen = SelectionReason.UNIT_TYPE_NOT_AVAILABLE, None
    else:
        chosen = min(unit_counts, key=lambda u: (-unit_counts[u], u))
        reason = SelectionReason.MOST_COMMON

    return UnitSelection(
        building_name=building_name,
        unit_type_requested=None,
        unit_type_chosen=chosen,
        reason=reason,
        available_units=units,
    )
