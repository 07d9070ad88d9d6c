"""Comparable listing dataset: row sources, parsing and cached snapshots.

The dataset is loaded into an immutable DatasetSnapshot keyed by the
source's modification marker. A reload builds a complete new snapshot and
publishes it with a single reference assignment, so readers always see
either the old snapshot or the new one, never a half-built one.
"""

import csv
import logging
import threading
from collections import Counter
from collections.abc import Hashable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Protocol

from .errors import ConfigError, DataError
from .normalize import canonical, normalize_unit_type
from .schemas import ComparableListing

logger = logging.getLogger(__name__)

# Logical field -> accepted headers, in priority order. Matching is case-insensitive.
HEADER_ALIASES: dict[str, list[str]] = {
    "listing_id": ["airbnb_id", "id", "listing_id"],
    "url": ["link", "airbnb_url", "url"],
    "building": ["building", "building_name", "bldg_name"],
    "unit": ["unit_type", "unit", "bedrooms", "bedroom", "beds", "beds_label"],
    "revenue": ["revenue", "annual_revenue"],
    "occupancy": ["occupancy", "occ"],
    "days_available": ["days_available", "days"],
    "adr": ["adr", "average_daily_rate"],
}

DEFAULT_URL_TEMPLATE = "https://www.airbnb.com/rooms/{listing_id}"


# =============================================================================
# Row sources
# =============================================================================


class RowSource(Protocol):
    """Where comparable rows come from."""

    description: str

    def marker(self) -> Hashable | None:
        """Changes whenever the rows change; None when the source is unavailable."""
        ...

    def read(self) -> tuple[Sequence[str], Iterable[Mapping[str, str | None]]]:
        """Header names and rows keyed by those headers."""
        ...


class CSVRowSource:
    """CSV file with a header row; the marker is the file's mtime."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.description = str(self.path)

    def marker(self) -> Hashable | None:
        try:
            return self.path.stat().st_mtime_ns
        except OSError:
            return None

    def read(self) -> tuple[Sequence[str], Iterable[Mapping[str, str | None]]]:
        try:
            with self.path.open(newline="", encoding="utf-8-sig") as f:
                reader = csv.DictReader(f)
                rows = list(reader)
                return list(reader.fieldnames or []), rows
        except OSError as e:
            raise ConfigError(f"cannot read {self.path}: {e}") from e


class StaticRowSource:
    """In-memory rows, for callers that already hold the data."""

    def __init__(self, rows: Iterable[Mapping[str, object]], marker: Hashable = "static"):
        self.rows = [dict(r) for r in rows]
        self._marker = marker
        self.description = "<memory>"

    def marker(self) -> Hashable | None:
        return self._marker

    def read(self) -> tuple[Sequence[str], Iterable[Mapping[str, str | None]]]:
        headers: dict[str, None] = {}
        for row in self.rows:
            headers.update(dict.fromkeys(row))
        return list(headers), [
            {k: (None if v is None else str(v)) for k, v in row.items()} for row in self.rows
        ]


# =============================================================================
# Row parsing
# =============================================================================


class HeaderIndex:
    """Resolves each logical field to the actual header once per load."""

    def __init__(self, headers: Iterable[str]):
        by_lower: dict[str, str] = {}
        for header in headers:
            if header is not None:
                by_lower.setdefault(header.strip().lower(), header)

        self.columns: dict[str, str] = {}
        for logical, accepted in HEADER_ALIASES.items():
            for name in accepted:
                if name in by_lower:
                    self.columns[logical] = by_lower[name]
                    break

    def get(self, row: Mapping[str, str | None], logical: str) -> str:
        column = self.columns.get(logical)
        value = row.get(column) if column else None
        return (value or "").strip()


def _to_float(value: str) -> float:
    try:
        return float(value.replace(",", ""))
    except ValueError:
        return 0.0


def _to_int(value: str) -> int:
    try:
        return int(float(value.replace(",", "")))
    except ValueError:
        return 0


def normalize_revenue(value: float) -> float:
    """Revenue below 100 was exported in millions (1.1 -> 1,100,000)."""
    if 0 < value < 100:
        return float(round(value * 1_000_000))
    return float(round(value))


def normalize_occupancy(value: float) -> float:
    """Occupancy as a percent; fractions (0-1) are scaled up."""
    if value <= 1.0:
        value *= 100
    return min(max(value, 0.0), 100.0)


def parse_row(
    row: Mapping[str, str | None],
    index: HeaderIndex,
    url_template: str = DEFAULT_URL_TEMPLATE,
) -> ComparableListing:
    """Build a ComparableListing, raising DataError when required fields are missing."""
    listing_id = index.get(row, "listing_id")
    building = index.get(row, "building")
    raw_unit = index.get(row, "unit")
    if not listing_id or not building or not raw_unit or raw_unit.lower() == "nil":
        raise DataError("row is missing id, building or unit")

    unit_type = normalize_unit_type(raw_unit)
    if unit_type is None:
        raise DataError(f"unrecognized unit type {raw_unit!r}")

    url = index.get(row, "url") or url_template.format(listing_id=listing_id)

    return ComparableListing(
        listing_id=listing_id,
        url=url,
        building=" ".join(building.split()),
        raw_unit_type=raw_unit,
        unit_type=unit_type,
        revenue=normalize_revenue(_to_float(index.get(row, "revenue"))),
        occupancy=normalize_occupancy(_to_float(index.get(row, "occupancy"))),
        adr=_to_float(index.get(row, "adr")),
        days_available=_to_int(index.get(row, "days_available")),
    )


# =============================================================================
# Snapshots
# =============================================================================


@dataclass(frozen=True, eq=False)
class DatasetSnapshot:
    """Immutable view of the dataset at one source marker."""

    marker: Hashable | None
    source: str
    listings: tuple[ComparableListing, ...] = ()
    skipped_rows: int = 0
    buildings: tuple[str, ...] = field(init=False)
    units_by_building: Mapping[str, tuple[str, ...]] = field(init=False)

    def __post_init__(self):
        buildings: dict[str, str] = {}
        units: dict[str, list[str]] = {}
        for listing in self.listings:
            key = canonical(listing.building)
            buildings.setdefault(key, listing.building)
            units.setdefault(key, []).append(listing.unit_type)
        object.__setattr__(self, "buildings", tuple(buildings.values()))
        object.__setattr__(
            self,
            "units_by_building",
            MappingProxyType({k: tuple(v) for k, v in units.items()}),
        )

    @classmethod
    def empty(cls, source: str = "", marker: Hashable | None = None) -> "DatasetSnapshot":
        return cls(marker=marker, source=source)

    def __len__(self) -> int:
        return len(self.listings)

    def rows_for(self, building: str) -> Iterator[ComparableListing]:
        key = canonical(building)
        return (listing for listing in self.listings if canonical(listing.building) == key)

    def unit_counts(self, building: str) -> Counter[str]:
        return Counter(self.units_by_building.get(canonical(building), ()))

    def available_units(self, building: str) -> list[str]:
        return sorted(self.unit_counts(building), key=unit_sort_key)


def unit_sort_key(unit_type: str) -> tuple[int, str]:
    if unit_type == "Studio":
        return (0, unit_type)
    digits = "".join(ch for ch in unit_type if ch.isdigit())
    return (int(digits) if digits else 999, unit_type)


def build_snapshot(source: RowSource, url_template: str = DEFAULT_URL_TEMPLATE) -> DatasetSnapshot:
    """Read and parse every row. An unavailable source yields an empty snapshot."""
    marker = source.marker()
    if marker is None:
        logger.warning(f"[registry] dataset not found at {source.description}")
        return DatasetSnapshot.empty(source.description)

    try:
        headers, rows = source.read()
    except ConfigError as e:
        logger.warning(f"[registry] dataset unavailable: {e}")
        return DatasetSnapshot.empty(source.description)

    index = HeaderIndex(headers)
    listings = []
    skipped = 0
    for row in rows:
        try:
            listings.append(parse_row(row, index, url_template))
        except DataError:
            skipped += 1

    logger.info(
        f"[registry] Loaded {len(listings)} rows from {source.description} ({skipped} skipped)"
    )
    return DatasetSnapshot(
        marker=marker,
        source=source.description,
        listings=tuple(listings),
        skipped_rows=skipped,
    )


class DatasetRegistry:
    """Holds the current snapshot and swaps it when the source changes."""

    def __init__(self, source: RowSource, url_template: str = DEFAULT_URL_TEMPLATE):
        self.source = source
        self.url_template = url_template
        self._snapshot: DatasetSnapshot | None = None
        self._reload_lock = threading.Lock()

    def snapshot(self) -> DatasetSnapshot:
        """Current snapshot, rebuilt first if the source marker moved."""
        current = self._snapshot
        marker = self.source.marker()
        if current is not None and current.marker == marker:
            return current

        with self._reload_lock:
            current = self._snapshot
            if current is not None and current.marker == self.source.marker():
                return current
            fresh = build_snapshot(self.source, self.url_template)
            self._snapshot = fresh
            return fresh

    def reload(self) -> DatasetSnapshot:
        """Rebuild unconditionally."""
        with self._reload_lock:
            fresh = build_snapshot(self.source, self.url_template)
            self._snapshot = fresh
            return fresh
