"""Lookup engine: resolution -> unit selection -> economics, plus listing lookups.

Every public method returns a structured result; collaborator failures are
logged and reported through reason codes.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from functools import lru_cache, partial
from typing import Any

from .aliases import AliasResolver
from .config import EngineConfig
from .dispatcher import PageFetcher, resolve
from .economics import EconomicsAggregator, RevparCorrection, match_building
from .normalize import canonical, normalize_unit_type, unit_from_bedrooms
from .page import fetch_page
from .registry import CSVRowSource, DatasetRegistry, DatasetSnapshot, RowSource
from .schemas import (
    AnalyzeResult,
    ComparableSummary,
    ComparablesResult,
    EconomicsResult,
    EnrichItem,
    ReasonCode,
    ResolvedProperty,
    SelectionReason,
)
from .seasonality import SeasonalityModel
from .selection import most_common_unit, select_unit

logger = logging.getLogger(__name__)

SELECTION_FAILURES = {
    SelectionReason.BUILDING_NOT_FOUND: ReasonCode.BUILDING_NOT_FOUND,
    SelectionReason.UNIT_TYPE_INVALID: ReasonCode.UNIT_TYPE_INVALID,
    SelectionReason.UNIT_TYPE_NOT_AVAILABLE: ReasonCode.UNIT_TYPE_NOT_AVAILABLE,
}


def counted_maids_room(resolution: ResolvedProperty) -> bool:
    """True when the resolved unit type came from a bedroom count that includes the maid's room.

    A title or structured-data unit type wins over the bedroom scan, and that
    one never counted the maid's room, so it must not be stepped down.
    """
    facts = resolution.facts
    if not facts.has_maids_room or facts.bedrooms is None:
        return False
    return resolution.unit_type == unit_from_bedrooms(facts.bedrooms)


class LookupEngine:
    def __init__(
        self,
        config: EngineConfig,
        registry: DatasetRegistry,
        aliases: AliasResolver,
        correction: RevparCorrection | None = None,
        fetch: PageFetcher | None = None,
    ):
        self.config = config
        self.registry = registry
        self.aliases = aliases
        self.aggregator = EconomicsAggregator(
            config,
            aliases,
            seasonality=SeasonalityModel(config.reference_date),
            correction=correction,
        )
        self.fetch = fetch if fetch is not None else partial(fetch_page, timeout=config.fetch_timeout)

    @classmethod
    def from_config(cls, config: EngineConfig, source: RowSource | None = None) -> "LookupEngine":
        """Wire the engine from files named in the config."""
        registry = DatasetRegistry(
            source or CSVRowSource(config.dataset_path),
            url_template=config.listing_url_template,
        )
        return cls(
            config,
            registry,
            AliasResolver.load(config.aliases_path, fuzzy_threshold=config.fuzzy_match_threshold),
            correction=RevparCorrection.from_csv(config.revpar_path, config),
        )

    def snapshot(self) -> DatasetSnapshot:
        return self.registry.snapshot()

    # -------------------------------------------------------------------------
    # Economics
    # -------------------------------------------------------------------------

    def economics(self, building_name: str | None, unit_type: str | None, today: date | None = None) -> EconomicsResult:
        return self.aggregator.lookup(self.snapshot(), building_name, unit_type, today=today)

    def analyze_link(self, url: str, fetch: PageFetcher | None = None, use_fetch: bool = True) -> AnalyzeResult:
        """Resolve a listing link and project economics for the best unit type."""
        resolution = resolve(url, self.aliases, fetch=(fetch or self.fetch) if use_fetch else None)
        snapshot = self.snapshot()

        if not resolution.building_name:
            return AnalyzeResult(
                resolver=resolution,
                economics=self.aggregator.no_data(None, resolution.unit_type, ReasonCode.NOT_SUPPORTED),
            )

        matched = match_building(resolution.building_name, snapshot, self.aliases, self.config)
        counts = snapshot.unit_counts(matched) if matched else {}

        if resolution.unit_type:
            selection = select_unit(
                matched,
                resolution.unit_type,
                counts,
                has_maids_room=counted_maids_room(resolution),
                maids_room_fallback_only=self.config.maids_room_fallback_only,
            )
        else:
            selection = most_common_unit(matched, counts)

        if selection.unit_type_chosen is None:
            reason = SELECTION_FAILURES.get(selection.reason, ReasonCode.UNIT_TYPE_NOT_AVAILABLE)
            economics = self.aggregator.no_data(
                resolution.building_name, selection.unit_type_requested, reason
            )
        else:
            economics = self.aggregator.lookup(snapshot, matched, selection.unit_type_chosen)

        return AnalyzeResult(resolver=resolution, selection=selection, economics=economics)

    def enrich(self, items: Iterable[Mapping[str, Any]]) -> list[EnrichItem]:
        results = []
        for index, item in enumerate(items):
            item = item if isinstance(item, Mapping) else {}
            building = str(item.get("building_name") or "").strip()
            unit = str(item.get("unit_type") or "").strip()

            if not building or not unit:
                results.append(EnrichItem(
                    index=index,
                    status="no_data",
                    building_name=building or None,
                    unit_type=unit or None,
                    reason_code=ReasonCode.INVALID_INPUT,
                ))
                continue

            econ = self.economics(building, unit)
            results.append(EnrichItem(
                index=index,
                status=econ.status,
                building_name=building,
                unit_type=unit,
                reason_code=econ.reason_code,
                metrics=econ.metrics,
            ))
        return results

    # -------------------------------------------------------------------------
    # Comparable listings
    # -------------------------------------------------------------------------

    def airdna_url(self, listing_id: str) -> str:
        return f"{self.config.airdna_base}{listing_id}"

    def comparables(self, building_name: str, unit_type: str, limit: int = 6) -> ComparablesResult:
        """Sample of comparables for a building/unit pair, without the days filter."""
        snapshot = self.snapshot()
        unit = normalize_unit_type(unit_type)
        matched = match_building(building_name, snapshot, self.aliases, self.config) if unit else None

        rows = [r for r in snapshot.rows_for(matched) if r.unit_type == unit] if matched else []
        if not rows:
            return ComparablesResult(
                status="no_data",
                building_name=building_name,
                unit_type=unit or unit_type,
                count=0,
                reason_code=ReasonCode.NOT_FOUND,
            )

        return ComparablesResult(
            status="ok",
            building_name=building_name,
            unit_type=unit,
            count=len(rows),
            items=[
                ComparableSummary(
                    listing_id=r.listing_id,
                    url=r.url,
                    airdna_overview_url=self.airdna_url(r.listing_id),
                )
                for r in rows[:limit]
            ],
        )

    def sources(self, building_name: str, unit_type: str) -> dict[str, Any]:
        """Day-filtered comparables with their raw figures."""
        snapshot = self.snapshot()
        unit = normalize_unit_type(unit_type)
        matched = match_building(building_name, snapshot, self.aliases, self.config)
        rows = self.aggregator.qualifying(snapshot, matched, unit) if matched and unit else []

        return {
            "count": len(rows),
            "min_days": self.config.min_days,
            "comps": [
                {
                    "listing_id": r.listing_id,
                    "url": r.url,
                    "airdna_url": self.airdna_url(r.listing_id),
                    "days_available": r.days_available,
                    "raw_revenue": r.revenue,
                    "raw_adr": r.adr,
                    "raw_occ": r.occupancy,
                }
                for r in rows
            ],
        }

    def debug_info(self, building_name: str | None = None, unit_type: str | None = None) -> dict[str, Any]:
        snapshot = self.snapshot()

        pairs: dict[tuple[str, str], int] = {}
        for row in snapshot.listings:
            key = (canonical(row.building), row.unit_type)
            pairs[key] = pairs.get(key, 0) + 1

        qb = canonical(building_name) if building_name else None
        qu = normalize_unit_type(unit_type) if unit_type else None
        sample = []
        if building_name and unit_type:
            sample = [item.model_dump() for item in self.comparables(building_name, unit_type, limit=3).items]

        return {
            "csv_path": snapshot.source,
            "total_rows_loaded": len(snapshot),
            "skipped_rows": snapshot.skipped_rows,
            "unique_pairs_count": len(pairs),
            "first_5_pairs": [
                {"building": b, "unit_type": u, "count": c} for (b, u), c in list(pairs.items())[:5]
            ],
            "query": {
                "building": building_name,
                "unit_type": unit_type,
                "canonical": {"building": qb, "unit": qu},
            },
            "query_sample": sample,
        }


@lru_cache
def get_engine() -> LookupEngine:
    """Process-wide engine built from the environment."""
    return LookupEngine.from_config(EngineConfig.from_env())
