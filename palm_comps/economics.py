"""Full-year economics projections from partial-year comparables."""

import csv
import logging
from collections.abc import Sequence
from datetime import date
from pathlib import Path

from .aliases import AliasResolver
from .config import EngineConfig
from .normalize import best_match, canonical, jaccard, normalize_unit_type, query_overlap
from .registry import DatasetSnapshot
from .schemas import (
    ComparableListing,
    EconomicsMetrics,
    EconomicsResult,
    ProjectedListing,
    ReasonCode,
)
from .seasonality import SeasonalityModel

logger = logging.getLogger(__name__)


def weighted_percentile(values: Sequence[float], weights: Sequence[float], percentile: float) -> float:
    """Lower-bound weighted quantile.

    Sorts values ascending and returns the first one whose cumulative weight
    reaches percentile * total weight. No interpolation.
    """
    if not values:
        return 0.0
    pairs = sorted(zip(values, weights), key=lambda pair: pair[0])
    target = sum(weights) * percentile
    cumulative = 0.0
    for value, weight in pairs:
        cumulative += weight
        if cumulative >= target:
            return value
    return pairs[-1][0]


def match_building(
    query: str | None,
    snapshot: DatasetSnapshot,
    aliases: AliasResolver,
    config: EngineConfig,
) -> str | None:
    """Dataset building for a query: exact, then alias, then token overlap."""
    key = canonical(query)
    if not key or not snapshot.buildings:
        return None

    for building in snapshot.buildings:
        if canonical(building) == key:
            return building

    target = canonical(aliases.canonical_for(query))
    for building in snapshot.buildings:
        if canonical(aliases.canonical_for(building)) == target:
            return building

    scorer = query_overlap if config.building_overlap_basis == "query" else jaccard
    matched, score = best_match(query, snapshot.buildings, config.building_overlap_threshold, scorer)
    if matched:
        logger.debug(f"[economics] token-overlap match {query!r} -> {matched!r} ({score:.2f})")
    return matched


# =============================================================================
# RevPAR correction
# =============================================================================


class RevparCorrection:
    """Rescale studio revenue in the Palm segment toward a market RevPAR.

    factor = clamp(mean(reference RevPAR) / (ADR x occupancy), min, max)

    The clamp keeps a noisy ADR or occupancy from producing an extreme
    correction.
    """

    def __init__(
        self,
        mean_revpar: float | None,
        min_factor: float = 0.70,
        max_factor: float = 1.30,
        enabled: bool = True,
        segment: str = "palm",
    ):
        self.mean_revpar = mean_revpar
        self.min_factor = min_factor
        self.max_factor = max_factor
        self.enabled = enabled
        self.segment = segment

    @classmethod
    def from_csv(cls, path: Path, config: EngineConfig) -> "RevparCorrection":
        """Mean of the positive values in a 'value'/'revpar' column; None if unreadable."""
        values: list[float] = []
        try:
            with path.open(newline="", encoding="utf-8-sig") as f:
                for row in csv.DictReader(f):
                    raw = row.get("value") or row.get("revpar") or row.get("RevPAR") or ""
                    try:
                        value = float(raw)
                    except ValueError:
                        continue
                    if value > 0:
                        values.append(value)
        except OSError as e:
            logger.info(f"[economics] RevPAR reference unavailable ({e.__class__.__name__}); correction off")

        mean = sum(values) / len(values) if values else None
        return cls(
            mean,
            min_factor=config.correction_min,
            max_factor=config.correction_max,
            enabled=config.correction_enabled,
        )

    def applies_to(self, building_name: str, unit_type: str) -> bool:
        if not self.enabled or self.mean_revpar is None:
            return False
        return unit_type == "Studio" and self.segment in building_name.lower()

    def factor_for(self, adr: float, occ_pct: float) -> float:
        if not self.mean_revpar or adr <= 0 or occ_pct <= 0:
            return 1.0
        base_revpar = adr * occ_pct / 100
        return min(max(self.mean_revpar / base_revpar, self.min_factor), self.max_factor)


# =============================================================================
# Aggregator
# =============================================================================


class EconomicsAggregator:
    """Filters comparables, projects them to 365 days and takes weighted percentiles."""

    def __init__(
        self,
        config: EngineConfig,
        aliases: AliasResolver,
        seasonality: SeasonalityModel | None = None,
        correction: RevparCorrection | None = None,
    ):
        self.config = config
        self.aliases = aliases
        self.seasonality = seasonality or SeasonalityModel(config.reference_date)
        self.correction = correction

    def no_data(self, building: str | None, unit: str | None, reason: ReasonCode) -> EconomicsResult:
        return EconomicsResult(
            status="no_data",
            building_name=building,
            unit_type=unit,
            reason_code=reason,
            user_message=reason.message(self.config.min_listings, self.config.min_days),
        )

    def is_stale(self, today: date | None = None) -> bool:
        if self.config.max_data_age_days is None:
            return False
        age = ((today or date.today()) - self.config.reference_date).days
        return age > self.config.max_data_age_days

    def qualifying(self, snapshot: DatasetSnapshot, building: str, unit: str) -> list[ComparableListing]:
        return [
            row
            for row in snapshot.rows_for(building)
            if row.unit_type == unit and row.days_available >= self.config.min_days
        ]

    def lookup(
        self,
        snapshot: DatasetSnapshot,
        building_name: str | None,
        unit_type: str | None,
        today: date | None = None,
    ) -> EconomicsResult:
        building = (building_name or "").strip()
        unit = normalize_unit_type(unit_type)

        if not building:
            return self.no_data(building, unit, ReasonCode.BUILDING_NOT_FOUND)
        if not unit:
            return self.no_data(building, unit_type, ReasonCode.UNIT_TYPE_INVALID)
        if self.is_stale(today):
            return self.no_data(building, unit, ReasonCode.STALE_DATA)

        matched = match_building(building, snapshot, self.aliases, self.config)
        if not matched:
            return self.no_data(building, unit, ReasonCode.BUILDING_NOT_FOUND)

        rows = self.qualifying(snapshot, matched, unit)
        if len(rows) < self.config.min_listings:
            return self.no_data(building, unit, ReasonCode.INSUFFICIENT_SAMPLE)

        projected = [self.seasonality.project(row, unit) for row in rows]
        metrics = self.metrics(projected, building, unit)

        return EconomicsResult(
            status="ok",
            building_name=building,
            unit_type=unit,
            metrics=metrics,
            listings=projected,
        )

    def metrics(self, projected: list[ProjectedListing], building: str, unit: str) -> EconomicsMetrics:
        weights = [p.weight for p in projected]
        adr = [p.projected_adr_365 for p in projected]
        occ = [p.projected_occ_365 for p in projected]
        rev = [p.projected_rev_365 for p in projected]

        adr_p50 = weighted_percentile(adr, weights, 0.50)
        occ_p50 = weighted_percentile(occ, weights, 0.50)
        rev_p50 = weighted_percentile(rev, weights, 0.50)
        rev_p75 = weighted_percentile(rev, weights, 0.75)

        factor = None
        if self.correction is not None and self.correction.applies_to(building, unit):
            factor = self.correction.factor_for(adr_p50, occ_p50)
            rev_p50 *= factor
            rev_p75 *= factor
            factor = round(factor, 3)

        return EconomicsMetrics(
            adr_p50=round(adr_p50),
            adr_p75=round(weighted_percentile(adr, weights, 0.75)),
            occ_p50=round(occ_p50, 1),
            occ_p75=round(weighted_percentile(occ, weights, 0.75), 1),
            rev_p50=round(rev_p50),
            rev_p75=round(rev_p75),
            building=building,
            unit_type=unit,
            sample_n=len(projected),
            truth_count=sum(1 for p in projected if p.projection_mode == "truth"),
            scaled_count=sum(1 for p in projected if p.projection_mode == "seasonality_scaled"),
            min_days_filter=self.config.min_days,
            min_listings_required=self.config.min_listings,
            method_version=self.config.method_version,
            data_snapshot_date=self.config.reference_date,
            correction_factor=factor,
        )
