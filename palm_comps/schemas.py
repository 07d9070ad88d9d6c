"""Pydantic schemas shared by the resolver, the economics engine and the API.

Schema Engineering Philosophy:
- Field descriptions document the meaning of every figure we hand downstream
- Engine results are frozen once built; callers never patch them in place
- Reason codes are a closed enum with one user-facing message per code
"""

from datetime import date
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS: Canonical value sets
# =============================================================================


class ReasonCode(str, Enum):
    """Why a lookup could not produce economics (or a unit selection)."""

    NOT_SUPPORTED = "NOT_SUPPORTED"
    """The link could not be resolved to a building (unsupported site or no match)."""

    BUILDING_NOT_FOUND = "BUILDING_NOT_FOUND"
    """No building in the comparable dataset matches the requested name."""

    UNIT_TYPE_INVALID = "UNIT_TYPE_INVALID"
    """The unit type could not be normalized to Studio / NBR."""

    UNIT_TYPE_NOT_AVAILABLE = "UNIT_TYPE_NOT_AVAILABLE"
    """The building exists but has no comparables for the unit type or its fallback."""

    INSUFFICIENT_SAMPLE = "INSUFFICIENT_SAMPLE"
    """Too few comparables survive the minimum-days filter."""

    NOT_FOUND = "NOT_FOUND"
    """No comparable listings were found for the building/unit pair."""

    STALE_DATA = "STALE_DATA"
    """The dataset snapshot is older than the configured maximum age."""

    INVALID_INPUT = "INVALID_INPUT"
    """A batch item was missing its building name or unit type."""

    def message(self, min_listings: int | None = None, min_days: int | None = None) -> str:
        """User-facing explanation for this code."""
        if self is ReasonCode.INSUFFICIENT_SAMPLE and min_listings and min_days is not None:
            return (
                "Not enough data for this building/unit combination "
                f"(need at least {min_listings} comps with {min_days}+ days)"
            )
        return REASON_MESSAGES[self]


REASON_MESSAGES: dict[ReasonCode, str] = {
    ReasonCode.NOT_SUPPORTED: "This listing link is not supported or could not be identified",
    ReasonCode.BUILDING_NOT_FOUND: "Building not found in dataset",
    ReasonCode.UNIT_TYPE_INVALID: "Unit type not recognized",
    ReasonCode.UNIT_TYPE_NOT_AVAILABLE: "No comparable data for this unit type in this building",
    ReasonCode.INSUFFICIENT_SAMPLE: "Not enough data for this building/unit combination",
    ReasonCode.NOT_FOUND: "No comparable listings found",
    ReasonCode.STALE_DATA: "Comparable dataset is out of date",
    ReasonCode.INVALID_INPUT: "building_name and unit_type are required",
}


class SelectionReason(str, Enum):
    """How the unit selector arrived at its chosen unit type."""

    EXACT_MATCH = "EXACT_MATCH"
    MAIDS_ROOM_FALLBACK = "MAIDS_ROOM_FALLBACK"
    """Requested N-bedroom counted a maid's room; the N-1 class was used."""

    LOWER_CLASS_FALLBACK = "LOWER_CLASS_FALLBACK"
    """Requested class unavailable; the next class down was used."""

    MOST_COMMON = "MOST_COMMON"
    """No unit was requested; the building's most frequent unit type was used."""

    UNIT_TYPE_NOT_AVAILABLE = "UNIT_TYPE_NOT_AVAILABLE"
    UNIT_TYPE_INVALID = "UNIT_TYPE_INVALID"
    BUILDING_NOT_FOUND = "BUILDING_NOT_FOUND"


ListingType = Literal["rent", "sale"]
ProjectionMode = Literal["truth", "seasonality_scaled"]


# =============================================================================
# Dataset records
# =============================================================================


class ComparableListing(BaseModel):
    """One observed short-term rental from the comparable dataset."""

    model_config = ConfigDict(frozen=True)

    listing_id: str
    url: str
    building: str = Field(description="Building text as it appears in the dataset")
    raw_unit_type: str = Field(description="Unit/bedroom text as it appears in the dataset")
    unit_type: str = Field(description="Normalized: Studio, 1BR, 2BR, ...")
    revenue: float = Field(default=0.0, description="Revenue over the observed window, full units")
    occupancy: float = Field(default=0.0, ge=0, description="Occupancy percent (0-100)")
    adr: float = Field(default=0.0, description="Average daily rate")
    days_available: int = Field(default=0, description="Trailing days of observation")


class CanonicalBuilding(BaseModel):
    """A building display name and the strings that should resolve to it."""

    model_config = ConfigDict(frozen=True)

    name: str
    aliases: tuple[str, ...] = ()


# =============================================================================
# Resolution
# =============================================================================


class PropertyFacts(BaseModel):
    """Facts scraped from a listing page (or guessed from its URL)."""

    model_config = ConfigDict(frozen=True)

    bedrooms: int | None = Field(default=None, ge=0, description="Includes a detected maid's room")
    bedrooms_without_maid: int | None = Field(default=None, ge=0)
    has_maids_room: bool | None = None
    bathrooms: int | None = Field(default=None, ge=0)
    size: str | None = Field(default=None, description="As written, e.g. '1,250 sqft' -> '1250 sqft'")
    size_sqft: int | None = Field(default=None, ge=0)
    address: Any = Field(default=None, description="Address string or schema.org PostalAddress")
    yearly_rent: int | None = Field(default=None, ge=0)
    purchase_price: int | None = Field(default=None, ge=0)
    listing_type: ListingType | None = None
    source: str | None = Field(default=None, description="url_guess when facts came from the URL only")


class ResolvedProperty(BaseModel):
    """Canonical building/unit identification for one listing link."""

    model_config = ConfigDict(frozen=True)

    building_name: str | None = None
    unit_type: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    facts: PropertyFacts = Field(default_factory=PropertyFacts)

    @property
    def is_complete(self) -> bool:
        return bool(self.building_name) and bool(self.unit_type)


class UnitSelection(BaseModel):
    """Unit type chosen for a building, with the evidence behind it."""

    model_config = ConfigDict(frozen=True)

    building_name: str | None
    unit_type_requested: str | None
    unit_type_chosen: str | None
    reason: SelectionReason
    available_units: list[str] = Field(default_factory=list)

    @property
    def fallback_message(self) -> str | None:
        if self.reason in (SelectionReason.MAIDS_ROOM_FALLBACK, SelectionReason.LOWER_CLASS_FALLBACK):
            return (
                f"No {self.unit_type_requested} comparables in {self.building_name}; "
                f"showing {self.unit_type_chosen} instead"
            )
        return None


# =============================================================================
# Economics
# =============================================================================


class ProjectedListing(BaseModel):
    """A comparable expanded to a 365-day equivalent."""

    model_config = ConfigDict(frozen=True)

    listing_id: str
    url: str
    days_available: int
    raw_revenue: float
    raw_adr: float
    raw_occ: float
    projected_adr_365: float
    projected_occ_365: float
    projected_rev_365: float
    projection_mode: ProjectionMode
    adjustment_factor: float = 1.0
    missing_months: list[int] = Field(default_factory=list)
    missing_months_multiplier: float = 0.0

    @property
    def weight(self) -> int:
        return 365 if self.projection_mode == "truth" else self.days_available


class EconomicsMetrics(BaseModel):
    """Weighted percentile projections for one building/unit pair."""

    model_config = ConfigDict(frozen=True)

    adr_p50: float
    adr_p75: float
    occ_p50: float = Field(description="Occupancy percent")
    occ_p75: float
    rev_p50: float = Field(description="Projected annual revenue")
    rev_p75: float
    building: str
    unit_type: str
    sample_n: int
    truth_count: int
    scaled_count: int
    min_days_filter: int
    min_listings_required: int
    method_version: str
    data_snapshot_date: date
    correction_factor: float | None = Field(
        default=None,
        description="Revenue correction applied to studios in the Palm segment, if any",
    )


class EconomicsResult(BaseModel):
    """Outcome of an economics lookup."""

    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "no_data"]
    building_name: str | None = None
    unit_type: str | None = None
    reason_code: ReasonCode | None = None
    user_message: str | None = None
    metrics: EconomicsMetrics | None = None
    listings: list[ProjectedListing] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class ComparableSummary(BaseModel):
    """Public view of one comparable listing."""

    listing_id: str
    url: str
    airdna_overview_url: str


class ComparablesResult(BaseModel):
    status: Literal["ok", "no_data"]
    building_name: str
    unit_type: str
    count: int
    items: list[ComparableSummary] = Field(default_factory=list)
    reason_code: ReasonCode | None = None


class AnalyzeResult(BaseModel):
    """Resolution, unit selection and economics for one listing link."""

    resolver: ResolvedProperty
    selection: UnitSelection | None = None
    economics: EconomicsResult


class EnrichItem(BaseModel):
    index: int
    status: Literal["ok", "no_data"]
    building_name: str | None = None
    unit_type: str | None = None
    reason_code: ReasonCode | None = None
    metrics: EconomicsMetrics | None = None
