"""Engine configuration loaded from the environment."""

import os
from datetime import date
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent
REFERENCE_DIR = PROJECT_ROOT / "data" / "reference"

TRUTHY = {"1", "true", "yes", "on", "y"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in TRUTHY


class EngineConfig(BaseModel):
    """Tunables for resolution, matching and the economics projection.

    Matching thresholds, the minimum sample and the maid's-room fallback
    gating have all been tuned per deployment (fuzzy match 0.4 or 0.6,
    minimum sample 2 or 3), so each one is a field here.
    """

    dataset_path: Path = Field(
        default=REFERENCE_DIR / "palm_master_clean.csv",
        description="CSV of comparable listings (one row per observed listing)",
    )
    aliases_path: Path = Field(
        default=REFERENCE_DIR / "building_aliases.json",
        description="JSON object of canonical building name -> list of aliases",
    )
    revpar_path: Path = Field(
        default=REFERENCE_DIR / "revpar_last_12_month.csv",
        description="Reference RevPAR series used by the studio revenue correction",
    )

    fuzzy_match_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    building_overlap_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    building_overlap_basis: Literal["union", "query"] = Field(
        default="union",
        description="union = Jaccard over both token sets; query = share of the query's tokens",
    )

    min_days: int = Field(default=270, ge=0, description="Minimum days_available for a comparable")
    min_listings: int = Field(default=2, ge=1, description="Minimum comparables for a projection")
    reference_date: date = Field(
        default=date(2025, 9, 22),
        description="Last day of the observation window the dataset was exported for",
    )
    method_version: str = "6.3-min-2-listings"

    maids_room_fallback_only: bool = Field(
        default=True,
        description="Only fall back one bedroom class when a maid's room was detected",
    )

    correction_enabled: bool = True
    correction_min: float = 0.70
    correction_max: float = 1.30

    max_data_age_days: int | None = Field(
        default=None,
        description="Economics reports STALE_DATA when reference_date is older than this",
    )

    fetch_timeout: float = 15.0
    enrich_max_items: int = 500
    listing_url_template: str = "https://www.airbnb.com/rooms/{listing_id}"
    airdna_base: str = (
        "https://app.airdna.co/data/ae/30858/140856/overview?lat=25.117795&lng=55.134474"
        "&zoom=14&tab=active-str-listings&listing_id=abnb_"
    )

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from environment variables, falling back to defaults."""
        values: dict = {}

        paths = {
            "dataset_path": "MASTER_SHEET_CSV",
            "aliases_path": "BUILDING_ALIASES_PATH",
            "revpar_path": "ECON_CORR_PALM_STUDIOS_REVPAR",
        }
        for field, env in paths.items():
            if os.getenv(env, "").strip():
                values[field] = Path(os.environ[env].strip())

        scalars = {
            "fuzzy_match_threshold": "FUZZY_MATCH_THRESHOLD",
            "building_overlap_threshold": "BUILDING_OVERLAP_THRESHOLD",
            "building_overlap_basis": "BUILDING_OVERLAP_BASIS",
            "min_days": "ECON_MIN_DAYS",
            "min_listings": "ECON_MIN_LISTINGS",
            "reference_date": "ECON_REFERENCE_DATE",
            "method_version": "ECON_METHOD_VERSION",
            "correction_min": "ECON_CORR_MIN",
            "correction_max": "ECON_CORR_MAX",
            "max_data_age_days": "ECON_MAX_DATA_AGE_DAYS",
            "fetch_timeout": "PAGE_FETCH_TIMEOUT",
            "enrich_max_items": "ENRICH_MAX_ITEMS",
            "airdna_base": "AIRDNA_BASE",
        }
        for field, env in scalars.items():
            raw = os.getenv(env, "").strip()
            if raw:
                values[field] = raw  # pydantic coerces the string

        values["maids_room_fallback_only"] = _env_bool("UNIT_FALLBACK_REQUIRES_MAID", True)
        values["correction_enabled"] = os.getenv("ECON_CORRECTION_PALM_STUDIOS", "1") != "0"

        return cls(**values)
