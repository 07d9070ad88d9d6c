"""Monthly seasonality reference curves and partial-year projection.

Palm Jumeirah short-term rental performance by unit type, one reference
cycle from September 2024 through August 2025 (AirDNA market insights).
Each month holds revenue, occupancy (%), ADR and RevPAR.
"""

import calendar
from collections import Counter
from datetime import date, timedelta
from typing import TypedDict

from .normalize import normalize_unit_type
from .schemas import ComparableListing, ProjectedListing

DAYS_IN_YEAR = 365
MATERIALLY_MISSING_DAYS = 25


class MonthStats(TypedDict):
    revenue: float
    occ: float
    adr: float
    revpar: float


def _m(revenue: float, occ: float, adr: float, revpar: float) -> MonthStats:
    return {"revenue": revenue, "occ": occ, "adr": adr, "revpar": revpar}


MONTHLY_DATA: dict[str, dict[int, MonthStats]] = {
    "Studio": {
        9: _m(7530, 77.43, 383, 296.46),
        10: _m(13765, 88.65, 576, 510.93),
        11: _m(15980, 86.35, 669, 577.60),
        12: _m(14131, 73.92, 712, 526.44),
        1: _m(15632, 84.26, 664, 559.85),
        2: _m(15455, 93.02, 629, 585.54),
        3: _m(11288, 73.03, 544, 397.53),
        4: _m(13655, 92.17, 558, 514.27),
        5: _m(9591, 74.67, 456, 340.60),
        6: _m(6188, 57.14, 384, 219.50),
        7: _m(4955, 63.06, 278, 175.07),
        8: _m(4986, 67.06, 287, 192.57),
    },
    "1BR": {
        9: _m(9789, 77.05, 509, 392.22),
        10: _m(16377, 86.22, 691, 595.93),
        11: _m(18505, 86.39, 783, 676.61),
        12: _m(17998, 74.51, 861, 641.58),
        1: _m(18489, 81.00, 785, 636.20),
        2: _m(17218, 88.95, 746, 663.24),
        3: _m(14543, 76.09, 663, 504.78),
        4: _m(17757, 93.11, 685, 637.51),
        5: _m(12217, 77.37, 543, 420.26),
        6: _m(8139, 60.17, 469, 282.10),
        7: _m(6550, 60.72, 374, 226.87),
        8: _m(7258, 69.14, 387, 267.78),
    },
    "2BR": {
        9: _m(13587, 62.51, 846, 528.72),
        10: _m(29289, 83.05, 1277, 1060.47),
        11: _m(31589, 80.76, 1425, 1150.60),
        12: _m(31531, 70.78, 1556, 1101.45),
        1: _m(30203, 77.26, 1401, 1082.59),
        2: _m(28208, 82.61, 1316, 1087.49),
        3: _m(21738, 68.72, 1117, 767.99),
        4: _m(30282, 90.21, 1240, 1118.58),
        5: _m(18777, 70.49, 959, 676.28),
        6: _m(14165, 60.88, 815, 496.09),
        7: _m(12460, 65.32, 687, 448.57),
        8: _m(13057, 67.35, 714, 480.67),
    },
    "3BR": {
        9: _m(25627, 64.74, 1586, 1026.72),
        10: _m(46109, 81.99, 1999, 1638.67),
        11: _m(44545, 71.71, 2273, 1629.69),
        12: _m(49189, 70.08, 2451, 1717.88),
        1: _m(45500, 73.71, 2163, 1594.64),
        2: _m(40794, 80.42, 2000, 1608.19),
        3: _m(33094, 69.74, 1663, 1159.84),
        4: _m(50162, 89.04, 1973, 1757.10),
        5: _m(34424, 74.18, 1574, 1167.57),
        6: _m(22366, 66.38, 1240, 823.29),
        7: _m(20246, 71.84, 1123, 806.51),
        8: _m(21189, 75.23, 1206, 907.17),
    },
    "4BR": {
        9: _m(33332, 68.08, 1695, 1153.81),
        10: _m(47116, 78.42, 2161, 1694.81),
        11: _m(55795, 72.82, 2728, 1986.24),
        12: _m(56258, 72.20, 2738, 1977.13),
        1: _m(61017, 85.22, 2477, 2110.64),
        2: _m(54589, 78.83, 2481, 1955.95),
        3: _m(43681, 72.21, 2010, 1451.63),
        4: _m(58456, 87.23, 2296, 2003.17),
        5: _m(38006, 75.00, 1720, 1290.32),
        6: _m(35166, 71.56, 1689, 1208.83),
        7: _m(31873, 79.54, 1323, 1051.92),
        8: _m(26488, 75.45, 1394, 1051.88),
    },
}


class SeasonalityModel:
    """Pro-rates partial-year comparables to a full year using a monthly curve.

    A listing observed for `days_available` trailing days up to the reference
    date is missing the earlier part of the 365-day window. The revenue the
    reference curve earns in those missing days, relative to what it earns in
    the covered days, is the multiplier applied to the listing's raw revenue.
    """

    def __init__(self, reference_date: date, monthly_data: dict[str, dict[int, MonthStats]] | None = None):
        self.reference_date = reference_date
        self.monthly_data = MONTHLY_DATA if monthly_data is None else monthly_data

    def curve(self, unit_type: str | None) -> dict[int, MonthStats] | None:
        return self.monthly_data.get(normalize_unit_type(unit_type) or "")

    def annual_revenue(self, unit_type: str | None) -> float:
        data = self.curve(unit_type)
        if not data:
            return 0.0
        return float(sum(month["revenue"] for month in data.values()))

    def monthly_revenue_share(self, unit_type: str | None, month: int) -> float:
        """Fraction of the annual reference revenue earned in a month (1/12 when unknown)."""
        data = self.curve(unit_type)
        total = self.annual_revenue(unit_type)
        if not data or not total or month not in data:
            return 1 / 12
        return data[month]["revenue"] / total

    def missing_days_per_month(self, days_available: int) -> dict[int, int]:
        """Days of the 365-day window, per calendar month, before observation began."""
        if days_available >= DAYS_IN_YEAR:
            return {}

        window_start = self.reference_date - timedelta(days=DAYS_IN_YEAR - 1)
        observed_start = self.reference_date - timedelta(days=max(days_available, 0) - 1)
        missing_span = (observed_start - window_start).days

        counts = Counter(
            (window_start + timedelta(days=offset)).month
            for offset in range(min(missing_span, DAYS_IN_YEAR))
        )
        return dict(sorted(counts.items()))

    def missing_months(self, days_available: int) -> list[int]:
        """Months with at least 25 unobserved days. Informational only."""
        return [
            month
            for month, days in self.missing_days_per_month(days_available).items()
            if days >= MATERIALLY_MISSING_DAYS
        ]

    def multiplier(self, unit_type: str | None, days_available: int) -> float:
        """total_missing_revenue / covered_revenue for the unit type's curve."""
        missing = self.missing_days_per_month(days_available)
        data = self.curve(unit_type)
        if not missing or not data:
            return 0.0

        total_missing = 0.0
        for month, days_missing in missing.items():
            stats = data.get(month)
            if not stats:
                continue
            days_in_month = calendar.monthrange(self.reference_date.year, month)[1]
            total_missing += stats["revenue"] / days_in_month * days_missing

        covered = self.annual_revenue(unit_type) - total_missing
        if covered <= 0:
            return 0.0
        return total_missing / covered

    def project(self, listing: ComparableListing, unit_type: str | None = None) -> ProjectedListing:
        """Expand a comparable to its 365-day equivalent."""
        unit = unit_type or listing.unit_type
        days = listing.days_available

        if days >= DAYS_IN_YEAR:
            return ProjectedListing(
                listing_id=listing.listing_id,
                url=listing.url,
                days_available=days,
                raw_revenue=listing.revenue,
                raw_adr=listing.adr,
                raw_occ=listing.occupancy,
                projected_adr_365=listing.adr,
                projected_occ_365=listing.occupancy,
                projected_rev_365=listing.revenue,
                projection_mode="truth",
            )

        multiplier = self.multiplier(unit, days)
        projected_revenue = listing.revenue * (1.0 + multiplier)
        projected_adr = listing.adr
        if projected_adr > 0:
            projected_occ = projected_revenue / (projected_adr * DAYS_IN_YEAR) * 100
            projected_occ = min(max(projected_occ, 0.0), 100.0)
        else:
            projected_occ = listing.occupancy

        return ProjectedListing(
            listing_id=listing.listing_id,
            url=listing.url,
            days_available=days,
            raw_revenue=listing.revenue,
            raw_adr=listing.adr,
            raw_occ=listing.occupancy,
            projected_adr_365=projected_adr,
            projected_occ_365=projected_occ,
            projected_rev_365=round(projected_revenue),
            projection_mode="seasonality_scaled",
            adjustment_factor=round(1.0 + multiplier, 2),
            missing_months=self.missing_months(days),
            missing_months_multiplier=round(multiplier, 3),
        )
