"""Inspect the comparable dataset and try lookups from the command line.

Loads the same engine the API uses (paths and thresholds from the
environment / .env) and prints what it sees:

Usage:
    uv run python scripts/inspect_dataset.py --stats
    uv run python scripts/inspect_dataset.py --lookup "Seven Palm Jumeirah" 1BR
    uv run python scripts/inspect_dataset.py --lookup "Palm Views" Studio --listings
    uv run python scripts/inspect_dataset.py --resolve https://www.propertyfinder.ae/en/palm-views/2-bedroom-apartment
    uv run python scripts/inspect_dataset.py --resolve <url> --no-fetch
    uv run python scripts/inspect_dataset.py --debug
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from palm_comps.config import EngineConfig
from palm_comps.service import LookupEngine


# =============================================================================
# Reports
# =============================================================================


def print_stats(engine: LookupEngine):
    snapshot = engine.snapshot()

    print("=== Comparable dataset ===")
    print(f"Source: {snapshot.source}")
    print(f"Rows loaded: {len(snapshot):,}")
    print(f"Rows skipped: {snapshot.skipped_rows:,}")
    print(f"Buildings: {len(snapshot.buildings)}")
    print(f"Aliases loaded for: {len(engine.aliases)} buildings")

    print(f"\n=== Units per building (min {engine.config.min_days} days to qualify) ===")
    for building in sorted(snapshot.buildings):
        counts = snapshot.unit_counts(building)
        units = ", ".join(f"{unit}: {counts[unit]}" for unit in snapshot.available_units(building))
        print(f"  {building}")
        print(f"    {units}")


def print_lookup(engine: LookupEngine, building: str, unit: str, show_listings: bool = False):
    result = engine.economics(building, unit)

    print(f"=== Economics: {building} / {unit} ===")
    if not result.ok:
        print(f"No data: {result.reason_code.value}")
        print(f"  {result.user_message}")
        return

    m = result.metrics
    print(f"Sample: {m.sample_n} ({m.truth_count} full-year, {m.scaled_count} seasonality-scaled)")
    print(f"ADR p50/p75:       AED {m.adr_p50:,.0f} / {m.adr_p75:,.0f}")
    print(f"Occupancy p50/p75: {m.occ_p50:.1f}% / {m.occ_p75:.1f}%")
    print(f"Revenue p50/p75:   AED {m.rev_p50:,.0f} / {m.rev_p75:,.0f}")
    if m.correction_factor is not None:
        print(f"RevPAR correction: x{m.correction_factor}")
    print(f"Method {m.method_version}, data as of {m.data_snapshot_date}")

    if show_listings:
        print("\n=== Projected listings ===")
        for p in result.listings:
            print(f"  {p.listing_id} [{p.projection_mode}] {p.days_available} days")
            print(f"    AED {p.raw_revenue:,.0f} -> {p.projected_rev_365:,.0f} (x{p.adjustment_factor})")
            if p.missing_months:
                print(f"    missing months: {p.missing_months}")


def print_resolution(engine: LookupEngine, url: str, use_fetch: bool = True):
    result = engine.analyze_link(url, use_fetch=use_fetch)
    resolved = result.resolver

    print(f"=== Resolve: {url} ===")
    print(f"Building: {resolved.building_name}")
    print(f"Unit type: {resolved.unit_type}")
    print(f"Confidence: {resolved.confidence:.2f}")
    print(f"Facts: {json.dumps(resolved.facts.model_dump(mode='json', exclude_none=True))}")

    if result.selection is not None:
        s = result.selection
        print(f"\nSelection: {s.unit_type_chosen} ({s.reason.value}), available: {s.available_units}")
        if s.fallback_message:
            print(f"  {s.fallback_message}")

    econ = result.economics
    if econ.ok:
        print(f"\nRevenue p50: AED {econ.metrics.rev_p50:,.0f} from {econ.metrics.sample_n} comps")
    else:
        print(f"\nNo economics: {econ.reason_code.value}")


# =============================================================================
# Main
# =============================================================================


def main():
    parser = argparse.ArgumentParser(description="Inspect the Palm comparable dataset")
    parser.add_argument("--stats", action="store_true", help="Show dataset statistics")
    parser.add_argument("--lookup", nargs=2, metavar=("BUILDING", "UNIT"), help="Economics for a building + unit")
    parser.add_argument("--listings", action="store_true", help="With --lookup, show projected listings")
    parser.add_argument("--resolve", metavar="URL", help="Resolve a listing link and project economics")
    parser.add_argument("--no-fetch", action="store_true", help="With --resolve, use the URL only")
    parser.add_argument("--debug", action="store_true", help="Dump dataset diagnostics as JSON")
    parser.add_argument("--csv", type=Path, help="Dataset CSV (default: MASTER_SHEET_CSV or bundled path)")
    args = parser.parse_args()

    if not (args.stats or args.lookup or args.resolve or args.debug):
        parser.print_help()
        return

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = EngineConfig.from_env()
    if args.csv:
        config = config.model_copy(update={"dataset_path": args.csv})
    engine = LookupEngine.from_config(config)

    if args.stats:
        print_stats(engine)

    if args.lookup:
        print()
        print_lookup(engine, args.lookup[0], args.lookup[1], show_listings=args.listings)

    if args.resolve:
        print()
        print_resolution(engine, args.resolve, use_fetch=not args.no_fetch)

    if args.debug:
        print()
        print(json.dumps(engine.debug_info(), indent=2))


if __name__ == "__main__":
    main()
