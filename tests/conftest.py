"""Shared fixtures: in-memory datasets, alias tables and an engine wired to them."""

from datetime import date

import pytest

from palm_comps.aliases import AliasResolver
from palm_comps.config import EngineConfig
from palm_comps.errors import FetchError
from palm_comps.page import PageSnapshot
from palm_comps.registry import DatasetRegistry, StaticRowSource
from palm_comps.service import LookupEngine


def comp(listing_id, building, unit, days, revenue, adr, occupancy):
    """One dataset row using the export's header names."""
    return {
        "airbnb_id": listing_id,
        "building": building,
        "bedrooms": unit,
        "days_available": days,
        "revenue": revenue,
        "adr": adr,
        "occupancy": occupancy,
    }


SEVEN_PALM_ROWS = [
    comp("101", "Seven Palm Jumeirah", "1", 300, 98_000, 620, 52),
    comp("102", "Seven Palm Jumeirah", "1", 310, 121_000, 700, 56),
    comp("103", "Seven Palm Jumeirah", "1", 365, 165_000, 760, 59),
    comp("104", "Seven Palm Jumeirah", "Studio", 340, 88_000, 480, 61),
    comp("105", "Seven Palm Jumeirah", "Studio", 365, 95_000, 500, 64),
    comp("106", "Seven Palm Jumeirah", "Studio", 120, 30_000, 450, 55),
    comp("201", "Palm Views", "2", 365, 190_000, 900, 58),
    comp("202", "Palm Views", "2", 290, 150_000, 880, 60),
    comp("203", "Palm Views", "1", 365, 120_000, 600, 62),
]


@pytest.fixture
def config():
    return EngineConfig(
        reference_date=date(2025, 9, 22),
        min_days=270,
        min_listings=2,
        correction_enabled=False,
    )


@pytest.fixture
def aliases():
    return AliasResolver.from_mapping({
        "Seven Palm Jumeirah": ["seven palm", "7 palm"],
        "The Palm Tower": ["palm tower"],
    })


def make_engine(config, rows, aliases=None, fetch=None):
    registry = DatasetRegistry(StaticRowSource(rows))
    return LookupEngine(config, registry, aliases or AliasResolver(), fetch=fetch)


@pytest.fixture
def engine(config, aliases):
    return make_engine(config, SEVEN_PALM_ROWS, aliases, fetch=_no_network)


def listing_page(title="", description="", details="", json_ld=None, meta=None):
    """Build a listing page the way the portals lay them out."""
    head = [f"<title>{title}</title>"] if title else []
    for key, value in (meta or {}).items():
        head.append(f'<meta property="{key}" content="{value}">')
    for block in json_ld or []:
        head.append(f'<script type="application/ld+json">{block}</script>')

    html = (
        "<html><head>" + "".join(head) + "</head><body><main>"
        f'<div class="property-description">{description}</div>'
        f'<div class="property-facts">{details}</div>'
        "</main></body></html>"
    )
    return PageSnapshot(html, url="https://www.propertyfinder.ae/")


@pytest.fixture
def page_builder():
    return listing_page


@pytest.fixture
def comp_row():
    return comp


@pytest.fixture
def engine_for(config):
    """Factory for an engine over ad-hoc rows; never touches the network."""

    def build(rows, aliases=None, **overrides):
        cfg = config.model_copy(update=overrides) if overrides else config
        return make_engine(cfg, rows, aliases, fetch=_no_network)

    return build


def _no_network(url):
    raise FetchError(f"network disabled in tests: {url}")
