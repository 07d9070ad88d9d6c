"""Fact extraction from listing pages.

Each strategy is a pure function of (page, url, draft) returning a partial
dict of facts. Strategies run in a fixed order and are folded left with a
first-writer-wins merge: a key set by an earlier strategy is never
overwritten by a later one. The draft passed in is read-only context (for
example, price strategies need the listing type found earlier).
"""

import logging
import re
from collections import Counter
from collections.abc import Callable, Mapping
from typing import Any

from .aliases import AliasResolver
from .normalize import (
    bedrooms_from_unit,
    normalize_building,
    unit_from_bedrooms,
    unit_type_from_text,
)
from .page import PageSnapshot
from .schemas import PropertyFacts, ResolvedProperty

logger = logging.getLogger(__name__)

Draft = Mapping[str, Any]
Strategy = Callable[[PageSnapshot, str, Draft], dict[str, Any]]

RENT_RANGE = (10_000, 10_000_000)
SALE_RANGE = (100_000, 100_000_000)
SQM_TO_SQFT = 10.764

RENT_PATTERNS = [
    re.compile(r"AED\s*([\d,]+)\s*(?:/\s*)?(?:per\s+)?year", re.IGNORECASE),
    re.compile(r"AED\s*([\d,]+)\s*yearly", re.IGNORECASE),
    re.compile(r"([\d,]+)\s*AED\s*(?:/\s*)?(?:per\s+)?year", re.IGNORECASE),
    re.compile(r"([\d,]+)\s*AED\s*yearly", re.IGNORECASE),
    re.compile(r"Price.*?AED\s*([\d,]+)", re.IGNORECASE),
    re.compile(r"Rent.*?AED\s*([\d,]+)", re.IGNORECASE),
]

SALE_PATTERNS = [
    re.compile(r"Price.*?AED\s*([\d,]+)", re.IGNORECASE),
    re.compile(r"AED\s*([\d,]+)", re.IGNORECASE),
    re.compile(r"([\d,]+)\s*AED", re.IGNORECASE),
]

PRICE_NODE_PATTERNS = [
    re.compile(r"AED\s*([\d,]+)", re.IGNORECASE),
    re.compile(r"([\d,]+)\s*AED", re.IGNORECASE),
]

BEDROOMS_RE = re.compile(r"Bedrooms\s*:?\s*(\d+)", re.IGNORECASE)
BATHROOMS_RE = re.compile(r"Bathrooms?\s*:?\s*(\d+)", re.IGNORECASE)
SIZE_RE = re.compile(r"Property\s*Size\s*:?\s*([\d,]+)\s*(sqft|sqm)", re.IGNORECASE)
MAID_SERVICE_RE = re.compile(r"\bmaid'?s?\s+services?'?\b", re.IGNORECASE)

PRICE_META_KEYS = ["product:price:amount", "og:price:amount"]


# =============================================================================
# Helpers
# =============================================================================


def _digits(raw: Any) -> int | None:
    digits = re.sub(r"[^\d]", "", str(raw or ""))
    return int(digits) if digits else None


def _price_key(listing_type: str | None) -> str | None:
    return {"rent": "yearly_rent", "sale": "purchase_price"}.get(listing_type or "")


def _in_range(value: int | None, listing_type: str | None) -> bool:
    if value is None:
        return False
    low, high = RENT_RANGE if listing_type == "rent" else SALE_RANGE
    return low <= value <= high


def _price_found(draft: Draft) -> bool:
    key = _price_key(draft.get("listing_type"))
    return key is None or draft.get(key) is not None


def has_maids_room(section_text: str, bedrooms: int) -> bool:
    """Maid's room mentioned as a room (not the "maid service" amenity)."""
    text = MAID_SERVICE_RE.sub("", section_text.lower())
    patterns = [
        rf"\b{bedrooms}\s*bed.*\+.*maid",
        rf"\b{bedrooms}\s*br.*\+.*maid",
        r"\bmaid'?s?\s+room\b",
        r"\+\s*maid\s+(room|bed)",
        r"with\s+maid'?s?\s+room",
    ]
    return any(re.search(p, text) for p in patterns)


# =============================================================================
# Strategies, in run order
# =============================================================================


def listing_type_from_url(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    if re.search(r"/(rent|for-rent)/", url, re.IGNORECASE):
        return {"listing_type": "rent"}
    if re.search(r"/(buy|for-sale|sale)/", url, re.IGNORECASE):
        return {"listing_type": "sale"}
    return {}


def structured_data_facts(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    """schema.org blocks: name, description, address, bathrooms, offer price."""
    found: dict[str, Any] = {}
    listing_type = draft.get("listing_type")

    for block in page.structured_data():
        payloads = block if isinstance(block, list) else [block]
        for payload in payloads:
            if not isinstance(payload, dict):
                continue
            try:
                graph = payload.get("@graph")
                first = graph[0] if isinstance(graph, list) and graph and isinstance(graph[0], dict) else {}
                name = payload.get("name") or first.get("name")
                description = payload.get("description") or first.get("description")

                if name:
                    found.setdefault("building", name)
                unit = unit_type_from_text(f"{name or ''} {description or ''}")
                if unit:
                    found.setdefault("unit_type", unit)
                if payload.get("address"):
                    found.setdefault("address", payload["address"])
                if payload.get("numberOfBathroomsTotal") is not None:
                    found.setdefault("bathrooms", int(payload["numberOfBathroomsTotal"]))

                offers = payload.get("offers")
                price_key = _price_key(listing_type)
                if price_key and isinstance(offers, dict) and offers.get("price") is not None:
                    price = _digits(offers["price"])
                    if _in_range(price, listing_type):
                        found.setdefault(price_key, price)
            except (AttributeError, TypeError, ValueError) as e:
                logger.debug(f"[extractor] skipping structured-data payload: {e}")
                continue

    return {k: v for k, v in found.items() if v is not None}


def title_facts(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    """og:title or <title>: building candidate, unit type, rent/sale keywords."""
    candidate = page.meta("og:title") or page.title()
    if not candidate:
        return {}

    found: dict[str, Any] = {"building": candidate}
    unit = unit_type_from_text(candidate)
    if unit:
        found["unit_type"] = unit
    if re.search(r"for rent|rent", candidate, re.IGNORECASE):
        found["listing_type"] = "rent"
    elif re.search(r"for sale|sale", candidate, re.IGNORECASE):
        found["listing_type"] = "sale"
    return found


def bedroom_facts(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    """Bedroom count from "Bedrooms N" anywhere in the page, adjusted for a maid's room.

    The maid's-room check reads only description-like sections; a maid
    mentioned elsewhere on the page (agent bios, amenity lists) is ignored.
    """
    m = BEDROOMS_RE.search(page.text())
    if not m:
        return {}

    bedrooms = int(m.group(1))
    section_text = " ".join(page.section_texts("description"))

    if has_maids_room(section_text, bedrooms):
        effective = bedrooms + 1
        return {
            "bedrooms": effective,
            "bedrooms_without_maid": bedrooms,
            "has_maids_room": True,
            "unit_type": unit_from_bedrooms(effective),
        }
    return {
        "bedrooms": bedrooms,
        "has_maids_room": False,
        "unit_type": unit_from_bedrooms(bedrooms),
    }


def bathroom_facts(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    """Most frequent bathroom count across detail sections, else the last mention."""
    if draft.get("bathrooms") is not None:
        return {}

    counts: Counter[int] = Counter()
    for text in page.section_texts("bathrooms"):
        counts.update(int(n) for n in BATHROOMS_RE.findall(text))
    if counts:
        return {"bathrooms": counts.most_common(1)[0][0]}

    mentions = BATHROOMS_RE.findall(page.text())
    if mentions:
        return {"bathrooms": int(mentions[-1])}
    return {}


def size_facts(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    m = SIZE_RE.search(page.text())
    if not m:
        return {}
    value = int(m.group(1).replace(",", ""))
    unit = m.group(2).lower()
    size_sqft = value if unit == "sqft" else round(value * SQM_TO_SQFT)
    return {"size": f"{value} {unit}", "size_sqft": size_sqft}


def price_from_text(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    listing_type = draft.get("listing_type")
    if _price_found(draft):
        return {}

    patterns = RENT_PATTERNS if listing_type == "rent" else SALE_PATTERNS
    text = page.text()
    for pattern in patterns:
        m = pattern.search(text)
        if m:
            value = _digits(m.group(1))
            if _in_range(value, listing_type):
                return {_price_key(listing_type): value}
    return {}


def price_from_meta(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    listing_type = draft.get("listing_type")
    if _price_found(draft):
        return {}

    raw = next((v for v in (page.meta(k) for k in PRICE_META_KEYS) if v), None)
    value = _digits(raw)
    if _in_range(value, listing_type):
        return {_price_key(listing_type): value}
    return {}


def price_from_nodes(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    listing_type = draft.get("listing_type")
    if _price_found(draft):
        return {}

    for text in page.section_texts("price"):
        m = next((m for m in (p.search(text) for p in PRICE_NODE_PATTERNS) if m), None)
        if m:
            value = _digits(m.group(1))
            if _in_range(value, listing_type):
                return {_price_key(listing_type): value}
    return {}


def unit_from_meta_description(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    unit = unit_type_from_text(page.meta("description"))
    return {"unit_type": unit} if unit else {}


def unit_from_url_text(page: PageSnapshot, url: str, draft: Draft) -> dict[str, Any]:
    unit = unit_type_from_text(url)
    return {"unit_type": unit} if unit else {}


STRATEGIES: list[Strategy] = [
    listing_type_from_url,
    structured_data_facts,
    title_facts,
    bedroom_facts,
    bathroom_facts,
    size_facts,
    price_from_text,
    price_from_meta,
    price_from_nodes,
    unit_from_meta_description,
    unit_from_url_text,
]


# =============================================================================
# Extractor
# =============================================================================


def run_strategies(page: PageSnapshot, url: str, strategies: list[Strategy] = STRATEGIES) -> dict[str, Any]:
    """Fold strategies left, first writer wins per key."""
    draft: dict[str, Any] = {}
    for strategy in strategies:
        for key, value in strategy(page, url, draft).items():
            if value is not None and key not in draft:
                draft[key] = value
    return draft


def extract_listing_page(page: PageSnapshot, url: str, aliases: AliasResolver) -> ResolvedProperty:
    """Resolve building, unit type and facts from a listing page."""
    draft = run_strategies(page, url)

    building = normalize_building(draft.get("building"), url)
    if building:
        building = aliases.closest(building)

    unit_type = draft.get("unit_type")
    bedrooms = draft.get("bedrooms")
    if bedrooms is None and unit_type:
        bedrooms = bedrooms_from_unit(unit_type)

    facts = PropertyFacts(
        bedrooms=bedrooms,
        bedrooms_without_maid=draft.get("bedrooms_without_maid"),
        has_maids_room=draft.get("has_maids_room"),
        bathrooms=draft.get("bathrooms"),
        size=draft.get("size"),
        size_sqft=draft.get("size_sqft"),
        address=draft.get("address"),
        yearly_rent=draft.get("yearly_rent"),
        purchase_price=draft.get("purchase_price"),
        listing_type=draft.get("listing_type"),
    )

    confidence = 0.5
    if building:
        confidence += 0.2
    if unit_type:
        confidence += 0.3

    return ResolvedProperty(
        building_name=building,
        unit_type=unit_type,
        confidence=round(min(max(confidence, 0.0), 1.0), 2),
        facts=facts,
    )
