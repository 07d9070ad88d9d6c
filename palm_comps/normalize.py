"""Text canonicalization, token matching and unit/building normalization."""

import re
from collections.abc import Callable, Iterable

# Buildings we can name from free text; longer names first where one contains another.
KNOWN_BUILDINGS = [
    "Shoreline Apartments",
    "Seven Palm Jumeirah",
    "Seven Palm",
    "The Palm Tower",
    "Palm Tower",
    "Five Palm Jumeirah",
    "Five Palm",
    "Fairmont Palm Residences",
    "Palm Views",
    "Marina Residences",
    "Azure Residences",
    "Tiara Residences",
    "Oceana Residences",
    "The Royal Amwaj",
    "Royal Amwaj",
    "Th8",
    "Balqis Residence",
    "Grandeur Residences",
    "Jumeirah Zabeel Saray",
    "Azizi Mina",
    "Sarai Apartments",
    "Rixos Hotel",
    "Club Vista Mare",
]

# Raw names that are locations, not buildings.
GENERIC_LOCATIONS = {"dubai", "palm jumeirah", "jumeirah"}

WORD_NUMBERS = {"one": 1, "two": 2, "three": 3, "four": 4}

BEDROOM_RE = re.compile(r"(\d+)\s*[-_ ]?\s*(?:bed(?:room)?s?|br|bhk)\b", re.IGNORECASE)
SPELLED_BEDROOM_RE = re.compile(r"\b(one|two|three|four)\s*[-_ ]?\s*bed(?:room)?s?\b", re.IGNORECASE)
MAID_SERVICE_RE = re.compile(r"\bmaid'?s?\s+services?\b", re.IGNORECASE)
UNIT_CLASS_RE = re.compile(r"^(\d+)BR$")

_LISTING_PREFIX_RE = re.compile(
    r"\A(rent in|for rent in|for sale in|buy in|apartment (for )?(rent|sale) in)\s+", re.IGNORECASE
)
_PROPERTY_FINDER_SUFFIX_RE = re.compile(r"\s*[|-]\s*property\s*finder\s*\Z", re.IGNORECASE)
_PROPERTY_TYPE_PREFIX_RE = re.compile(r"\A(apartment|villa|townhouse|penthouse)\s+(in\s+)?", re.IGNORECASE)


# =============================================================================
# Canonical form and tokens
# =============================================================================


def canonical(s: str | None) -> str:
    """Lowercase, trim and collapse whitespace runs to a single space."""
    if not s:
        return ""
    return " ".join(str(s).lower().split())


def tokenize(s: str | None) -> set[str]:
    """Canonical tokens of two or more characters."""
    return {token for token in canonical(s).split(" ") if len(token) >= 2}


def jaccard(a: set[str], b: set[str]) -> float:
    """|a & b| / |a | b|, or 0.0 when either set is empty."""
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def query_overlap(query: set[str], candidate: set[str]) -> float:
    """Share of the query's tokens that appear in the candidate."""
    if not query or not candidate:
        return 0.0
    return len(query & candidate) / len(query)


def similarity(a: str | None, b: str | None) -> float:
    return jaccard(tokenize(a), tokenize(b))


def best_match(
    query: str | None,
    candidates: Iterable[str],
    threshold: float,
    scorer: Callable[[set[str], set[str]], float] = jaccard,
) -> tuple[str | None, float]:
    """Pick the highest-scoring candidate that meets the threshold.

    Ties keep the earlier candidate. Returns (None, 0.0) when nothing clears
    the threshold.
    """
    query_tokens = tokenize(query)
    best: str | None = None
    best_score = 0.0

    for candidate in candidates:
        score = scorer(query_tokens, tokenize(candidate))
        if score >= threshold and (best is None or score > best_score):
            best = candidate
            best_score = score

    return best, best_score


# =============================================================================
# Unit types
# =============================================================================


def unit_from_bedrooms(bedrooms: int) -> str:
    return "Studio" if bedrooms <= 0 else f"{bedrooms}BR"


def bedrooms_from_unit(unit_type: str | None) -> int | None:
    if unit_type == "Studio":
        return 0
    m = UNIT_CLASS_RE.match(unit_type or "")
    return int(m.group(1)) if m else None


def lower_unit_class(unit_type: str | None) -> str | None:
    """One bedroom class down: 2BR -> 1BR, 1BR -> Studio, Studio -> None."""
    bedrooms = bedrooms_from_unit(unit_type)
    if not bedrooms:
        return None
    return unit_from_bedrooms(bedrooms - 1)


def normalize_unit_type(value: str | int | None) -> str | None:
    """Normalize dataset or request unit text to Studio / NBR.

    Accepts bare counts ("2"), compact forms ("2br", "2 BR"), long forms
    ("2 bedrooms") and spelled counts ("two bedroom"). Returns None when the
    text names no unit class.
    """
    s = canonical(str(value)) if value is not None else ""
    if not s:
        return None
    if s in ("0", "0br") or "studio" in s:
        return "Studio"

    m = re.match(r"^(\d+)(?:\s*(?:br|bed|beds|bedroom|bedrooms|bhk))?$", s)
    if not m:
        m = BEDROOM_RE.search(s)
    if m:
        return unit_from_bedrooms(int(m.group(1)))

    m = SPELLED_BEDROOM_RE.search(s)
    if m:
        return unit_from_bedrooms(WORD_NUMBERS[m.group(1).lower()])
    return None


def unit_type_from_text(text: str | None) -> str | None:
    """Derive a unit type from listing prose such as a title or description.

    "2 Bed + Maid" counts the maid's room as a bedroom and yields 3BR;
    "maid service" is an amenity and is ignored.
    """
    if not text:
        return None
    t = MAID_SERVICE_RE.sub("", str(text)).lower()
    if "studio" in t:
        return "Studio"

    m = BEDROOM_RE.search(t)
    if m:
        bedrooms = int(m.group(1))
        if "maid" in t[m.end():]:
            bedrooms += 1
        return unit_from_bedrooms(bedrooms)

    m = SPELLED_BEDROOM_RE.search(t)
    if m:
        return unit_from_bedrooms(WORD_NUMBERS[m.group(1).lower()])
    return None


# =============================================================================
# Building names
# =============================================================================


def known_building_in(text: str | None) -> str | None:
    """First known building named (by substring) in free text."""
    lowered = canonical(text)
    if not lowered:
        return None
    for building in KNOWN_BUILDINGS:
        if building.lower() in lowered:
            return building
    return None


def known_building_in_url(url: str | None) -> str | None:
    """First known building in a URL, written hyphenated or run together."""
    lowered = (url or "").lower()
    if not lowered:
        return None
    for building in KNOWN_BUILDINGS:
        name = building.lower()
        if re.sub(r"\s+", "-", name) in lowered or re.sub(r"\s+", "", name) in lowered:
            return building
    return None


def clean_building_text(raw: str) -> str | None:
    """Strip listing-site boilerplate from a page title or name."""
    s = raw.strip()
    s = _LISTING_PREFIX_RE.sub("", s)
    s = re.split(r"\s*[|:]\s*", s)[0] or s
    s = _PROPERTY_FINDER_SUFFIX_RE.sub("", s)
    s = _PROPERTY_TYPE_PREFIX_RE.sub("", s)
    s = " ".join(s.split())

    if len(s) < 3 or s.lower() in GENERIC_LOCATIONS:
        return None
    return s


def normalize_building(raw: str | None, url: str | None = None) -> str | None:
    """Resolve a raw building candidate to a display name.

    Known buildings are matched in the raw text first, then in the URL;
    otherwise the raw text is cleaned of listing boilerplate.
    """
    if not raw and not url:
        return None

    found = known_building_in(raw) or known_building_in_url(url)
    if found:
        return found
    if not raw:
        return None
    return clean_building_text(raw)
