"""Building/unit guesses from URL path tokens alone."""

import logging
import re
from urllib.parse import unquote, urlsplit

from .aliases import AliasResolver
from .normalize import SPELLED_BEDROOM_RE, WORD_NUMBERS, unit_from_bedrooms
from .schemas import PropertyFacts, ResolvedProperty

logger = logging.getLogger(__name__)

# Ordered; the first rule that matches names the building. "{1}" is replaced
# with the rule's first capture group.
TOKENS_TO_BUILDING: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"palm[-_ ]?views"), "Palm Views"),
    (re.compile(r"palm[-_ ]?tower"), "Palm Tower"),
    (re.compile(r"seven[-_ ]?palm"), "Seven Palm"),
    (re.compile(r"five[-_ ]?palm"), "Five Palm"),
    (
        re.compile(r"shoreline[-_/ ]?(?:apartments?[-_/ ]?)?(?:bldg|building)?[-_/ ]?(\d{1,2})\b(?![-_ ]?(?:bed|br|bhk))"),
        "Shoreline Bldg {1}",
    ),
]

DIGIT_BEDROOM_RE = re.compile(r"(\d+)[-_ ]*(?:bed(?:room)?s?|br|bhk)\b")


def path_text(url: str) -> str:
    """Lowercased URL path with separators other than - / _ collapsed to spaces."""
    raw = url.strip()
    parts = urlsplit(raw if "://" in raw else f"//{raw}")
    path = unquote(parts.path or "")
    return re.sub(r"[^a-z0-9\-/_]+", " ", path.lower()).strip()


def building_from_path(path: str) -> str | None:
    for pattern, name in TOKENS_TO_BUILDING:
        m = pattern.search(path)
        if m:
            return name.replace("{1}", m.group(1) if m.groups() else "")
    return None


def unit_from_path(path: str) -> str | None:
    if "studio" in path:
        return "Studio"
    m = DIGIT_BEDROOM_RE.search(path)
    if m:
        return unit_from_bedrooms(int(m.group(1)))
    m = SPELLED_BEDROOM_RE.search(path.replace("-", " ").replace("_", " "))
    if m:
        return unit_from_bedrooms(WORD_NUMBERS[m.group(1).lower()])
    return None


def guess_from_url(url: str, aliases: AliasResolver) -> ResolvedProperty:
    """Resolve what the URL path alone says. Never raises."""
    try:
        path = path_text(url)
        building = building_from_path(path)
        if building:
            building = aliases.canonical_for(building)
        unit_type = unit_from_path(path)
    except Exception as e:
        logger.warning(f"[resolver] url guess failed for {url!r}: {e.__class__.__name__}: {e}")
        return ResolvedProperty(confidence=0.0, facts=PropertyFacts(source="url_guess_error"))

    confidence = 0.4
    if building:
        confidence += 0.3
    if unit_type:
        confidence += 0.3

    return ResolvedProperty(
        building_name=building,
        unit_type=unit_type,
        confidence=round(min(max(confidence, 0.0), 1.0), 2),
        facts=PropertyFacts(source="url_guess"),
    )
