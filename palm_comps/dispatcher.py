"""Pick an extractor for a listing URL and fall back to URL guessing."""

import logging
import re
from collections.abc import Callable

from .aliases import AliasResolver
from .errors import InputError
from .extractors import extract_listing_page
from .page import PageSnapshot, fetch_page
from .schemas import PropertyFacts, ResolvedProperty
from .url_guesser import guess_from_url

logger = logging.getLogger(__name__)

Extractor = Callable[[PageSnapshot, str, AliasResolver], ResolvedProperty]
PageFetcher = Callable[[str], PageSnapshot]

EXTRACTORS: list[tuple[re.Pattern[str], Extractor]] = [
    (re.compile(r"propertyfinder\.", re.IGNORECASE), extract_listing_page),
    (re.compile(r"bayut\.", re.IGNORECASE), extract_listing_page),
]


def extractor_for(url: str) -> Extractor:
    if not url or not url.strip():
        raise InputError("url is required")
    for pattern, extractor in EXTRACTORS:
        if pattern.search(url):
            return extractor
    raise InputError(f"Unsupported domain: {url}")


def merge_resolutions(primary: ResolvedProperty, guess: ResolvedProperty) -> ResolvedProperty:
    """Fill fields the primary left unset from the guess.

    Confidence is the larger of the two; on a fact collision the primary's
    value wins.
    """
    facts = {
        **guess.facts.model_dump(exclude_none=True),
        **primary.facts.model_dump(exclude_none=True),
    }
    return ResolvedProperty(
        building_name=primary.building_name or guess.building_name,
        unit_type=primary.unit_type or guess.unit_type,
        confidence=max(primary.confidence, guess.confidence),
        facts=PropertyFacts(**facts),
    )


def resolve(
    url: str,
    aliases: AliasResolver,
    fetch: PageFetcher | None = fetch_page,
) -> ResolvedProperty:
    """Resolve a listing URL to a building and unit type. Never raises.

    Pass fetch=None to skip the page fetch and resolve from the URL alone.
    """
    primary: ResolvedProperty | None = None

    try:
        extractor = extractor_for(url)
        if fetch is not None:
            page = fetch(url)
            primary = extractor(page, url, aliases)
    except Exception as e:
        logger.warning(f"[resolver] primary extract failed: {e.__class__.__name__}: {e}")

    if primary is not None and primary.is_complete:
        return primary

    guess = guess_from_url(url or "", aliases)
    if primary is None:
        return guess
    return merge_resolutions(primary, guess)
