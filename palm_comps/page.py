"""Listing page snapshots and the best-effort page fetcher."""

import json
import logging
from collections.abc import Iterator
from typing import Any

import httpx
from bs4 import BeautifulSoup, Comment, Doctype

from .errors import FetchError, ParseError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

NON_VISIBLE_TAGS = {"script", "style", "noscript", "template"}

# Semantic section families -> CSS selectors, most specific first.
SECTION_SELECTORS: dict[str, list[str]] = {
    "description": [
        '[class*="property-description"]',
        '[class*="property-detail"]',
        '[class*="PropertyDetail"]',
        '[data-testid*="description"]',
        "main",
        '[role="main"]',
    ],
    "bathrooms": [
        '[class*="property"]',
        '[class*="feature"]',
        '[class*="detail"]',
        "main",
        '[role="main"]',
    ],
    "price": [
        '[class*="price"]',
        '[class*="amount"]',
        '[data-testid*="price"]',
    ],
}


class PageSnapshot:
    """An already-fetched listing page.

    Wraps a parsed HTML document and exposes only what the fact extractor
    reads: JSON-LD blocks, meta tags, the title, semantic sections and the
    visible text.
    """

    def __init__(self, html: str, url: str | None = None, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        self._soup = BeautifulSoup(html or "", "html.parser")
        self._text: str | None = None

    def structured_data(self) -> Iterator[Any]:
        """Parsed JSON-LD blocks; malformed blocks are logged and omitted."""
        for node in self._soup.find_all("script", type="application/ld+json"):
            try:
                yield parse_json_block(node.get_text())
            except ParseError as e:
                logger.debug(f"[page] skipping structured-data block: {e}")

    def meta(self, key: str) -> str | None:
        node = self._soup.find("meta", attrs={"property": key}) or self._soup.find("meta", attrs={"name": key})
        if node is None:
            return None
        content = node.get("content")
        return content.strip() if content else None

    def title(self) -> str | None:
        node = self._soup.find("title")
        if node is None:
            return None
        return node.get_text(strip=True) or None

    def section_texts(self, family: str) -> list[str]:
        """Text of every node in a section family, in document order per selector."""
        texts = []
        seen: set[int] = set()
        for selector in SECTION_SELECTORS.get(family, []):
            for node in self._soup.select(selector):
                if id(node) in seen:
                    continue
                seen.add(id(node))
                texts.append(node.get_text(" ", strip=True))
        return texts

    def first_section_text(self, family: str) -> str | None:
        texts = self.section_texts(family)
        return texts[0] if texts else None

    def text(self) -> str:
        """Visible text of the whole document."""
        if self._text is None:
            parts = (
                s.strip()
                for s in self._soup.find_all(string=True)
                if not isinstance(s, (Comment, Doctype)) and s.parent.name not in NON_VISIBLE_TAGS
            )
            self._text = " ".join(p for p in parts if p)
        return self._text


def parse_json_block(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ParseError(f"malformed JSON-LD: {e}") from e


def fetch_page(url: str, timeout: float = 15.0) -> PageSnapshot:
    """Fetch a listing page.

    Non-success statuses are logged but the body is still parsed, so a 403
    or 404 page can still feed the extractor and the URL fallback.
    """
    try:
        with httpx.Client(
            headers={"User-Agent": USER_AGENT, "Accept": "text/html"},
            follow_redirects=True,
            timeout=timeout,
        ) as client:
            response = client.get(url)
    except httpx.HTTPError as e:
        raise FetchError(f"{e.__class__.__name__}: {e}") from e

    if not response.is_success:
        logger.warning(f"[resolver] non-200 for {url} -> {response.status_code}")

    return PageSnapshot(response.text, url=str(response.url), status_code=response.status_code)
