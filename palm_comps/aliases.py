"""Exact-name building alias table.

The table is a JSON object mapping each canonical display name to the
aliases that should resolve to it:

    {"Seven Palm Jumeirah": ["seven palm", "7 palm"]}

Lookups are case- and whitespace-insensitive and never fuzzy.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from .errors import ConfigError
from .normalize import KNOWN_BUILDINGS, best_match, canonical
from .schemas import CanonicalBuilding

logger = logging.getLogger(__name__)


class AliasResolver:
    """Read-only many-to-one map from alias to canonical building name."""

    def __init__(self, buildings: Iterable[CanonicalBuilding] = (), fuzzy_threshold: float = 0.6):
        self.buildings: tuple[CanonicalBuilding, ...] = tuple(buildings)
        self.fuzzy_threshold = fuzzy_threshold
        index: dict[str, str] = {}
        for building in self.buildings:
            index.setdefault(canonical(building.name), building.name)
            for alias in building.aliases:
                key = canonical(alias)
                if key:
                    index.setdefault(key, building.name)
        self._index = index

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]], fuzzy_threshold: float = 0.6) -> "AliasResolver":
        return cls(
            (
                CanonicalBuilding(name=name, aliases=tuple(str(a) for a in (aliases or ())))
                for name, aliases in mapping.items()
            ),
            fuzzy_threshold=fuzzy_threshold,
        )

    @classmethod
    def load(cls, path: Path, fuzzy_threshold: float = 0.6) -> "AliasResolver":
        """Load the alias file; a missing or unreadable file yields an empty table."""
        try:
            if not path.exists():
                raise ConfigError(f"alias file not found: {path}")
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ConfigError(f"alias file must hold a JSON object: {path}")
        except (ConfigError, OSError, ValueError) as e:
            logger.warning(f"[aliases] preload skipped: {e.__class__.__name__}: {e}")
            return cls(fuzzy_threshold=fuzzy_threshold)

        resolver = cls.from_mapping(data, fuzzy_threshold=fuzzy_threshold)
        logger.info(f"[aliases] Loaded {len(resolver.buildings)} canonical buildings from {path}")
        return resolver

    def canonical_for(self, name: str | None) -> str | None:
        """Canonical display name for an exact alias or name, else the input unchanged."""
        key = canonical(name)
        if not key:
            return name
        return self._index.get(key, name)

    def is_known(self, name: str | None) -> bool:
        return canonical(name) in self._index

    def __len__(self) -> int:
        return len(self.buildings)

    def closest(self, name: str | None) -> str | None:
        """Exact alias lookup, then the best token-overlap match among known names.

        Returns the input unchanged when nothing clears `fuzzy_threshold`.
        """
        if self.is_known(name):
            return self.canonical_for(name)

        candidates = [b.name for b in self.buildings]
        candidates += [b for b in KNOWN_BUILDINGS if b not in candidates]
        matched, _ = best_match(name, candidates, self.fuzzy_threshold)
        if matched is None:
            return name
        return self.canonical_for(matched)
