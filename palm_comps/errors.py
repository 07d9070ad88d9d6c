"""Error taxonomy for the resolver and economics engine.

None of these escape the engine's public operations. They are raised at the
collaborator seams and converted to structured results at the boundary:

- InputError: malformed or unsupported listing URL -> NOT_SUPPORTED
- FetchError: page fetch failed -> URL-guess-only resolution
- ParseError: one structured-data block is malformed -> block skipped
- DataError: dataset row is missing required fields -> row skipped
- ConfigError: dataset source unavailable -> empty dataset
"""


class ResolverError(Exception):
    """Base class for engine errors."""


class InputError(ResolverError):
    pass


class FetchError(ResolverError):
    pass


class ParseError(ResolverError):
    pass


class DataError(ResolverError):
    pass


class ConfigError(ResolverError):
    pass
