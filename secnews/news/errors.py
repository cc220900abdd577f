"""Exceptions raised by the news aggregation pipeline."""


class NewsError(Exception):
    """Base class for aggregation errors."""


class NetworkError(NewsError):
    """Connection failure, bad HTTP status or timeout while retrieving a feed."""


class ParseError(NewsError):
    """Feed document could not be parsed."""


class SourceNotFoundError(NewsError):
    """No source is registered under the requested id."""

    def __init__(self, source_id: str):
        super().__init__(f"Source not found: {source_id}")
        self.source_id = source_id


class SourceDisabledError(NewsError):
    """The source exists but is not enabled."""

    def __init__(self, source_id: str):
        super().__init__(f"Source is disabled: {source_id}")
        self.source_id = source_id


class CacheError(NewsError):
    """Cache store or lookup failed. Never surfaced past the cache."""
