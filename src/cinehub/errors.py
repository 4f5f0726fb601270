"""Exception hierarchy for the aggregation pipeline."""


class CineHubError(Exception):
    """Base exception for all CineHub failures."""


class ParseStructureError(CineHubError):
    """Raised when a page's top-level data block cannot be located at all.

    Distinct from a partially malformed page: no records at all usually
    means the upstream site changed its markup.
    """


class RecordParseError(CineHubError):
    """Raised for a single malformed screening fragment; callers skip it."""


class FetchError(CineHubError):
    """Raised when a page cannot be downloaded (network error, timeout, non-2xx)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class EnrichmentError(CineHubError):
    """Raised when a TMDb lookup fails."""


class AggregationError(CineHubError):
    """Raised when every source in a combined query failed."""

    def __init__(self, errors: dict[str, BaseException]) -> None:
        summary = "; ".join(f"{slug}: {err}" for slug, err in errors.items())
        super().__init__(f"All sources failed: {summary}")
        self.errors = errors
