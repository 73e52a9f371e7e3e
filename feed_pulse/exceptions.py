class FeedFetchError(Exception):
    """Raised when a feed cannot be fetched through a given strategy."""


class ParseError(Exception):
    """Raised when raw feed text is malformed or holds no items."""


class IngestInProgressError(RuntimeError):
    """Raised when an ingestion run is started while another is running."""


class InsightError(Exception):
    """Raised when the generative insight service fails or returns bad JSON."""


class FeedStoreError(ValueError):
    """Raised when a subscription cannot be added or found."""
