from typing import Optional


class TrifectaError(Exception):
    """Base class for every error raised by the aggregator."""


class FetchError(TrifectaError):
    """A feed could not be retrieved (non-2xx status or transport failure)."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code is not None:
            message = f"HTTP {status_code} fetching {url}"
        else:
            message = f"Request failed for {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class FeedTimeoutError(FetchError):
    """The overall fetch deadline elapsed and the request was aborted."""

    def __init__(self, url: str, timeout: float):
        self.timeout = timeout
        super().__init__(url, reason=f"timed out after {timeout:g}s")


class ConfigurationError(TrifectaError):
    """Topic definitions are missing or invalid. Fatal for the request."""


class AggregationError(TrifectaError):
    """An unexpected failure while building the payload. Fatal for the request."""
