"""Exception hierarchy for the ingestion pipeline."""

from typing import Optional


class NewswatchError(Exception):
    """Base class for all newswatch errors."""


class ConfigError(NewswatchError):
    """Raised when configuration is missing or invalid."""


class AdapterError(NewswatchError):
    """A source adapter could not produce a batch."""

    def __init__(self, adapter_id: str, message: str) -> None:
        self.adapter_id = adapter_id
        super().__init__(f"[{adapter_id}] {message}")


class ApiAdapterError(AdapterError):
    """Non-2xx response from a paginated content API."""

    def __init__(
        self,
        adapter_id: str,
        status_code: int,
        body: str,
        page: Optional[int] = None,
    ) -> None:
        self.status_code = status_code
        self.body = body[:200]
        self.page = page
        where = f" p{page}" if page is not None else ""
        super().__init__(adapter_id, f"API request{where} failed: {status_code} {self.body}")


class FeedParseError(AdapterError):
    """The feed document could not be parsed at all."""


class HydrationError(NewswatchError):
    """Hydration of a single source failed."""


class ArticleFetchError(HydrationError):
    """The article HTML could not be fetched."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"Fetch failed for {url}: {message}")


class ExtractionError(HydrationError):
    """No readable text could be extracted from the article HTML."""


class WatchError(NewswatchError):
    """Invalid subject/watch input or unknown subject/watch."""
