"""Article HTML fetcher with a single AMP fallback on timeout."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from ..config.models import BROWSER_USER_AGENT
from .urls import amp_variant

logger = logging.getLogger(__name__)


class FetchStatus(str, Enum):
    """How an article fetch ended."""

    SUCCESS = "success"
    TIMEOUT_THEN_FALLBACK = "timeout_then_fallback"
    FATAL = "fatal"


@dataclass
class FetchOutcome:
    """Typed result of the two-step fetch sequence."""

    status: FetchStatus
    url: str
    html: Optional[str] = None
    final_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.html is not None and self.status is not FetchStatus.FATAL


def _describe_status_error(e: httpx.HTTPStatusError) -> str:
    status = e.response.status_code
    if status == 404:
        return "Article not found (404)"
    if status == 403:
        return "Access forbidden (403)"
    if status >= 500:
        return f"Server error ({status})"
    return f"HTTP {status}"


async def _get_html(
    client: httpx.AsyncClient,
    url: str,
    headers: dict,
    timeout: float,
) -> httpx.Response:
    response = await client.get(url, headers=headers, timeout=timeout, follow_redirects=True)
    response.raise_for_status()
    return response


async def fetch_article_html(
    client: httpx.AsyncClient,
    url: str,
    user_agent: str = BROWSER_USER_AGENT,
    timeout: float = 40.0,
) -> FetchOutcome:
    """
    Fetch raw article HTML.

    A timeout on the first attempt triggers exactly one retry against the
    ``/amp`` variant of the URL. Any other failure, including a non-2xx
    response, is fatal with no retry.
    """
    headers = {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml",
    }

    try:
        response = await _get_html(client, url, headers, timeout)
        return FetchOutcome(
            status=FetchStatus.SUCCESS,
            url=url,
            html=response.text,
            final_url=str(response.url),
        )
    except httpx.TimeoutException:
        logger.info("Timed out fetching %s, trying AMP variant", url, extra={"url": url})
    except httpx.HTTPStatusError as e:
        return FetchOutcome(status=FetchStatus.FATAL, url=url, error=_describe_status_error(e))
    except httpx.HTTPError as e:
        return FetchOutcome(status=FetchStatus.FATAL, url=url, error=f"{type(e).__name__}: {e}")

    fallback = amp_variant(url)
    if fallback is None:
        return FetchOutcome(status=FetchStatus.FATAL, url=url, error="Request timed out")

    try:
        response = await _get_html(client, fallback, headers, timeout)
    except httpx.TimeoutException:
        return FetchOutcome(
            status=FetchStatus.FATAL, url=url, error="Request timed out (AMP fallback too)"
        )
    except httpx.HTTPStatusError as e:
        return FetchOutcome(
            status=FetchStatus.FATAL,
            url=url,
            error=f"AMP fallback failed: {_describe_status_error(e)}",
        )
    except httpx.HTTPError as e:
        return FetchOutcome(
            status=FetchStatus.FATAL, url=url, error=f"AMP fallback failed: {type(e).__name__}: {e}"
        )

    return FetchOutcome(
        status=FetchStatus.TIMEOUT_THEN_FALLBACK,
        url=url,
        html=response.text,
        final_url=str(response.url),
    )
