"""Source adapter interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup

from ..config.models import GuardianConfig, HttpConfig
from .models import NormalizedArticle


def strip_html(value: Optional[str]) -> Optional[str]:
    """Plain-text snippet of an HTML fragment, or None when nothing is left."""
    if not value:
        return None
    soup = BeautifulSoup(value, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = " ".join(soup.get_text(" ").split())
    return text or None


@dataclass
class AdapterContext:
    """Shared handles an adapter needs; owned by the runner, not the adapter."""

    client: httpx.AsyncClient
    http: HttpConfig
    guardian: GuardianConfig


class SourceAdapter(ABC):
    """Uniform fetcher for one feed/source kind."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Stable adapter identifier used in logs and audit events."""

    @abstractmethod
    async def fetch_batch(self) -> List[NormalizedArticle]:
        """Fetch one batch of normalized articles.

        Raises on network or protocol failure; the runner isolates it.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"
