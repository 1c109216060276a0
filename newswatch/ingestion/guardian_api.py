"""Guardian content API adapter (paginated JSON)."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import pendulum

from ..config.models import DEFAULT_GUARDIAN_FIELDS, GuardianApiParams, GuardianConfig
from ..errors import ApiAdapterError, ConfigError
from ..models.feed import FeedSection, normalize_section
from .base import SourceAdapter, strip_html
from .models import NormalizedArticle

logger = logging.getLogger(__name__)

SECTION_PATHS: Dict[FeedSection, str] = {
    FeedSection.NEWS: "world",
    FeedSection.POLITICS: "politics",
    FeedSection.SCIENCE: "science",
    FeedSection.CULTURE: "culture",
}


def _published(value: Optional[str], fallback: datetime) -> datetime:
    if not value:
        return fallback
    try:
        parsed = pendulum.parse(value)
    except ValueError:
        return fallback
    return parsed if isinstance(parsed, datetime) else fallback


class GuardianApiAdapter(SourceAdapter):
    """
    Pull one Guardian section through the content search API.

    Pages are requested in order until the API reports the last page, a
    page is missing its paging fields, or ``max_pages`` is reached.
    """

    def __init__(
        self,
        section: str,
        client: httpx.AsyncClient,
        api_key: Optional[str],
        base_url: str = "https://content.guardianapis.com",
        query: Optional[str] = None,
        page_size: int = 25,
        max_pages: int = 1,
        fields: Optional[List[str]] = None,
        tag: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        timeout: float = 20.0,
    ) -> None:
        """Initialize Guardian API adapter."""
        if not api_key:
            raise ConfigError("Guardian API adapter requires an api key")

        self.section = normalize_section(section)
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.query = query
        self.page_size = page_size
        self.max_pages = max(1, max_pages)
        self.fields = fields or list(DEFAULT_GUARDIAN_FIELDS)
        self.tag = tag
        self.from_date = from_date
        self.to_date = to_date
        self.timeout = timeout

    @classmethod
    def from_params(
        cls,
        section: str,
        client: httpx.AsyncClient,
        defaults: GuardianConfig,
        params: Optional[GuardianApiParams] = None,
        timeout: float = 20.0,
    ) -> "GuardianApiAdapter":
        """Build from configured defaults overlaid with a feed row's typed params."""
        params = params or GuardianApiParams()
        return cls(
            section=section,
            client=client,
            api_key=defaults.resolved_api_key,
            base_url=defaults.base_url,
            query=params.query,
            page_size=params.page_size or defaults.page_size,
            max_pages=params.max_pages or defaults.max_pages,
            fields=params.fields or defaults.fields,
            tag=params.tag,
            from_date=params.from_date,
            to_date=params.to_date,
            timeout=timeout,
        )

    @property
    def id(self) -> str:
        return f"guardian-api-{self.section.value}"

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{SECTION_PATHS[self.section]}"

    def _params(self, page: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "api-key": self.api_key,
            "show-fields": ",".join(self.fields),
            "page-size": self.page_size,
            "page": page,
        }
        if self.query:
            params["q"] = self.query
        if self.tag:
            params["tag"] = self.tag
        if self.from_date:
            params["from-date"] = self.from_date
        if self.to_date:
            params["to-date"] = self.to_date
        return params

    def _normalize_result(self, result: Dict[str, Any], fetched_at: datetime) -> Optional[NormalizedArticle]:
        url = result.get("webUrl")
        if not url:
            return None
        fields = result.get("fields") or {}
        return NormalizedArticle(
            external_id=result.get("id"),
            url=url,
            title=result.get("webTitle") or fields.get("headline") or "Untitled",
            summary=strip_html(fields.get("trailText")),
            html=fields.get("body"),
            author=fields.get("byline"),
            published=_published(result.get("webPublicationDate"), fetched_at),
            publication_slug="guardian",
            section=self.section.value,
            language="en",
            raw=result,
        )

    async def fetch_batch(self) -> List[NormalizedArticle]:
        """Fetch up to ``max_pages`` pages of results."""
        articles: List[NormalizedArticle] = []
        fetched_at = pendulum.now("UTC")

        for page in range(1, self.max_pages + 1):
            response = await self.client.get(
                self.endpoint,
                params=self._params(page),
                timeout=self.timeout,
            )
            if not response.is_success:
                raise ApiAdapterError(self.id, response.status_code, response.text, page=page)

            payload = (response.json() or {}).get("response") or {}
            for result in payload.get("results") or []:
                article = self._normalize_result(result, fetched_at)
                if article is not None:
                    articles.append(article)

            current = payload.get("currentPage")
            total = payload.get("pages")
            if not current or not total or current >= total:
                break

        logger.info(
            "[%s] fetched %d results", self.id, len(articles), extra={"adapter_id": self.id}
        )
        return articles
