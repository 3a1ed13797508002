from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from scout.common.errors import ConfigurationError, UpstreamError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResultItem:
    title: str
    link: str
    snippet: str


@dataclass(frozen=True)
class SearchResult:
    items: list[SearchResultItem] = field(default_factory=list)
    search_information: dict[str, Any] | None = None


class GoogleSearchClient:
    """Thin client for the Google Custom Search JSON API.

    One outbound GET per call, no retries and no caching. The provider's
    ranking is kept: items come back in the order Google returned them.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        search_engine_id: str,
        url: str = "https://www.googleapis.com/customsearch/v1",
        timeout: float = 10.0,
    ) -> None:
        self._http = http
        self.api_key = api_key
        self.search_engine_id = search_engine_id
        self.url = url
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.search_engine_id)

    async def perform_search(self, query: str) -> SearchResult:
        if not self.configured:
            raise ConfigurationError("Google API credentials not configured")

        try:
            resp = await self._http.get(
                self.url,
                params={"key": self.api_key, "cx": self.search_engine_id, "q": query},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
            result = self._map_response(data)
        except (httpx.HTTPError, ValueError) as e:
            log.error("search_failed", extra={"query": query, "error": str(e)})
            raise UpstreamError(f"Failed to perform search: {e}") from e

        log.info("search_done", extra={"query": query, "items": len(result.items)})
        return result

    def _map_response(self, data: Any) -> SearchResult:
        if not isinstance(data, dict):
            raise ValueError("provider response is not a JSON object")

        raw_items = data.get("items") or []
        if not isinstance(raw_items, list) or not all(isinstance(i, dict) for i in raw_items):
            raise ValueError("provider 'items' is not a list of objects")

        items = [
            SearchResultItem(
                title=_text_field(item, "title"),
                link=_text_field(item, "link"),
                snippet=_text_field(item, "snippet"),
            )
            for item in raw_items
        ]

        info = data.get("searchInformation")
        if info is not None and not isinstance(info, dict):
            raise ValueError("provider 'searchInformation' is not an object")
        return SearchResult(items=items, search_information=info)


def _text_field(item: dict[str, Any], name: str) -> str:
    value = item.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"provider item field '{name}' is not a string")
    return value
