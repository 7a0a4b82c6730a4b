"""Async client for the Tavily web-search API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from clients.errors import SearchError
from config.settings import settings
from models.audit import SearchResult


class TavilySearchClient:
    """Runs one advanced-depth search per call and returns ranked results with page text."""

    DEFAULT_HEADERS = {
        "User-Agent": "geo-toolkit/1.0",
        "Content-Type": "application/json",
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_results: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = settings.tavily_api_key if api_key is None else api_key
        self._timeout = settings.http_timeout_seconds if timeout is None else timeout
        self._max_results = max_results or settings.search_max_results
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "TavilySearchClient":
        self._client = httpx.AsyncClient(
            headers=self.DEFAULT_HEADERS,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def search(self, query: str) -> List[SearchResult]:
        """
        Search the web for ``query``.

        Returns:
            Results in the search engine's rank order.

        Raises:
            SearchError: missing API key, transport failure or non-2xx response.
        """
        assert self._client is not None, "Use as async context manager."
        if not self._api_key:
            raise SearchError("Tavily API key is missing. Please set TAVILY_API_KEY in .env")

        body: Dict[str, Any] = {
            "api_key": self._api_key,
            "query": query,
            "search_depth": "advanced",
            "include_raw_content": True,
            "max_results": self._max_results,
            "include_answer": False,
            "include_images": False,
        }
        logger.debug(f"Tavily search: {query!r}")
        try:
            response = await self._client.post(settings.tavily_search_url, json=body)
        except httpx.RequestError as exc:
            logger.error(f"Request error calling Tavily: {exc}")
            raise SearchError(f"Could not reach the search service: {exc}") from exc

        if response.is_error:
            raise SearchError(self._error_message(response))

        data = response.json()
        results = [SearchResult.model_validate(raw) for raw in data.get("results") or []]
        logger.info(f"Tavily returned {len(results)} results for {query!r}")
        return results

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = {}
        message = None
        if isinstance(data, dict):
            message = data.get("error") or data.get("detail")
            if isinstance(message, dict):
                message = message.get("error") or message.get("message")
        return str(message) if message else f"Tavily API failed with status {response.status_code}"
