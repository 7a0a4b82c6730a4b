"""Async client for the Firecrawl scrape API (URL → markdown)."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from config.settings import settings
from models.comparative import ScrapedPage


class FirecrawlClient:
    """
    Scrapes pages into markdown.

    Never raises for a per-URL problem: every failure comes back as a
    ScrapedPage with ``error`` set so callers can decide what it means.
    """

    DEFAULT_HEADERS = {
        "User-Agent": "geo-toolkit/1.0",
        "Content-Type": "application/json",
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = settings.firecrawl_api_key if api_key is None else api_key
        self._timeout = settings.http_timeout_seconds if timeout is None else timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "FirecrawlClient":
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

    async def scrape(self, url: str) -> ScrapedPage:
        """Fetch ``url`` as markdown."""
        assert self._client is not None, "Use as async context manager."
        if not url or not url.strip():
            return ScrapedPage(url=url, error="No URL provided")
        if not self._api_key:
            return ScrapedPage(
                url=url,
                error="Firecrawl API key is missing. Please set FIRECRAWL_API_KEY in .env",
            )

        body: Dict[str, Any] = {"url": url, "formats": ["markdown"]}
        headers = {"Authorization": f"Bearer {self._api_key}"}
        logger.debug(f"Scraping {url}")
        try:
            response = await self._client.post(settings.firecrawl_scrape_url, json=body, headers=headers)
        except httpx.RequestError as exc:
            logger.warning(f"Request error scraping {url}: {exc}")
            return ScrapedPage(url=url, error=f"Failed to scrape {url}: {exc}")

        if response.is_error:
            message = self._error_message(response, url)
            logger.warning(f"HTTP {response.status_code} scraping {url}: {message}")
            return ScrapedPage(url=url, error=message)

        try:
            data = response.json()
        except ValueError:
            return ScrapedPage(url=url, error=f"Failed to scrape {url}: response was not JSON")

        markdown = ""
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            markdown = data["data"].get("markdown") or ""
        page = ScrapedPage(url=url, markdown_content=markdown)
        if page.ok:
            logger.info(f"Scraped {url} ({len(markdown)} chars)")
        return page

    async def scrape_many(self, urls: List[str]) -> List[ScrapedPage]:
        """Scrape several URLs concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.scrape(url) for url in urls)))

    @staticmethod
    def _error_message(response: httpx.Response, url: str) -> str:
        try:
            data = response.json()
        except ValueError:
            data = {}
        message = data.get("error") if isinstance(data, dict) else None
        return str(message) if message else f"Failed to scrape {url}: {response.reason_phrase or response.status_code}"
