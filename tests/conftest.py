from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest

from clients.llm_client import GroundedAnswer
from models.audit import SearchResult
from models.comparative import ScrapedPage


# -----------------------------
# Test doubles
# -----------------------------
class FakeLLM:
    """
    Stand-in for LLMClient.

    Each handler receives the prompt (and the schema name for structured
    calls) and returns the value, or raises to simulate a failed call.
    """

    def __init__(
        self,
        structured: Optional[Callable[[str, str], Any]] = None,
        text: Optional[Callable[[str], str]] = None,
        grounded: Optional[Callable[[str], GroundedAnswer]] = None,
    ) -> None:
        self._structured = structured
        self._text = text
        self._grounded = grounded
        self.calls: List[tuple] = []

    async def generate_structured(self, prompt, schema, *, model, name, system=None):
        self.calls.append(("structured", name, prompt))
        await asyncio.sleep(0)
        return self._structured(prompt, name)

    async def generate_text(self, prompt, *, model, max_tokens=None):
        self.calls.append(("text", None, prompt))
        await asyncio.sleep(0)
        return self._text(prompt)

    async def generate_grounded(self, prompt, *, model):
        self.calls.append(("grounded", None, prompt))
        await asyncio.sleep(0)
        return self._grounded(prompt)


class FakeSearch:
    def __init__(self, results: Optional[List[SearchResult]] = None, error: Optional[Exception] = None):
        self._results = results or []
        self._error = error
        self.queries: List[str] = []

    async def search(self, query: str) -> List[SearchResult]:
        self.queries.append(query)
        await asyncio.sleep(0)
        if self._error:
            raise self._error
        return list(self._results)


class FakeScraper:
    def __init__(self, pages: Dict[str, ScrapedPage]):
        self._pages = pages
        self.urls: List[str] = []

    async def scrape(self, url: str) -> ScrapedPage:
        self.urls.append(url)
        await asyncio.sleep(0)
        return self._pages[url]


# -----------------------------
# Helpers
# -----------------------------
def make_result(url: str, title: str = "", content: str = "snippet", raw_content: Optional[str] = None) -> SearchResult:
    return SearchResult(title=title or url, url=url, content=content, raw_content=raw_content, score=0.5)


class Recorder:
    """Observer that keeps every snapshot a RunChannel publishes."""

    def __init__(self) -> None:
        self.snapshots: List[Any] = []

    def __call__(self, run: Any) -> None:
        self.snapshots.append(run)

    @property
    def statuses(self) -> List[str]:
        return [s.status.value for s in self.snapshots]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
