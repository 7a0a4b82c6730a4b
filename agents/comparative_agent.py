"""Comparative GEO agent.

Scrapes a client page and a competitor page, then asks the LLM which one is
better optimised for AI readability and what the client should add to close
the gap.  Produces either a complete ComparativeResult or an error, never a
partial result.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from loguru import logger

from agents.run_state import RunChannel
from clients.errors import InputValidationError
from clients.firecrawl_client import FirecrawlClient
from clients.llm_client import LLMClient
from config.settings import settings
from models.comparative import ComparativeResult, ComparativeRun, ComparativeStatus, ScrapedPage
from utils.helpers import truncate

COMPARISON_PROMPT = """\
You are a GEO (Generative Engine Optimization) expert.
Compare the following two website contents (provided as Markdown).

Client URL: {client_url}
Client Content:
{client_markdown}

Competitor URL: {competitor_url}
Competitor Content:
{competitor_markdown}

Task:
1. Analyze why the 'Competitor' page might be better optimized for AI readability than the
   'Client' page (or vice versa, but focus on the gap).
2. Identify 3 specific reasons focusing on: Schema Markup, Question/Answer formatting, and Data Density.
3. Estimate word counts, header counts (H1/H2), and give a subjective "Data Density Score" (1-10)
   based on how much factual, structured data is present.
4. Provide a verdict on who wins.
5. Generate a COMPLETE HTML code snippet that the Client can directly copy-paste into their
   website's <head> section.
   - If recommending JSON-LD schema, wrap it in a <script type="application/ld+json"> tag.
   - The code should be ready to use with NO modifications needed.
   - Include proper formatting and indentation.

Return the result strictly in JSON format.
"""

_DENSITY = {"type": "integer", "description": "Score from 1 to 10"}

COMPARISON_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "metrics": {
            "type": "object",
            "properties": {
                "clientWordCount": {"type": "integer"},
                "competitorWordCount": {"type": "integer"},
                "clientHeaderCount": {"type": "integer"},
                "competitorHeaderCount": {"type": "integer"},
                "clientDataDensity": _DENSITY,
                "competitorDataDensity": _DENSITY,
            },
            "required": [
                "clientWordCount",
                "competitorWordCount",
                "clientHeaderCount",
                "competitorHeaderCount",
                "clientDataDensity",
                "competitorDataDensity",
            ],
        },
        "verdict": {"type": "string"},
        "analysisPoints": {"type": "array", "items": {"type": "string"}},
        "recommendedFix": {
            "type": "object",
            "properties": {
                "description": {"type": "string"},
                "codeBlock": {"type": "string"},
                "language": {"type": "string"},
            },
            "required": ["description", "codeBlock", "language"],
        },
    },
    "required": ["metrics", "verdict", "analysisPoints", "recommendedFix"],
}


class ComparativeAgent:
    """
    Compares a client page against a competitor page.

    Pipeline: scrape both (concurrently) → one LLM comparison → result.
    """

    def __init__(
        self,
        llm: LLMClient,
        scraper: FirecrawlClient,
        channel: Optional[RunChannel[ComparativeRun]] = None,
    ) -> None:
        self._llm = llm
        self._scraper = scraper
        self.channel: RunChannel[ComparativeRun] = channel or RunChannel()

    async def run(self, client_url: str, competitor_url: str) -> ComparativeRun:
        """
        Compare ``client_url`` against ``competitor_url``.

        Raises:
            InputValidationError: either URL is blank (nothing is started).
        """
        client_url, competitor_url = (client_url or "").strip(), (competitor_url or "").strip()
        if not client_url or not competitor_url:
            raise InputValidationError("Please enter both URLs.")

        run = ComparativeRun(client_url=client_url, competitor_url=competitor_url)
        run.transition_to(ComparativeStatus.SCRAPING)
        generation = self.channel.begin(run)
        logger.info(f"ComparativeAgent: {client_url} vs {competitor_url}")

        try:
            client_page, competitor_page = await asyncio.gather(
                self._scraper.scrape(client_url),
                self._scraper.scrape(competitor_url),
            )
        except Exception as exc:
            logger.error(f"ComparativeAgent: scraping failed: {exc}")
            run.fail(f"Scraping failed: {exc}")
            self.channel.commit(generation, run)
            return run

        if not self.channel.is_current(generation):
            logger.info("ComparativeAgent: run superseded during scraping; stopping.")
            return run

        failure = self._scrape_failure(client_page, competitor_page)
        if failure:
            logger.error(f"ComparativeAgent: {failure}")
            run.fail(failure)
            self.channel.commit(generation, run)
            return run

        run.transition_to(ComparativeStatus.ANALYZING)
        self.channel.commit(generation, run)

        try:
            result = await self.compare(client_page, competitor_page)
        except Exception as exc:
            logger.error(f"ComparativeAgent: analysis failed: {exc}")
            run.fail("Failed to analyze content with the language model.")
            self.channel.commit(generation, run)
            return run

        run.result = result
        run.transition_to(ComparativeStatus.COMPLETE)
        if self.channel.commit(generation, run):
            logger.success(f"ComparativeAgent: verdict: {result.verdict}")
        return run

    async def compare(self, client_page: ScrapedPage, competitor_page: ScrapedPage) -> ComparativeResult:
        """One structured LLM comparison of two scraped pages; raises on any failure."""
        budget = settings.comparison_content_char_budget
        prompt = COMPARISON_PROMPT.format(
            client_url=client_page.url,
            client_markdown=truncate(client_page.markdown_content, budget),
            competitor_url=competitor_page.url,
            competitor_markdown=truncate(competitor_page.markdown_content, budget),
        )
        payload = await self._llm.generate_structured(
            prompt,
            COMPARISON_SCHEMA,
            model=settings.comparison_model,
            name="geo_comparison",
        )
        return ComparativeResult.from_llm_payload(payload)

    @staticmethod
    def _scrape_failure(client_page: ScrapedPage, competitor_page: ScrapedPage) -> Optional[str]:
        if client_page.error:
            return f"Client URL Error: {client_page.error}"
        if competitor_page.error:
            return f"Competitor URL Error: {competitor_page.error}"
        return None
