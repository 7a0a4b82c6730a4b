"""Brand audit agent.

Searches the web for a query, then asks the LLM, for every result, whether
the page mentions the brand and in what light.  The audit score is the number
of results that mention the brand.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from loguru import logger

from agents.run_state import RunChannel
from clients.errors import InputValidationError
from clients.llm_client import LLMClient
from clients.tavily_client import TavilySearchClient
from config.settings import settings
from models.audit import Analysis, AuditItem, AuditRun, AuditStatus, SearchResult
from utils.helpers import normalize_result_url, truncate

ANALYSIS_SYSTEM_PROMPT = (
    "You are a specialized GEO (Generative Engine Optimization) Auditor. You analyze "
    "search results to see if a brand is present and how they are perceived."
)

ANALYSIS_PROMPT = """\
Analyze the following web content for the brand "{brand}".

Determine if the brand is explicitly mentioned.
Analyze the sentiment if mentioned.
Provide a one-sentence summary.

Also extract the author's name and email address if present in the content:
- Look for bylines like "By John Smith", "Author: Jane Doe", "Written by..."
- Look for email addresses in the format name@domain.com
- If the brand is NOT mentioned, finding author info is especially important for outreach.

If the brand is NOT mentioned, also write a professional outreach email to the author
requesting inclusion. The email should:
- Have a compelling subject line
- Reference the specific article topic
- Explain why "{brand}" would be a valuable addition
- Be concise and professional
- Use [Your Name] and [Your Title] as placeholders

Web Content:
{content}
"""

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "mentioned": {
            "type": "boolean",
            "description": "True if the target brand is explicitly mentioned in the text.",
        },
        "sentiment": {
            "type": "string",
            "enum": ["positive", "neutral", "negative", "mixed"],
            "description": "Overall sentiment towards the brand if mentioned, otherwise neutral.",
        },
        "summary": {
            "type": "string",
            "description": (
                "One-sentence summary of how the brand is portrayed. If not mentioned, "
                "summarize what the article promotes instead."
            ),
        },
        "authorName": {
            "type": "string",
            "description": "Article author's name, or empty string if not found.",
        },
        "authorEmail": {
            "type": "string",
            "description": "Article author's email address, or empty string if not found.",
        },
        "outreachEmail": {
            "type": "string",
            "description": "Outreach email requesting inclusion; empty string if the brand IS mentioned.",
        },
    },
    "required": ["mentioned", "sentiment", "summary"],
}


def dedupe_results(results: List[SearchResult]) -> List[AuditItem]:
    """
    Drop results whose normalised URL was already seen and rank the rest.

    Search-engine order decides which duplicate survives; ranks are the
    1-based positions of the survivors.
    """
    seen = set()
    items: List[AuditItem] = []
    for result in results:
        key = normalize_result_url(result.url)
        if key in seen:
            continue
        seen.add(key)
        items.append(AuditItem(**result.model_dump(), rank=len(items) + 1))
    return items


class AuditAgent:
    """
    Runs brand-visibility audits.

    Pipeline: search → de-duplicate → analyse every result concurrently → score.
    """

    def __init__(
        self,
        llm: LLMClient,
        search_client: TavilySearchClient,
        channel: Optional[RunChannel[AuditRun]] = None,
    ) -> None:
        self._llm = llm
        self._search = search_client
        self.channel: RunChannel[AuditRun] = channel or RunChannel()

    async def run(self, brand: str, query: str) -> AuditRun:
        """
        Audit how visible ``brand`` is in the web results for ``query``.

        Raises:
            InputValidationError: brand or query is blank (nothing is started).
        """
        brand, query = (brand or "").strip(), (query or "").strip()
        if not brand or not query:
            raise InputValidationError("Please enter a brand and a search query.")

        run = AuditRun(brand=brand, query=query)
        run.transition_to(AuditStatus.SEARCHING)
        generation = self.channel.begin(run)
        logger.info(f"AuditAgent: auditing brand={brand!r} for query={query!r}")

        try:
            results = await self._search.search(query)
        except Exception as exc:
            logger.error(f"AuditAgent: search failed: {exc}")
            run.fail(str(exc) or "An unknown error occurred")
            self.channel.commit(generation, run)
            return run

        if not self.channel.is_current(generation):
            logger.info("AuditAgent: run superseded during search; stopping.")
            return run

        if not results:
            run.fail("No results found for this query.")
            self.channel.commit(generation, run)
            return run

        run.items = dedupe_results(results)
        run.transition_to(AuditStatus.ANALYZING)
        self.channel.commit(generation, run)
        logger.info(f"AuditAgent: analysing {len(run.items)} unique results ({len(results)} returned)")

        await asyncio.gather(*(self._analyze_item(run, generation, index) for index in range(len(run.items))))

        if not self.channel.is_current(generation):
            logger.info("AuditAgent: run superseded during analysis; stopping.")
            return run

        run.score = sum(1 for item in run.items if item.analysis is not None and item.analysis.mentioned)
        run.transition_to(AuditStatus.COMPLETE)
        if self.channel.commit(generation, run):
            logger.success(f"AuditAgent: {run.score}/{len(run.items)} results mention {brand!r}.")
        return run

    async def analyze(self, content: str, brand: str) -> Analysis:
        """Single LLM judgement of ``content`` for ``brand``; raises on any failure."""
        prompt = ANALYSIS_PROMPT.format(
            brand=brand,
            content=truncate(content, settings.audit_content_char_budget),
        )
        payload = await self._llm.generate_structured(
            prompt,
            ANALYSIS_SCHEMA,
            model=settings.analysis_model,
            name="brand_mention_analysis",
            system=ANALYSIS_SYSTEM_PROMPT,
        )
        return Analysis.model_validate(payload)

    # ── Internal helpers ──────────────────────────────────────────────────────

    async def _analyze_item(self, run: AuditRun, generation: int, index: int) -> None:
        item = run.items[index]
        if not self.channel.is_current(generation):
            return
        try:
            analysis = await self.analyze(item.text_for_analysis, run.brand)
        except Exception as exc:
            logger.warning(f"Analysis failed for result {item.rank} ({item.url}): {exc}")
            analysis = Analysis.fallback()

        run.items[index] = item.model_copy(update={"analysis": analysis})
        self.channel.commit(generation, run)
