"""
GEO Toolkit – command-line entry point.

Usage
-----
python main.py audit "Nike" "best running shoes 2024"
python main.py compare https://mysite.com https://competitor.com
python main.py --json factcheck "Global Edge" globaledge.msu.edu
"""

from __future__ import annotations

import argparse
import asyncio
import pathlib
import sys
from typing import Callable, Optional

from dotenv import load_dotenv
from loguru import logger

load_dotenv(override=True)

from agents.audit_agent import AuditAgent  # noqa: E402 – must be after load_dotenv
from agents.comparative_agent import ComparativeAgent  # noqa: E402
from agents.fact_check_agent import FactCheckAgent  # noqa: E402
from clients.errors import ConfigurationError, InputValidationError  # noqa: E402
from clients.firecrawl_client import FirecrawlClient  # noqa: E402
from clients.llm_client import LLMClient  # noqa: E402
from clients.tavily_client import TavilySearchClient  # noqa: E402
from config.settings import settings  # noqa: E402
from models.audit import AuditRun  # noqa: E402
from models.base import PipelineRun  # noqa: E402
from models.comparative import ComparativeRun  # noqa: E402
from models.fact_check import FactCheckRun  # noqa: E402


def _configure_logging() -> None:
    logger.remove()
    # Logs go to stderr so --json output on stdout stays machine-readable.
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="{time:HH:mm:ss} | {level: <8} | {message}",
    )
    if settings.log_file:
        pathlib.Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB", retention="7 days")


def _status_logger() -> Callable[[PipelineRun], None]:
    """Observer that logs each status change once."""
    last: dict = {}

    def _observe(run: PipelineRun) -> None:
        status = run.status.value  # type: ignore[attr-defined]
        if last.get("status") != status:
            last["status"] = status
            logger.info(f"[{type(run).__name__}] status → {status}")
        message = getattr(run, "progress_message", "")
        if message and last.get("progress") != message:
            last["progress"] = message
            logger.info(f"[{type(run).__name__}] {message}")

    return _observe


def _format_audit(run: AuditRun) -> str:
    lines = [f"Audit of {run.brand!r} for {run.query!r}: {run.status.value}"]
    if run.error:
        lines.append(f"Error: {run.error}")
        return "\n".join(lines)
    lines.append(f"Visibility: {run.score}/{len(run.items)} results ({run.visibility_percentage}%)")
    for item in run.items:
        analysis = item.analysis
        mark = "✓" if analysis and analysis.mentioned else "✗"
        sentiment = analysis.sentiment.value if analysis else "-"
        lines.append(f"  {item.rank}. {mark} [{sentiment}] {item.title} – {item.url}")
        if analysis and analysis.summary:
            lines.append(f"       {analysis.summary}")
    return "\n".join(lines)


def _format_comparison(run: ComparativeRun) -> str:
    lines = [f"Comparison {run.client_url} vs {run.competitor_url}: {run.status.value}"]
    if run.error or run.result is None:
        lines.append(f"Error: {run.error}")
        return "\n".join(lines)
    result = run.result
    lines.append(f"{'':<14}{'client':>10}{'competitor':>12}")
    lines.append(f"{'words':<14}{result.client_metrics.word_count:>10}{result.competitor_metrics.word_count:>12}")
    lines.append(
        f"{'headers':<14}{result.client_metrics.header_count:>10}{result.competitor_metrics.header_count:>12}"
    )
    lines.append(
        f"{'data density':<14}{result.client_metrics.data_density_score:>10}"
        f"{result.competitor_metrics.data_density_score:>12}"
    )
    lines.append(f"Verdict: {result.verdict}")
    for point in result.analysis_points:
        lines.append(f"  - {point}")
    lines.append(f"Recommended fix ({result.recommended_fix.language}): {result.recommended_fix.description}")
    lines.append(result.recommended_fix.code_block)
    return "\n".join(lines)


def _format_fact_check(run: FactCheckRun) -> str:
    lines = [f"Fact-check of {run.brand_name!r} against {run.official_url}: {run.status.value}"]
    if run.error:
        lines.append(f"Error: {run.error}")
        return "\n".join(lines)
    lines.append(f"Hallucinations: {run.hallucination_count}/{len(run.questions)}")
    for question in run.questions:
        verdict = "-"
        if question.verification is not None:
            verdict = "ACCURATE" if question.verification.is_accurate else "HALLUCINATION"
        lines.append(f"  [{verdict}] {question.question_text}")
        if question.verification is not None:
            lines.append(f"       {question.verification.reasoning}")
        for source in question.ground_truth_sources:
            lines.append(f"       source: {source}")
    return "\n".join(lines)


async def _run(args: argparse.Namespace) -> PipelineRun:
    llm = LLMClient()
    observer = _status_logger()

    if args.command == "audit":
        async with TavilySearchClient() as search:
            agent = AuditAgent(llm, search)
            agent.channel.subscribe(observer)
            return await agent.run(args.brand, args.query)

    if args.command == "compare":
        async with FirecrawlClient() as scraper:
            agent = ComparativeAgent(llm, scraper)
            agent.channel.subscribe(observer)
            return await agent.run(args.client_url, args.competitor_url)

    agent = FactCheckAgent(llm)
    agent.channel.subscribe(observer)
    return await agent.run(args.brand, args.official_url)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generative Engine Optimization toolkit")
    parser.add_argument("--json", action="store_true", help="Print the final run as JSON.")
    sub = parser.add_subparsers(dest="command", required=True)

    audit = sub.add_parser("audit", help="Check whether a brand appears in the web results for a query.")
    audit.add_argument("brand")
    audit.add_argument("query")

    compare = sub.add_parser("compare", help="Compare a client page against a competitor page.")
    compare.add_argument("client_url")
    compare.add_argument("competitor_url")

    factcheck = sub.add_parser("factcheck", help="Detect AI hallucinations about a brand.")
    factcheck.add_argument("brand")
    factcheck.add_argument("official_url")
    return parser


def main(argv: Optional[list] = None) -> int:
    _configure_logging()
    args = _build_parser().parse_args(argv)

    try:
        run = asyncio.run(_run(args))
    except (InputValidationError, ConfigurationError) as exc:
        logger.error(str(exc))
        return 2

    if args.json:
        print(run.model_dump_json(indent=2))
    elif isinstance(run, AuditRun):
        print(_format_audit(run))
    elif isinstance(run, ComparativeRun):
        print(_format_comparison(run))
    elif isinstance(run, FactCheckRun):
        print(_format_fact_check(run))
    return 1 if run.status.value == "error" else 0


if __name__ == "__main__":
    sys.exit(main())
