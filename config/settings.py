"""Application configuration using pydantic-settings."""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration loaded from environment / .env file."""

    # ── Credentials ───────────────────────────────────────────────────────────
    tavily_api_key: str = Field(default="", description="Tavily search API key (required for audits)")
    firecrawl_api_key: str = Field(default="", description="Firecrawl API key (required for comparisons)")
    openai_api_key: str = Field(default="", description="OpenAI API key")

    # Set AZURE_OPENAI_ENDPOINT to route LLM calls through Azure OpenAI instead.
    # Without AZURE_OPENAI_API_KEY the client authenticates with
    # DefaultAzureCredential (az login, managed identity, ...).
    azure_openai_endpoint: str = Field(default="")
    azure_openai_api_key: str = Field(default="")
    azure_openai_api_version: str = Field(default="2025-03-01-preview")

    # ── Service endpoints ─────────────────────────────────────────────────────
    tavily_search_url: str = Field(default="https://api.tavily.com/search")
    firecrawl_scrape_url: str = Field(default="https://api.firecrawl.dev/v1/scrape")

    # ── Models (deployment names on Azure) ────────────────────────────────────
    analysis_model: str = Field(default="gpt-4o-mini", description="Brand-mention analysis")
    comparison_model: str = Field(default="gpt-4o-mini", description="Comparative GEO scoring")
    question_model: str = Field(default="gpt-4o-mini", description="Fact-check question generation")
    naive_model: str = Field(default="gpt-4o-mini", description="Context-free 'naive' answers")
    research_model: str = Field(default="gpt-4o", description="Web-search grounded answers")
    verification_model: str = Field(default="gpt-4o-mini", description="Naive vs grounded verification")
    grounding_tool_type: str = Field(default="web_search")

    # ── Pipeline tuning ───────────────────────────────────────────────────────
    search_max_results: int = Field(default=5)
    audit_content_char_budget: int = Field(default=10_000)
    comparison_content_char_budget: int = Field(default=15_000)
    question_count: int = Field(default=5)
    naive_answer_max_tokens: int = Field(default=200)
    http_timeout_seconds: float = Field(default=60.0)

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
