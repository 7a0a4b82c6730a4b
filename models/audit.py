"""Pydantic models for the brand-visibility audit pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models.base import PipelineRun


class Sentiment(str, Enum):
    """Tone of a page towards the audited brand."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    MIXED = "mixed"


class AuditStatus(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


class SearchResult(BaseModel):
    """A single ranked web result as returned by the search service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(default="")
    url: str = Field(..., description="Result URL as returned by the search engine")
    content_snippet: str = Field(default="", alias="content")
    raw_content: Optional[str] = Field(default=None, description="Full page text (advanced search depth only)")
    relevance_score: float = Field(default=0.0, alias="score")

    @property
    def text_for_analysis(self) -> str:
        """Full page text when the search service supplied it, the snippet otherwise."""
        return self.raw_content or self.content_snippet


class Analysis(BaseModel):
    """LLM judgement of how (and whether) a page mentions the brand."""

    model_config = ConfigDict(populate_by_name=True)

    mentioned: bool
    sentiment: Sentiment = Sentiment.NEUTRAL
    summary: str = Field(default="")
    author_name: Optional[str] = Field(default=None, alias="authorName")
    author_email: Optional[str] = Field(default=None, alias="authorEmail")
    outreach_email: Optional[str] = Field(
        default=None,
        alias="outreachEmail",
        description="Pitch to the author asking for inclusion; only for pages that miss the brand",
    )

    @field_validator("sentiment", mode="before")
    @classmethod
    def _lower_sentiment(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or Sentiment.NEUTRAL.value
        return value

    @field_validator("author_name", "author_email", "outreach_email", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _no_outreach_for_mentions(self) -> "Analysis":
        # Outreach is only ever drafted for pages that missed the brand.
        if self.mentioned and self.outreach_email:
            self.outreach_email = None
        return self

    @classmethod
    def fallback(cls) -> "Analysis":
        return cls(
            mentioned=False,
            sentiment=Sentiment.NEUTRAL,
            summary="Failed to analyze this content.",
        )


class AuditItem(SearchResult):
    """A de-duplicated search result with its rank and (eventually) its analysis."""

    rank: int = Field(..., ge=1, description="1-based position after de-duplication")
    analysis: Optional[Analysis] = None


class AuditRun(PipelineRun):
    """State of one brand audit."""

    TRANSITIONS: ClassVar[Dict[str, Tuple[str, ...]]] = {
        "idle": ("searching",),
        "searching": ("analyzing", "error"),
        "analyzing": ("complete", "error"),
    }

    status: AuditStatus = AuditStatus.IDLE
    brand: str = ""
    query: str = ""
    items: List[AuditItem] = Field(default_factory=list)
    score: int = Field(default=0, description="Number of items that mention the brand")

    @property
    def visibility_percentage(self) -> int:
        """Share of results mentioning the brand, as a whole percentage."""
        if not self.items:
            return 0
        return round(self.score / len(self.items) * 100)

    @property
    def sentiment_breakdown(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in Sentiment}
        for item in self.items:
            if item.analysis is not None:
                counts[item.analysis.sentiment.value] += 1
        return counts
