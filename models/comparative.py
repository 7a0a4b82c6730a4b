"""Pydantic models for the client-vs-competitor comparative pipeline."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models.base import PipelineRun
from utils.html import extract_json_ld


class ComparativeStatus(str, Enum):
    IDLE = "idle"
    SCRAPING = "scraping"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


class ScrapedPage(BaseModel):
    """Markdown body of one scraped URL, or the reason it could not be scraped."""

    url: str
    markdown_content: str = ""
    error: Optional[str] = None

    @model_validator(mode="after")
    def _content_or_error(self) -> "ScrapedPage":
        if not self.markdown_content.strip() and not self.error:
            self.error = "No markdown content returned"
        return self

    @property
    def ok(self) -> bool:
        return self.error is None


class ComparativeMetrics(BaseModel):
    """Structural metrics of one side of the comparison."""

    word_count: int = Field(default=0, ge=0)
    header_count: int = Field(default=0, ge=0)
    data_density_score: int = Field(..., description="Subjective 1-10 rating of factual, structured content")

    @field_validator("data_density_score", mode="before")
    @classmethod
    def _round_density(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return value
        if isinstance(value, float) and math.isfinite(value):
            return int(round(value))
        return value

    @field_validator("data_density_score")
    @classmethod
    def _clamp_density(cls, value: int) -> int:
        return min(10, max(1, value))


class RecommendedFix(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str
    code_block: str = Field(..., alias="codeBlock")
    language: str

    def json_ld(self) -> Optional[Any]:
        """Structured-data payload of the snippet, if it is JSON-LD."""
        return extract_json_ld(self.code_block)


class ComparativeResult(BaseModel):
    """Complete outcome of one comparison; never partially filled."""

    client_metrics: ComparativeMetrics
    competitor_metrics: ComparativeMetrics
    verdict: str
    analysis_points: List[str] = Field(default_factory=list)
    recommended_fix: RecommendedFix

    @classmethod
    def from_llm_payload(cls, payload: Dict[str, Any]) -> "ComparativeResult":
        """
        Build a result from the flat, camelCase shape the comparison prompt asks for.

        Raises:
            pydantic.ValidationError / KeyError / TypeError if the payload is
            missing any required part.
        """
        metrics = payload["metrics"]
        return cls(
            client_metrics=ComparativeMetrics(
                word_count=metrics["clientWordCount"],
                header_count=metrics["clientHeaderCount"],
                data_density_score=metrics["clientDataDensity"],
            ),
            competitor_metrics=ComparativeMetrics(
                word_count=metrics["competitorWordCount"],
                header_count=metrics["competitorHeaderCount"],
                data_density_score=metrics["competitorDataDensity"],
            ),
            verdict=payload["verdict"],
            analysis_points=payload["analysisPoints"],
            recommended_fix=RecommendedFix.model_validate(payload["recommendedFix"]),
        )


class ComparativeRun(PipelineRun):
    """State of one client-vs-competitor comparison."""

    TRANSITIONS: ClassVar[Dict[str, Tuple[str, ...]]] = {
        "idle": ("scraping",),
        "scraping": ("analyzing", "error"),
        "analyzing": ("complete", "error"),
    }

    status: ComparativeStatus = ComparativeStatus.IDLE
    client_url: str = ""
    competitor_url: str = ""
    result: Optional[ComparativeResult] = None
