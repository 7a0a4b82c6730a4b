"""Pydantic models for the hallucination fact-checker pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from models.base import PipelineRun
from utils.helpers import unique_in_order


class FactCheckStatus(str, Enum):
    IDLE = "idle"
    GENERATING_QUESTIONS = "generating_questions"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


class ItemStatus(str, Enum):
    """Per-question progress; only ever moves forward."""

    PENDING = "pending"
    LOADING = "loading"
    DONE = "done"
    ERROR = "error"


_ITEM_TRANSITIONS: Dict[ItemStatus, Tuple[ItemStatus, ...]] = {
    ItemStatus.PENDING: (ItemStatus.LOADING,),
    ItemStatus.LOADING: (ItemStatus.DONE, ItemStatus.ERROR),
}


class Remediation(BaseModel):
    """What the brand should change on its site so AI answers come out right."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str = ""
    steps: List[str] = Field(default_factory=list)
    prevention_tips: List[str] = Field(default_factory=list, alias="preventionTips")
    suggested_faq_question: Optional[str] = Field(default=None, alias="suggestedFaqQuestion")
    suggested_faq_answer: Optional[str] = Field(default=None, alias="suggestedFaqAnswer")


class Verification(BaseModel):
    """Outcome of comparing a naive answer against the grounded one."""

    is_accurate: bool
    reasoning: str
    patch: Optional[str] = Field(default=None, description="Markdown correction of the naive answer")
    remediation: Optional[Remediation] = None

    @model_validator(mode="after")
    def _fixes_only_for_hallucinations(self) -> "Verification":
        if self.is_accurate:
            self.patch = None
            self.remediation = None
        return self

    @classmethod
    def from_llm_payload(cls, payload: Dict[str, Any]) -> "Verification":
        """Map the verifier's ``ACCURATE``/``HALLUCINATION`` verdict onto a Verification."""
        status = str(payload.get("status", "")).strip().upper()
        patch = payload.get("patch") or None
        if not isinstance(patch, str):
            patch = None
        remediation = None
        raw_remediation = payload.get("remediation")
        if raw_remediation:
            try:
                remediation = Remediation.model_validate(raw_remediation)
            except ValidationError as exc:
                logger.warning(f"Dropping malformed remediation: {exc.error_count()} validation error(s)")
        return cls(
            is_accurate=status == "ACCURATE",
            reasoning=payload["reasoning"],
            patch=patch,
            remediation=remediation,
        )

    @classmethod
    def fallback(cls) -> "Verification":
        return cls(is_accurate=True, reasoning="Verification failed due to error.")


class FactCheckQuestion(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str
    question_text: str
    naive_answer: Optional[str] = None
    ground_truth_answer: Optional[str] = None
    ground_truth_sources: List[str] = Field(default_factory=list)
    verification: Optional[Verification] = None
    item_status: ItemStatus = ItemStatus.PENDING

    @field_validator("ground_truth_sources")
    @classmethod
    def _dedupe_sources(cls, value: List[str]) -> List[str]:
        return unique_in_order(value)

    def advance(self, status: ItemStatus) -> None:
        if status not in _ITEM_TRANSITIONS.get(self.item_status, ()):
            raise ValueError(f"Question {self.id}: illegal transition {self.item_status.value} -> {status.value}")
        self.item_status = status


class FactCheckRun(PipelineRun):
    """State of one fact-check run over a brand's generated questions."""

    TRANSITIONS: ClassVar[Dict[str, Tuple[str, ...]]] = {
        "idle": ("generating_questions",),
        "generating_questions": ("analyzing", "error"),
        "analyzing": ("complete", "error"),
    }

    status: FactCheckStatus = FactCheckStatus.IDLE
    brand_name: str = ""
    official_url: str = ""
    questions: List[FactCheckQuestion] = Field(default_factory=list)
    progress_message: str = ""

    @property
    def hallucination_count(self) -> int:
        return sum(
            1
            for q in self.questions
            if q.verification is not None and not q.verification.is_accurate
        )

    def question(self, question_id: str) -> FactCheckQuestion:
        for q in self.questions:
            if q.id == question_id:
                return q
        raise KeyError(question_id)
