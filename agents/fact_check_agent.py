"""Hallucination fact-checker agent.

Generates the questions a customer might ask about a brand, then for each
question compares what a model says from memory ("naive" answer) against
what the brand's official site says (web-search grounded answer).
Questions are processed one at a time, in generation order.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from loguru import logger

from agents.run_state import RunChannel
from clients.errors import InputValidationError
from clients.llm_client import GroundedAnswer, LLMClient
from config.settings import settings
from models.fact_check import (
    FactCheckQuestion,
    FactCheckRun,
    FactCheckStatus,
    ItemStatus,
    Verification,
)

QUESTIONS_PROMPT = """\
Generate {count} common, specific questions that a potential customer might ask about the brand "{brand}".
Return only the questions as a JSON object with a "questions" array of strings.\
"""

NAIVE_PROMPT = """\
Answer the following question about "{brand}" based ONLY on your internal knowledge. \
Do not search the web. Keep it concise (max 2-3 sentences).

Question: {question}\
"""

GROUNDED_PROMPT = """\
Find the answer to the question: "{question}" by searching the official website: {official_url}.
Use the query format "site:{official_url} {question}".
Summarize the answer found on the official website. If the information is not found on the \
website, state that clearly.\
"""

VERIFICATION_PROMPT = """\
You are a strict Fact-Checker AND a GEO (Generative Engine Optimization) consultant.
Compare the AI Answer with the Official Ground Truth.

Question: {question}

AI Answer (The Hallucination Candidate): "{naive_answer}"

Official Ground Truth (From Website): "{ground_truth}"

Task:
1. Determine if the AI Answer contradicts the Official Ground Truth.
2. If the Ground Truth says "information not found", and the AI Answer makes a specific claim, \
mark it as HALLUCINATION (unsafe claim).
3. If the AI answer is generally correct but misses minor details, mark ACCURATE.
4. If the AI answer is factually wrong based on the Ground Truth, mark HALLUCINATION.

If HALLUCINATION is detected, provide:
- "patch": a markdown formatted text block correcting the error
- "remediation": a one sentence summary of what went wrong, specific action steps the brand \
should take to fix it, tips to prevent this type of hallucination in the future, and a suggested \
FAQ question and answer to add to the website

Only include patch and remediation if status is HALLUCINATION.\
"""

QUESTIONS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "questions": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["questions"],
}

VERIFICATION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "status": {"type": "string", "enum": ["ACCURATE", "HALLUCINATION"]},
        "reasoning": {"type": "string"},
        "patch": {"type": "string"},
        "remediation": {
            "type": "object",
            "properties": {
                "summary": {"type": "string"},
                "steps": {"type": "array", "items": {"type": "string"}},
                "preventionTips": {"type": "array", "items": {"type": "string"}},
                "suggestedFaqQuestion": {"type": "string"},
                "suggestedFaqAnswer": {"type": "string"},
            },
        },
    },
    "required": ["status", "reasoning"],
}

NAIVE_ERROR_ANSWER = "Error generating answer."
NAIVE_EMPTY_ANSWER = "No answer generated."
GROUNDED_ERROR_ANSWER = "Error retrieving ground truth."
GROUNDED_EMPTY_ANSWER = "Could not find information."


def parse_questions(payload: Any) -> List[str]:
    """Pull question strings out of the generator's output, dropping blanks and non-strings."""
    if isinstance(payload, dict):
        payload = payload.get("questions", [])
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of questions, got {type(payload).__name__}")
    return [q.strip() for q in payload if isinstance(q, str) and q.strip()]


class FactCheckAgent:
    """
    Detects AI hallucinations about a brand.

    Pipeline: generate questions → for each question, in order:
    naive answer → grounded answer → verification.
    """

    def __init__(
        self,
        llm: LLMClient,
        channel: Optional[RunChannel[FactCheckRun]] = None,
    ) -> None:
        self._llm = llm
        self.channel: RunChannel[FactCheckRun] = channel or RunChannel()

    async def run(self, brand_name: str, official_url: str) -> FactCheckRun:
        """
        Fact-check what models say about ``brand_name`` against ``official_url``.

        Raises:
            InputValidationError: either input is blank (nothing is started).
        """
        brand_name, official_url = (brand_name or "").strip(), (official_url or "").strip()
        if not brand_name or not official_url:
            raise InputValidationError("Please enter a brand name and its official URL.")

        run = FactCheckRun(brand_name=brand_name, official_url=official_url)
        run.transition_to(FactCheckStatus.GENERATING_QUESTIONS)
        run.progress_message = "Simulating user questions..."
        generation = self.channel.begin(run)
        logger.info(f"FactCheckAgent: brand={brand_name!r}, official_url={official_url!r}")

        try:
            texts = await self.generate_questions(brand_name)
        except Exception as exc:
            logger.error(f"FactCheckAgent: question generation failed: {exc}")
            run.fail("Failed to generate questions. Please try again.")
            run.progress_message = "An error occurred during analysis."
            self.channel.commit(generation, run)
            return run

        if not self.channel.is_current(generation):
            return self._superseded(run)

        run.questions = [
            FactCheckQuestion(id=f"q-{index}", question_text=text) for index, text in enumerate(texts)
        ]
        run.transition_to(FactCheckStatus.ANALYZING)
        self.channel.commit(generation, run)
        logger.info(f"FactCheckAgent: {len(run.questions)} questions generated.")

        total = len(run.questions)
        for index, question in enumerate(run.questions):
            question.advance(ItemStatus.LOADING)
            run.progress_message = (
                f'Analyzing question {index + 1} of {total}: "{question.question_text[:30]}..."'
            )
            self.channel.commit(generation, run)

            question.naive_answer = await self.naive_answer(question.question_text, brand_name)
            if not self.channel.commit(generation, run):
                return self._superseded(run)

            grounded = await self.ground_truth(question.question_text, official_url)
            question.ground_truth_answer = grounded.text
            question.ground_truth_sources = grounded.sources
            if not self.channel.commit(generation, run):
                return self._superseded(run)

            question.verification = await self.verify(
                question.question_text, question.naive_answer, question.ground_truth_answer
            )
            question.advance(ItemStatus.DONE)
            if not self.channel.commit(generation, run):
                return self._superseded(run)

        run.transition_to(FactCheckStatus.COMPLETE)
        run.progress_message = "Analysis Complete!"
        if self.channel.commit(generation, run):
            logger.success(
                f"FactCheckAgent: {run.hallucination_count}/{total} answers flagged as hallucinations."
            )
        return run

    # ── Pipeline steps ────────────────────────────────────────────────────────

    async def generate_questions(self, brand_name: str) -> List[str]:
        """Raises on any failure; the caller treats it as terminal."""
        payload = await self._llm.generate_structured(
            QUESTIONS_PROMPT.format(count=settings.question_count, brand=brand_name),
            QUESTIONS_SCHEMA,
            model=settings.question_model,
            name="brand_questions",
        )
        return parse_questions(payload)

    async def naive_answer(self, question: str, brand_name: str) -> str:
        try:
            answer = await self._llm.generate_text(
                NAIVE_PROMPT.format(brand=brand_name, question=question),
                model=settings.naive_model,
                max_tokens=settings.naive_answer_max_tokens,
            )
        except Exception as exc:
            logger.warning(f"Naive answer failed for {question!r}: {exc}")
            return NAIVE_ERROR_ANSWER
        return answer or NAIVE_EMPTY_ANSWER

    async def ground_truth(self, question: str, official_url: str) -> GroundedAnswer:
        try:
            grounded = await self._llm.generate_grounded(
                GROUNDED_PROMPT.format(question=question, official_url=official_url),
                model=settings.research_model,
            )
        except Exception as exc:
            logger.warning(f"Grounded answer failed for {question!r}: {exc}")
            return GroundedAnswer(text=GROUNDED_ERROR_ANSWER, sources=[])
        return GroundedAnswer(text=grounded.text or GROUNDED_EMPTY_ANSWER, sources=grounded.sources)

    async def verify(self, question: str, naive_answer: str, ground_truth: str) -> Verification:
        try:
            payload = await self._llm.generate_structured(
                VERIFICATION_PROMPT.format(
                    question=question,
                    naive_answer=naive_answer,
                    ground_truth=ground_truth,
                ),
                VERIFICATION_SCHEMA,
                model=settings.verification_model,
                name="answer_verification",
            )
            return Verification.from_llm_payload(payload)
        except Exception as exc:
            logger.warning(f"Verification failed for {question!r}: {exc}")
            return Verification.fallback()

    @staticmethod
    def _superseded(run: FactCheckRun) -> FactCheckRun:
        logger.info("FactCheckAgent: run superseded by a newer run; stopping.")
        return run
