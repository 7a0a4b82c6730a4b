"""LLM client used by every pipeline.

Wraps the OpenAI SDK (or Azure OpenAI) behind three capabilities:
structured generation against a JSON-Schema contract, plain text
generation, and web-search grounded generation with source URLs.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import httpx
from azure.identity import DefaultAzureCredential, get_bearer_token_provider
from loguru import logger
from openai import AsyncAzureOpenAI, AsyncOpenAI

from clients.errors import ConfigurationError, StructuredOutputError
from config.settings import settings
from utils.helpers import unique_in_order

_FENCE_RE = re.compile(r"```(?:json)?")


@dataclass
class GroundedAnswer:
    """Answer text plus the distinct URLs it was grounded on."""

    text: str
    sources: List[str] = field(default_factory=list)


def parse_json_output(raw: Optional[str]) -> Any:
    """
    Parse model output as JSON, tolerating markdown code fences.

    Raises:
        StructuredOutputError: empty or unparsable output.
    """
    if raw is None or not raw.strip():
        raise StructuredOutputError("Empty response from model")
    cleaned = _FENCE_RE.sub("", raw).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise StructuredOutputError(f"Model output is not valid JSON: {exc}") from exc


def extract_citation_urls(response: Any) -> List[str]:
    """Collect ``url_citation`` annotation URLs from a Responses API result, first-seen order."""
    urls: List[str] = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            for annotation in getattr(part, "annotations", None) or []:
                if getattr(annotation, "type", None) == "url_citation" and getattr(annotation, "url", None):
                    urls.append(annotation.url)
    return unique_in_order(urls)


class LLMClient:
    """
    Thin async facade over the chat-completions and responses endpoints.

    Transport and API errors propagate as the SDK's exceptions; callers
    decide whether a failure is terminal or gets a fallback value.
    """

    def __init__(self, client: Optional[Union[AsyncOpenAI, AsyncAzureOpenAI]] = None) -> None:
        self._client = client or self._build_client()

    @staticmethod
    def _build_client() -> Union[AsyncOpenAI, AsyncAzureOpenAI]:
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_seconds, connect=10.0))

        if settings.azure_openai_endpoint:
            client_kwargs: dict = {
                "azure_endpoint": settings.azure_openai_endpoint,
                "api_version": settings.azure_openai_api_version,
                "http_client": http_client,
            }
            if settings.azure_openai_api_key:
                client_kwargs["api_key"] = settings.azure_openai_api_key
            else:
                token_provider = get_bearer_token_provider(
                    DefaultAzureCredential(), "https://cognitiveservices.azure.com/.default"
                )
                client_kwargs["azure_ad_token_provider"] = token_provider
            logger.info(f"LLM client: Azure OpenAI at {settings.azure_openai_endpoint}")
            return AsyncAzureOpenAI(**client_kwargs)

        if not settings.openai_api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is required (or AZURE_OPENAI_ENDPOINT for Azure OpenAI). "
                "Set it in .env or as an environment variable."
            )
        logger.info("LLM client: OpenAI")
        return AsyncOpenAI(api_key=settings.openai_api_key, http_client=http_client)

    async def generate_structured(
        self,
        prompt: str,
        schema: Dict[str, Any],
        *,
        model: str,
        name: str,
        system: Optional[str] = None,
    ) -> Any:
        """
        Ask for JSON matching ``schema`` and return it parsed.

        Raises:
            StructuredOutputError: output missing or not JSON.
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = await self._client.chat.completions.create(
            model=model,
            messages=messages,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": name, "schema": schema},
            },
            temperature=0.0,
        )
        raw = response.choices[0].message.content if response.choices else None
        return parse_json_output(raw)

    async def generate_text(
        self,
        prompt: str,
        *,
        model: str,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Plain completion with no tools; returns "" when the model says nothing."""
        kwargs: Dict[str, Any] = {}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        response = await self._client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def generate_grounded(self, prompt: str, *, model: str) -> GroundedAnswer:
        """Answer with the web-search tool enabled and report the cited URLs."""
        response = await self._client.responses.create(
            model=model,
            input=prompt,
            tools=[{"type": settings.grounding_tool_type}],
        )
        text = (getattr(response, "output_text", "") or "").strip()
        sources = extract_citation_urls(response)
        logger.debug(f"Grounded answer with {len(sources)} sources")
        return GroundedAnswer(text=text, sources=sources)
