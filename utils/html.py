"""HTML helpers for LLM-generated snippets."""

from __future__ import annotations

import json
from typing import Any, Optional

from bs4 import BeautifulSoup
from loguru import logger


def extract_json_ld(snippet: str) -> Optional[Any]:
    """
    Return the parsed payload of the first ``application/ld+json`` script in
    an HTML snippet.

    A snippet that is bare JSON (no ``<script>`` wrapper) is parsed as-is.
    Returns None when no JSON-LD is present or it does not parse.
    """
    if not snippet or not snippet.strip():
        return None

    soup = BeautifulSoup(snippet, "html.parser")
    script = soup.find("script", attrs={"type": "application/ld+json"})
    raw = script.get_text() if script is not None else snippet
    try:
        return json.loads(raw.strip())
    except (json.JSONDecodeError, ValueError):
        logger.debug("Snippet carries no parsable JSON-LD.")
        return None
