from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from clients.errors import SearchError, StructuredOutputError
from clients.firecrawl_client import FirecrawlClient
from clients.llm_client import LLMClient, extract_citation_urls, parse_json_output
from clients.tavily_client import TavilySearchClient


# -----------------------------
# Tavily
# -----------------------------
def _search(handler, api_key="tvly-test", query="best running shoes"):
    async def _go():
        transport = httpx.MockTransport(handler)
        async with TavilySearchClient(api_key=api_key, max_results=5, transport=transport) as client:
            return await client.search(query)

    return asyncio.run(_go())


def test_tavily_request_body_and_result_mapping():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["url"] = str(request.url)
        return httpx.Response(
            200,
            json={
                "results": [
                    {"title": "Best", "url": "https://shoes.com/best", "content": "snip", "raw_content": "full", "score": 0.91},
                    {"title": "Guide", "url": "https://runners.org/guide", "content": "snip2", "score": 0.5},
                ]
            },
        )

    results = _search(handler)

    assert seen["url"] == "https://api.tavily.com/search"
    assert seen["body"] == {
        "api_key": "tvly-test",
        "query": "best running shoes",
        "search_depth": "advanced",
        "include_raw_content": True,
        "max_results": 5,
        "include_answer": False,
        "include_images": False,
    }
    assert [r.url for r in results] == ["https://shoes.com/best", "https://runners.org/guide"]
    assert results[0].raw_content == "full"
    assert results[0].relevance_score == 0.91
    assert results[1].raw_content is None
    assert results[1].content_snippet == "snip2"


@pytest.mark.parametrize(
    "response, expected",
    [
        (httpx.Response(401, json={"detail": {"error": "Unauthorized: invalid key"}}), "Unauthorized: invalid key"),
        (httpx.Response(400, json={"error": "Query is too long"}), "Query is too long"),
        (httpx.Response(500, text="upstream blew up"), "Tavily API failed with status 500"),
    ],
)
def test_tavily_error_status_raises(response, expected):
    with pytest.raises(SearchError) as excinfo:
        _search(lambda request: response)

    assert str(excinfo.value) == expected


def test_tavily_missing_key_fails_before_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"results": []})

    with pytest.raises(SearchError, match="TAVILY_API_KEY"):
        _search(handler, api_key="")
    assert calls == []


def test_tavily_transport_error_is_search_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SearchError, match="Could not reach"):
        _search(handler)


def test_tavily_empty_results():
    assert _search(lambda request: httpx.Response(200, json={"results": []})) == []
    assert _search(lambda request: httpx.Response(200, json={})) == []


# -----------------------------
# Firecrawl
# -----------------------------
def _scrape(handler, url="https://mysite.com", api_key="fc-test"):
    async def _go():
        transport = httpx.MockTransport(handler)
        async with FirecrawlClient(api_key=api_key, transport=transport) as client:
            return await client.scrape(url)

    return asyncio.run(_go())


def test_firecrawl_sends_bearer_and_reads_markdown():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": {"markdown": "# Title\nBody"}})

    page = _scrape(handler)

    assert seen["auth"] == "Bearer fc-test"
    assert seen["body"] == {"url": "https://mysite.com", "formats": ["markdown"]}
    assert page.ok
    assert page.markdown_content == "# Title\nBody"


@pytest.mark.parametrize(
    "response, expected",
    [
        (httpx.Response(200, json={"success": True, "data": {}}), "No markdown content returned"),
        (httpx.Response(200, json={"success": False}), "No markdown content returned"),
        (httpx.Response(402, json={"error": "Payment required"}), "Payment required"),
        (httpx.Response(200, text="<html>not json</html>"), "Failed to scrape https://mysite.com: response was not JSON"),
    ],
)
def test_firecrawl_failures_come_back_as_page_errors(response, expected):
    page = _scrape(lambda request: response)

    assert not page.ok
    assert page.error == expected


def test_firecrawl_status_without_error_body():
    page = _scrape(lambda request: httpx.Response(500, text=""))

    assert page.error.startswith("Failed to scrape https://mysite.com:")


def test_firecrawl_missing_key_and_blank_url():
    def handler(request):
        raise AssertionError("no request expected")

    assert "FIRECRAWL_API_KEY" in _scrape(handler, api_key="").error
    assert _scrape(handler, url="  ").error == "No URL provided"


def test_firecrawl_scrape_many_keeps_order():
    def handler(request: httpx.Request) -> httpx.Response:
        url = json.loads(request.content)["url"]
        return httpx.Response(200, json={"data": {"markdown": f"content of {url}"}})

    async def _go():
        async with FirecrawlClient(api_key="k", transport=httpx.MockTransport(handler)) as client:
            return await client.scrape_many(["https://a.com", "https://b.com"])

    pages = asyncio.run(_go())

    assert [p.markdown_content for p in pages] == ["content of https://a.com", "content of https://b.com"]


# -----------------------------
# LLM output handling
# -----------------------------
@pytest.mark.parametrize(
    "raw, expected",
    [
        ('{"a": 1}', {"a": 1}),
        ('```json\n{"a": 1}\n```', {"a": 1}),
        ("```\n[1, 2]\n```", [1, 2]),
    ],
)
def test_parse_json_output(raw, expected):
    assert parse_json_output(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "Sure! Here is the JSON:", '{"a": '])
def test_parse_json_output_rejects_non_json(raw):
    with pytest.raises(StructuredOutputError):
        parse_json_output(raw)


def _message(*annotations):
    return SimpleNamespace(type="message", content=[SimpleNamespace(annotations=list(annotations))])


def _citation(url):
    return SimpleNamespace(type="url_citation", url=url)


def test_extract_citation_urls_dedupes_and_skips_tool_calls():
    response = SimpleNamespace(
        output=[
            SimpleNamespace(type="web_search_call"),
            _message(_citation("https://a.com"), SimpleNamespace(type="file_citation"), _citation("https://b.com")),
            _message(_citation("https://a.com")),
        ]
    )

    assert extract_citation_urls(response) == ["https://a.com", "https://b.com"]
    assert extract_citation_urls(SimpleNamespace(output=None)) == []


class _FakeSDK:
    """Records the kwargs of chat.completions.create / responses.create calls."""

    def __init__(self, content=None, choices=True, response=None):
        self.chat_calls = []
        self.response_calls = []
        self._content = content
        self._choices = choices
        self._response = response
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._chat_create))
        self.responses = SimpleNamespace(create=self._responses_create)

    async def _chat_create(self, **kwargs):
        self.chat_calls.append(kwargs)
        if not self._choices:
            return SimpleNamespace(choices=[])
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self._content))])

    async def _responses_create(self, **kwargs):
        self.response_calls.append(kwargs)
        return self._response


def test_generate_structured_sends_schema_and_parses():
    sdk = _FakeSDK(content='```json\n{"mentioned": true}\n```')
    schema = {"type": "object"}

    result = asyncio.run(
        LLMClient(client=sdk).generate_structured("prompt", schema, model="m", name="brand_mention_analysis", system="sys")
    )

    assert result == {"mentioned": True}
    call = sdk.chat_calls[0]
    assert call["model"] == "m"
    assert call["messages"] == [{"role": "system", "content": "sys"}, {"role": "user", "content": "prompt"}]
    assert call["response_format"] == {
        "type": "json_schema",
        "json_schema": {"name": "brand_mention_analysis", "schema": schema},
    }


def test_generate_structured_without_choices_raises():
    with pytest.raises(StructuredOutputError):
        asyncio.run(LLMClient(client=_FakeSDK(choices=False)).generate_structured("p", {}, model="m", name="n"))


def test_generate_text_strips_and_handles_empty():
    sdk = _FakeSDK(content="  Paris.  ")
    assert asyncio.run(LLMClient(client=sdk).generate_text("p", model="m", max_tokens=200)) == "Paris."
    assert sdk.chat_calls[0]["max_tokens"] == 200

    assert asyncio.run(LLMClient(client=_FakeSDK(content=None)).generate_text("p", model="m")) == ""
    assert asyncio.run(LLMClient(client=_FakeSDK(choices=False)).generate_text("p", model="m")) == ""


def test_generate_grounded_uses_web_search_tool():
    response = SimpleNamespace(output_text=" Grounded. ", output=[_message(_citation("https://x.com"))])
    sdk = _FakeSDK(response=response)

    answer = asyncio.run(LLMClient(client=sdk).generate_grounded("q", model="gpt-4o"))

    assert answer.text == "Grounded."
    assert answer.sources == ["https://x.com"]
    assert sdk.response_calls[0]["tools"] == [{"type": "web_search"}]
    assert sdk.response_calls[0]["input"] == "q"
