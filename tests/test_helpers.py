from __future__ import annotations

import pytest

from utils.helpers import normalize_result_url, truncate, unique_in_order
from utils.html import extract_json_ld


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://shoes.com/best?utm=1", "https://shoes.com/best"),
        ("https://Example.COM/Page/", "https://example.com/page"),
        ("https://example.com/page//", "https://example.com/page"),
        ("https://example.com/a?b=c?d", "https://example.com/a"),
        ("https://example.com/a#frag", "https://example.com/a#frag"),
    ],
)
def test_normalize_result_url(url, expected):
    assert normalize_result_url(url) == expected


def test_unique_in_order_and_truncate():
    assert unique_in_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]
    assert unique_in_order([]) == []
    assert truncate("abcdef", 3) == "abc"
    assert truncate("ab", 3) == "ab"


def test_extract_json_ld():
    snippet = """
    <head>
      <script type="application/ld+json">
        {"@context": "https://schema.org", "@type": "FAQPage", "mainEntity": []}
      </script>
    </head>
    """
    assert extract_json_ld(snippet)["@type"] == "FAQPage"
    assert extract_json_ld('{"@type": "Organization"}') == {"@type": "Organization"}
    assert extract_json_ld('<script type="application/ld+json">{broken</script>') is None
    assert extract_json_ld("<h2>What is it?</h2>") is None
    assert extract_json_ld("") is None
