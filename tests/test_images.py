"""Tests for image enrichment and the placeholder fallback."""

from __future__ import annotations

import base64

import httpx

from group_news.config import ImageConfig
from group_news.core.types import CandidateArticle
from group_news.images.enricher import ImageEnricher, title_keyword
from group_news.images.placeholder import placeholder_image
from group_news.llm.providers.base import KeywordProvider


class _StaticKeyword(KeywordProvider):
    def __init__(self, keyword=None, error=None):  # noqa: ANN001
        self.keyword = keyword
        self.error = error

    def derive_keyword(self, title):  # noqa: ANN001
        if self.error is not None:
            raise self.error
        return self.keyword


def _article(title: str = "Tesla opens new factory", keyword: str | None = None) -> CandidateArticle:
    return CandidateArticle(title=title, url="https://a.com", published_date=None, summary="s", keyword=keyword)


def _enricher(handler=None, keyword_provider=None, api_key="access-key"):  # noqa: ANN001
    transport = httpx.MockTransport(handler) if handler else None
    return ImageEnricher(ImageConfig(), api_key, keyword_provider, transport=transport)


def test_no_access_key_returns_placeholder():
    url = _enricher(api_key=None).enrich(_article())

    assert url == placeholder_image("Tesla opens new factory")


def test_search_result_url_is_returned():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"results": [{"urls": {"regular": "https://img.example/1.jpg"}}]})

    url = _enricher(handler).enrich(_article(keyword="tesla"))

    assert url == "https://img.example/1.jpg"
    assert seen[0].url.path == "/search/photos"
    assert seen[0].url.params["query"] == "tesla"
    assert seen[0].url.params["orientation"] == "landscape"
    assert seen[0].headers["authorization"] == "Client-ID access-key"


def test_error_response_falls_back_to_placeholder():
    url = _enricher(lambda request: httpx.Response(403, text="rate limit")).enrich(_article(keyword="tesla"))

    assert url.startswith("data:image/svg+xml;base64,")


def test_empty_results_fall_back_to_placeholder():
    url = _enricher(lambda request: httpx.Response(200, json={"results": []})).enrich(_article(keyword="tesla"))

    assert url.startswith("data:image/svg+xml;base64,")


def test_transport_error_falls_back_to_placeholder():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    assert _enricher(handler).enrich(_article(keyword="tesla")).startswith("data:image/svg+xml;base64,")


def test_keyword_provider_used_when_article_has_none():
    enricher = _enricher(keyword_provider=_StaticKeyword("factory"))
    article = _article()

    assert enricher.resolve_keyword(article) == "factory"


def test_keyword_provider_failure_uses_title_keyword():
    enricher = _enricher(keyword_provider=_StaticKeyword(error=RuntimeError("quota")))

    assert enricher.resolve_keyword(_article()) == "factory"


def test_title_keyword_skips_stopwords():
    assert title_keyword("What the new rules mean for banks") == "rules"
    assert title_keyword("The and of") is None


def test_placeholder_is_deterministic_and_labelled():
    first = placeholder_image("Markets rally")
    second = placeholder_image("Markets rally")
    svg = base64.b64decode(first.split(",", 1)[1]).decode("utf-8")

    assert first == second
    assert first != placeholder_image("Markets slump")
    assert "Markets rally" in svg
    assert 'width="1200"' in svg


def test_placeholder_escapes_and_truncates_long_labels():
    label = "Fed & ECB <signal> " + "very long headline words " * 10
    svg = base64.b64decode(placeholder_image(label).split(",", 1)[1]).decode("utf-8")

    assert "&amp;" in svg
    assert "<signal>" not in svg
    assert svg.count("<tspan") == 3
    assert "..." in svg
