"""
Image enrichment for generated posts.

Each article gets one landscape photo from an image-search API, queried
with the article's keyword. When there is no access key, the search
fails, or it finds nothing, a deterministic placeholder is returned
instead. ``enrich`` never raises.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from ..config import ImageConfig
from ..core.types import CandidateArticle
from ..llm.providers.base import KeywordProvider
from ..llm.tracing import record_span_error, set_span_output, start_span
from .placeholder import placeholder_image

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[a-z0-9]+")
_STOPWORDS = {
    "a", "an", "and", "as", "at", "be", "by", "for", "from", "has", "have", "how",
    "in", "into", "is", "it", "its", "new", "of", "on", "or", "over", "says", "than",
    "that", "the", "their", "this", "to", "up", "was", "what", "why", "will", "with",
}


def title_keyword(title: str) -> str | None:
    """Pick the longest non-stopword in a title as a local keyword."""
    words = [w for w in _WORD_RE.findall(title.lower()) if w not in _STOPWORDS and not w.isdigit()]
    if not words:
        return None
    return max(words, key=len)


class ImageEnricher:
    """Resolve an image URL for an article, falling back to a placeholder."""

    def __init__(
        self,
        cfg: ImageConfig,
        api_key: str | None,
        keyword_provider: KeywordProvider | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.cfg = cfg
        self.api_key = api_key
        self.keyword_provider = keyword_provider
        self._transport = transport

    def enrich(self, article: CandidateArticle) -> str:
        try:
            keyword = self.resolve_keyword(article)
            if keyword and not article.keyword:
                article.keyword = keyword
            if not self.api_key:
                logger.debug("No image search key; using placeholder for %r", article.title)
            elif keyword:
                url = self.search_image(keyword)
                if url:
                    return url
                logger.info("No image found for keyword %r", keyword)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Image enrichment failed for %r: %s", article.title, exc)
        return self.placeholder(article.title)

    def resolve_keyword(self, article: CandidateArticle) -> str | None:
        if article.keyword:
            return article.keyword
        if self.keyword_provider is not None:
            try:
                keyword = self.keyword_provider.derive_keyword(article.title)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Keyword derivation failed for %r: %s", article.title, exc)
                keyword = None
            if keyword:
                return keyword
        return title_keyword(article.title)

    def search_image(self, keyword: str) -> str | None:
        """Return the first matching photo URL, or None for no result.

        Raises:
            httpx.HTTPError: On transport failures or non-2xx responses
        """
        params = {"query": keyword, "per_page": 1, "orientation": self.cfg.orientation}
        with start_span(
            "images.search",
            kind="tool",
            input_value=keyword,
            attributes={"images.orientation": self.cfg.orientation},
        ) as span:
            try:
                data = self._get("/search/photos", params)
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                raise
            url = _first_photo_url(data)
            set_span_output(span, url)
        return url

    def placeholder(self, label: str) -> str:
        return placeholder_image(label, self.cfg.placeholder_width, self.cfg.placeholder_height)

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}{path}"
        headers = {"Authorization": f"Client-ID {self.api_key}", "Accept-Version": "v1"}
        with httpx.Client(
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=self._transport,
        ) as client:
            resp = client.get(url, params=params, headers=headers)
            resp.raise_for_status()
            return resp.json()


def _first_photo_url(data: dict[str, Any]) -> str | None:
    try:
        urls = data["results"][0]["urls"]
    except (KeyError, IndexError, TypeError):
        return None
    return urls.get("regular") or urls.get("full") or urls.get("small")
