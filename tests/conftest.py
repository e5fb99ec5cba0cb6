"""Shared fixtures for group news tests."""

from __future__ import annotations

from datetime import datetime, timezone
import json

import pytest

from group_news.config import AppConfig, RateLimitConfig
from group_news.core.types import Group
from group_news.llm.providers.base import ContentSearchProvider


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeSearchProvider(ContentSearchProvider):
    """Returns a canned response, or raises a canned error."""

    def __init__(self, response: str = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[tuple[str, int, list[str] | None]] = []

    def fetch_articles(self, prompt, count, source_domains=None):  # noqa: ANN001
        self.calls.append((prompt, count, source_domains))
        if self.error is not None:
            raise self.error
        return self.response


def articles_json(*titles: str, published: str = "2026-03-10") -> str:
    return json.dumps(
        [
            {
                "title": title,
                "url": f"https://example.com/{idx}",
                "published_date": published,
                "summary": f"Summary of {title}.",
                "keyword": "cars",
            }
            for idx, title in enumerate(titles)
        ]
    )


def make_group(**overrides) -> Group:
    values = {
        "id": "g1",
        "name": "EV Watch",
        "created_by": "creator-1",
        "automated_news_enabled": True,
        "news_prompt": "electric vehicles",
        "news_count": 2,
        "update_frequency": 1,
    }
    values.update(overrides)
    return Group(**values)


@pytest.fixture
def app_config() -> AppConfig:
    cfg = AppConfig()
    cfg.rate_limit = RateLimitConfig(daily_limit=5, timezone="UTC")
    return cfg
