"""Tests for the HTTP trigger surface."""

from __future__ import annotations

from fastapi.testclient import TestClient

from group_news.config import ImageConfig
from group_news.errors import ConfigError
from group_news.images.enricher import ImageEnricher
from group_news.api import create_app
from group_news.runner import NewsGenerator
from group_news.store.memory import MemoryStore

from conftest import NOW, FakeSearchProvider, articles_json, make_group


def _client(app_config, store, provider=None) -> TestClient:  # noqa: ANN001
    provider = provider or FakeSearchProvider(articles_json("EV sales surge"))

    def factory() -> NewsGenerator:
        return NewsGenerator(app_config, store, provider, ImageEnricher(ImageConfig(), None), clock=lambda: NOW)

    return TestClient(create_app(app_config, store=store, generator_factory=factory))


def test_health(app_config):
    response = _client(app_config, MemoryStore()).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_generate_news_for_one_group(app_config):
    store = MemoryStore([make_group()])

    response = _client(app_config, store).post("/generate-news", json={"groupId": "g1", "isManualRequest": True})

    assert response.status_code == 200
    assert response.json() == {
        "message": "News generation completed",
        "results": [{"group": "EV Watch", "status": "success", "message": "Created 1 news posts successfully"}],
    }


def test_generate_news_accepts_empty_body(app_config):
    store = MemoryStore([make_group()])

    response = _client(app_config, store).post("/generate-news", content=b"")

    assert response.status_code == 200
    assert response.json()["results"][0]["status"] == "success"


def test_generate_news_rejects_invalid_fields(app_config):
    response = _client(app_config, MemoryStore()).post("/generate-news", json={"isManualRequest": "sometimes"})

    assert response.status_code == 400
    assert "error" in response.json()


def test_generate_news_config_error_is_500(app_config):
    def factory() -> NewsGenerator:
        raise ConfigError("PERPLEXITY_API_KEY is not configured")

    client = TestClient(create_app(app_config, store=MemoryStore(), generator_factory=factory))

    response = client.post("/generate-news", json={})

    assert response.status_code == 500
    assert response.json() == {"error": "PERPLEXITY_API_KEY is not configured"}


def test_scheduled_news_runs_in_process(app_config):
    store = MemoryStore([make_group()])

    response = _client(app_config, store).post("/scheduled-news")

    body = response.json()
    assert response.status_code == 200
    assert body["message"] == "Scheduled news generation completed"
    assert body["results"][0]["status"] == "success"
    assert "timestamp" in body


def test_rate_limit_endpoint(app_config):
    response = _client(app_config, MemoryStore()).get("/rate-limit", params={"groupId": "g1", "userId": "u1"})

    assert response.status_code == 200
    assert response.json() == {
        "canGenerate": True,
        "remainingCount": 5,
        "limitCount": 5,
        "message": "5 of 5 generations remaining today",
    }


def test_cors_preflight(app_config):
    response = _client(app_config, MemoryStore()).options(
        "/generate-news",
        headers={"Origin": "https://app.example.com", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
