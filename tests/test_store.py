"""Tests for the memory and Supabase stores."""

from __future__ import annotations

from datetime import timedelta
import json

import httpx
import pytest

from group_news.config import StoreConfig
from group_news.core.types import AttemptStatus, GenerationStatus, Post, RateLimitRecord
from group_news.errors import ConfigError, PersistenceError, StoreError
from group_news.store import create_store
from group_news.store.memory import MemoryStore
from group_news.store.supabase import SupabaseStore

from conftest import NOW, make_group


def _supabase(handler) -> SupabaseStore:  # noqa: ANN001
    return SupabaseStore(
        StoreConfig(backend="supabase"),
        url="https://project.supabase.co",
        key="service-key",
        transport=httpx.MockTransport(handler),
    )


def test_memory_claim_is_compare_and_swap():
    store = MemoryStore([make_group()])

    assert store.claim_group("g1", GenerationStatus.IDLE, None, NOW)
    assert not store.claim_group("g1", GenerationStatus.IDLE, None, NOW)
    assert store.get_group("g1").news_generation_status == GenerationStatus.RUNNING


def test_memory_finish_requires_matching_run():
    store = MemoryStore([make_group()])
    store.claim_group("g1", GenerationStatus.IDLE, None, NOW)

    assert not store.finish_group("g1", NOW - timedelta(minutes=1), GenerationStatus.COMPLETED)
    assert store.finish_group("g1", NOW, GenerationStatus.FAILED, error="boom")
    assert store.get_group("g1").last_generation_error == "boom"


def test_memory_lists_never_run_groups_first():
    store = MemoryStore(
        [
            make_group(id="old", last_news_generation=NOW - timedelta(days=2)),
            make_group(id="disabled", automated_news_enabled=False),
            make_group(id="new"),
            make_group(id="older", last_news_generation=NOW - timedelta(days=5)),
        ]
    )

    assert [g.id for g in store.list_enabled_groups()] == ["new", "older", "old"]


def test_memory_store_loads_yaml_seed(tmp_path):
    seed = tmp_path / "groups.yaml"
    seed.write_text(
        "groups:\n"
        "  - id: ev\n"
        "    name: EV Watch\n"
        "    created_by: u1\n"
        "    automated_news_enabled: true\n"
        "    news_prompt: electric vehicles\n",
        encoding="utf-8",
    )

    store = create_store(StoreConfig(backend="memory", seed_path=str(seed)))

    group = store.get_group("ev")
    assert group.news_prompt == "electric vehicles"
    assert group.news_generation_status == GenerationStatus.IDLE


def test_create_store_rejects_unknown_backend():
    with pytest.raises(ConfigError):
        create_store(StoreConfig(backend="sqlite"))


def test_supabase_store_requires_credentials(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)

    with pytest.raises(ConfigError):
        create_store(StoreConfig(backend="supabase"))


def test_supabase_claim_patches_with_expected_values():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": "g1"}])

    store = _supabase(handler)

    assert store.claim_group("g1", GenerationStatus.IDLE, None, NOW)
    request = seen[0]
    assert request.method == "PATCH"
    assert request.url.path == "/rest/v1/groups"
    assert request.url.params["id"] == "eq.g1"
    assert request.url.params["last_news_run_at"] == "is.null"
    assert request.url.params["or"] == "(news_generation_status.is.null,news_generation_status.eq.idle)"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["prefer"] == "return=representation"
    assert json.loads(request.content)["news_generation_status"] == "running"


def test_supabase_claim_lost_when_no_rows_updated():
    store = _supabase(lambda request: httpx.Response(200, json=[]))

    assert not store.claim_group("g1", GenerationStatus.COMPLETED, NOW - timedelta(days=1), NOW)


def test_supabase_count_reads_content_range():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": 1}], headers={"Content-Range": "0-0/3"})

    store = _supabase(handler)

    assert store.count_generation_logs("g1", "u1", NOW) == 3
    params = seen[0].url.params
    assert params["status"] == "in.(attempted,success,failed)"
    assert seen[0].headers["prefer"] == "count=exact"


def test_supabase_count_failure_raises_store_error():
    store = _supabase(lambda request: httpx.Response(503, text="unavailable"))

    with pytest.raises(StoreError):
        store.count_generation_logs("g1", "u1", NOW)


def test_supabase_insert_failure_raises_persistence_error():
    store = _supabase(lambda request: httpx.Response(500, text="insert failed"))

    with pytest.raises(PersistenceError):
        store.insert_posts([Post(content="c", group_id="g1", user_id="u1")])


def test_supabase_reads_group_rows():
    row = {
        "id": "g1",
        "name": "EV Watch",
        "created_by": "u1",
        "automated_news_enabled": True,
        "news_prompt": "electric vehicles",
        "news_generation_status": None,
        "last_news_generation": "2026-03-09T10:00:00Z",
    }
    store = _supabase(lambda request: httpx.Response(200, json=[row]))

    group = store.get_group("g1")

    assert group.news_generation_status == GenerationStatus.IDLE
    assert group.last_news_generation == NOW - timedelta(hours=26)


def test_supabase_appends_log_rows():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201)

    store = _supabase(handler)
    store.append_generation_log(
        RateLimitRecord(group_id="g1", user_id="u1", status=AttemptStatus.RATE_LIMITED, created_at=NOW)
    )

    assert bodies[0]["status"] == "rate_limited"
    assert bodies[0]["group_id"] == "g1"
