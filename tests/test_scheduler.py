"""Tests for the scheduled dispatcher and its triggers."""

from __future__ import annotations

from datetime import timedelta
import json

import httpx
import pytest

from group_news.config import SchedulerConfig
from group_news.scheduler import Dispatcher, HttpTrigger
from group_news.store.memory import MemoryStore

from conftest import NOW, make_group


def _success(group_name: str) -> dict:
    return {
        "message": "News generation completed",
        "results": [{"group": group_name, "status": "success", "message": "Created 2 news posts successfully"}],
    }


def test_no_enabled_groups():
    report = Dispatcher(MemoryStore(), lambda group_id: {}, clock=lambda: NOW).run()

    assert report.to_dict() == {
        "message": "No groups with automated news enabled",
        "results": [],
        "timestamp": "2026-03-10T12:00:00+00:00",
    }


def test_due_groups_are_dispatched_and_others_skipped():
    store = MemoryStore(
        [
            make_group(id="due", name="Due", last_news_generation=NOW - timedelta(days=2)),
            make_group(id="fresh", name="Fresh", last_news_generation=NOW - timedelta(hours=3)),
        ]
    )
    triggered: list[str] = []

    def trigger(group_id: str) -> dict:
        triggered.append(group_id)
        return _success("Due")

    report = Dispatcher(store, trigger, clock=lambda: NOW).run()

    assert triggered == ["due"]
    assert report.message == "Scheduled news generation completed"
    assert [(r.group, r.status) for r in report.results] == [("Due", "success"), ("Fresh", "skipped")]
    assert report.results[1].message == "Frequency not met (1 days)"


def test_trigger_error_becomes_failed_result():
    store = MemoryStore([make_group(name="EV Watch")])

    def trigger(group_id: str) -> dict:
        raise RuntimeError("endpoint unreachable")

    report = Dispatcher(store, trigger, clock=lambda: NOW).run()

    assert report.results[0].status == "error"
    assert report.results[0].message == "endpoint unreachable"


def test_trigger_response_statuses_are_mapped():
    store = MemoryStore([make_group(id="a", name="A"), make_group(id="b", name="B"), make_group(id="c", name="C")])
    responses = {
        "a": {"results": [{"group": "A", "status": "rate_limited", "message": "Daily limit"}]},
        "b": {"results": [{"group": "B", "status": "error", "message": "timeout"}]},
        "c": {"message": "Group not found or automated news not enabled", "results": []},
    }

    report = Dispatcher(store, responses.__getitem__, clock=lambda: NOW).run()

    assert {r.group: r.status for r in report.results} == {"A": "rate_limited", "B": "error", "C": "skipped"}


def test_concurrent_dispatch_keeps_group_order():
    groups = [make_group(id=f"g{i}", name=f"Group {i}") for i in range(5)]
    store = MemoryStore(groups)

    report = Dispatcher(
        store,
        lambda group_id: _success(group_id),
        SchedulerConfig(concurrency=3),
        clock=lambda: NOW,
    ).run()

    assert [r.group for r in report.results] == [f"Group {i}" for i in range(5)]
    assert all(r.status == "success" for r in report.results)


def test_http_trigger_posts_group_id_with_token():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_success("EV Watch"))

    trigger = HttpTrigger("https://news.example.com/generate-news", token="t0k", transport=httpx.MockTransport(handler))

    assert trigger("g1")["results"][0]["status"] == "success"
    assert json.loads(seen[0].content) == {"groupId": "g1"}
    assert seen[0].headers["authorization"] == "Bearer t0k"


def test_http_trigger_raises_with_endpoint_error():
    trigger = HttpTrigger(
        "https://news.example.com/generate-news",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "PERPLEXITY_API_KEY is not configured"})),
    )

    with pytest.raises(RuntimeError, match="PERPLEXITY_API_KEY"):
        trigger("g1")


def test_http_trigger_from_config_requires_url():
    with pytest.raises(ValueError):
        HttpTrigger.from_config(SchedulerConfig())
