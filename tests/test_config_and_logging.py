"""Tests for config loading, logging setup and tracing defaults."""

from __future__ import annotations

from contextlib import contextmanager
import json
import logging

import pytest

from group_news.config import LangfuseConfig, LoggingConfig, load_config
from group_news.errors import ConfigError
from group_news.llm import tracing
from group_news.logging_utils import log_event, redact_text, setup_llm_logger, setup_logging, truncate_text


def test_load_config_defaults_without_path():
    cfg = load_config(None)

    assert cfg.search.model == "sonar-pro"
    assert cfg.search.timeout_seconds == 30.0
    assert cfg.images.timeout_seconds == 10.0
    assert cfg.rate_limit.daily_limit == 5
    assert cfg.generation.recency_hours == 48


def test_load_config_merges_sections(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "rate_limit:\n  daily_limit: 3\nstore:\n  backend: supabase\nunknown_section:\n  x: 1\n",
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg.rate_limit.daily_limit == 3
    assert cfg.rate_limit.timezone is None
    assert cfg.store.backend == "supabase"
    assert cfg.store.posts_table == "posts"


def test_load_config_rejects_unknown_keys(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("search:\n  modle: typo\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="search"):
        load_config(str(path))


def test_setup_logging_writes_jsonl_file(tmp_path):
    cfg = LoggingConfig(console=False, file=True, directory=str(tmp_path), filename="run.jsonl")
    logger = setup_logging(cfg)

    log_event(logger, "Posts inserted", event="posts_inserted", group="EV Watch", posts=2)
    for handler in logger.handlers:
        handler.flush()

    record = json.loads((tmp_path / "run.jsonl").read_text(encoding="utf-8").strip().splitlines()[-1])
    assert record["message"] == "Posts inserted"
    assert record["event"] == "posts_inserted"
    assert record["posts"] == 2
    assert record["level"] == "INFO"


def test_llm_logger_disabled_by_default():
    assert setup_llm_logger(LoggingConfig()) is None


def test_log_event_ignores_missing_logger():
    log_event(None, "nothing", event="noop")


def test_log_event_respects_level(caplog):
    logger = logging.getLogger("tests.log_event")
    with caplog.at_level(logging.ERROR, logger="tests.log_event"):
        log_event(logger, "Generation failed", level=logging.ERROR, event="generation_failed")

    assert caplog.records[0].event == "generation_failed"


def test_redaction_modes():
    text = "See https://example.com/story for details"

    assert redact_text(text, "none") == text
    assert redact_text(text, "redact_content") == ""
    assert redact_text(text, "redact_urls_authors") == "See [REDACTED_URL] for details"
    assert truncate_text("abcdef", 3) == "abc...(truncated)"


def test_setup_langfuse_disables_tracer_when_keys_missing(monkeypatch):
    monkeypatch.delenv("LANGFUSE_PUBLIC_KEY", raising=False)
    monkeypatch.delenv("LANGFUSE_SECRET_KEY", raising=False)

    tracing.setup_langfuse(LangfuseConfig(enabled=True))

    assert tracing.get_tracer() is None


def test_start_span_yields_none_without_tracer():
    tracing.setup_langfuse(LangfuseConfig(enabled=False))

    with tracing.start_span("perplexity.fetch_articles", kind="llm", input_value="prompt") as span:
        assert span is None


class _RecordingSpan:
    def __init__(self):
        self.updates: list[dict] = []

    def update(self, **fields):  # noqa: ANN003
        self.updates.append(fields)


class _RecordingTracer:
    def __init__(self):
        self.opened: list[dict] = []
        self.span = _RecordingSpan()

    @contextmanager
    def start_as_current_span(self, **kwargs):  # noqa: ANN003
        self.opened.append(kwargs)
        yield self.span


def test_start_span_records_output_and_errors(monkeypatch):
    tracer = _RecordingTracer()
    monkeypatch.setattr(tracing, "_TRACER", tracer)
    monkeypatch.setattr(tracing, "_CFG", LangfuseConfig(redaction="redact_urls_authors"))

    with tracing.start_span("images.search", kind="tool", input_value="see https://x.com", attributes={"a": "b"}) as span:
        tracing.set_span_output(span, {"url": None})
        tracing.record_span_error(span, RuntimeError("boom"))

    assert tracer.opened[0]["name"] == "images.search"
    assert tracer.opened[0]["input"] == "see [REDACTED_URL]"
    assert tracer.opened[0]["metadata"] == {"span.kind": "tool", "a": "b"}
    assert tracer.span.updates == [{"output": '{"url": null}'}, {"level": "ERROR", "status_message": "boom"}]
