"""Logging setup: rich console output plus JSON-lines log files."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import re
from typing import Any

from rich.logging import RichHandler

from .config import LoggingConfig


_URL_RE = re.compile(r"https?://\S+")

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

_REDACTORS = {
    "none": lambda text: text,
    "redact_content": lambda text: "",
    "redact_urls_authors": lambda text: _URL_RE.sub("[REDACTED_URL]", text),
}


def setup_logging(cfg: LoggingConfig) -> logging.Logger:
    """Configure the ``group_news`` logger and return it."""
    logger = _fresh_logger("group_news", cfg.level)
    if cfg.console:
        console = RichHandler(rich_tracebacks=True, show_time=True, show_level=True)
        console.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console)
    if cfg.file:
        if cfg.format == "jsonl":
            formatter: logging.Formatter = JsonlFormatter()
        else:
            formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        logger.addHandler(_file_handler(cfg, cfg.filename, formatter))
    return logger


def setup_llm_logger(cfg: LoggingConfig) -> logging.Logger | None:
    """Return a logger for raw LLM responses, or None when disabled."""
    if not cfg.llm_log_enabled:
        return None
    logger = _fresh_logger("group_news.llm", cfg.level)
    logger.addHandler(_file_handler(cfg, cfg.llm_log_file, JsonlFormatter()))
    return logger


def log_event(logger: logging.Logger | None, message: str, level: int = logging.INFO, **fields: Any) -> None:
    if logger is not None:
        logger.log(level, message, extra=fields)


def redact_text(text: str, mode: str) -> str:
    redactor = _REDACTORS.get(mode)
    return redactor(text) if redactor else text


def truncate_text(text: str, max_chars: int = 20000) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "...(truncated)"


class JsonlFormatter(logging.Formatter):
    """One JSON object per record: base fields plus every ``extra`` field."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update((k, v) for k, v in record.__dict__.items() if k not in _RECORD_ATTRS)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _fresh_logger(name: str, level: str) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers = []
    logger.propagate = False
    return logger


def _file_handler(cfg: LoggingConfig, filename: str, formatter: logging.Formatter) -> logging.Handler:
    log_dir = Path(cfg.directory)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / filename, encoding="utf-8")
    handler.setFormatter(formatter)
    return handler
