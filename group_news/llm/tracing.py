"""
Optional Langfuse spans around the external LLM and image calls.

Tracing is off unless enabled in config with keys available; every
helper here is then a no-op, so callers never check for a tracer.
"""

from __future__ import annotations

from contextlib import ExitStack, contextmanager
import json
import logging
import os
from typing import Any, Iterator

from ..config import LangfuseConfig
from ..logging_utils import redact_text, truncate_text

logger = logging.getLogger(__name__)

_TRACER = None
_CFG: LangfuseConfig | None = None


def setup_langfuse(cfg: LangfuseConfig) -> None:
    """Initialize Langfuse tracing if enabled and keys are available."""
    global _TRACER, _CFG  # noqa: PLW0603
    _CFG = cfg
    _TRACER = None
    if not cfg.enabled:
        return
    public_key = cfg.public_key or os.getenv("LANGFUSE_PUBLIC_KEY")
    secret_key = cfg.secret_key or os.getenv("LANGFUSE_SECRET_KEY")
    if not public_key or not secret_key:
        logger.warning("Langfuse enabled but keys are missing; tracing disabled")
        return
    try:
        from langfuse import Langfuse  # type: ignore
    except ImportError:
        logger.warning("Langfuse enabled but the langfuse package is not installed")
        return

    _TRACER = Langfuse(
        public_key=public_key,
        secret_key=secret_key,
        host=cfg.host or os.getenv("LANGFUSE_HOST"),
        environment=cfg.environment or os.getenv("LANGFUSE_ENVIRONMENT"),
    )


def get_tracer():
    return _TRACER


@contextmanager
def start_span(
    name: str,
    kind: str,
    input_value: Any | None = None,
    attributes: dict[str, str] | None = None,
) -> Iterator[Any | None]:
    """Yield a Langfuse span for the block, or None when tracing is off."""
    with ExitStack() as stack:
        span = None
        if _TRACER is not None:
            metadata = {"span.kind": kind, **(attributes or {})}
            try:
                span = stack.enter_context(
                    _TRACER.start_as_current_span(name=name, input=_payload(input_value), metadata=metadata)
                )
            except Exception:  # noqa: BLE001
                logger.debug("Could not open Langfuse span %s", name, exc_info=True)
        yield span


def set_span_output(span: Any | None, output_value: Any) -> None:
    payload = _payload(output_value)
    if payload is not None:
        _update(span, output=payload)


def record_span_error(span: Any | None, exc: Exception) -> None:
    _update(span, level="ERROR", status_message=str(exc))


def flush() -> None:
    """Flush pending traces before the process exits."""
    if _TRACER is None:
        return
    try:
        _TRACER.flush()
    except Exception:  # noqa: BLE001
        logger.debug("Langfuse flush failed", exc_info=True)


def _payload(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=True, default=str)
    if _CFG is None:
        return text
    return truncate_text(redact_text(text, _CFG.redaction), _CFG.max_text_chars)


def _update(span: Any | None, **fields: Any) -> None:
    if span is None:
        return
    try:
        span.update(**fields)
    except Exception:  # noqa: BLE001
        logger.debug("Langfuse span update failed", exc_info=True)
