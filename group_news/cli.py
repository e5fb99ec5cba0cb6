"""
Command-line interface for group news generation.

Uses Typer to expose the generation trigger, the scheduled dispatcher,
the rate-limit check and the HTTP API. Supports loading .env files for
API key configuration.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

from .config import AppConfig, load_config
from .errors import ConfigError, StoreError
from .llm.tracing import flush, setup_langfuse
from .logging_utils import setup_llm_logger, setup_logging
from .rate_limit import RateLimiter
from .runner import NewsGenerator
from .scheduler import Dispatcher, HttpTrigger, LocalTrigger
from .store import create_store

try:
    from dotenv import load_dotenv
except ImportError:
    load_dotenv = None

app = typer.Typer(add_completion=False, help="Automated news posts for groups.")
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", exists=True, help="YAML config file.")


def _load(config: Path | None, log_level: str | None = None) -> AppConfig:
    if load_dotenv is not None:
        load_dotenv()
    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    setup_logging(cfg.logging)
    setup_langfuse(cfg.langfuse)
    return cfg


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/] {message}")
    raise typer.Exit(code=1)


@app.command()
def generate(
    group_id: str | None = typer.Option(None, "--group-id", "-g", help="Generate for one group only."),
    manual: bool = typer.Option(False, "--manual/--scheduled", help="Manual runs bypass the update frequency."),
    user_id: str | None = typer.Option(None, "--user-id", "-u", help="User the attempt is counted against."),
    config: Path | None = ConfigOption,
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        envvar="PERPLEXITY_API_KEY",
        help="Override the content-search API key.",
    ),
):
    """Run news generation for one group, or for every enabled group."""
    cfg = _load(config, log_level)
    if api_key:
        cfg.search.api_key = api_key
    try:
        store = create_store(cfg.store)
        generator = NewsGenerator.from_config(cfg, store, llm_logger=setup_llm_logger(cfg.logging))
        report = generator.generate(group_id=group_id, is_manual_request=manual, user_id=user_id)
    except (ConfigError, StoreError) as exc:
        _fail(str(exc))
    finally:
        flush()
    console.print_json(json.dumps(report.to_dict()))

    if group_id and user_id:
        decision = RateLimiter(store, cfg.rate_limit).check_and_reserve(group_id, user_id)
        console.print(decision.message)


@app.command()
def schedule(
    config: Path | None = ConfigOption,
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Dispatch generation for every enabled group that is due."""
    cfg = _load(config, log_level)
    try:
        store = create_store(cfg.store)
        if cfg.scheduler.trigger_url:
            trigger = HttpTrigger.from_config(cfg.scheduler)
        else:
            trigger = LocalTrigger(
                NewsGenerator.from_config(cfg, store, llm_logger=setup_llm_logger(cfg.logging))
            )
        dispatcher = Dispatcher(
            store,
            trigger,
            cfg.scheduler,
            default_frequency=cfg.generation.default_update_frequency,
        )
        report = dispatcher.run()
    except (ConfigError, StoreError) as exc:
        _fail(str(exc))
    finally:
        flush()
    console.print_json(json.dumps(report.to_dict()))


@app.command()
def limits(
    group_id: str = typer.Option(..., "--group-id", "-g"),
    user_id: str = typer.Option(..., "--user-id", "-u"),
    config: Path | None = ConfigOption,
):
    """Show the remaining generation quota for a group and user today."""
    cfg = _load(config)
    try:
        decision = RateLimiter(create_store(cfg.store), cfg.rate_limit).check_and_reserve(group_id, user_id)
    except (ConfigError, StoreError) as exc:
        _fail(str(exc))
    console.print_json(json.dumps(decision.to_dict()))


@app.command()
def serve(
    config: Path | None = ConfigOption,
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
):
    """Serve the HTTP generation and scheduler endpoints."""
    import uvicorn

    from .api import create_app

    cfg = _load(config)
    try:
        api = create_app(cfg)
    except ConfigError as exc:
        _fail(str(exc))
    uvicorn.run(api, host=host or cfg.server.host, port=port or cfg.server.port)


if __name__ == "__main__":
    app()
