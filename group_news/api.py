"""FastAPI application exposing the generation and scheduler triggers."""

from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import AppConfig
from .errors import ConfigError, StoreError
from .rate_limit import RateLimiter
from .runner import NewsGenerator
from .scheduler import Dispatcher, HttpTrigger, LocalTrigger
from .store import create_store
from .store.base import NewsStore

logger = logging.getLogger(__name__)

GeneratorFactory = Callable[[], NewsGenerator]


class TriggerRequest(BaseModel):
    """Body of a generation request; every field is optional."""

    model_config = ConfigDict(populate_by_name=True)

    group_id: str | None = Field(default=None, alias="groupId")
    is_manual_request: bool = Field(default=False, alias="isManualRequest")
    user_id: str | None = Field(default=None, alias="userId")


def create_app(
    cfg: AppConfig | None = None,
    store: NewsStore | None = None,
    generator_factory: GeneratorFactory | None = None,
) -> FastAPI:
    """Build the API.

    The generator is built per request so a missing search credential
    surfaces as a 500 response instead of preventing startup.
    """
    cfg = cfg or AppConfig()
    store = store or create_store(cfg.store)

    def build_generator() -> NewsGenerator:
        if generator_factory is not None:
            return generator_factory()
        return NewsGenerator.from_config(cfg, store)

    app = FastAPI(
        title="Group News",
        description="Automated news post generation for groups",
        version="0.1.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/generate-news")
    async def generate_news(request: Request):
        payload = await _read_json(request)
        try:
            body = TriggerRequest.model_validate(payload)
        except ValidationError as exc:
            return JSONResponse(status_code=400, content={"error": str(exc)})

        try:
            generator = build_generator()
            report = await run_in_threadpool(
                generator.generate,
                body.group_id,
                body.is_manual_request,
                body.user_id,
            )
        except (ConfigError, StoreError) as exc:
            logger.error("Error in generate-news: %s", exc)
            return JSONResponse(status_code=500, content={"error": str(exc)})
        return report.to_dict()

    @app.post("/scheduled-news")
    async def scheduled_news():
        try:
            if cfg.scheduler.trigger_url:
                trigger = HttpTrigger.from_config(cfg.scheduler)
            else:
                trigger = LocalTrigger(build_generator())
            dispatcher = Dispatcher(
                store,
                trigger,
                cfg.scheduler,
                default_frequency=cfg.generation.default_update_frequency,
            )
            report = await run_in_threadpool(dispatcher.run)
        except (ConfigError, StoreError) as exc:
            logger.error("Error in scheduled news generation: %s", exc)
            return JSONResponse(status_code=500, content={"error": str(exc)})
        return report.to_dict()

    @app.get("/rate-limit")
    async def rate_limit(group_id: str = Query(..., alias="groupId"), user_id: str = Query(..., alias="userId")):
        limiter = RateLimiter(store, cfg.rate_limit)
        try:
            decision = await run_in_threadpool(limiter.check_and_reserve, group_id, user_id)
        except StoreError as exc:
            return JSONResponse(status_code=500, content={"error": str(exc)})
        return decision.to_dict()

    return app


async def _read_json(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        return {}
    if not isinstance(payload, dict):
        return {}
    return payload
