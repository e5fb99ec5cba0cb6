"""
Generation orchestration for group news.

For every selected group the runner:
1. Checks the update frequency (manual requests bypass it)
2. Checks the daily rate limit for the requesting user
3. Claims the group by moving its status to running, then repeats the
   rate-limit check so a run that just finished is counted
4. Fetches articles from the content-search provider
5. Recovers the article list from the response
6. Filters stale, incomplete and already posted articles
7. Attaches an image to each article and builds the posts
8. Inserts the posts in one batch
9. Logs the attempt, then writes the terminal status

Each group yields exactly one outcome (Skipped, RateLimited, Succeeded
or Failed). A failure in one group never stops the others, and a
claimed group always leaves the running status before its pass ends.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Callable

from .config import AppConfig, get_api_key
from .core.content import extract_post_title, format_post_content
from .core.dedup import filter_articles
from .core.frequency import should_generate
from .core.types import (
    AttemptStatus,
    Failed,
    GenerationAttempt,
    GenerationStatus,
    Group,
    GroupOutcome,
    Post,
    RateLimitDecision,
    RateLimited,
    RunReport,
    Skipped,
    Succeeded,
    SystemAuthor,
)
from .errors import NewsGenerationError, StoreError
from .images.enricher import ImageEnricher
from .json_parser import extract_articles
from .llm.providers.base import ContentSearchProvider
from .llm.providers.factory import create_keyword_provider, create_search_provider
from .logging_utils import log_event
from .rate_limit import RateLimiter
from .store.base import NewsStore

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NewsGenerator:
    """Runs the generation pipeline for one group or all enabled groups."""

    def __init__(
        self,
        cfg: AppConfig,
        store: NewsStore,
        search_provider: ContentSearchProvider,
        image_enricher: ImageEnricher,
        rate_limiter: RateLimiter | None = None,
        logger: logging.Logger | None = None,
        clock: Clock = utc_now,
    ):
        self.cfg = cfg
        self.store = store
        self.search = search_provider
        self.images = image_enricher
        self.rate_limiter = rate_limiter or RateLimiter(store, cfg.rate_limit)
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        store: NewsStore,
        logger: logging.Logger | None = None,
        llm_logger: logging.Logger | None = None,
    ) -> "NewsGenerator":
        """Build a generator with providers resolved from config.

        Raises:
            ConfigError: If the content-search credential is missing
        """
        search = create_search_provider(cfg.search, cfg.generation, cfg.logging, llm_logger)
        keyword = create_keyword_provider(cfg.keyword)
        images = ImageEnricher(cfg.images, get_api_key(cfg.images), keyword)
        return cls(cfg, store, search, images, logger=logger)

    def generate(
        self,
        group_id: str | None = None,
        is_manual_request: bool = False,
        user_id: str | None = None,
    ) -> RunReport:
        """Run generation for one group, or for every enabled group.

        Raises:
            StoreError: If the groups to process cannot be loaded
        """
        if group_id:
            group = self.store.get_group(group_id)
            if group is None or not group.automated_news_enabled:
                log_event(self.logger, "Group not eligible", event="group_not_eligible", group_id=group_id)
                return RunReport(message="Group not found or automated news not enabled", results=[])
            groups = [group]
        else:
            groups = self.store.list_enabled_groups()

        log_event(
            self.logger,
            "Generation start",
            event="generation_start",
            groups=len(groups),
            manual=is_manual_request,
        )
        results = [self.process_group(g, is_manual_request, user_id) for g in groups]
        return RunReport(message="News generation completed", results=results)

    def process_group(
        self,
        group: Group,
        is_manual_request: bool = False,
        user_id: str | None = None,
    ) -> GroupOutcome:
        now = self._clock()
        default_frequency = self.cfg.generation.default_update_frequency
        if not should_generate(group, is_manual_request, now, default_frequency):
            frequency = group.update_frequency or default_frequency
            log_event(self.logger, "Frequency not met", event="group_skipped", group=group.name, frequency=frequency)
            return Skipped(group.name, f"Frequency not met ({frequency} days)")

        if not (group.news_prompt or "").strip():
            return Failed(group.name, "No news prompt configured")

        author = SystemAuthor.for_group(group)
        requester = user_id or author.user_id
        decision, outcome = self._check_quota(group, requester, now)
        if outcome is not None:
            return outcome

        try:
            prior = self._claim(group, now)
        except StoreError as exc:
            self.logger.error("Could not claim %s: %s", group.name, exc)
            return Failed(group.name, f"Could not update generation status: {exc}")
        if prior is None:
            log_event(self.logger, "Already running", event="group_busy", group=group.name)
            return Skipped(group.name, "Generation already in progress")

        # A run that finished between the first check and the claim has
        # logged its outcome by now, so only this count is final.
        decision, outcome = self._check_quota(group, requester, now)
        if outcome is not None:
            self._release(group, prior, now)
            return outcome

        attempt = GenerationAttempt(
            group=group,
            author=author,
            started_at=now,
            is_manual=is_manual_request,
            decision=decision,
        )
        try:
            try:
                return self._run_attempt(attempt, requester)
            except NewsGenerationError as exc:
                return self._fail(attempt, requester, str(exc))
            except Exception as exc:  # noqa: BLE001
                self.logger.exception("Unexpected error while generating for %s", group.name)
                return self._fail(attempt, requester, f"{type(exc).__name__}: {exc}")
        finally:
            if not attempt.finished:
                self._finish(attempt, GenerationStatus.FAILED, error="Generation interrupted")

    def _run_attempt(self, attempt: GenerationAttempt, requester: str) -> GroupOutcome:
        group = attempt.group
        gen_cfg = self.cfg.generation
        count = group.news_count or gen_cfg.default_news_count

        log_event(self.logger, "Fetching articles", event="fetch_start", group=group.name, count=count)
        attempt.raw_response = self.search.fetch_articles(group.news_prompt or "", count, group.news_sources)
        attempt.parsed = extract_articles(attempt.raw_response)

        since = attempt.started_at - timedelta(days=gen_cfg.dedup_lookback_days)
        existing = [
            title
            for title in (extract_post_title(c) for c in self.store.recent_post_contents(group.id, since))
            if title
        ]
        attempt.filtered = filter_articles(
            attempt.parsed,
            existing,
            attempt.started_at,
            limit=count,
            recency_hours=gen_cfg.recency_hours,
            threshold=self.cfg.dedup.title_similarity_threshold,
            dedupe_within_batch=self.cfg.dedup.dedupe_within_batch,
        )
        log_event(
            self.logger,
            "Articles filtered",
            event="filter_result",
            group=group.name,
            parsed=len(attempt.parsed),
            existing_titles=len(existing),
            kept=len(attempt.filtered),
        )

        if not attempt.filtered:
            self._record(group, requester, AttemptStatus.SUCCESS)
            self._finish(attempt, GenerationStatus.COMPLETED, last_news_generation=self._clock())
            return Succeeded(group.name, "No new articles found", posts_created=0)

        for article in attempt.filtered:
            image_url = self.images.enrich(article)
            attempt.posts.append(
                Post(
                    content=format_post_content(article),
                    group_id=group.id,
                    user_id=attempt.author.user_id,
                    url=article.url,
                    image_url=image_url,
                    keyword=article.keyword,
                )
            )

        self.store.insert_posts(attempt.posts)
        created = len(attempt.posts)
        log_event(self.logger, "Posts inserted", event="posts_inserted", group=group.name, posts=created)

        self._record(group, requester, AttemptStatus.SUCCESS)
        self._finish(attempt, GenerationStatus.COMPLETED, last_news_generation=self._clock())
        return Succeeded(group.name, f"Created {created} news posts successfully", posts_created=created)

    def _check_quota(
        self,
        group: Group,
        requester: str,
        now: datetime,
    ) -> tuple[RateLimitDecision | None, GroupOutcome | None]:
        try:
            decision = self.rate_limiter.check_and_reserve(group.id, requester, now)
        except StoreError as exc:
            self.logger.error("Rate limit check failed for %s: %s", group.name, exc)
            return None, Failed(group.name, f"Rate limit check failed: {exc}")
        if decision.can_generate:
            return decision, None
        log_event(self.logger, "Rate limited", event="group_rate_limited", group=group.name, user_id=requester)
        self._record(group, requester, AttemptStatus.RATE_LIMITED, decision.message)
        return decision, RateLimited(group.name, decision.message)

    def _claim(self, group: Group, now: datetime) -> Group | None:
        """Move the group to running; return its prior state, or None if busy."""
        current = self.store.get_group(group.id)
        if current is None:
            return None
        if current.news_generation_status == GenerationStatus.RUNNING:
            started = current.last_news_run_at
            stale_after = timedelta(minutes=self.cfg.generation.stale_running_minutes)
            if started is not None and now - started < stale_after:
                return None
            self.logger.warning("Taking over stale running status for %s (started %s)", group.name, started)
        claimed = self.store.claim_group(
            group.id,
            current.news_generation_status,
            current.last_news_run_at,
            now,
        )
        return current if claimed else None

    def _release(self, group: Group, prior: Group, run_at: datetime) -> None:
        """Give up a claim without running, restoring the prior status."""
        status = prior.news_generation_status
        if status == GenerationStatus.RUNNING:
            status = GenerationStatus.FAILED
        try:
            self.store.finish_group(group.id, run_at, status, error=prior.last_generation_error)
        except StoreError as exc:
            self.logger.error("Could not release %s: %s", group.name, exc)

    def _fail(self, attempt: GenerationAttempt, requester: str, message: str) -> Failed:
        group = attempt.group
        log_event(
            self.logger,
            "Generation failed",
            level=logging.ERROR,
            event="generation_failed",
            group=group.name,
            error=message,
        )
        self._record(group, requester, AttemptStatus.FAILED, message)
        self._finish(attempt, GenerationStatus.FAILED, error=message)
        return Failed(group.name, message)

    def _finish(
        self,
        attempt: GenerationAttempt,
        status: GenerationStatus,
        error: str | None = None,
        last_news_generation: datetime | None = None,
    ) -> None:
        attempt.finished = True
        group = attempt.group
        try:
            updated = self.store.finish_group(
                group.id,
                attempt.started_at,
                status,
                error=error,
                last_news_generation=last_news_generation,
            )
        except StoreError as exc:
            self.logger.error("Could not write %s status for %s: %s", status.value, group.name, exc)
            return
        if not updated:
            self.logger.warning("Status of %s changed during generation; %s not written", group.name, status.value)
            return
        log_event(self.logger, "Status updated", event="status_transition", group=group.name, status=status.value)

    def _record(self, group: Group, user_id: str, status: AttemptStatus, message: str | None = None) -> None:
        try:
            self.rate_limiter.record(group.id, user_id, status, message, now=self._clock())
        except StoreError as exc:
            self.logger.error("Could not log %s attempt for %s: %s", status.value, group.name, exc)
