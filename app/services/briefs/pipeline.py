"""Brief synthesis pipeline: fetch signals, infer, summarize, generate, persist."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar
from uuid import UUID

from app.clients.builtwith import BuiltWithClient
from app.clients.jsearch import JSearchClient
from app.clients.newsdata import NewsDataClient
from app.models.brief import Brief, BriefRequest, JobSignal, NewsItem, TechStackItem
from app.observability.metrics import metrics
from app.services.briefs.context import BriefContext, ContextBuilder
from app.services.briefs.errors import BriefPipelineError, BriefValidationError
from app.services.briefs.insights import InsightConfig, InsightGenerator, OpenAIChatCompletionClient
from app.services.briefs.repositories import BriefRepository, build_brief_repository
from app.services.briefs.signals import (
    JobSignalFetcher,
    NewsSignalFetcher,
    TechVerificationFetcher,
    company_logo_url,
    resolve_domain,
)
from app.services.briefs.tech_heuristics import TechStackHeuristicEngine
from app.services.briefs.trends import extract_hiring_trends, extract_news_trends

if TYPE_CHECKING:
    from app.config import Settings

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass(frozen=True)
class SignalBundle:
    """Signals gathered for one company before any inference."""

    news: list[NewsItem]
    job_signals: list[JobSignal]
    verified_tech: list[TechStackItem]


class BriefPipeline:
    """Builds and persists one strategic brief per request.

    Only two failures leave this class: BriefValidationError for bad input and
    BriefPersistenceError when the final write fails. Every upstream problem
    (provider outage, model timeout, malformed output) reduces the richness of
    the brief instead.
    """

    def __init__(
        self,
        *,
        repository: BriefRepository,
        news_fetcher: NewsSignalFetcher,
        jobs_fetcher: JobSignalFetcher,
        tech_fetcher: TechVerificationFetcher,
        insight_generator: InsightGenerator,
        heuristics: TechStackHeuristicEngine | None = None,
        context_builder: ContextBuilder | None = None,
    ) -> None:
        self._repository = repository
        self._news_fetcher = news_fetcher
        self._jobs_fetcher = jobs_fetcher
        self._tech_fetcher = tech_fetcher
        self._insights = insight_generator
        self._heuristics = heuristics or TechStackHeuristicEngine()
        self._context_builder = context_builder or ContextBuilder()

    @property
    def repository(self) -> BriefRepository:
        return self._repository

    def create_brief(self, request: BriefRequest) -> Brief:
        """Run the full pipeline for one request and return the stored brief."""
        company_name, user_intent = validate_request(request)
        start = time.perf_counter()
        metrics.increment("briefs.requests")
        logger.info("briefs.pipeline.started", extra={"company_name": company_name})
        try:
            domain = resolve_domain(request.website)
            signals = self._gather_signals(company_name, domain)

            tech_stack = signals.verified_tech
            if not tech_stack:
                metrics.increment("briefs.tech.heuristic_used")
                tech_stack = self._heuristics.infer(
                    company_name,
                    request.website,
                    job_signals=signals.job_signals,
                    news=signals.news,
                )

            hiring_trends = extract_hiring_trends(signals.job_signals)
            news_trends = extract_news_trends(signals.news)
            dossier = self._context_builder.build(
                BriefContext(
                    company_name=company_name,
                    user_intent=user_intent,
                    website=request.website,
                    domain=domain,
                    news=signals.news,
                    job_signals=signals.job_signals,
                    tech_stack=tech_stack,
                    hiring_trends=hiring_trends,
                    news_trends=news_trends,
                )
            )
            insights = self._insights.generate(dossier)

            draft = Brief.assemble(
                request,
                insights=insights,
                news=signals.news,
                job_signals=signals.job_signals,
                tech_stack_data=tech_stack,
                hiring_trends=hiring_trends,
                news_trends=news_trends,
                company_logo=company_logo_url(domain),
            )
            persisted = self._repository.insert(draft)
        except BriefPipelineError as exc:
            metrics.increment("briefs.errors", tags={"code": exc.code})
            raise
        finally:
            metrics.timing("briefs.latency_ms", (time.perf_counter() - start) * 1000)

        metrics.increment("briefs.persisted")
        logger.info(
            "briefs.pipeline.completed",
            extra={
                "brief_id": str(persisted.id),
                "company_name": company_name,
                "news": persisted.intelligence_sources.news,
                "jobs": persisted.intelligence_sources.jobs,
                "technologies": persisted.intelligence_sources.technologies,
                "verified_source_used": persisted.intelligence_sources.verified_source_used,
            },
        )
        return persisted

    def list_briefs(self) -> list[Brief]:
        return self._repository.list_all()

    def get_brief(self, brief_id: UUID | str) -> Brief | None:
        return self._repository.get(brief_id)

    def delete_brief(self, brief_id: UUID | str) -> bool:
        return self._repository.delete(brief_id)

    def _gather_signals(self, company_name: str, domain: str | None) -> SignalBundle:
        # The three sources are independent; each fetcher already absorbs its own failures.
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="brief-signal") as executor:
            news_future = executor.submit(self._news_fetcher.fetch, company_name, domain)
            jobs_future = executor.submit(self._jobs_fetcher.fetch, company_name, domain)
            tech_future = executor.submit(self._tech_fetcher.fetch, company_name, domain)
            return SignalBundle(
                news=_result_or_empty(news_future, source="news"),
                job_signals=_result_or_empty(jobs_future, source="jobs"),
                verified_tech=_result_or_empty(tech_future, source="tech"),
            )


def validate_request(request: BriefRequest) -> tuple[str, str]:
    """Return the trimmed company name and intent, or raise BriefValidationError."""
    company_name = (request.company_name or "").strip()
    user_intent = (request.user_intent or "").strip()
    if not company_name or not user_intent:
        raise BriefValidationError("Company name and user intent are required")
    return company_name, user_intent


def _result_or_empty(future: Future[list[_T]], *, source: str) -> list[_T]:
    try:
        return future.result()
    except Exception as exc:  # pragma: no cover - defensive guard
        logger.exception("briefs.signal.unexpected_error", extra={"source": source})
        metrics.increment(
            "briefs.signal.degraded",
            tags={"source": source, "code": getattr(exc, "code", type(exc).__name__)},
        )
        return []


def _optional_client(factory: Callable[[], _T], api_key: str | None, *, provider: str) -> _T | None:
    if not api_key:
        logger.info("briefs.provider.disabled", extra={"provider": provider})
        return None
    return factory()


def build_brief_pipeline(settings: Settings, *, repository: BriefRepository | None = None) -> BriefPipeline:
    """Wire clients, fetchers and storage from one settings object."""
    news_client = _optional_client(
        lambda: NewsDataClient.from_settings(settings), settings.newsdata_api_key, provider="newsdata"
    )
    jobs_client = _optional_client(
        lambda: JSearchClient.from_settings(settings), settings.jsearch_api_key, provider="jsearch"
    )
    tech_client = _optional_client(
        lambda: BuiltWithClient.from_settings(settings), settings.builtwith_api_key, provider="builtwith"
    )
    llm_client = _optional_client(
        lambda: OpenAIChatCompletionClient.from_settings(settings), settings.llm_api_key, provider="llm"
    )
    return BriefPipeline(
        repository=repository or build_brief_repository(settings.database_url),
        news_fetcher=NewsSignalFetcher(
            news_client, limit=settings.news_max_items, page_size=settings.news_page_size
        ),
        jobs_fetcher=JobSignalFetcher(jobs_client, limit=settings.jobs_max_items),
        tech_fetcher=TechVerificationFetcher(tech_client, limit=settings.tech_max_items),
        insight_generator=InsightGenerator(llm_client, config=InsightConfig.from_settings(settings)),
    )


_PIPELINE_INSTANCE: BriefPipeline | None = None


def get_brief_pipeline() -> BriefPipeline:
    """Singleton accessor used by API routes."""
    global _PIPELINE_INSTANCE  # noqa: PLW0603
    if _PIPELINE_INSTANCE is None:
        from app.config import settings

        _PIPELINE_INSTANCE = build_brief_pipeline(settings)
    return _PIPELINE_INSTANCE


def get_brief_repository() -> BriefRepository:
    """Storage backing the shared pipeline, exposed for health checks."""
    return get_brief_pipeline().repository
