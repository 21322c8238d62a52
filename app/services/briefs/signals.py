"""Signal fetchers: news, jobs and verified technology lookups.

Each fetcher wraps one provider client and turns its loosely-typed payload into
domain models. A fetcher never raises to its caller: provider failures and
malformed entries degrade to fewer (or zero) items, and the degradation is
logged and counted.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from typing import Any, Final, Generic, Protocol, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.clients.builtwith import BuiltWithError
from app.clients.jsearch import JSearchError
from app.clients.newsdata import NewsDataError
from app.models.brief import Confidence, JobSignal, NewsItem, TechStackItem, VERIFIED_SOURCE
from app.observability.metrics import metrics
from app.services.briefs.formatting import parse_date, parse_timestamp, truncate_text

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

FAVICON_TEMPLATE: Final[str] = "https://www.google.com/s2/favicons?domain={domain}&sz=32"
FALLBACK_FAVICON_DOMAIN: Final[str] = "news.com"
LOGO_TEMPLATE: Final[str] = "https://logo.clearbit.com/{domain}"
NEWS_CONTENT_CHARS: Final[int] = 250
JOB_DESCRIPTION_CHARS: Final[int] = 500


class NewsSearchClient(Protocol):
    """Subset of NewsData client behavior used by the pipeline."""

    def search_news(self, *, query: str, size: int = 10) -> list[dict[str, Any]]:
        ...


class JobSearchClient(Protocol):
    """Subset of JSearch client behavior used by the pipeline."""

    def search_jobs(self, *, query: str) -> list[dict[str, Any]]:
        ...


class TechLookupClient(Protocol):
    """Subset of BuiltWith client behavior used by the pipeline."""

    def lookup_technologies(self, *, domain: str) -> list[dict[str, Any]]:
        ...


class _RawModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class RawNewsArticle(_RawModel):
    """NewsData.io article as returned by `/api/1/news`."""

    title: str
    link: str
    description: str | None = None
    content: str | None = None
    pub_date: str | None = Field(default=None, alias="pubDate")
    source_id: str | None = None
    source_url: str | None = None

    def to_news_item(self) -> NewsItem:
        if self.description:
            description = self.description
        else:
            description = truncate_text(self.content, NEWS_CONTENT_CHARS)
        return NewsItem(
            title=self.title.strip(),
            description=description,
            url=self.link,
            published_at=parse_timestamp(self.pub_date),
            source=self.source_id or "News Source",
            source_favicon=favicon_url(self.source_url or self.link),
        )


class RawJobPosting(_RawModel):
    """JSearch posting as returned by `/search`."""

    job_title: str
    employer_name: str | None = None
    job_city: str | None = None
    job_country: str | None = None
    job_posted_at_datetime_utc: str | None = None
    job_description: str | None = None
    job_salary_period: str | None = None
    job_salary_currency: str | None = None
    job_min_salary: float | None = None
    job_max_salary: float | None = None

    @field_validator("job_min_salary", "job_max_salary", mode="before")
    @classmethod
    def _salary_or_none(cls, value: object) -> object:
        # Salary is optional; an unreadable amount drops the salary, not the posting.
        if isinstance(value, bool):
            return None
        if isinstance(value, str):
            try:
                value = float(value.replace(",", "").strip())
            except ValueError:
                return None
        if isinstance(value, (int, float)):
            return value if math.isfinite(value) else None
        return None

    def to_job_signal(self) -> JobSignal:
        return JobSignal(
            title=self.job_title.strip(),
            company=self.employer_name or "",
            location=f"{self.job_city or 'Remote'}, {self.job_country or 'Global'}",
            posted_date=parse_timestamp(self.job_posted_at_datetime_utc),
            description=truncate_text(self.job_description, JOB_DESCRIPTION_CHARS),
            salary=self._salary_display(),
        )

    def _salary_display(self) -> str | None:
        if not self.job_salary_period or not self.job_min_salary:
            return None
        currency = self.job_salary_currency or "$"
        salary_range = _format_amount(self.job_min_salary)
        if self.job_max_salary:
            salary_range = f"{salary_range}-{_format_amount(self.job_max_salary)}"
        return f"{currency}{salary_range} {self.job_salary_period}"


class RawTechnology(_RawModel):
    """BuiltWith technology entry from `Results[0].Result.Paths[0].Technologies`."""

    name: str = Field(alias="Name")
    categories: list[Any] | None = Field(default=None, alias="Categories")
    first_detected: int | str | None = Field(default=None, alias="FirstDetected")

    def to_tech_item(self) -> TechStackItem:
        category = "Other"
        if self.categories and isinstance(self.categories[0], dict):
            category = self.categories[0].get("Name") or "Other"
        return TechStackItem(
            name=self.name.strip(),
            confidence=Confidence.HIGH,
            source=VERIFIED_SOURCE,
            category=category,
            first_detected=parse_date(self.first_detected),
        )


def _format_amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def favicon_url(url: str | None) -> str:
    """Favicon service URL for the article's source domain."""
    domain = _hostname(url) or FALLBACK_FAVICON_DOMAIN
    return FAVICON_TEMPLATE.format(domain=domain)


def _hostname(url: str | None) -> str | None:
    if not url:
        return None
    try:
        return urlparse(url.strip()).hostname
    except ValueError:
        return None


def resolve_domain(website: str | None) -> str | None:
    """Normalize a website URL to its bare host (no scheme, no ``www.``)."""
    candidate = (website or "").strip()
    if not candidate:
        return None
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    host = _hostname(candidate)
    if not host:
        logger.info("briefs.domain.unresolved", extra={"website": website})
        return None
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host or None


def company_logo_url(domain: str | None) -> str | None:
    return LOGO_TEMPLATE.format(domain=domain) if domain else None


def _convert_entries(
    entries: Iterable[dict[str, Any]],
    parse: Callable[[dict[str, Any]], _T],
    *,
    source: str,
    limit: int,
) -> list[_T]:
    items: list[_T] = []
    dropped = 0
    for entry in entries:
        if len(items) >= limit:
            break
        try:
            items.append(parse(entry))
        except ValidationError:
            dropped += 1
    if dropped:
        logger.info("briefs.signal.dropped_entries", extra={"source": source, "dropped": dropped})
    return items


class SignalFetcher(Generic[_T]):
    """Template for provider-backed fetchers with per-source degradation."""

    source: str = "signal"
    provider_errors: tuple[type[Exception], ...] = ()

    def __init__(self, client: Any | None, *, limit: int) -> None:
        self._client = client
        self._limit = limit

    @property
    def configured(self) -> bool:
        return self._client is not None

    def fetch(self, company_name: str, domain: str | None = None) -> list[_T]:
        """Return up to ``limit`` items, or an empty list on any provider failure."""
        if self._client is None:
            logger.info("briefs.signal.skipped", extra={"source": self.source, "reason": "not_configured"})
            return []
        try:
            items = self._fetch(company_name, domain)
        except self.provider_errors as exc:
            code = getattr(exc, "code", type(exc).__name__)
            logger.warning(
                "briefs.signal.degraded",
                extra={"source": self.source, "code": code, "company_name": company_name, "error": str(exc)},
            )
            metrics.increment("briefs.signal.degraded", tags={"source": self.source, "code": code})
            return []
        metrics.increment("briefs.signal.items", value=len(items), tags={"source": self.source})
        logger.info(
            "briefs.signal.fetched",
            extra={"source": self.source, "company_name": company_name, "items": len(items)},
        )
        return items

    def _fetch(self, company_name: str, domain: str | None) -> list[_T]:
        raise NotImplementedError


class NewsSignalFetcher(SignalFetcher[NewsItem]):
    """Recent business/technology coverage of the company."""

    source = "news"
    provider_errors = (NewsDataError,)

    def __init__(self, client: NewsSearchClient | None, *, limit: int = 8, page_size: int = 10) -> None:
        super().__init__(client, limit=limit)
        self._page_size = page_size

    def _fetch(self, company_name: str, domain: str | None) -> list[NewsItem]:
        entries = self._client.search_news(query=f'"{company_name}"', size=self._page_size)
        return _convert_entries(
            entries,
            lambda entry: RawNewsArticle.model_validate(entry).to_news_item(),
            source=self.source,
            limit=self._limit,
        )


class JobSignalFetcher(SignalFetcher[JobSignal]):
    """Full-time postings from the last month."""

    source = "jobs"
    provider_errors = (JSearchError,)

    def __init__(self, client: JobSearchClient | None, *, limit: int = 15) -> None:
        super().__init__(client, limit=limit)

    def _fetch(self, company_name: str, domain: str | None) -> list[JobSignal]:
        entries = self._client.search_jobs(query=f"{company_name} jobs")
        return _convert_entries(
            entries,
            lambda entry: RawJobPosting.model_validate(entry).to_job_signal(),
            source=self.source,
            limit=self._limit,
        )


class TechVerificationFetcher(SignalFetcher[TechStackItem]):
    """Technologies verified against the company's live domain."""

    source = "tech"
    provider_errors = (BuiltWithError,)

    def __init__(self, client: TechLookupClient | None, *, limit: int = 15) -> None:
        super().__init__(client, limit=limit)

    def fetch(self, company_name: str, domain: str | None = None) -> list[TechStackItem]:
        if not domain:
            logger.info("briefs.signal.skipped", extra={"source": self.source, "reason": "no_domain"})
            return []
        return super().fetch(company_name, domain)

    def _fetch(self, company_name: str, domain: str | None) -> list[TechStackItem]:
        entries = self._client.lookup_technologies(domain=domain or "")
        return _convert_entries(
            entries,
            lambda entry: RawTechnology.model_validate(entry).to_tech_item(),
            source=self.source,
            limit=self._limit,
        )
