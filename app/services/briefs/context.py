"""Bounded dossier assembled from request fields, signals and trends."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final

from app.models.brief import JobSignal, NewsItem, TechStackItem
from app.services.briefs.formatting import format_relative_date, truncate_text

NEWS_DESCRIPTION_CHARS: Final[int] = 150
JOB_DESCRIPTION_CHARS: Final[int] = 200

EMPTY_NEWS: Final[str] = "No recent news coverage found in business/tech media"
EMPTY_JOBS: Final[str] = "No recent job postings detected"
EMPTY_TECH: Final[str] = "Technology stack not detected"
NOT_PROVIDED: Final[str] = "Not provided"


@dataclass(frozen=True)
class BriefContext:
    """Everything the insight generator is allowed to see."""

    company_name: str
    user_intent: str
    website: str | None = None
    domain: str | None = None
    news: Sequence[NewsItem] = field(default_factory=tuple)
    job_signals: Sequence[JobSignal] = field(default_factory=tuple)
    tech_stack: Sequence[TechStackItem] = field(default_factory=tuple)
    hiring_trends: str = ""
    news_trends: str = ""


class ContextBuilder:
    """Renders a BriefContext as a plain-text dossier for the model.

    Every description is clipped so that prompt size stays bounded regardless of
    what the providers return, and empty sections are replaced by an explicit
    sentence rather than left blank.
    """

    def __init__(
        self,
        *,
        news_chars: int = NEWS_DESCRIPTION_CHARS,
        job_chars: int = JOB_DESCRIPTION_CHARS,
    ) -> None:
        self._news_chars = news_chars
        self._job_chars = job_chars

    def build(self, context: BriefContext, *, now: datetime | None = None) -> str:
        sections = [
            f"COMPANY: {context.company_name}",
            f"DOMAIN: {context.domain or NOT_PROVIDED}",
            f"WEBSITE: {context.website or NOT_PROVIDED}",
            f"USER INTENT: {context.user_intent}",
            "",
            "=== REAL-TIME INTELLIGENCE DATA ===",
            "",
            f"RECENT NEWS COVERAGE ({len(context.news)} articles):",
            self.news_section(context.news, now=now),
            "",
            f"CURRENT HIRING ACTIVITY ({len(context.job_signals)} positions):",
            self.jobs_section(context.job_signals, now=now),
            "",
            f"TECHNOLOGY INFRASTRUCTURE ({len(context.tech_stack)} technologies):",
            self.tech_section(context.tech_stack),
            "",
            "HIRING TRENDS ANALYSIS:",
            context.hiring_trends,
            "",
            "NEWS SENTIMENT & TRENDS:",
            context.news_trends,
        ]
        return "\n".join(sections)

    def news_section(self, news: Sequence[NewsItem], *, now: datetime | None = None) -> str:
        if not news:
            return EMPTY_NEWS
        return "\n".join(
            f'• "{item.title}" ({item.source}, {format_relative_date(item.published_at, now=now)})'
            f" - {truncate_text(item.description, self._news_chars)}"
            for item in news
        )

    def jobs_section(self, job_signals: Sequence[JobSignal], *, now: datetime | None = None) -> str:
        if not job_signals:
            return EMPTY_JOBS
        lines = []
        for job in job_signals:
            posted = format_relative_date(job.posted_date, now=now)
            salary = f" - {job.salary}" if job.salary else ""
            lines.append(
                f"• {job.title} - {job.location} (Posted: {posted}){salary}\n"
                f"  Description: {truncate_text(job.description, self._job_chars)}"
            )
        return "\n".join(lines)

    def tech_section(self, tech_stack: Sequence[TechStackItem]) -> str:
        if not tech_stack:
            return EMPTY_TECH
        lines = []
        for item in tech_stack:
            verified = ", verified by BuiltWith" if item.verified else ""
            lines.append(f"• {item.name} ({item.confidence.value} confidence, {item.category}{verified})")
        return "\n".join(lines)
