"""Derived hiring and news trend summaries."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Final

from app.models.brief import JobSignal, NewsItem

NO_HIRING_ACTIVITY: Final[str] = "no hiring activity detected"
NO_NEWS_COVERAGE: Final[str] = "no recent news coverage"
RECENT_WINDOW_DAYS: Final[int] = 7

# Enumeration order is reporting order.
DEPARTMENT_KEYWORDS: Final[tuple[tuple[str, tuple[str, ...]], ...]] = (
    ("AI/ML", ("ai", "machine learning", "data scientist", "ml engineer")),
    ("Engineering", ("engineer", "developer", "architect", "tech lead")),
    ("DevOps", ("devops", "sre", "infrastructure", "cloud")),
    ("Product", ("product manager", "product owner", "pm")),
    ("Sales", ("sales", "account", "business development")),
    ("Marketing", ("marketing", "growth", "content")),
)

# Enumeration order is the tie-break: the first set to reach a strictly higher
# count wins, and neutral is reported when nothing matches.
SENTIMENT_KEYWORDS: Final[tuple[tuple[str, tuple[str, ...]], ...]] = (
    (
        "positive",
        ("funding", "raised", "growth", "expansion", "launch", "partnership", "acquisition", "success"),
    ),
    ("negative", ("layoffs", "cuts", "decline", "loss", "controversy", "investigation")),
    ("neutral", ("announces", "reports", "updates", "changes")),
)


def extract_hiring_trends(job_signals: Sequence[JobSignal]) -> str:
    """Summarize open roles by department and dominant location."""
    if not job_signals:
        return NO_HIRING_ACTIVITY

    titles = [job.title.lower() for job in job_signals]
    trends: list[str] = []
    for department, keywords in DEPARTMENT_KEYWORDS:
        count = sum(1 for title in titles if any(keyword in title for keyword in keywords))
        if count:
            trends.append(f"{count} {department} roles")

    if not trends:
        return f"{len(job_signals)} open positions across various departments"

    top_region = dominant_region(job_signals)
    suffix = f" (primarily {top_region})" if top_region else ""
    return f"Active hiring: {', '.join(trends)}{suffix}"


def dominant_region(job_signals: Sequence[JobSignal]) -> str | None:
    """Most common region among postings; ties go to the first seen."""
    regions = Counter(_region_of(job.location) for job in job_signals)
    if not regions:
        return None
    return regions.most_common(1)[0][0]


def _region_of(location: str) -> str:
    parts = location.split(",")
    if len(parts) > 1 and parts[1].strip():
        return parts[1].strip()
    return location


def classify_news_sentiment(news: Sequence[NewsItem]) -> str:
    headlines = " ".join(item.title.lower() for item in news)
    sentiment = "neutral"
    best = 0
    for label, keywords in SENTIMENT_KEYWORDS:
        count = sum(1 for keyword in keywords if keyword in headlines)
        if count > best:
            best = count
            sentiment = label
    return sentiment


def count_recent_articles(news: Sequence[NewsItem], *, now: datetime | None = None) -> int:
    reference = now or datetime.now(timezone.utc)
    recent = 0
    for item in news:
        if item.published_at is None:
            continue
        published = item.published_at
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        if (reference - published).days <= RECENT_WINDOW_DAYS:
            recent += 1
    return recent


def extract_news_trends(news: Sequence[NewsItem], *, now: datetime | None = None) -> str:
    """Summarize coverage volume, weekly recency and headline tone."""
    if not news:
        return NO_NEWS_COVERAGE
    recent = count_recent_articles(news, now=now)
    sentiment = classify_news_sentiment(news)
    return f"{len(news)} recent articles ({recent} this week) - {sentiment} sentiment"
