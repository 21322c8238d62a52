"""Keyword-based technology inference used when verified data is unavailable."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from app.models.brief import Confidence, JobSignal, NewsItem, TechStackItem

logger = logging.getLogger(__name__)

MAX_INFERRED_TECHNOLOGIES: Final[int] = 12

SOURCE_JOB_SIGNAL: Final[str] = "job signal"
SOURCE_NEWS_SIGNAL: Final[str] = "news signal"
SOURCE_COMPANY_PROFILE: Final[str] = "company profile"
SOURCE_INDUSTRY_INFERENCE: Final[str] = "industry inference"
SOURCE_INDUSTRY_STANDARD: Final[str] = "industry standard"


@dataclass(frozen=True)
class TechPattern:
    """Keyword rule mapping free text onto a canonical technology."""

    name: str
    keywords: tuple[str, ...]
    category: str
    confidence: Confidence

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


_HIGH = Confidence.HIGH
_MEDIUM = Confidence.MEDIUM
_LOW = Confidence.LOW

# Table order is output order.
TECH_PATTERNS: Final[tuple[TechPattern, ...]] = (
    TechPattern("React", ("react", "react.js", "reactjs"), "Frontend", _HIGH),
    TechPattern("Vue.js", ("vue", "vue.js", "vuejs"), "Frontend", _HIGH),
    TechPattern("Angular", ("angular", "angularjs"), "Frontend", _HIGH),
    TechPattern("Next.js", ("next.js", "nextjs"), "Frontend", _MEDIUM),
    TechPattern("Svelte", ("svelte", "sveltekit"), "Frontend", _MEDIUM),
    TechPattern("Node.js", ("node", "nodejs", "node.js"), "Backend", _HIGH),
    TechPattern("Python", ("python", "django", "flask", "fastapi"), "Backend", _HIGH),
    TechPattern("Java", ("java", "spring", "spring boot"), "Backend", _HIGH),
    TechPattern("Go", ("golang", "go developer"), "Backend", _MEDIUM),
    TechPattern("Ruby", ("ruby", "rails", "ruby on rails"), "Backend", _MEDIUM),
    TechPattern("PHP", ("php", "laravel", "symfony"), "Backend", _MEDIUM),
    TechPattern("AWS", ("aws", "amazon web services", "ec2", "s3", "lambda"), "Cloud", _HIGH),
    TechPattern("Google Cloud", ("gcp", "google cloud", "firebase"), "Cloud", _HIGH),
    TechPattern("Microsoft Azure", ("azure", "microsoft azure"), "Cloud", _HIGH),
    TechPattern("Vercel", ("vercel",), "Cloud", _MEDIUM),
    TechPattern("Netlify", ("netlify",), "Cloud", _MEDIUM),
    TechPattern("Docker", ("docker", "container"), "DevOps", _HIGH),
    TechPattern("Kubernetes", ("kubernetes", "k8s"), "DevOps", _HIGH),
    TechPattern("Jenkins", ("jenkins",), "DevOps", _MEDIUM),
    TechPattern("GitHub Actions", ("github actions",), "DevOps", _MEDIUM),
    TechPattern("PostgreSQL", ("postgres", "postgresql"), "Database", _HIGH),
    TechPattern("MongoDB", ("mongo", "mongodb"), "Database", _HIGH),
    TechPattern("Redis", ("redis",), "Database", _MEDIUM),
    TechPattern("MySQL", ("mysql",), "Database", _MEDIUM),
    TechPattern("Elasticsearch", ("elasticsearch", "elastic"), "Database", _MEDIUM),
    TechPattern("TensorFlow", ("tensorflow", "tf"), "AI/ML", _HIGH),
    TechPattern("PyTorch", ("pytorch",), "AI/ML", _HIGH),
    TechPattern("OpenAI", ("openai", "gpt", "chatgpt"), "AI/ML", _MEDIUM),
    TechPattern("Hugging Face", ("hugging face", "transformers"), "AI/ML", _MEDIUM),
    TechPattern("TypeScript", ("typescript", "ts developer"), "Language", _HIGH),
    TechPattern("JavaScript", ("javascript", "js developer"), "Language", _HIGH),
    TechPattern("Rust", ("rust", "rust developer"), "Language", _MEDIUM),
    TechPattern("GraphQL", ("graphql",), "API", _MEDIUM),
    TechPattern("Apache Kafka", ("kafka", "apache kafka"), "Messaging", _MEDIUM),
    TechPattern("Stripe", ("stripe",), "Payments", _MEDIUM),
)

_AI_DATA_CUES: Final[tuple[str, ...]] = ("ai", "machine learning", "data")
_WEB_APP_CUES: Final[tuple[str, ...]] = ("web", "frontend", "app")


def _item(name: str, category: str, source: str) -> TechStackItem:
    return TechStackItem(name=name, confidence=_LOW, source=source, category=category)


AI_DATA_FALLBACK: Final[tuple[TechStackItem, ...]] = (
    _item("Python", "Backend", SOURCE_INDUSTRY_INFERENCE),
    _item("TensorFlow", "AI/ML", SOURCE_INDUSTRY_INFERENCE),
    _item("AWS", "Cloud", SOURCE_INDUSTRY_INFERENCE),
)
WEB_APP_FALLBACK: Final[tuple[TechStackItem, ...]] = (
    _item("JavaScript", "Language", SOURCE_INDUSTRY_INFERENCE),
    _item("React", "Frontend", SOURCE_INDUSTRY_INFERENCE),
    _item("Node.js", "Backend", SOURCE_INDUSTRY_INFERENCE),
)
GENERIC_FALLBACK: Final[tuple[TechStackItem, ...]] = (
    _item("Cloud Infrastructure", "Cloud", SOURCE_INDUSTRY_STANDARD),
    _item("Modern Web Stack", "Frontend", SOURCE_INDUSTRY_STANDARD),
)


class TechStackHeuristicEngine:
    """Infers a company's technology stack from names, job posts and news.

    Detection is plain substring containment over the case-folded corpus, so the
    result depends only on the input text: identical inputs always produce the
    same ordered list. When no pattern fires, a small industry-level default is
    returned instead so the stack is never empty.
    """

    def __init__(
        self,
        patterns: Sequence[TechPattern] = TECH_PATTERNS,
        *,
        max_items: int = MAX_INFERRED_TECHNOLOGIES,
    ) -> None:
        self._patterns = tuple(patterns)
        self._max_items = max_items

    def infer(
        self,
        company_name: str,
        website: str | None = None,
        job_signals: Sequence[JobSignal] = (),
        news: Sequence[NewsItem] = (),
    ) -> list[TechStackItem]:
        job_texts = [f"{job.title} {job.description}".lower() for job in job_signals]
        news_texts = [f"{item.title} {item.description}".lower() for item in news]
        corpus = " ".join(
            [company_name.lower(), (website or "").lower(), " ".join(job_texts), " ".join(news_texts)]
        )

        detected: list[TechStackItem] = []
        for pattern in self._patterns:
            if not pattern.matches(corpus):
                continue
            detected.append(
                TechStackItem(
                    name=pattern.name,
                    confidence=pattern.confidence,
                    source=_attribute_source(pattern, job_texts, news_texts),
                    category=pattern.category,
                )
            )

        if not detected:
            detected = list(_industry_fallback(corpus))
            logger.info(
                "briefs.tech.industry_fallback",
                extra={"company_name": company_name, "technologies": len(detected)},
            )

        return detected[: self._max_items]


def _attribute_source(pattern: TechPattern, job_texts: list[str], news_texts: list[str]) -> str:
    if any(pattern.matches(text) for text in job_texts):
        return SOURCE_JOB_SIGNAL
    if any(pattern.matches(text) for text in news_texts):
        return SOURCE_NEWS_SIGNAL
    return SOURCE_COMPANY_PROFILE


def _industry_fallback(corpus: str) -> tuple[TechStackItem, ...]:
    if any(cue in corpus for cue in _AI_DATA_CUES):
        return AI_DATA_FALLBACK
    if any(cue in corpus for cue in _WEB_APP_CUES):
        return WEB_APP_FALLBACK
    return GENERIC_FALLBACK
