"""Domain models for strategic briefs."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

VERIFIED_SOURCE = "verified"


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON shape shared with storage and API consumers."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Confidence(str, Enum):
    """How strongly a technology detection is supported."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class BriefRequest(CamelModel):
    """Inbound request for a new brief.

    Required fields are enforced by the pipeline, not by the schema, so that a
    missing company name surfaces as a validation error rather than a 422.
    """

    company_name: str | None = None
    website: str | None = None
    user_intent: str | None = None


class NewsItem(CamelModel):
    """Recent article mentioning the company."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    url: str
    published_at: datetime | None = None
    source: str = "News Source"
    source_favicon: str | None = None


class JobSignal(CamelModel):
    """Open position advertised by the company."""

    model_config = ConfigDict(frozen=True)

    title: str
    company: str = ""
    location: str = "Remote, Global"
    posted_date: datetime | None = None
    description: str = ""
    salary: str | None = None


class TechStackItem(CamelModel):
    """Technology attributed to the company, with provenance."""

    model_config = ConfigDict(frozen=True)

    name: str
    confidence: Confidence
    source: str
    category: str = "Other"
    first_detected: date | None = None

    @property
    def verified(self) -> bool:
        return self.source == VERIFIED_SOURCE


class IntelligenceSources(CamelModel):
    """Provenance summary derived from a brief's signal arrays."""

    news: int = 0
    jobs: int = 0
    technologies: int = 0
    verified_source_used: bool = False


PLACEHOLDER_SUMMARY = "Strategic analysis in progress..."
PLACEHOLDER_PITCH_ANGLE = "Personalized strategy being crafted..."
PLACEHOLDER_SUBJECT_LINE = "Subject line optimization pending..."
PLACEHOLDER_WHAT_NOT_TO_PITCH = "Risk assessment in progress..."
PLACEHOLDER_SIGNAL_TAG = "Signal analysis pending..."


class BriefInsights(CamelModel):
    """Model-authored outreach fields, pre-filled with placeholders."""

    summary: str = PLACEHOLDER_SUMMARY
    pitch_angle: str = PLACEHOLDER_PITCH_ANGLE
    subject_line: str = PLACEHOLDER_SUBJECT_LINE
    what_not_to_pitch: str = PLACEHOLDER_WHAT_NOT_TO_PITCH
    signal_tag: str = PLACEHOLDER_SIGNAL_TAG


class Brief(CamelModel):
    """Persisted aggregate of one pipeline run for one company."""

    id: UUID | None = None
    company_name: str
    website: str | None = None
    user_intent: str
    summary: str = PLACEHOLDER_SUMMARY
    pitch_angle: str = PLACEHOLDER_PITCH_ANGLE
    subject_line: str = PLACEHOLDER_SUBJECT_LINE
    what_not_to_pitch: str = PLACEHOLDER_WHAT_NOT_TO_PITCH
    signal_tag: str = PLACEHOLDER_SIGNAL_TAG
    news: list[NewsItem] = Field(default_factory=list)
    tech_stack: list[str] = Field(default_factory=list)
    tech_stack_data: list[TechStackItem] = Field(default_factory=list)
    job_signals: list[JobSignal] = Field(default_factory=list)
    intelligence_sources: IntelligenceSources = Field(default_factory=IntelligenceSources)
    hiring_trends: str = ""
    news_trends: str = ""
    company_logo: str | None = None
    created_at: datetime | None = None

    @model_validator(mode="after")
    def _derive_projections(self) -> "Brief":
        # techStack and intelligenceSources are never set independently.
        self.tech_stack = [item.name for item in self.tech_stack_data]
        self.intelligence_sources = IntelligenceSources(
            news=len(self.news),
            jobs=len(self.job_signals),
            technologies=len(self.tech_stack_data),
            verified_source_used=any(item.verified for item in self.tech_stack_data),
        )
        return self

    @classmethod
    def assemble(
        cls,
        request: BriefRequest,
        *,
        insights: BriefInsights,
        news: list[NewsItem],
        job_signals: list[JobSignal],
        tech_stack_data: list[TechStackItem],
        hiring_trends: str,
        news_trends: str,
        company_logo: str | None,
    ) -> "Brief":
        """Merge request, signals, trends and insights into an unsaved brief."""
        return cls(
            company_name=(request.company_name or "").strip(),
            website=(request.website or "").strip() or None,
            user_intent=(request.user_intent or "").strip(),
            summary=insights.summary,
            pitch_angle=insights.pitch_angle,
            subject_line=insights.subject_line,
            what_not_to_pitch=insights.what_not_to_pitch,
            signal_tag=insights.signal_tag,
            news=news,
            job_signals=job_signals,
            tech_stack_data=tech_stack_data,
            hiring_trends=hiring_trends,
            news_trends=news_trends,
            company_logo=company_logo,
        )
