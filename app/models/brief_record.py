"""SQLModel mapping for stored briefs."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql import expression
from sqlmodel import Field, SQLModel

from app.models.brief import Brief


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


JSON_BACKING_TYPE = sa.JSON().with_variant(JSONB(astext_type=sa.Text()), "postgresql")


class UtcNow(expression.FunctionElement):
    """Dialect-aware server default that pins timestamps to UTC."""

    type = DateTime(timezone=True)
    inherit_cache = True


@compiles(UtcNow)
def _utc_now_default(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "CURRENT_TIMESTAMP"


@compiles(UtcNow, "postgresql")
def _utc_now_default_postgres(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "timezone('utc', now())"


class BriefRecord(SQLModel, table=True):
    """ORM model for persisted Brief rows."""

    __tablename__ = "briefs"
    __table_args__ = (sa.Index("ix_briefs_created_at", "created_at"),)

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    company_name: str = Field(sa_column=Column(Text, nullable=False))
    website: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    user_intent: str = Field(sa_column=Column(Text, nullable=False))
    summary: str = Field(sa_column=Column(Text, nullable=False))
    pitch_angle: str = Field(sa_column=Column(Text, nullable=False))
    subject_line: str = Field(sa_column=Column(Text, nullable=False))
    what_not_to_pitch: str = Field(sa_column=Column(Text, nullable=False))
    signal_tag: str = Field(sa_column=Column(Text, nullable=False))
    news: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON_BACKING_TYPE, nullable=False),
    )
    tech_stack: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON_BACKING_TYPE, nullable=False),
    )
    tech_stack_data: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON_BACKING_TYPE, nullable=False),
    )
    job_signals: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON_BACKING_TYPE, nullable=False),
    )
    intelligence_sources: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON_BACKING_TYPE, nullable=False),
    )
    hiring_trends: str = Field(sa_column=Column(Text, nullable=False))
    news_trends: str = Field(sa_column=Column(Text, nullable=False))
    company_logo: str | None = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=UtcNow(),
        ),
    )

    @classmethod
    def from_brief(cls, brief: Brief) -> BriefRecord:
        """Convert an unsaved Brief into a persistence row with a fresh identity."""
        payload = brief.to_payload()
        return cls(
            id=brief.id or uuid4(),
            company_name=brief.company_name,
            website=brief.website,
            user_intent=brief.user_intent,
            summary=brief.summary,
            pitch_angle=brief.pitch_angle,
            subject_line=brief.subject_line,
            what_not_to_pitch=brief.what_not_to_pitch,
            signal_tag=brief.signal_tag,
            news=payload["news"],
            tech_stack=payload["techStack"],
            tech_stack_data=payload["techStackData"],
            job_signals=payload["jobSignals"],
            intelligence_sources=payload["intelligenceSources"],
            hiring_trends=brief.hiring_trends,
            news_trends=brief.news_trends,
            company_logo=brief.company_logo,
            created_at=brief.created_at or _utcnow(),
        )

    def to_brief(self) -> Brief:
        """Hydrate a Brief domain model from the stored row."""
        created_at = self.created_at
        if created_at is not None and created_at.tzinfo is None:
            # SQLite drops tzinfo on round trip; stored values are always UTC.
            created_at = created_at.replace(tzinfo=timezone.utc)
        return Brief(
            id=self.id,
            company_name=self.company_name,
            website=self.website,
            user_intent=self.user_intent,
            summary=self.summary,
            pitch_angle=self.pitch_angle,
            subject_line=self.subject_line,
            what_not_to_pitch=self.what_not_to_pitch,
            signal_tag=self.signal_tag,
            news=self.news,
            tech_stack_data=self.tech_stack_data,
            job_signals=self.job_signals,
            hiring_trends=self.hiring_trends,
            news_trends=self.news_trends,
            company_logo=self.company_logo,
            created_at=created_at,
        )
