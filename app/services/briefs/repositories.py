"""Persistence backends for briefs."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Protocol
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from app.config import settings
from app.models.brief import Brief
from app.models.brief_record import BriefRecord
from app.observability.metrics import metrics
from app.services.briefs.errors import BriefPersistenceError

logger = logging.getLogger(__name__)


class BriefRepository(Protocol):
    """Persistence contract for briefs."""

    def insert(self, brief: Brief) -> Brief:
        ...

    def list_all(self) -> list[Brief]:
        ...

    def get(self, brief_id: UUID | str) -> Brief | None:
        ...

    def delete(self, brief_id: UUID | str) -> bool:
        ...

    def ping(self) -> bool:
        ...


class InMemoryBriefRepository(BriefRepository):
    """Thread-safe repository used for API/local development."""

    def __init__(self) -> None:
        self._briefs: dict[UUID, Brief] = {}
        self._lock = Lock()

    def insert(self, brief: Brief) -> Brief:
        persisted = brief.model_copy(
            update={"id": uuid4(), "created_at": datetime.now(timezone.utc)},
            deep=True,
        )
        with self._lock:
            self._briefs[persisted.id] = persisted
        metrics.increment("briefs.persistence.persisted", tags={"repository": "memory"})
        logger.info(
            "briefs.persistence.persisted",
            extra={"brief_id": str(persisted.id), "company_name": persisted.company_name, "backend": "memory"},
        )
        return persisted.model_copy(deep=True)

    def list_all(self) -> list[Brief]:
        with self._lock:
            briefs = list(self._briefs.values())
        ordered = sorted(briefs, key=lambda entry: entry.created_at, reverse=True)
        return [brief.model_copy(deep=True) for brief in ordered]

    def get(self, brief_id: UUID | str) -> Brief | None:
        key = _parse_brief_id(brief_id)
        if key is None:
            return None
        with self._lock:
            brief = self._briefs.get(key)
        return brief.model_copy(deep=True) if brief else None

    def delete(self, brief_id: UUID | str) -> bool:
        key = _parse_brief_id(brief_id)
        if key is None:
            return False
        with self._lock:
            return self._briefs.pop(key, None) is not None

    def ping(self) -> bool:
        return True


class SqlBriefRepository(BriefRepository):
    """SQLModel-backed repository that persists briefs to Postgres/Supabase or SQLite."""

    def __init__(
        self,
        database_url: str,
        *,
        pool_min_size: int | None = None,
        pool_max_size: int | None = None,
        auto_create_schema: bool = False,
    ) -> None:
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlBriefRepository.")

        parsed_url = make_url(database_url)
        sync_url, connect_args, drivername = _coerce_sync_database_url(parsed_url)
        pool_min = max(pool_min_size or settings.db_pool_min_size, 1)
        pool_max = max(pool_max_size or settings.db_pool_max_size, pool_min)
        max_overflow = max(pool_max - pool_min, 0)
        is_sqlite = drivername.startswith("sqlite")
        engine_kwargs: dict[str, Any] = {
            "echo": False,
            "connect_args": connect_args,
            "pool_pre_ping": not is_sqlite,
        }
        if not is_sqlite:
            engine_kwargs["pool_size"] = pool_min
            engine_kwargs["max_overflow"] = max_overflow

        self._engine: Engine = create_engine(sync_url, **engine_kwargs)
        if auto_create_schema:
            SQLModel.metadata.create_all(self._engine, tables=[BriefRecord.__table__])
        self._metrics_tags = {"repository": _resolve_metrics_tag(parsed_url, drivername)}

    def dispose(self) -> None:
        """Close the underlying SQLAlchemy engine."""
        self._engine.dispose()

    def insert(self, brief: Brief) -> Brief:
        record = BriefRecord.from_brief(brief.model_copy(update={"id": None, "created_at": None}))
        try:
            with self._session() as session:
                session.add(record)
                session.commit()
                session.refresh(record)
                persisted = record.to_brief()
        except SQLAlchemyError as exc:
            logger.exception(
                "briefs.persistence.error",
                extra={"company_name": brief.company_name, "backend": self._metrics_tags["repository"]},
            )
            raise BriefPersistenceError("Failed to save brief.", code="500_INTERNAL") from exc
        metrics.increment("briefs.persistence.persisted", tags=self._metrics_tags)
        logger.info(
            "briefs.persistence.persisted",
            extra={
                "brief_id": str(persisted.id),
                "company_name": persisted.company_name,
                "backend": self._metrics_tags["repository"],
            },
        )
        return persisted

    def list_all(self) -> list[Brief]:
        try:
            with self._session() as session:
                statement = select(BriefRecord).order_by(BriefRecord.created_at.desc())
                records = session.exec(statement).all()
                return [record.to_brief() for record in records]
        except SQLAlchemyError as exc:
            logger.exception("briefs.persistence.error", extra={"backend": self._metrics_tags["repository"]})
            raise BriefPersistenceError("Failed to list briefs.", code="500_INTERNAL") from exc

    def get(self, brief_id: UUID | str) -> Brief | None:
        key = _parse_brief_id(brief_id)
        if key is None:
            return None
        try:
            with self._session() as session:
                record = session.get(BriefRecord, key)
                return record.to_brief() if record else None
        except SQLAlchemyError as exc:
            logger.exception(
                "briefs.persistence.error",
                extra={"brief_id": str(key), "backend": self._metrics_tags["repository"]},
            )
            raise BriefPersistenceError("Failed to load brief.", code="500_INTERNAL") from exc

    def delete(self, brief_id: UUID | str) -> bool:
        key = _parse_brief_id(brief_id)
        if key is None:
            return False
        try:
            with self._session() as session:
                record = session.get(BriefRecord, key)
                if record is None:
                    return False
                session.delete(record)
                session.commit()
                return True
        except SQLAlchemyError as exc:
            logger.exception(
                "briefs.persistence.error",
                extra={"brief_id": str(key), "backend": self._metrics_tags["repository"]},
            )
            raise BriefPersistenceError("Failed to delete brief.", code="500_INTERNAL") from exc

    def ping(self) -> bool:
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with Session(self._engine) as session:
            yield session


def _parse_brief_id(brief_id: UUID | str) -> UUID | None:
    if isinstance(brief_id, UUID):
        return brief_id
    try:
        return UUID(str(brief_id))
    except ValueError:
        return None


def _coerce_sync_database_url(url: URL) -> tuple[str, dict[str, Any], str]:
    """Convert async connection strings into sync SQLAlchemy URLs."""
    drivername = url.drivername
    connect_args: dict[str, Any] = {}
    if drivername.endswith("+asyncpg"):
        drivername = drivername.replace("+asyncpg", "+psycopg2")
    elif drivername.endswith("+psycopg"):
        drivername = drivername.replace("+psycopg", "+psycopg2")
    elif drivername.endswith("+aiosqlite"):
        drivername = drivername.replace("+aiosqlite", "")
    sync_url = url.set(drivername=drivername)
    query = dict(sync_url.query) if sync_url.query else {}
    removed_ssl = query.pop("ssl", None) is not None
    sync_url = sync_url.set(query=query)

    host = (url.host or "").lower()
    if drivername.startswith("postgresql"):
        if "sslmode" not in query and (removed_ssl or "supabase.co" in host):
            connect_args["sslmode"] = "require"
    if drivername.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    return sync_url.render_as_string(hide_password=False), connect_args, drivername


def _resolve_metrics_tag(url: URL, drivername: str) -> str:
    host = (url.host or "").lower()
    if "supabase.co" in host:
        return "supabase"
    if drivername.startswith("sqlite"):
        return "sqlite"
    return "postgres"


def build_brief_repository(database_url: str | None = None) -> BriefRepository:
    """Instantiate a BriefRepository using DATABASE_URL when available."""
    resolved_url = database_url or settings.database_url
    if not resolved_url:
        logger.info("briefs.repository.initialized", extra={"backend": "memory"})
        return InMemoryBriefRepository()
    try:
        repository = SqlBriefRepository(
            resolved_url,
            pool_min_size=settings.db_pool_min_size,
            pool_max_size=settings.db_pool_max_size,
            auto_create_schema=settings.db_auto_create_schema,
        )
        logger.info("briefs.repository.initialized", extra={"backend": "database"})
        return repository
    except Exception:
        logger.exception("briefs.repository.init_failed", extra={"backend": "database"})
        raise
