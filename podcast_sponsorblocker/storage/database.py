"""Durable storage of analysis results and requested episode URLs.

Results live in the ``podcasts`` table keyed by the normalized episode URL.
``requested_urls`` counts how often clients asked for an episode that has not
been analyzed yet, so an operator can decide what to process next.
"""

import json
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from podcast_sponsorblocker.errors import PersistenceFailedError
from podcast_sponsorblocker.identity import normalize_locator
from podcast_sponsorblocker.models import AdSegment, AnalysisResult, CostMetrics
from podcast_sponsorblocker.utils.constant import DATABASE_URL
from podcast_sponsorblocker.utils.logging_config import get_logger

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PodcastRecord(SQLModel, table=True):
    __tablename__ = "podcasts"

    id: Optional[int] = Field(default=None, primary_key=True)
    url: str = Field(unique=True, index=True)
    title: Optional[str] = Field(default=None)
    segments: str = Field(default="[]")  # JSON list of AdSegment
    cost_data: Optional[str] = Field(default=None)  # JSON CostMetrics
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def to_result(self) -> AnalysisResult:
        segments = [AdSegment.model_validate(item) for item in json.loads(self.segments or "[]")]
        cost = CostMetrics.model_validate_json(self.cost_data) if self.cost_data else None
        return AnalysisResult(
            url=self.url,
            title=self.title or "",
            segments=segments,
            cost=cost,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class RequestedUrl(SQLModel, table=True):
    __tablename__ = "requested_urls"

    id: Optional[int] = Field(default=None, primary_key=True)
    url: str = Field(unique=True, index=True)
    request_count: int = Field(default=1)
    first_requested_at: datetime = Field(default_factory=_now)
    last_requested_at: datetime = Field(default_factory=_now)


def create_db_engine(database_url: str = DATABASE_URL) -> Engine:
    """Create an engine for ``database_url``.

    SQLite connections are shared with worker threads, and in-memory SQLite
    keeps a single connection so every session sees the same database.
    """
    kwargs: dict = {"echo": False}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            db_path = database_url.split("sqlite:///", 1)[-1]
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, **kwargs)


class PodcastRepository:
    """Read and write analysis results and request tracking.

    Every URL passed in is normalized before it touches the database, so
    callers may hand over raw locators or identity keys alike.

    Args:
        engine: SQLAlchemy engine; a new one for ``DATABASE_URL`` when omitted.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine or create_db_engine()

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        try:
            with Session(self.engine) as session:
                yield session
        except SQLAlchemyError as exc:
            raise PersistenceFailedError(f"Failed to {action}: {exc}") from exc

    def init_db(self) -> None:
        """Create missing tables and bring stored URLs to normalized form."""
        try:
            SQLModel.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise PersistenceFailedError(f"Failed to initialize database: {exc}") from exc
        self.migrate_normalized_urls()

    def migrate_normalized_urls(self) -> int:
        """Rewrite stored URLs to their identity key.

        A row whose normalized URL already exists is a duplicate and is
        deleted. Requested URLs that have been analyzed since are removed.

        Returns:
            Number of rows rewritten or deleted.
        """
        changed = 0
        with self._session("migrate stored URLs") as session:
            for model in (PodcastRecord, RequestedUrl):
                rows = session.exec(select(model).order_by(model.id)).all()
                seen = {row.url for row in rows}
                for row in rows:
                    normalized = normalize_locator(row.url)
                    if normalized == row.url:
                        continue
                    if normalized in seen:
                        logger.info(f"[DB] Removing duplicate {model.__tablename__} row: {row.url}")
                        session.delete(row)
                    else:
                        logger.info(f"[DB] Migrated URL: {row.url} -> {normalized}")
                        seen.discard(row.url)
                        seen.add(normalized)
                        row.url = normalized
                        session.add(row)
                    changed += 1
                session.flush()

            analyzed = set(session.exec(select(PodcastRecord.url)).all())
            for row in session.exec(select(RequestedUrl)).all():
                if row.url in analyzed:
                    session.delete(row)
                    changed += 1
            session.commit()
        return changed

    def get(self, url: str) -> AnalysisResult | None:
        """Return the stored result for ``url`` or ``None``."""
        identity = normalize_locator(url)
        with self._session("load podcast") as session:
            record = session.exec(select(PodcastRecord).where(PodcastRecord.url == identity)).first()
            return record.to_result() if record else None

    def save(
        self,
        url: str,
        title: str,
        segments: Sequence[AdSegment],
        cost: CostMetrics | None = None,
    ) -> AnalysisResult:
        """Insert or overwrite the result for ``url``.

        On overwrite the title and ``created_at`` of the first analysis are
        kept; segments, cost and ``updated_at`` are replaced.
        """
        identity = normalize_locator(url)
        segments_json = json.dumps([seg.model_dump(mode="json") for seg in segments])
        cost_json = cost.model_dump_json() if cost is not None else None
        with self._session("save podcast") as session:
            record = session.exec(select(PodcastRecord).where(PodcastRecord.url == identity)).first()
            if record is None:
                record = PodcastRecord(
                    url=identity, title=title, segments=segments_json, cost_data=cost_json
                )
            else:
                record.segments = segments_json
                record.cost_data = cost_json
                record.updated_at = _now()
            session.add(record)
            session.commit()
            session.refresh(record)
            return record.to_result()

    def list_all(self) -> list[AnalysisResult]:
        """Return every stored result, newest first."""
        with self._session("list podcasts") as session:
            records = session.exec(
                select(PodcastRecord).order_by(
                    PodcastRecord.created_at.desc(), PodcastRecord.id.desc()
                )
            ).all()
            return [record.to_result() for record in records]

    def track_requested(self, url: str) -> RequestedUrl:
        """Record a request for an episode that has no result yet."""
        identity = normalize_locator(url)
        with self._session("track requested URL") as session:
            row = session.exec(select(RequestedUrl).where(RequestedUrl.url == identity)).first()
            if row is None:
                row = RequestedUrl(url=identity)
            else:
                row.request_count += 1
                row.last_requested_at = _now()
            session.add(row)
            session.commit()
            session.refresh(row)
            return row

    def is_requested(self, url: str) -> bool:
        identity = normalize_locator(url)
        with self._session("look up requested URL") as session:
            row = session.exec(select(RequestedUrl).where(RequestedUrl.url == identity)).first()
            return row is not None

    def list_requested(self) -> list[RequestedUrl]:
        """Return requested URLs, most recently requested first."""
        with self._session("list requested URLs") as session:
            return list(
                session.exec(
                    select(RequestedUrl).order_by(
                        RequestedUrl.last_requested_at.desc(), RequestedUrl.id.desc()
                    )
                ).all()
            )

    def delete_requested(self, url: str) -> None:
        """Forget request tracking for ``url``."""
        identity = normalize_locator(url)
        with self._session("delete requested URL") as session:
            row = session.exec(select(RequestedUrl).where(RequestedUrl.url == identity)).first()
            if row is not None:
                session.delete(row)
                session.commit()
