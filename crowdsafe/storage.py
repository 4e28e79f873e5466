# crowdsafe/storage.py
from __future__ import annotations
import os, uuid
from datetime import datetime, timezone
from typing import Optional, List

from sqlalchemy import create_engine, String, Integer, Float, DateTime, JSON, select, or_, and_
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Mapped, mapped_column

from crowdsafe.errors import UnknownCursorError
from crowdsafe.models import AnalysisResult

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL not set")

# Heroku/Railway style URLs
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

engine = create_engine(DATABASE_URL, future=True, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

IS_SQLITE = DATABASE_URL.startswith("sqlite")

if IS_SQLITE:
    UUID_TYPE = String(36)
    JSON_TYPE = JSON
    def UUID_DEFAULT() -> str:
        return str(uuid.uuid4())
else:
    from sqlalchemy.dialects.postgresql import UUID as PG_UUID, JSONB as PG_JSONB
    UUID_TYPE = PG_UUID(as_uuid=True)
    JSON_TYPE = PG_JSONB
    UUID_DEFAULT = uuid.uuid4


def _utcnow() -> datetime:
    # set client side so rows inserted within the same second still order
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class VideoAnalysis(Base):
    __tablename__ = "video_analysis"
    id: Mapped[str] = mapped_column(UUID_TYPE, primary_key=True, default=UUID_DEFAULT)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    user_id: Mapped[Optional[str]] = mapped_column(UUID_TYPE, nullable=True)
    video_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    file_path: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    total_people: Mapped[int] = mapped_column(Integer, nullable=False)
    crowd_level: Mapped[str] = mapped_column(String(16), nullable=False)  # "Safe" | "Warning" | "Critical"
    average_density: Mapped[float] = mapped_column(Float, nullable=False)
    safe_zones: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    warning_zones: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    danger_zones: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    alerts: Mapped[list] = mapped_column(JSON_TYPE, nullable=False, default=list)


Base.metadata.create_all(bind=engine)


def _db():
    return SessionLocal()


def _key(analysis_id: str):
    return analysis_id if IS_SQLITE else uuid.UUID(analysis_id)


def _aware(ts: datetime) -> datetime:
    # SQLite drops the offset; stored values are UTC
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


def _row_dict(row: VideoAnalysis) -> dict:
    return {
        "id": str(row.id),
        "created_at": _aware(row.created_at).isoformat(),
        "user_id": str(row.user_id) if row.user_id else None,
        "video_url": row.video_url,
        "file_path": row.file_path,
        "total_people": row.total_people,
        "crowd_level": row.crowd_level,
        "average_density": row.average_density,
        "safe_zones": row.safe_zones,
        "warning_zones": row.warning_zones,
        "danger_zones": row.danger_zones,
        "alerts": row.alerts or [],
    }


def save_analysis(result: AnalysisResult, video_path: Optional[str] = None,
                  video_url: Optional[str] = None, user_id: Optional[str] = None) -> dict:
    with _db() as db:
        row = VideoAnalysis(
            user_id=_key(user_id) if user_id else None,
            video_url=video_url or None,
            file_path=video_path or None,
            total_people=result.total_people,
            crowd_level=result.crowd_level,
            average_density=result.average_density,
            safe_zones=result.safe_zones,
            warning_zones=result.warning_zones,
            danger_zones=result.danger_zones,
            alerts=[a.model_dump() for a in result.alerts],
        )
        db.add(row); db.commit(); db.refresh(row)
        return _row_dict(row)


def _get_row(db, analysis_id: str) -> Optional[VideoAnalysis]:
    try:
        key = _key(analysis_id)
    except ValueError:
        return None
    return db.execute(select(VideoAnalysis).where(VideoAnalysis.id == key)).scalar_one_or_none()


def get_analysis(analysis_id: str) -> Optional[dict]:
    with _db() as db:
        row = _get_row(db, analysis_id)
        return _row_dict(row) if row else None


def list_analyses(limit: int = 10, before: Optional[str] = None) -> List[dict]:
    """Newest first. `before` is the id of the last row of the previous page; unknown ids raise UnknownCursorError."""
    with _db() as db:
        stmt = select(VideoAnalysis)
        if before:
            cursor = _get_row(db, before)
            if cursor is None:
                raise UnknownCursorError()
            stmt = stmt.where(or_(
                VideoAnalysis.created_at < cursor.created_at,
                and_(VideoAnalysis.created_at == cursor.created_at, VideoAnalysis.id < cursor.id),
            ))
        stmt = stmt.order_by(VideoAnalysis.created_at.desc(), VideoAnalysis.id.desc()).limit(limit)
        return [_row_dict(r) for r in db.execute(stmt).scalars().all()]


def list_analyses_after(after: Optional[str] = None, limit: int = 50) -> List[dict]:
    """
    Oldest first, strictly newer than the `after` row.
    Without a cursor, returns the newest `limit` rows in ascending order.
    A cursor that matches no row raises UnknownCursorError.
    """
    with _db() as db:
        if not after:
            stmt = (select(VideoAnalysis)
                    .order_by(VideoAnalysis.created_at.desc(), VideoAnalysis.id.desc())
                    .limit(limit))
            rows = list(reversed(db.execute(stmt).scalars().all()))
            return [_row_dict(r) for r in rows]

        cursor = _get_row(db, after)
        if cursor is None:
            raise UnknownCursorError()
        stmt = (select(VideoAnalysis)
                .where(or_(
                    VideoAnalysis.created_at > cursor.created_at,
                    and_(VideoAnalysis.created_at == cursor.created_at, VideoAnalysis.id > cursor.id),
                ))
                .order_by(VideoAnalysis.created_at.asc(), VideoAnalysis.id.asc())
                .limit(limit))
        return [_row_dict(r) for r in db.execute(stmt).scalars().all()]


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    with engine.connect() as conn:
        conn.exec_driver_sql("SELECT 1")
