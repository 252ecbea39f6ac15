"""Per-user stage progress tracking."""

from datetime import datetime, timezone

from sqlalchemy import Integer, String, ForeignKey, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Stage:
    COMPACT = 0
    WITNESS = 1
    EMPATHY = 2
    NEEDS = 3
    STRATEGIES = 4

    FIRST = COMPACT
    LAST = STRATEGIES

    NAMES = {
        COMPACT: "COMPACT",
        WITNESS: "WITNESS",
        EMPATHY: "EMPATHY",
        NEEDS: "NEEDS",
        STRATEGIES: "STRATEGIES",
    }


class StageStatus:
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    GATE_PENDING = "GATE_PENDING"
    COMPLETED = "COMPLETED"


class StageProgress(Base):
    """One row per (session, user, stage)."""

    __tablename__ = "stage_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(ForeignKey("sessions.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    stage: Mapped[int] = mapped_column(Integer, default=Stage.COMPACT)
    status: Mapped[str] = mapped_column(String, default=StageStatus.NOT_STARTED)

    # Facts recorded by stage actions, e.g. {"compactSigned": true}
    gates_satisfied: Mapped[dict] = mapped_column(JSON, default=dict)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_stage_progress_session_user_stage", "session_id", "user_id", "stage", unique=True),
    )
