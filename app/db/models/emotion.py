"""Emotional barometer models."""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .sessions import UserVessel


class ExerciseType:
    BREATHING_EXERCISE = "BREATHING_EXERCISE"
    BODY_SCAN = "BODY_SCAN"
    GROUNDING = "GROUNDING"
    PAUSE_SESSION = "PAUSE_SESSION"


class EmotionalReading(Base):
    """Append-only intensity reading scoped to a vessel."""

    __tablename__ = "emotional_readings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    vessel_id: Mapped[int] = mapped_column(ForeignKey("user_vessels.id", ondelete="CASCADE"), index=True)
    intensity: Mapped[int] = mapped_column(Integer)
    context: Mapped[str | None] = mapped_column(String(500), nullable=True)
    stage: Mapped[int] = mapped_column(Integer, default=0)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )

    vessel: Mapped["UserVessel"] = relationship(back_populates="readings")


class EmotionalExerciseCompletion(Base):
    __tablename__ = "emotional_exercise_completions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id: Mapped[str] = mapped_column(ForeignKey("sessions.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    type: Mapped[str] = mapped_column(String)
    intensity_before: Mapped[int | None] = mapped_column(Integer, nullable=True)
    intensity_after: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
