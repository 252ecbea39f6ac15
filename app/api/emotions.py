import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.models import EmotionalExerciseCompletion, EmotionalReading, StageProgress, StageStatus, User
from app.db.session import get_db
from app.schemas.common import ok
from app.schemas.emotion import (
    CompleteExerciseRequest,
    EmotionalReadingDTO,
    ExerciseCompletionDTO,
    ExerciseCompletionResponse,
    GetEmotionsResponse,
    ReadingItem,
    RecordEmotionRequest,
    RecordEmotionResponse,
)
from app.services.sessions import require_vessel, utcnow
from app.utils.deps import get_current_user

log = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["emotions"])

# Readings at or above this intensity suggest a regulation exercise
SUGGEST_EXERCISE_THRESHOLD = 8
READINGS_LIMIT = 50

@router.post("/{session_id}/emotions")
async def record_emotion(
    session_id: str,
    data: RecordEmotionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    vessel = await require_vessel(db, session_id, current_user.id)

    stage = await db.scalar(
        select(StageProgress.stage)
        .where(
            StageProgress.session_id == session_id,
            StageProgress.user_id == current_user.id,
            StageProgress.status.in_((StageStatus.IN_PROGRESS, StageStatus.GATE_PENDING)),
        )
        .order_by(StageProgress.stage.desc())
        .limit(1)
    )

    reading = EmotionalReading(
        vessel_id=vessel.id,
        intensity=data.intensity,
        context=data.context,
        stage=stage or 0,
        timestamp=utcnow(),
    )
    db.add(reading)
    await db.commit()
    await db.refresh(reading)

    suggest = data.intensity >= SUGGEST_EXERCISE_THRESHOLD
    if suggest:
        log.info("High intensity reading (%s) from user %s in session %s", data.intensity, current_user.id, session_id)

    return ok(RecordEmotionResponse(
        reading=EmotionalReadingDTO.model_validate(reading),
        suggest_exercise=suggest,
    ))

@router.get("/{session_id}/emotions")
async def get_emotions(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's own readings only, newest first."""
    vessel = await require_vessel(db, session_id, current_user.id)

    rows = await db.scalars(
        select(EmotionalReading)
        .where(EmotionalReading.vessel_id == vessel.id)
        .order_by(EmotionalReading.timestamp.desc(), EmotionalReading.id)
        .limit(READINGS_LIMIT)
    )
    return ok(GetEmotionsResponse(readings=[ReadingItem.model_validate(r) for r in rows]))

@router.post("/{session_id}/exercises/complete")
async def complete_exercise(
    session_id: str,
    data: CompleteExerciseRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_vessel(db, session_id, current_user.id)

    completion = EmotionalExerciseCompletion(
        session_id=session_id,
        user_id=current_user.id,
        type=data.type,
        intensity_before=data.intensity_before,
        intensity_after=data.intensity_after,
        completed_at=utcnow(),
    )
    db.add(completion)
    await db.commit()
    await db.refresh(completion)

    delta = None
    if data.intensity_before is not None and data.intensity_after is not None:
        delta = data.intensity_before - data.intensity_after

    return ok(ExerciseCompletionResponse(
        logged=True,
        completion=ExerciseCompletionDTO(
            id=completion.id,
            type=completion.type,
            completed_at=completion.completed_at,
            intensity_delta=delta,
        ),
    ))
