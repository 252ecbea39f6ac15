from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from app.schemas.common import CamelModel

ExerciseTypeLiteral = Literal["BREATHING_EXERCISE", "BODY_SCAN", "GROUNDING", "PAUSE_SESSION"]

def _numeric_only(value):
    # Whole-number floats like 5.0 are fine, numeric strings are not
    if isinstance(value, (str, bool)):
        raise ValueError("Input should be a number")
    return value

# ── Requests ──────────────────────────────────────────────────
class RecordEmotionRequest(CamelModel):
    intensity: int = Field(ge=1, le=10)
    context: str | None = Field(default=None, max_length=500)

    @field_validator("intensity", mode="before")
    @classmethod
    def intensity_is_numeric(cls, v):
        return _numeric_only(v)

class CompleteExerciseRequest(CamelModel):
    type: ExerciseTypeLiteral
    intensity_before: int | None = Field(default=None, ge=1, le=10)
    intensity_after: int | None = Field(default=None, ge=1, le=10)

    @field_validator("intensity_before", "intensity_after", mode="before")
    @classmethod
    def intensities_are_numeric(cls, v):
        return _numeric_only(v)

# ── Responses ─────────────────────────────────────────────────
class EmotionalReadingDTO(CamelModel):
    id: str
    intensity: int
    timestamp: datetime

class RecordEmotionResponse(CamelModel):
    reading: EmotionalReadingDTO
    suggest_exercise: bool

class ReadingItem(CamelModel):
    id: str
    intensity: int
    context: str | None = None
    stage: int
    timestamp: datetime

class GetEmotionsResponse(CamelModel):
    readings: list[ReadingItem]

class ExerciseCompletionDTO(CamelModel):
    id: str
    type: str
    completed_at: datetime
    intensity_delta: int | None = None

class ExerciseCompletionResponse(CamelModel):
    logged: bool
    completion: ExerciseCompletionDTO
