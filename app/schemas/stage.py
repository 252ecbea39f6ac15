from datetime import datetime
from typing import Literal

from pydantic import Field

from app.schemas.common import CamelModel

StageStatusLiteral = Literal["NOT_STARTED", "IN_PROGRESS", "GATE_PENDING", "COMPLETED"]


class GateDTO(CamelModel):
    id: str
    description: str
    satisfied: bool
    required_for_advance: bool
    soft: bool = False


class StageProgressResponse(CamelModel):
    stage: int
    status: StageStatusLiteral
    started_at: datetime | None = None
    completed_at: datetime | None = None
    partner_stage: int
    partner_status: StageStatusLiteral
    can_advance: bool
    advance_blocked_reason: str | None = None
    gates: list[GateDTO]


class AdvanceStageRequest(CamelModel):
    force: bool = False


class AdvanceStageResponse(CamelModel):
    advanced: bool
    new_stage: int = Field(ge=0, le=4)
    new_status: StageStatusLiteral
    advanced_at: datetime | None = None
    blocked_reason: str | None = None


# ── Stage 0: Compact ──────────────────────────────────────────
class SignCompactRequest(CamelModel):
    agreed: Literal[True]


class SignCompactResponse(CamelModel):
    signed: bool
    signed_at: datetime
    partner_signed: bool
    can_advance: bool


# ── Stage 1: Witness ──────────────────────────────────────────
class FeelHeardRequest(CamelModel):
    confirmed: bool
    feedback: str | None = Field(default=None, max_length=500)


class FeelHeardResponse(CamelModel):
    confirmed: bool
    confirmed_at: datetime | None = None
    can_advance: bool
