from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field

from app.schemas.common import CamelModel

SessionStatusLiteral = Literal["CREATED", "INVITED", "ACTIVE", "PAUSED", "RESOLVED", "ABANDONED"]


class CreateSessionRequest(CamelModel):
    invite_email: EmailStr
    invite_name: str | None = Field(default=None, max_length=100)
    context: str | None = Field(default=None, max_length=500)


class PartnerDTO(CamelModel):
    id: int | None = None
    name: str | None = None


class SessionSummaryDTO(CamelModel):
    id: str
    status: SessionStatusLiteral
    created_at: datetime
    updated_at: datetime
    partner: PartnerDTO | None = None
    my_stage: int
    my_stage_status: str
    partner_stage: int | None = None
    partner_stage_status: str | None = None


class SessionDetailDTO(SessionSummaryDTO):
    context: str | None = None
    paused_at: datetime | None = None
    resolved_at: datetime | None = None


class ListSessionsResponse(CamelModel):
    items: list[SessionSummaryDTO]
    total: int


class PauseSessionRequest(CamelModel):
    reason: str | None = Field(default=None, max_length=500)


class PauseSessionResponse(CamelModel):
    paused: bool
    paused_at: datetime


class ResumeSessionResponse(CamelModel):
    resumed: bool
    resumed_at: datetime
