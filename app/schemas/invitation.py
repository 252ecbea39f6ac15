from datetime import datetime
from typing import Literal

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.session import CreateSessionRequest, SessionDetailDTO

InvitationStatusLiteral = Literal["PENDING", "ACCEPTED", "DECLINED", "EXPIRED"]


class InviterDTO(CamelModel):
    id: int
    name: str | None = None


class InvitationDTO(CamelModel):
    id: str
    session_id: str
    invited_by: InviterDTO
    recipient_email: str
    recipient_name: str | None = None
    status: InvitationStatusLiteral
    created_at: datetime
    expires_at: datetime


class CreateSessionResponse(CamelModel):
    session: SessionDetailDTO
    invitation: InvitationDTO
    invitation_url: str


class AcceptInvitationResponse(CamelModel):
    session: SessionDetailDTO


class DeclineInvitationRequest(CamelModel):
    reason: str | None = Field(default=None, max_length=500)


class DeclineInvitationResponse(CamelModel):
    declined: bool
    declined_at: datetime


class ResendInvitationResponse(CamelModel):
    sent: bool
    sent_at: datetime
    expires_at: datetime


__all__ = [
    "CreateSessionRequest",
    "InvitationDTO",
    "GetInvitationResponse",
    "CreateSessionResponse",
    "AcceptInvitationResponse",
    "DeclineInvitationRequest",
    "DeclineInvitationResponse",
    "ResendInvitationResponse",
]


class GetInvitationResponse(CamelModel):
    invitation: InvitationDTO
