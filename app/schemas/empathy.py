from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel


class SaveEmpathyDraftRequest(CamelModel):
    content: str = Field(min_length=1, max_length=2000)
    ready_to_share: bool = False


class EmpathyDraftDTO(CamelModel):
    id: str
    content: str
    version: int
    ready_to_share: bool
    updated_at: datetime


class SaveEmpathyDraftResponse(CamelModel):
    draft: EmpathyDraftDTO
    ready_to_share: bool


class GetEmpathyDraftResponse(CamelModel):
    draft: EmpathyDraftDTO | None = None
    can_consent: bool
    already_consented: bool


class ConsentToShareRequest(CamelModel):
    consent: bool
    final_content: str | None = Field(default=None, min_length=1, max_length=2000)


class EmpathyAttemptDTO(CamelModel):
    id: str
    source_user_id: int
    content: str
    shared_at: datetime


class ConsentToShareResponse(CamelModel):
    consented: bool
    consented_at: datetime | None = None
    waiting_for_partner: bool
    partner_attempt: EmpathyAttemptDTO | None = None


class GetPartnerEmpathyResponse(CamelModel):
    attempt: EmpathyAttemptDTO | None = None
    waiting_for_partner: bool
    validated: bool
    validated_at: datetime | None = None
    awaiting_revision: bool


class ValidateEmpathyRequest(CamelModel):
    validated: bool
    feedback: str | None = Field(default=None, max_length=500)
    consent_to_share_feedback: bool = False


class ValidateEmpathyResponse(CamelModel):
    validated: bool
    validated_at: datetime | None = None
    feedback_shared: bool
    awaiting_revision: bool
    can_advance: bool
    partner_validated: bool
