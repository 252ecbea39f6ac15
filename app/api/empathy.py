from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.schemas.common import ok
from app.schemas.empathy import ConsentToShareRequest, SaveEmpathyDraftRequest, ValidateEmpathyRequest
from app.services import empathy as empathy_service
from app.services.sessions import require_active
from app.utils.deps import Participant, get_participant

router = APIRouter(prefix="/sessions", tags=["empathy"])

@router.post("/{session_id}/empathy/draft")
async def save_draft(
    data: SaveEmpathyDraftRequest,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    require_active(participant.session)
    return ok(await empathy_service.save_draft(
        db, participant.session, participant.user.id, data.content, data.ready_to_share
    ))

@router.get("/{session_id}/empathy/draft")
async def get_draft(
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    return ok(await empathy_service.read_draft(db, participant.session, participant.user.id))

@router.post("/{session_id}/empathy/consent")
async def consent_to_share(
    data: ConsentToShareRequest,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    require_active(participant.session)
    return ok(await empathy_service.consent_to_share(
        db,
        participant.session,
        participant.user.id,
        participant.partner_id,
        consent=data.consent,
        final_content=data.final_content,
    ))

@router.get("/{session_id}/empathy/partner")
async def get_partner_empathy(
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    return ok(await empathy_service.get_partner_empathy(
        db, participant.session, participant.user.id, participant.partner_id
    ))

@router.post("/{session_id}/empathy/validate")
async def validate_empathy(
    data: ValidateEmpathyRequest,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    require_active(participant.session)
    return ok(await empathy_service.validate_empathy(
        db,
        participant.session,
        participant.user.id,
        participant.partner_id,
        validated=data.validated,
        feedback=data.feedback,
        consent_to_share_feedback=data.consent_to_share_feedback,
    ))
