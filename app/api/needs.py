from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.schemas.common import ok
from app.schemas.resolution import ConfirmNeedsRequest, IdentifyNeedsRequest
from app.services import resolution
from app.services.sessions import require_active
from app.utils.deps import Participant, get_participant

router = APIRouter(prefix="/sessions", tags=["needs"])

@router.post("/{session_id}/needs")
async def identify_needs(
    data: IdentifyNeedsRequest,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    require_active(participant.session)
    return ok(await resolution.identify_needs(db, participant.session, participant.user.id, data.needs))

@router.get("/{session_id}/needs")
async def get_needs(
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    return ok(await resolution.get_needs(
        db, participant.session, participant.user.id, participant.partner_id
    ))

@router.post("/{session_id}/needs/confirm")
async def confirm_needs(
    data: ConfirmNeedsRequest,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    require_active(participant.session)
    return ok(await resolution.confirm_needs(
        db,
        participant.session,
        participant.user.id,
        participant.partner_id,
        need_ids=data.need_ids,
        adjustments=data.adjustments,
    ))
