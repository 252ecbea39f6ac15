from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.models import User
from app.db.session import get_db
from app.schemas.common import ok
from app.schemas.stage import AdvanceStageRequest, FeelHeardRequest, SignCompactRequest
from app.services import stages as stage_service
from app.services.sessions import load_participant_session, require_active
from app.utils.deps import Participant, get_current_user, get_participant

router = APIRouter(prefix="/sessions", tags=["stages"])

@router.get("/{session_id}/stages/progress")
async def get_progress(
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    return ok(await stage_service.get_stage_status(
        db, participant.session, participant.user.id, participant.partner_id
    ))

@router.post("/{session_id}/stages/advance")
async def advance(
    session_id: str,
    data: AdvanceStageRequest | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    # row lock serialises concurrent advances within the session
    session, partner_id = await load_participant_session(db, session_id, current_user.id, for_update=True)
    require_active(session, allow_pending=True)
    force = data.force if data else False
    return ok(await stage_service.advance_stage(db, session, current_user.id, partner_id, force=force))

@router.post("/{session_id}/compact/sign")
async def sign_compact(
    data: SignCompactRequest,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    # the inviter signs before the partner has joined
    require_active(participant.session, allow_pending=True)
    return ok(await stage_service.sign_compact(
        db, participant.session, participant.user.id, participant.partner_id
    ))

@router.post("/{session_id}/feel-heard")
async def feel_heard(
    data: FeelHeardRequest,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    require_active(participant.session)
    return ok(await stage_service.confirm_feel_heard(
        db,
        participant.session,
        participant.user.id,
        participant.partner_id,
        confirmed=data.confirmed,
        feedback=data.feedback,
    ))
