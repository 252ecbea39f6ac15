from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.schemas.common import ok
from app.schemas.resolution import ConfirmAgreementRequest, ProposeStrategyRequest, RankStrategiesRequest
from app.services import resolution
from app.services.sessions import require_active
from app.utils.deps import Participant, get_participant

router = APIRouter(prefix="/sessions", tags=["strategies"])

@router.post("/{session_id}/strategies")
async def propose_strategy(
    data: ProposeStrategyRequest,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    require_active(participant.session)
    strategy = await resolution.propose_strategy(
        db,
        participant.session,
        participant.user.id,
        participant.partner_id,
        description=data.description,
        needs_addressed=data.needs_addressed,
        duration=data.duration,
        measure_of_success=data.measure_of_success,
    )
    return ok({"strategy": strategy.model_dump(mode="json", by_alias=True)})

@router.get("/{session_id}/strategies")
async def get_strategies(
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    return ok(await resolution.get_strategies(db, participant.session))

@router.post("/{session_id}/strategies/rank")
async def rank_strategies(
    data: RankStrategiesRequest,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    require_active(participant.session)
    return ok(await resolution.rank_strategies(
        db, participant.session, participant.user.id, participant.partner_id, data.ranked_ids
    ))

@router.post("/{session_id}/agreement/confirm")
async def confirm_agreement(
    data: ConfirmAgreementRequest,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    require_active(participant.session)
    return ok(await resolution.confirm_agreement(
        db, participant.session, participant.user.id, participant.partner_id, data.confirmed
    ))
