"""
Needs (stage 3) and strategies (stage 4), ending with the mutual agreement
that resolves the session.
"""

import logging

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, GateNotSatisfiedError, ValidationError
from app.db.models import (
    IdentifiedNeed,
    Session,
    SessionStatus,
    Stage,
    StageStatus,
    Strategy,
    StrategyRanking,
)
from app.schemas.resolution import (
    ConfirmAgreementResponse,
    ConfirmNeedsResponse,
    NeedAdjustment,
    NeedDTO,
    NeedInput,
    NeedsResponse,
    RankStrategiesResponse,
    StrategiesResponse,
    StrategyDTO,
)
from app.services.realtime import dispatch_partner_event
from app.services.sessions import get_progress, utcnow
from app.services.stages import (
    AGREEMENT_CONFIRMED,
    NEEDS_CONFIRMED,
    evaluate_for,
    get_fact,
    require_stage,
    set_fact,
)

log = logging.getLogger(__name__)

NEEDS_CONFIRMED_AT = "needsConfirmedAt"


# ── Needs ─────────────────────────────────────────────────────
async def list_user_needs(db: AsyncSession, session_id: str, user_id: int) -> list[IdentifiedNeed]:
    rows = await db.scalars(
        select(IdentifiedNeed)
        .where(
            IdentifiedNeed.session_id == session_id,
            IdentifiedNeed.user_id == user_id,
        )
        .order_by(IdentifiedNeed.created_at, IdentifiedNeed.id)
    )
    return list(rows)


async def needs_confirmed(db: AsyncSession, session_id: str, user_id: int | None) -> bool:
    if user_id is None:
        return False
    progress = await get_progress(db, session_id, user_id, Stage.NEEDS)
    return bool(get_fact(progress, NEEDS_CONFIRMED, False))


async def identify_needs(
    db: AsyncSession,
    session: Session,
    user_id: int,
    needs: list[NeedInput],
) -> NeedsResponse:
    """Replaces the user's identified needs. Locked once they are confirmed."""
    progress = await require_stage(db, session.id, user_id, Stage.NEEDS)
    if get_fact(progress, NEEDS_CONFIRMED, False):
        raise ConflictError("Needs already confirmed")

    await db.execute(
        delete(IdentifiedNeed).where(
            IdentifiedNeed.session_id == session.id,
            IdentifiedNeed.user_id == user_id,
        )
    )
    for need in needs:
        db.add(
            IdentifiedNeed(
                session_id=session.id,
                user_id=user_id,
                category=need.category,
                description=need.description,
                confirmed=False,
                created_at=utcnow(),
            )
        )
    await db.commit()

    rows = await list_user_needs(db, session.id, user_id)
    return NeedsResponse(needs=[NeedDTO.model_validate(n) for n in rows])


async def get_needs(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
) -> NeedsResponse:
    """Own needs, plus the partner's confirmed needs once they have shared them."""
    mine = await list_user_needs(db, session.id, user_id)
    partner_confirmed = await needs_confirmed(db, session.id, partner_id)

    partner_needs = None
    if partner_confirmed:
        rows = await list_user_needs(db, session.id, partner_id)
        partner_needs = [NeedDTO.model_validate(n) for n in rows if n.confirmed]

    return NeedsResponse(
        needs=[NeedDTO.model_validate(n) for n in mine],
        partner_needs=partner_needs,
        partner_confirmed=partner_confirmed,
    )


async def confirm_needs(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
    need_ids: list[str],
    adjustments: list[NeedAdjustment] | None = None,
) -> ConfirmNeedsResponse:
    progress = await require_stage(db, session.id, user_id, Stage.NEEDS)

    mine = {n.id: n for n in await list_user_needs(db, session.id, user_id)}
    if not mine:
        raise GateNotSatisfiedError("Identify your needs before confirming them")

    adjustments = adjustments or []
    unknown = sorted((set(need_ids) | {a.need_id for a in adjustments}) - mine.keys())
    if unknown:
        raise ValidationError("Unknown needs", details={"needIds": unknown})

    for need_id, need in mine.items():
        need.confirmed = need_id in need_ids
    for adjustment in adjustments:
        need = mine[adjustment.need_id]
        need.confirmed = adjustment.confirmed
        if adjustment.correction is not None:
            need.correction = adjustment.correction

    if not any(n.confirmed for n in mine.values()):
        raise ValidationError("Confirm at least one need")

    confirmed_at = utcnow()
    set_fact(progress, NEEDS_CONFIRMED, True)
    set_fact(progress, NEEDS_CONFIRMED_AT, confirmed_at.isoformat())
    await db.commit()

    partner_confirmed = await needs_confirmed(db, session.id, partner_id)
    _, _, _, decision = await evaluate_for(db, session.id, user_id, partner_id)

    await dispatch_partner_event(
        session.id,
        partner_id,
        "partner.needs_shared",
        {"userId": user_id, "count": sum(1 for n in mine.values() if n.confirmed)},
    )

    return ConfirmNeedsResponse(
        confirmed=True,
        confirmed_at=confirmed_at,
        partner_confirmed=partner_confirmed,
        can_advance=decision.can_advance,
    )


# ── Strategies ────────────────────────────────────────────────
async def list_strategies(db: AsyncSession, session_id: str) -> list[Strategy]:
    rows = await db.scalars(
        select(Strategy)
        .where(Strategy.session_id == session_id)
        .order_by(Strategy.created_at, Strategy.id)
    )
    return list(rows)


async def propose_strategy(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
    description: str,
    needs_addressed: list[str],
    duration: str | None = None,
    measure_of_success: str | None = None,
) -> StrategyDTO:
    await require_stage(db, session.id, user_id, Stage.STRATEGIES)

    strategy = Strategy(
        session_id=session.id,
        proposed_by_id=user_id,
        description=description,
        needs_addressed=needs_addressed,
        duration=duration,
        measure_of_success=measure_of_success,
        created_at=utcnow(),
    )
    db.add(strategy)
    await db.commit()
    await db.refresh(strategy)

    await dispatch_partner_event(session.id, partner_id, "agreement.proposed", {"strategyId": strategy.id})
    return StrategyDTO.model_validate(strategy)


async def get_strategies(db: AsyncSession, session: Session) -> StrategiesResponse:
    """Strategies are listed without their author."""
    rows = await list_strategies(db, session.id)
    return StrategiesResponse(strategies=[StrategyDTO.model_validate(s) for s in rows])


async def get_ranking(db: AsyncSession, session_id: str, user_id: int | None) -> StrategyRanking | None:
    if user_id is None:
        return None
    return await db.scalar(
        select(StrategyRanking).where(
            StrategyRanking.session_id == session_id,
            StrategyRanking.user_id == user_id,
        )
    )


async def rank_strategies(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
    ranked_ids: list[str],
) -> RankStrategiesResponse:
    await require_stage(db, session.id, user_id, Stage.STRATEGIES)

    if len(set(ranked_ids)) != len(ranked_ids):
        raise ValidationError("Ranked strategies must be unique", details={"rankedIds": ["Duplicate ids"]})

    known = {s.id for s in await list_strategies(db, session.id)}
    unknown = [sid for sid in ranked_ids if sid not in known]
    if unknown:
        raise ValidationError("Unknown strategies", details={"rankedIds": unknown})

    submitted_at = utcnow()
    ranking = await get_ranking(db, session.id, user_id)
    if ranking is None:
        ranking = StrategyRanking(session_id=session.id, user_id=user_id)
        db.add(ranking)
    ranking.ranked_ids = list(ranked_ids)
    ranking.submitted_at = submitted_at
    await db.commit()

    partner_ranked = await get_ranking(db, session.id, partner_id) is not None

    await dispatch_partner_event(session.id, partner_id, "partner.ranking_submitted", {"userId": user_id})

    return RankStrategiesResponse(ranked=True, submitted_at=submitted_at, partner_ranked=partner_ranked)


async def confirm_agreement(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
    confirmed: bool,
) -> ConfirmAgreementResponse:
    """
    Records the user's agreement. Once both partners have confirmed, their
    final stage rows are completed and the session is resolved.
    """
    progress = await require_stage(db, session.id, user_id, Stage.STRATEGIES)
    if await get_ranking(db, session.id, user_id) is None:
        raise GateNotSatisfiedError("Submit your strategy ranking before confirming the agreement")

    set_fact(progress, AGREEMENT_CONFIRMED, confirmed)

    partner_progress = await get_progress(db, session.id, partner_id, Stage.STRATEGIES) if partner_id else None
    partner_confirmed = bool(get_fact(partner_progress, AGREEMENT_CONFIRMED, False))

    resolved = confirmed and partner_confirmed
    if resolved:
        now = utcnow()
        for row in (progress, partner_progress):
            row.status = StageStatus.COMPLETED
            row.completed_at = now
        session.status = SessionStatus.RESOLVED
        session.resolved_at = now
    await db.commit()

    if resolved:
        log.info("Session %s resolved", session.id)
        await dispatch_partner_event(session.id, partner_id, "session.resolved", {"resolvedBy": user_id})
    elif confirmed:
        await dispatch_partner_event(session.id, partner_id, "agreement.confirmed", {"userId": user_id})

    return ConfirmAgreementResponse(
        confirmed=confirmed,
        partner_confirmed=partner_confirmed,
        session_resolved=resolved,
    )
