"""
Stage progress: collects gate facts from the database, reports status and
moves participants between stages.
"""

import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, GateNotSatisfiedError
from app.db.models import (
    EmpathyAttempt,
    EmpathyValidation,
    IdentifiedNeed,
    Session,
    Stage,
    StageProgress,
    StageStatus,
    StrategyRanking,
)
from app.schemas.stage import (
    AdvanceStageResponse,
    FeelHeardResponse,
    GateDTO,
    SignCompactResponse,
    StageProgressResponse,
)
from app.services.realtime import dispatch_partner_event
from app.services.sessions import (
    current_progress,
    get_progress,
    start_stage,
    utcnow,
)
from app.services.stage_gates import (
    AdvanceDecision,
    GateResult,
    ProgressSnapshot,
    can_advance,
    evaluate_gates,
)

log = logging.getLogger(__name__)

# Keys recorded in StageProgress.gates_satisfied
COMPACT_SIGNED = "compactSigned"
COMPACT_SIGNED_AT = "compactSignedAt"
FEEL_HEARD_CONFIRMED = "feelHeardConfirmed"
FEEL_HEARD_AT = "feelHeardAt"
FEEL_HEARD_FEEDBACK = "feelHeardFeedback"
NEEDS_CONFIRMED = "needsConfirmed"
AGREEMENT_CONFIRMED = "agreementConfirmed"


def set_fact(progress: StageProgress, key: str, value) -> None:
    # reassign so the JSON column is flagged dirty
    facts = dict(progress.gates_satisfied or {})
    facts[key] = value
    progress.gates_satisfied = facts


def get_fact(progress: StageProgress | None, key: str, default=None):
    if progress is None:
        return default
    return (progress.gates_satisfied or {}).get(key, default)


def snapshot(progress: StageProgress | None) -> ProgressSnapshot | None:
    if progress is None:
        return None
    return ProgressSnapshot(stage=progress.stage, status=progress.status)


async def partner_validated_attempt(db: AsyncSession, session_id: str, user_id: int) -> bool:
    """True when the partner's latest validation of ``user_id``'s attempt is positive."""
    validation = await db.scalar(
        select(EmpathyValidation)
        .join(EmpathyAttempt, EmpathyAttempt.id == EmpathyValidation.attempt_id)
        .where(
            EmpathyAttempt.session_id == session_id,
            EmpathyAttempt.source_user_id == user_id,
            EmpathyValidation.user_id != user_id,
        )
        .order_by(EmpathyValidation.validated_at.desc(), EmpathyValidation.id.desc())
        .limit(1)
    )
    return bool(validation and validation.validated)


async def collect_gate_facts(
    db: AsyncSession,
    session_id: str,
    user_id: int,
    partner_id: int | None,
    stage: int,
) -> dict[str, bool]:
    mine = await get_progress(db, session_id, user_id, stage)

    if stage == Stage.COMPACT:
        theirs = await get_progress(db, session_id, partner_id, stage) if partner_id else None
        return {
            "compact_signed": bool(get_fact(mine, COMPACT_SIGNED, False)),
            "partner_signed_compact": bool(get_fact(theirs, COMPACT_SIGNED, False)),
        }

    if stage == Stage.WITNESS:
        return {"feel_heard_confirmed": bool(get_fact(mine, FEEL_HEARD_CONFIRMED, False))}

    if stage == Stage.EMPATHY:
        shared = await db.scalar(
            select(EmpathyAttempt.id).where(
                EmpathyAttempt.session_id == session_id,
                EmpathyAttempt.source_user_id == user_id,
            )
        )
        return {
            "empathy_shared": shared is not None,
            "partner_validated_empathy": await partner_validated_attempt(db, session_id, user_id),
        }

    if stage == Stage.NEEDS:
        count = await db.scalar(
            select(func.count(IdentifiedNeed.id)).where(
                IdentifiedNeed.session_id == session_id,
                IdentifiedNeed.user_id == user_id,
            )
        )
        return {
            "needs_identified": (count or 0) > 0,
            "needs_confirmed": bool(get_fact(mine, NEEDS_CONFIRMED, False)),
        }

    if stage == Stage.STRATEGIES:
        ranking = await db.scalar(
            select(StrategyRanking.id).where(
                StrategyRanking.session_id == session_id,
                StrategyRanking.user_id == user_id,
            )
        )
        return {
            "ranking_submitted": ranking is not None,
            "agreement_confirmed": bool(get_fact(mine, AGREEMENT_CONFIRMED, False)),
        }

    return {}


async def evaluate_for(
    db: AsyncSession,
    session_id: str,
    user_id: int,
    partner_id: int | None,
    force: bool = False,
) -> tuple[StageProgress | None, StageProgress | None, list[GateResult], AdvanceDecision]:
    mine = await current_progress(db, session_id, user_id)
    theirs = await current_progress(db, session_id, partner_id) if partner_id else None

    gates: list[GateResult] = []
    if mine is not None:
        facts = await collect_gate_facts(db, session_id, user_id, partner_id, mine.stage)
        gates = evaluate_gates(mine.stage, facts)

    partner_snapshot = None
    if partner_id is not None:
        partner_snapshot = snapshot(theirs) or ProgressSnapshot(Stage.COMPACT, StageStatus.NOT_STARTED)

    decision = can_advance(snapshot(mine), partner_snapshot, gates, force=force)
    return mine, theirs, gates, decision


async def get_stage_status(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
) -> StageProgressResponse:
    mine, theirs, gates, decision = await evaluate_for(db, session.id, user_id, partner_id)
    return StageProgressResponse(
        stage=mine.stage if mine else Stage.COMPACT,
        status=mine.status if mine else StageStatus.NOT_STARTED,
        started_at=mine.started_at if mine else None,
        completed_at=mine.completed_at if mine else None,
        partner_stage=theirs.stage if theirs else Stage.COMPACT,
        partner_status=theirs.status if theirs else StageStatus.NOT_STARTED,
        can_advance=decision.can_advance,
        advance_blocked_reason=decision.blocked_reason,
        gates=[
            GateDTO(
                id=g.id,
                description=g.description,
                satisfied=g.satisfied,
                required_for_advance=g.required_for_advance,
                soft=g.soft,
            )
            for g in gates
        ],
    )


async def advance_stage(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
    force: bool = False,
) -> AdvanceStageResponse:
    """
    Completes the participant's current stage and starts the next one when
    the gates allow it. A blocked attempt parks the row in GATE_PENDING and
    reports the reason instead of raising.
    """
    mine, _, _, decision = await evaluate_for(db, session.id, user_id, partner_id, force=force)

    if not decision.can_advance:
        if mine is not None and mine.status == StageStatus.IN_PROGRESS:
            mine.status = StageStatus.GATE_PENDING
            await db.commit()
        return AdvanceStageResponse(
            advanced=False,
            new_stage=mine.stage if mine else Stage.COMPACT,
            new_status=mine.status if mine else StageStatus.NOT_STARTED,
            advanced_at=None,
            blocked_reason=decision.blocked_reason,
        )

    if force:
        log.info("Forced advance for user %s in session %s from stage %s", user_id, session.id, mine.stage)

    now = utcnow()
    completed_stage = mine.stage
    mine.status = StageStatus.COMPLETED
    mine.completed_at = now
    next_progress = await start_stage(db, session.id, user_id, completed_stage + 1)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Stage advance already in progress, retry the request")

    await dispatch_partner_event(
        session.id,
        partner_id,
        "partner.advanced",
        {"userId": user_id, "fromStage": completed_stage, "stage": next_progress.stage},
    )

    return AdvanceStageResponse(
        advanced=True,
        new_stage=next_progress.stage,
        new_status=next_progress.status,
        advanced_at=now,
    )


async def require_stage(db: AsyncSession, session_id: str, user_id: int, stage: int) -> StageProgress:
    """The participant's row for ``stage``, which must be their open current stage."""
    progress = await current_progress(db, session_id, user_id)
    if progress is None or progress.stage != stage or progress.status == StageStatus.COMPLETED:
        raise GateNotSatisfiedError(f"This action is only available during the {Stage.NAMES[stage].lower()} stage")
    return progress


async def sign_compact(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
) -> SignCompactResponse:
    progress = await require_stage(db, session.id, user_id, Stage.COMPACT)

    first_signature = not get_fact(progress, COMPACT_SIGNED, False)
    if first_signature:
        set_fact(progress, COMPACT_SIGNED, True)
        set_fact(progress, COMPACT_SIGNED_AT, utcnow().isoformat())
        await db.commit()

    theirs = await get_progress(db, session.id, partner_id, Stage.COMPACT) if partner_id else None
    _, _, _, decision = await evaluate_for(db, session.id, user_id, partner_id)

    if first_signature:
        await dispatch_partner_event(session.id, partner_id, "partner.signed_compact", {"userId": user_id})

    return SignCompactResponse(
        signed=True,
        signed_at=get_fact(progress, COMPACT_SIGNED_AT),
        partner_signed=bool(get_fact(theirs, COMPACT_SIGNED, False)),
        can_advance=decision.can_advance,
    )


async def confirm_feel_heard(
    db: AsyncSession,
    session: Session,
    user_id: int,
    partner_id: int | None,
    confirmed: bool,
    feedback: str | None = None,
) -> FeelHeardResponse:
    progress = await require_stage(db, session.id, user_id, Stage.WITNESS)

    set_fact(progress, FEEL_HEARD_CONFIRMED, confirmed)
    set_fact(progress, FEEL_HEARD_AT, utcnow().isoformat() if confirmed else None)
    if feedback is not None:
        set_fact(progress, FEEL_HEARD_FEEDBACK, feedback)
    await db.commit()

    _, _, _, decision = await evaluate_for(db, session.id, user_id, partner_id)

    if confirmed:
        await dispatch_partner_event(
            session.id, partner_id, "partner.stage_completed", {"userId": user_id, "stage": Stage.WITNESS}
        )

    return FeelHeardResponse(
        confirmed=confirmed,
        confirmed_at=get_fact(progress, FEEL_HEARD_AT),
        can_advance=decision.can_advance,
    )


__all__ = [
    "advance_stage",
    "collect_gate_facts",
    "confirm_feel_heard",
    "get_stage_status",
    "require_stage",
    "sign_compact",
]
