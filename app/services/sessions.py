from datetime import datetime, timezone

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, SessionNotActiveError
from app.db.models import (
    Session,
    SessionStatus,
    StageProgress,
    StageStatus,
    User,
    UserVessel,
)
from app.schemas.session import PartnerDTO, SessionDetailDTO, SessionSummaryDTO

NOT_PARTICIPANT_MESSAGE = "Session not found or you are not a participant"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


async def get_vessel(db: AsyncSession, session_id: str, user_id: int) -> UserVessel | None:
    return await db.scalar(
        select(UserVessel).where(
            UserVessel.session_id == session_id,
            UserVessel.user_id == user_id,
        )
    )


async def require_vessel(db: AsyncSession, session_id: str, user_id: int) -> UserVessel:
    vessel = await get_vessel(db, session_id, user_id)
    if vessel is None:
        raise NotFoundError(message=NOT_PARTICIPANT_MESSAGE)
    return vessel


async def get_partner_id(db: AsyncSession, session_id: str, user_id: int) -> int | None:
    return await db.scalar(
        select(UserVessel.user_id).where(
            UserVessel.session_id == session_id,
            UserVessel.user_id != user_id,
        )
    )


async def load_participant_session(
    db: AsyncSession,
    session_id: str,
    user_id: int,
    *,
    for_update: bool = False,
) -> tuple[Session, int | None]:
    """Returns the session and the partner's user id, or raises NOT_FOUND."""
    await require_vessel(db, session_id, user_id)
    stmt = select(Session).where(Session.id == session_id)
    if for_update:
        stmt = stmt.with_for_update()
    session = await db.scalar(stmt)
    if session is None:
        raise NotFoundError(message=NOT_PARTICIPANT_MESSAGE)
    return session, await get_partner_id(db, session_id, user_id)


def require_active(session: Session, *, allow_pending: bool = False) -> None:
    allowed = {SessionStatus.ACTIVE}
    if allow_pending:
        allowed |= {SessionStatus.CREATED, SessionStatus.INVITED}
    if session.status not in allowed:
        raise SessionNotActiveError(f"Session is {session.status.lower()}")


async def get_progress(db: AsyncSession, session_id: str, user_id: int, stage: int) -> StageProgress | None:
    return await db.scalar(
        select(StageProgress).where(
            StageProgress.session_id == session_id,
            StageProgress.user_id == user_id,
            StageProgress.stage == stage,
        )
    )


async def current_progress(db: AsyncSession, session_id: str, user_id: int) -> StageProgress | None:
    """The participant's highest started stage row."""
    return await db.scalar(
        select(StageProgress)
        .where(
            StageProgress.session_id == session_id,
            StageProgress.user_id == user_id,
            StageProgress.status != StageStatus.NOT_STARTED,
        )
        .order_by(StageProgress.stage.desc())
        .limit(1)
    )


async def start_stage(db: AsyncSession, session_id: str, user_id: int, stage: int) -> StageProgress:
    """Gets or creates the row for ``stage`` and marks it in progress. Does not commit."""
    progress = await get_progress(db, session_id, user_id, stage)
    if progress is None:
        progress = StageProgress(
            session_id=session_id,
            user_id=user_id,
            stage=stage,
            gates_satisfied={},
        )
        db.add(progress)
    if progress.status in (None, StageStatus.NOT_STARTED):
        progress.status = StageStatus.IN_PROGRESS
        progress.started_at = utcnow()
    return progress


async def join_session(db: AsyncSession, session_id: str, user_id: int) -> UserVessel:
    vessel = UserVessel(session_id=session_id, user_id=user_id)
    db.add(vessel)
    await start_stage(db, session_id, user_id, 0)
    return vessel


async def count_active_sessions(db: AsyncSession, user_id: int) -> int:
    return await db.scalar(
        select(func.count(Session.id))
        .join(UserVessel, UserVessel.session_id == Session.id)
        .where(
            UserVessel.user_id == user_id,
            Session.status.in_(
                (SessionStatus.CREATED, SessionStatus.INVITED, SessionStatus.ACTIVE, SessionStatus.PAUSED)
            ),
        )
    ) or 0


async def build_session_detail(db: AsyncSession, session: Session, user_id: int) -> SessionDetailDTO:
    partner_id = await get_partner_id(db, session.id, user_id)
    partner = await db.get(User, partner_id) if partner_id else None
    mine = await current_progress(db, session.id, user_id)
    theirs = await current_progress(db, session.id, partner_id) if partner_id else None

    return SessionDetailDTO(
        id=session.id,
        status=session.status,
        context=session.context,
        created_at=session.created_at,
        updated_at=session.updated_at,
        paused_at=session.paused_at,
        resolved_at=session.resolved_at,
        partner=PartnerDTO(id=partner.id, name=partner.name) if partner else None,
        my_stage=mine.stage if mine else 0,
        my_stage_status=mine.status if mine else StageStatus.NOT_STARTED,
        partner_stage=theirs.stage if theirs else None,
        partner_stage_status=theirs.status if theirs else None,
    )


async def build_session_summary(db: AsyncSession, session: Session, user_id: int) -> SessionSummaryDTO:
    detail = await build_session_detail(db, session, user_id)
    return SessionSummaryDTO.model_validate(detail.model_dump())
