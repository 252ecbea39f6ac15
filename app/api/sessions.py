import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import SessionNotActiveError
from app.db.models import Session, SessionStatus, User, UserVessel
from app.db.session import get_db
from app.schemas.common import ok
from app.schemas.session import (
    CreateSessionRequest,
    ListSessionsResponse,
    PauseSessionRequest,
    PauseSessionResponse,
    ResumeSessionResponse,
    SessionStatusLiteral,
)
from app.services.invitations import create_session
from app.services.realtime import dispatch_partner_event
from app.services.sessions import build_session_detail, build_session_summary, utcnow
from app.utils.deps import Participant, get_current_user, get_participant

log = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])

@router.post("")
async def create(
    data: CreateSessionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await create_session(
        db,
        current_user,
        invite_email=data.invite_email,
        invite_name=data.invite_name,
        context=data.context,
    )
    return ok(result)

@router.get("")
async def list_sessions(
    status: SessionStatusLiteral | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    base = (
        select(Session)
        .join(UserVessel, UserVessel.session_id == Session.id)
        .where(UserVessel.user_id == current_user.id)
    )
    if status:
        base = base.where(Session.status == status)

    total = await db.scalar(select(func.count()).select_from(base.subquery()))
    rows = await db.scalars(
        base.order_by(Session.updated_at.desc(), Session.id).limit(limit).offset(offset)
    )

    items = [await build_session_summary(db, s, current_user.id) for s in rows.all()]
    return ok(ListSessionsResponse(items=items, total=total or 0))

@router.get("/{session_id}")
async def get_session(
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    detail = await build_session_detail(db, participant.session, participant.user.id)
    return ok({"session": detail.model_dump(mode="json", by_alias=True)})

@router.post("/{session_id}/pause")
async def pause_session(
    data: PauseSessionRequest | None = None,
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    session = participant.session
    if session.status != SessionStatus.ACTIVE:
        raise SessionNotActiveError(f"Only active sessions can be paused (session is {session.status.lower()})")

    now = utcnow()
    session.status = SessionStatus.PAUSED
    session.paused_at = now
    await db.commit()
    log.info("Session %s paused by user %s", session.id, participant.user.id)

    await dispatch_partner_event(
        session.id,
        participant.partner_id,
        "session.paused",
        {"pausedBy": participant.user.id, "reason": data.reason if data else None},
    )
    return ok(PauseSessionResponse(paused=True, paused_at=now))

@router.post("/{session_id}/resume")
async def resume_session(
    participant: Participant = Depends(get_participant),
    db: AsyncSession = Depends(get_db),
):
    session = participant.session
    if session.status != SessionStatus.PAUSED:
        raise SessionNotActiveError(f"Only paused sessions can be resumed (session is {session.status.lower()})")

    now = utcnow()
    session.status = SessionStatus.ACTIVE
    session.paused_at = None
    await db.commit()
    log.info("Session %s resumed by user %s", session.id, participant.user.id)

    await dispatch_partner_event(
        session.id, participant.partner_id, "session.resumed", {"resumedBy": participant.user.id}
    )
    return ok(ResumeSessionResponse(resumed=True, resumed_at=now))
