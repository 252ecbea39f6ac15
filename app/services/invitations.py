"""
Session creation and the invitation lifecycle.

PENDING -> ACCEPTED | DECLINED | EXPIRED. Expiry is applied lazily whenever
an invitation is read. Only a PENDING invitation can be accepted or
declined; anything else is a CONFLICT carrying the current status.
"""

import asyncio
import logging
from datetime import timedelta

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.db.models import Invitation, InvitationStatus, Session, SessionStatus, User, UserVessel
from app.schemas.invitation import (
    AcceptInvitationResponse,
    CreateSessionResponse,
    DeclineInvitationResponse,
    InvitationDTO,
    InviterDTO,
    ResendInvitationResponse,
)
from app.services.realtime import dispatch_partner_event
from app.services.sessions import as_utc, build_session_detail, get_vessel, join_session, utcnow
from app.utils.messaging import build_invitation_url, send_invitation_email

log = logging.getLogger(__name__)


def invitation_expiry():
    return utcnow() + timedelta(days=settings.INVITATION_EXPIRY_DAYS)


def apply_expiry(invitation: Invitation) -> bool:
    """Flips a stale PENDING invitation to EXPIRED. Returns True when it changed."""
    if invitation.status != InvitationStatus.PENDING:
        return False
    if as_utc(invitation.expires_at) > utcnow():
        return False
    invitation.status = InvitationStatus.EXPIRED
    return True


async def invitation_dto(db: AsyncSession, invitation: Invitation) -> InvitationDTO:
    inviter = await db.get(User, invitation.invited_by_id)
    return InvitationDTO(
        id=invitation.id,
        session_id=invitation.session_id,
        invited_by=InviterDTO(id=inviter.id, name=inviter.name),
        recipient_email=invitation.recipient_email,
        recipient_name=invitation.recipient_name,
        status=invitation.status,
        created_at=invitation.created_at,
        expires_at=invitation.expires_at,
    )


async def send_invitation(invitation: Invitation, inviter: User) -> None:
    result = await asyncio.to_thread(
        send_invitation_email,
        invitation.recipient_email,
        inviter.name or inviter.email,
        build_invitation_url(invitation.id),
    )
    if not result["success"]:
        log.error("Invitation email %s to %s failed: %s", invitation.id, invitation.recipient_email, result["error"])


async def load_invitation(db: AsyncSession, invitation_id: str, *, for_update: bool = False) -> Invitation:
    stmt = select(Invitation).where(Invitation.id == invitation_id)
    if for_update:
        stmt = stmt.with_for_update()
    invitation = await db.scalar(stmt)
    if invitation is None:
        raise NotFoundError("Invitation")
    return invitation


def require_pending(invitation: Invitation) -> None:
    if invitation.status == InvitationStatus.PENDING:
        return
    if invitation.status == InvitationStatus.EXPIRED:
        message = "Invitation has expired"
    else:
        message = f"Invitation has already been {invitation.status.lower()}"
    raise ConflictError(message, details={"status": invitation.status})


async def create_session(
    db: AsyncSession,
    user: User,
    invite_email: str,
    invite_name: str | None = None,
    context: str | None = None,
) -> CreateSessionResponse:
    if invite_email.strip().lower() == user.email.lower():
        raise ValidationError("You cannot invite yourself", details={"inviteEmail": ["Must be another person"]})

    session = Session(status=SessionStatus.CREATED, context=context, created_by_id=user.id)
    db.add(session)
    await db.flush()

    await join_session(db, session.id, user.id)

    invitation = Invitation(
        session_id=session.id,
        invited_by_id=user.id,
        recipient_email=invite_email.strip().lower(),
        recipient_name=invite_name,
        status=InvitationStatus.PENDING,
        expires_at=invitation_expiry(),
        last_sent_at=utcnow(),
    )
    db.add(invitation)
    session.status = SessionStatus.INVITED
    await db.commit()
    await db.refresh(invitation)
    await db.refresh(session)

    log.info("Session %s created by user %s, invitation %s", session.id, user.id, invitation.id)
    await send_invitation(invitation, user)

    return CreateSessionResponse(
        session=await build_session_detail(db, session, user.id),
        invitation=await invitation_dto(db, invitation),
        invitation_url=build_invitation_url(invitation.id),
    )


async def get_invitation(db: AsyncSession, invitation_id: str) -> InvitationDTO:
    invitation = await load_invitation(db, invitation_id)
    if apply_expiry(invitation):
        await db.commit()
    return await invitation_dto(db, invitation)


async def accept_invitation(db: AsyncSession, invitation_id: str, user: User) -> AcceptInvitationResponse:
    invitation = await load_invitation(db, invitation_id, for_update=True)
    if invitation.invited_by_id == user.id:
        raise ForbiddenError("You cannot accept your own invitation")

    if apply_expiry(invitation):
        await db.commit()
    require_pending(invitation)

    session = await db.scalar(select(Session).where(Session.id == invitation.session_id).with_for_update())
    if session is None:
        raise NotFoundError("Session")

    if await get_vessel(db, session.id, user.id) is not None:
        raise ConflictError("You are already a participant in this session")
    participants = await db.scalar(select(func.count(UserVessel.id)).where(UserVessel.session_id == session.id))
    if participants >= 2:
        raise ConflictError("Session already has two participants")

    now = utcnow()
    await join_session(db, session.id, user.id)
    invitation.status = InvitationStatus.ACCEPTED
    invitation.accepted_at = now
    session.status = SessionStatus.ACTIVE
    await db.commit()
    await db.refresh(session)

    log.info("Invitation %s accepted by user %s", invitation.id, user.id)
    await dispatch_partner_event(
        session.id,
        invitation.invited_by_id,
        "invitation.accepted",
        {"userId": user.id, "name": user.name, "invitationId": invitation.id},
    )

    return AcceptInvitationResponse(session=await build_session_detail(db, session, user.id))


async def decline_invitation(
    db: AsyncSession,
    invitation_id: str,
    user: User,
    reason: str | None = None,
) -> DeclineInvitationResponse:
    invitation = await load_invitation(db, invitation_id, for_update=True)
    if invitation.invited_by_id == user.id:
        raise ForbiddenError("You cannot decline your own invitation")

    if apply_expiry(invitation):
        await db.commit()
    require_pending(invitation)

    now = utcnow()
    invitation.status = InvitationStatus.DECLINED
    invitation.declined_at = now
    invitation.decline_reason = reason

    session = await db.get(Session, invitation.session_id)
    if session is not None:
        session.status = SessionStatus.ABANDONED
    await db.commit()

    log.info("Invitation %s declined by user %s", invitation.id, user.id)
    await dispatch_partner_event(
        invitation.session_id,
        invitation.invited_by_id,
        "invitation.declined",
        {"invitationId": invitation.id, "reason": reason},
    )

    return DeclineInvitationResponse(declined=True, declined_at=now)


async def resend_invitation(db: AsyncSession, invitation_id: str, user: User) -> ResendInvitationResponse:
    """Re-sends the email and restarts the expiry window. Inviter only."""
    invitation = await load_invitation(db, invitation_id, for_update=True)
    if invitation.invited_by_id != user.id:
        raise ForbiddenError("Only the inviter can resend this invitation")

    apply_expiry(invitation)
    if invitation.status not in (InvitationStatus.PENDING, InvitationStatus.EXPIRED):
        raise ConflictError(
            f"Invitation has already been {invitation.status.lower()}",
            details={"status": invitation.status},
        )

    now = utcnow()
    invitation.status = InvitationStatus.PENDING
    invitation.expires_at = invitation_expiry()
    invitation.last_sent_at = now
    await db.commit()

    await send_invitation(invitation, user)

    return ResendInvitationResponse(sent=True, sent_at=now, expires_at=invitation.expires_at)
