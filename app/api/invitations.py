from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.models import User
from app.db.session import get_db
from app.schemas.common import ok
from app.schemas.invitation import DeclineInvitationRequest, GetInvitationResponse
from app.services import invitations as invitation_service
from app.utils.deps import get_current_user

router = APIRouter(prefix="/invitations", tags=["invitations"])

@router.get("/{invitation_id}")
async def get_invitation(invitation_id: str, db: AsyncSession = Depends(get_db)):
    """Public: the recipient may not have an account yet."""
    invitation = await invitation_service.get_invitation(db, invitation_id)
    return ok(GetInvitationResponse(invitation=invitation))

@router.post("/{invitation_id}/accept")
async def accept_invitation(
    invitation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ok(await invitation_service.accept_invitation(db, invitation_id, current_user))

@router.post("/{invitation_id}/decline")
async def decline_invitation(
    invitation_id: str,
    data: DeclineInvitationRequest | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reason = data.reason if data else None
    return ok(await invitation_service.decline_invitation(db, invitation_id, current_user, reason))

@router.post("/{invitation_id}/resend")
async def resend_invitation(
    invitation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ok(await invitation_service.resend_invitation(db, invitation_id, current_user))
