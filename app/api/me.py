import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.models import PushSubscription, User
from app.db.session import get_db
from app.schemas.auth import UserDTO
from app.schemas.common import ok
from app.schemas.push import SubscriptionRequest, SubscriptionResponse, UnsubscribeRequest, UnsubscribeResponse
from app.schemas.user import GetMeResponse, UpdateProfileRequest, UpdateProfileResponse
from app.services.sessions import count_active_sessions
from app.utils.deps import get_current_user

log = logging.getLogger(__name__)

router = APIRouter(prefix="/me", tags=["me"])

@router.get("")
async def get_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    subscriptions = await db.scalar(
        select(func.count(PushSubscription.id)).where(PushSubscription.user_id == current_user.id)
    )
    return ok(GetMeResponse(
        user=UserDTO.model_validate(current_user),
        active_sessions=await count_active_sessions(db, current_user.id),
        push_notifications_enabled=(subscriptions or 0) > 0,
    ))

@router.patch("")
async def update_me(
    user_in: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update profile fields"""
    update_data = user_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)
    return ok(UpdateProfileResponse(user=UserDTO.model_validate(current_user)))

@router.post("/push-subscription")
async def push_subscribe(
    data: SubscriptionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    exists = await db.scalar(
        select(PushSubscription).where(
            PushSubscription.user_id == current_user.id,
            PushSubscription.endpoint == data.endpoint,
        )
    )
    subscription_json = {"endpoint": data.endpoint, "keys": data.keys.model_dump()}
    if exists:
        exists.subscription_json = subscription_json
    else:
        db.add(PushSubscription(
            user_id=current_user.id,
            endpoint=data.endpoint,
            subscription_json=subscription_json,
        ))
    await db.commit()
    log.info("Push subscription registered for user %s", current_user.id)
    return ok(SubscriptionResponse(registered=True))

@router.post("/push-subscription/unregister")
async def push_unsubscribe(
    data: UnsubscribeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Drops one subscription by endpoint, or all of the user's subscriptions."""
    stmt = delete(PushSubscription).where(PushSubscription.user_id == current_user.id)
    if data.endpoint:
        stmt = stmt.where(PushSubscription.endpoint == data.endpoint)
    await db.execute(stmt)
    await db.commit()
    return ok(UnsubscribeResponse(unregistered=True))
