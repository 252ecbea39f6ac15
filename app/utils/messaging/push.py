import asyncio
import json
import logging

from pywebpush import webpush, WebPushException
from sqlalchemy import select

from app.core.config import settings
from app.db.models import PushSubscription
from app.db.session import SessionLocal

log = logging.getLogger(__name__)

VAPID_EMAIL = settings.VAPID_EMAIL or "mailto:noreply@beheard.app"

# Titles and bodies shown on the device, keyed by session event
PUSH_MESSAGES: dict[str, tuple[str, str]] = {
    "partner.signed_compact": ("Your partner signed the compact", "You can begin when you're ready."),
    "partner.stage_completed": ("Your partner finished a stage", "Open BeHeard to see where things stand."),
    "partner.advanced": ("Your partner moved forward", "Continue your conversation in BeHeard."),
    "partner.empathy_shared": ("Your partner shared their understanding", "See how they understood you."),
    "partner.needs_shared": ("Your partner shared their needs", "Take a look when you have a moment."),
    "partner.ranking_submitted": ("Your partner ranked strategies", "Add your ranking to keep going."),
    "agreement.proposed": ("A new agreement was proposed", "Review it together in BeHeard."),
    "agreement.confirmed": ("Agreement confirmed", "Your partner confirmed the agreement."),
    "session.paused": ("Session paused", "Your partner paused the session."),
    "session.resumed": ("Session resumed", "Your partner is back in the session."),
    "session.resolved": ("Session resolved", "You reached an agreement together."),
    "invitation.accepted": ("Invitation accepted", "Your partner joined the session."),
    "invitation.declined": ("Invitation declined", "Your partner declined the invitation."),
}

DEFAULT_MESSAGE = ("BeHeard", "There's an update in your session.")


def build_push_payload(event: str, data: dict, session_id: str | None = None) -> dict:
    title, body = PUSH_MESSAGES.get(event, DEFAULT_MESSAGE)
    payload = {
        "title": title,
        "body": body,
        "tag": f"session-{session_id}" if session_id else "beheard",
        "data": {"event": event, "sessionId": session_id, **data},
    }
    if session_id:
        payload["url"] = f"/session/{session_id}"
    return payload


async def send_push(subscription: PushSubscription, payload: dict) -> None:
    """Sends one Web Push message. Raises WebPushException on delivery failure."""
    await asyncio.to_thread(
        webpush,
        subscription_info=subscription.subscription_json,
        data=json.dumps(payload, default=str),
        vapid_private_key=settings.VAPID_PRIVATE_KEY,
        vapid_claims={"sub": VAPID_EMAIL},
    )


async def send_push_notification(
    user_id: int,
    event: str,
    data: dict,
    session_id: str | None = None,
) -> bool:
    """
    Pushes ``event`` to every registered device of ``user_id``.

    Returns True when at least one device accepted the message. Without VAPID
    keys the notification is only logged (mock mode) and reported as sent.
    Subscriptions the push service reports as gone (404/410) are removed.
    """
    payload = build_push_payload(event, data, session_id)

    if not settings.VAPID_PRIVATE_KEY:
        log.info("[push mock] user=%s event=%s payload=%s", user_id, event, payload)
        return True

    async with SessionLocal() as db:
        result = await db.execute(select(PushSubscription).where(PushSubscription.user_id == user_id))
        subscriptions = result.scalars().all()
        if not subscriptions:
            log.info("[push] user=%s has no subscriptions, %s not delivered", user_id, event)
            return False

        delivered = False
        stale: list[PushSubscription] = []
        for sub in subscriptions:
            try:
                await send_push(sub, payload)
                delivered = True
            except WebPushException as e:
                status = getattr(e.response, "status_code", None)
                if status in (404, 410):
                    stale.append(sub)
                log.error("[push] failed for subscription %s: %s", sub.id, e)

        if stale:
            for sub in stale:
                await db.delete(sub)
            await db.commit()

    if delivered:
        log.info("[push] sent %s to user %s", event, user_id)
    return delivered
