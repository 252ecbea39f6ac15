"""
Session events between partners.

Events go to the session's Redis pub/sub channel when the partner is
connected (present), and fall back to a push notification otherwise.
Without ``REDIS_URL`` the channel side runs in mock mode: publishes are
logged and nobody is ever present, so every notification becomes a push.
"""

import json
import logging
import time
from typing import Any

from app.core.config import settings
from app.utils.messaging.push import send_push_notification
from app.utils.redis_pool import get_redis

log = logging.getLogger(__name__)

SESSION_EVENTS = (
    "partner.signed_compact",
    "partner.stage_completed",
    "partner.advanced",
    "partner.empathy_shared",
    "partner.needs_shared",
    "partner.ranking_submitted",
    "agreement.proposed",
    "agreement.confirmed",
    "session.paused",
    "session.resumed",
    "session.resolved",
    "invitation.accepted",
    "invitation.declined",
)


def get_session_channel_name(session_id: str) -> str:
    return f"{settings.APP_NAME}:session:{session_id}"


def get_presence_key(session_id: str) -> str:
    return f"{get_session_channel_name(session_id)}:presence"


def build_event_message(
    session_id: str,
    event: str,
    data: dict[str, Any],
    exclude_user_id: int | None = None,
) -> dict[str, Any]:
    return {
        "event": event,
        "data": {
            "sessionId": session_id,
            "timestamp": int(time.time() * 1000),
            "excludeUserId": exclude_user_id,
            **data,
        },
    }


async def publish_session_event(
    session_id: str,
    event: str,
    data: dict[str, Any],
    exclude_user_id: int | None = None,
) -> None:
    """Publishes ``event`` on the session channel. Failures are logged and re-raised."""
    message = build_event_message(session_id, event, data, exclude_user_id)
    channel = get_session_channel_name(session_id)

    r = await get_redis()
    if r is None:
        log.info("[realtime mock] publishing to %s: %s", channel, message)
        return

    try:
        await r.publish(channel, json.dumps(message, default=str))
        log.info("[realtime] published %s to session %s", event, session_id)
    except Exception:
        log.exception("[realtime] failed to publish %s to session %s", event, session_id)
        raise


async def is_user_present(session_id: str, user_id: int) -> bool:
    """True when ``user_id`` holds an open socket on the session channel."""
    r = await get_redis()
    if r is None:
        log.info("[realtime mock] presence check for user %s in session %s", user_id, session_id)
        return False

    try:
        members = await r.smembers(get_presence_key(session_id))
    except Exception as e:
        log.error("[realtime] presence check failed for user %s: %s", user_id, e)
        return False
    return str(user_id) in {str(m) for m in members}


async def mark_present(session_id: str, user_id: int) -> None:
    r = await get_redis()
    if r is not None:
        await r.sadd(get_presence_key(session_id), str(user_id))


async def mark_absent(session_id: str, user_id: int) -> None:
    r = await get_redis()
    if r is not None:
        await r.srem(get_presence_key(session_id), str(user_id))


async def notify_partner(
    session_id: str,
    partner_id: int,
    event: str,
    data: dict[str, Any],
) -> str:
    """
    Delivers ``event`` to the partner: PUBLISH when they are present on the
    session channel, PUSH otherwise. Returns the path taken.
    """
    if await is_user_present(session_id, partner_id):
        await publish_session_event(session_id, event, data)
        return "publish"

    await send_push_notification(partner_id, event, data, session_id)
    return "push"


async def dispatch_partner_event(
    session_id: str,
    partner_id: int | None,
    event: str,
    data: dict[str, Any],
) -> None:
    """
    Fire-and-forget wrapper used by request handlers after their write has
    been committed: a notification failure never fails the request.
    """
    if partner_id is None:
        return
    try:
        await notify_partner(session_id, partner_id, event, data)
    except Exception as e:
        log.exception("Partner notification %s for session %s failed: %s", event, session_id, e)
