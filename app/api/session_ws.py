import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from jose import JWTError

from app.db.session import SessionLocal
from app.services.realtime import get_session_channel_name, mark_absent, mark_present
from app.services.sessions import get_vessel
from app.utils.auth import decode_access_token
from app.utils.redis_pool import get_redis

log = logging.getLogger(__name__)

router = APIRouter()

async def _relay(pubsub, ws: WebSocket, user_id: int):
    """Forwards channel events to the socket, skipping the ones meant for others."""
    async for message in pubsub.listen():
        if message.get("type") != "message":
            continue
        try:
            payload = json.loads(message["data"])
        except (TypeError, ValueError):
            log.warning("Dropping malformed channel message: %r", message.get("data"))
            continue
        if payload.get("data", {}).get("excludeUserId") == user_id:
            continue
        await ws.send_json(payload)

@router.websocket("/ws/sessions/{session_id}")
async def session_socket(ws: WebSocket, session_id: str):
    await ws.accept()
    token = ws.query_params.get("token")
    if not token:
        await ws.close(code=4001)
        return

    try:
        user_id = decode_access_token(token)
    except (JWTError, ValueError):
        user_id = None
    if user_id is None:
        await ws.close(code=4001)
        return

    async with SessionLocal() as db:
        vessel = await get_vessel(db, session_id, user_id)
    if vessel is None:
        await ws.close(code=4003)
        return

    await mark_present(session_id, user_id)
    log.info("User %s connected to session %s", user_id, session_id)

    pubsub = None
    relay_task = None
    r = await get_redis()
    if r is not None:
        pubsub = r.pubsub()
        await pubsub.subscribe(get_session_channel_name(session_id))
        relay_task = asyncio.create_task(_relay(pubsub, ws, user_id))

    await ws.send_json({"event": "connected", "data": {"sessionId": session_id, "userId": user_id}})

    try:
        while True:
            text = await ws.receive_text()
            if text == "ping":
                await ws.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        if relay_task:
            relay_task.cancel()
        if pubsub is not None:
            try:
                await pubsub.unsubscribe()
                await pubsub.aclose()
            except Exception as e:
                log.warning("Failed to close pubsub for session %s: %s", session_id, e)
        try:
            await mark_absent(session_id, user_id)
        except Exception as e:
            log.warning("Failed to clear presence for user %s: %s", user_id, e)
        log.info("User %s disconnected from session %s", user_id, session_id)
