from datetime import datetime, timezone

from fastapi import APIRouter

from app.schemas.common import ok

router = APIRouter(tags=["health"])

@router.get("/health")
async def health():
    return ok({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})
