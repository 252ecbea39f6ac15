"""
Utility functions and helpers.

Utilities are organized by concern:
- auth: Password hashing and access tokens
- deps: FastAPI dependencies (current user, session participant)
- messaging: Outbound email (SES) and Web Push
- redis_pool: Shared async Redis connection pool

Import from the submodule directly:
    from app.utils.auth import create_access_token
    from app.utils.messaging import send_push_notification
"""

from .auth import create_token, create_access_token, decode_access_token, pwd_context
from .redis_pool import get_redis, close_redis

__all__ = [
    # Auth
    "create_token",
    "create_access_token",
    "decode_access_token",
    "pwd_context",
    # Redis
    "get_redis",
    "close_redis",
]
