from dataclasses import dataclass

from jose import JWTError
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.errors import UnauthorizedError
from app.db.models import Session, User
from app.db.session import get_db
from app.services.sessions import load_participant_session
from app.utils.auth import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login", auto_error=False)

async def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    token_value = token or request.cookies.get(settings.ACCESS_TOKEN_COOKIE_NAME)
    if not token_value:
        raise UnauthorizedError()

    try:
        user_id = decode_access_token(token_value)
    except (JWTError, ValueError):
        raise UnauthorizedError("Could not validate credentials")
    if user_id is None:
        raise UnauthorizedError("Could not validate credentials")

    user = await db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("Could not validate credentials")

    return user


@dataclass
class Participant:
    user: User
    session: Session
    partner_id: int | None


async def get_participant(
    session_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Participant:
    """Resolves ``session_id`` for the current user; NOT_FOUND unless they hold a vessel in it."""
    session, partner_id = await load_participant_session(db, session_id, user.id)
    return Participant(user=user, session=session, partner_id=partner_id)
