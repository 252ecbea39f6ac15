import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from app.db.session import get_db
from app.db.models import User
from app.schemas.auth import RegisterRequest, LoginRequest, UserDTO, AuthResponse
from app.schemas.common import ok
from app.core.config import settings
from app.core.errors import ConflictError, UnauthorizedError
from app.utils.auth import create_access_token, pwd_context
log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

def _set_auth_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=settings.ACCESS_TOKEN_COOKIE_NAME,
        value=access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        path="/",
    )

def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        user=UserDTO.model_validate(user),
        access_token=create_access_token(user.id),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )

@router.post("/register")
async def register(data: RegisterRequest, response: Response, db: AsyncSession = Depends(get_db)):
    email = data.email.lower()
    existing_user = await db.execute(select(User).where(User.email == email))
    if existing_user.scalar():
        raise ConflictError("Email already registered")

    user = User(
        email=email,
        name=data.name,
        password_hash=pwd_context.hash(data.password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    log.info("Registered user %s", user.id)

    payload = _auth_response(user)
    _set_auth_cookie(response, payload.access_token)
    return ok(payload)

@router.post("/login")
async def login(data: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == data.email.lower()))
    user = result.scalar_one_or_none()
    if not user or not pwd_context.verify(data.password, user.password_hash):
        raise UnauthorizedError("Invalid email or password")

    payload = _auth_response(user)
    _set_auth_cookie(response, payload.access_token)
    return ok(payload)
