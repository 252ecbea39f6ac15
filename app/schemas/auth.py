from datetime import datetime

from pydantic import EmailStr, Field

from app.schemas.common import CamelModel

class LoginRequest(CamelModel):
    email: EmailStr
    password: str

class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    name: str | None = Field(default=None, max_length=100)

class UserDTO(CamelModel):
    id: int
    email: str
    name: str | None = None
    created_at: datetime

class AuthResponse(CamelModel):
    user: UserDTO
    access_token: str
    token_type: str = "bearer"
    expires_in: int
