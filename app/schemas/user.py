from pydantic import Field

from app.schemas.auth import UserDTO
from app.schemas.common import CamelModel

class UpdateProfileRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)

class UpdateProfileResponse(CamelModel):
    user: UserDTO

class GetMeResponse(CamelModel):
    user: UserDTO
    active_sessions: int
    push_notifications_enabled: bool
