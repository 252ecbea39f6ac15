from pydantic import Field

from app.schemas.common import CamelModel

class SubscriptionKeys(CamelModel):
    p256dh: str
    auth: str

class SubscriptionRequest(CamelModel):
    endpoint: str = Field(min_length=1)
    keys: SubscriptionKeys

class UnsubscribeRequest(CamelModel):
    endpoint: str | None = None

class SubscriptionResponse(CamelModel):
    registered: bool

class UnsubscribeResponse(CamelModel):
    unregistered: bool
