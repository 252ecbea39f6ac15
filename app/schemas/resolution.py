from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel


# ── Stage 3: Needs ────────────────────────────────────────────
class NeedInput(CamelModel):
    category: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=500)


class IdentifyNeedsRequest(CamelModel):
    needs: list[NeedInput] = Field(min_length=1, max_length=10)


class NeedDTO(CamelModel):
    id: str
    category: str
    description: str
    confirmed: bool
    correction: str | None = None


class NeedsResponse(CamelModel):
    needs: list[NeedDTO]
    partner_needs: list[NeedDTO] | None = None
    partner_confirmed: bool = False


class NeedAdjustment(CamelModel):
    need_id: str
    confirmed: bool
    correction: str | None = Field(default=None, max_length=500)


class ConfirmNeedsRequest(CamelModel):
    need_ids: list[str]
    adjustments: list[NeedAdjustment] | None = None


class ConfirmNeedsResponse(CamelModel):
    confirmed: bool
    confirmed_at: datetime
    partner_confirmed: bool
    can_advance: bool


# ── Stage 4: Strategies ───────────────────────────────────────
class ProposeStrategyRequest(CamelModel):
    description: str = Field(min_length=10, max_length=1000)
    needs_addressed: list[str] = Field(min_length=1)
    duration: str | None = Field(default=None, max_length=100)
    measure_of_success: str | None = Field(default=None, max_length=500)


class StrategyDTO(CamelModel):
    id: str
    description: str
    needs_addressed: list[str]
    duration: str | None = None
    measure_of_success: str | None = None
    created_at: datetime


class StrategiesResponse(CamelModel):
    strategies: list[StrategyDTO]


class RankStrategiesRequest(CamelModel):
    ranked_ids: list[str] = Field(min_length=1)


class RankStrategiesResponse(CamelModel):
    ranked: bool
    submitted_at: datetime
    partner_ranked: bool


class ConfirmAgreementRequest(CamelModel):
    confirmed: bool


class ConfirmAgreementResponse(CamelModel):
    confirmed: bool
    partner_confirmed: bool
    session_resolved: bool
