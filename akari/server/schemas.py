"""
API Schemas.

Pydantic models for request bodies and for the objects embedded in response
envelopes. Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# =====================================================================
# Requests
# =====================================================================


class TelegramLoginRequest(CamelModel):
    init_data: str = Field(..., min_length=1, description="Raw Telegram WebApp initData")
    referral_code: Optional[str] = Field(default=None, description="Referral code from the start link")


class WithdrawRequest(CamelModel):
    amount_myst: float = Field(..., gt=0, description="MYST to withdraw, fee included")


class ReferralApplyRequest(CamelModel):
    code: str = Field(..., min_length=1)


class PredictionCreate(CamelModel):
    """
    Schema for creating a prediction.
    """

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    options: List[str] = Field(..., min_length=2, max_length=10)
    ends_at: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Will TON close above $6 on Friday?",
                "options": ["Yes", "No"],
                "endsAt": "2026-11-01T00:00:00Z",
            }
        }
    )


class BetCreate(CamelModel):
    option_index: int = Field(..., ge=0)
    amount: float = Field(..., gt=0, description="Stake in MYST")


class PredictionResolve(CamelModel):
    winning_option: int = Field(..., ge=0, description="Index of the winning option")


class MystGrantRequest(CamelModel):
    user_id: str
    amount: float = Field(..., gt=0)
    reason: Optional[str] = None


class QuestScoreRequest(CamelModel):
    text: str
    objectives: Optional[str] = None
    used_campaign_link: bool = False
    brand_attribution: Optional[bool] = Field(
        default=None, description="Detected from the brand aliases when omitted"
    )
    brand_name: Optional[str] = None
    brand_handle: Optional[str] = None
    aliases: List[str] = Field(default_factory=list)
    platform: str = "x"
    likes: Optional[float] = None
    replies: Optional[float] = None
    reposts: Optional[float] = None


# =====================================================================
# Response objects
# =====================================================================


class UserOut(CamelModel):
    id: str
    telegram_id: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    tier: Optional[str] = None
    points: int = 0
    referral_code: Optional[str] = None
    ton_address: Optional[str] = None


class PredictionOut(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    options: List[str]
    total_pool: float
    status: str
    resolved: bool
    winning_option: Optional[str] = None
    ends_at: datetime
    resolved_at: Optional[datetime] = None
    created_at: datetime


class BetOut(CamelModel):
    id: str
    prediction_id: str
    option: str
    option_index: int
    myst_bet: float
    myst_payout: Optional[float] = None
    created_at: datetime


class WheelSpinOut(CamelModel):
    id: str
    prize_type: str
    prize_label: str
    myst_amount: float
    axp_amount: int
    created_at: datetime


class WithdrawalOut(CamelModel):
    id: str
    ton_address: str
    myst_requested: float
    myst_fee: float
    usd_net: float
    ton_price_usd: float
    ton_amount: float
    status: str
    created_at: datetime
