"""
Referral endpoints.
"""

from fastapi import APIRouter

from akari.economy.myst import MystService
from akari.server.schemas import ReferralApplyRequest
from akari.server.services.deps import SessionDep, TelegramUserDep

router = APIRouter()


@router.post("/apply", summary="Attach a referrer using their referral code")
async def apply_referral(body: ReferralApplyRequest, user: TelegramUserDep, session: SessionDep):
    referrer = await MystService(session).apply_referral_code(user, body.code)
    return {"ok": True, "referrer": {"id": referrer.id, "username": referrer.username}}
