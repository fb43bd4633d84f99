"""
Telegram login endpoint.
"""

from fastapi import APIRouter, HTTPException, status

from akari.server.core.config import settings
from akari.server.schemas import TelegramLoginRequest, UserOut
from akari.server.services.auth import TelegramAuthService, verify_telegram_init_data
from akari.server.services.deps import SessionDep

router = APIRouter()


@router.post(
    "/telegram",
    summary="Sign in with Telegram",
    description="Verify Mini App initData, register the user on first visit and grant the onboarding bonus.",
    responses={401: {"description": "Invalid or expired initData"}},
)
async def telegram_login(body: TelegramLoginRequest, session: SessionDep):
    telegram_user = verify_telegram_init_data(
        body.init_data, settings.telegram_bot_token, max_age=settings.init_data_max_age_seconds
    )
    if telegram_user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Telegram init data")

    result = await TelegramAuthService(session).login(telegram_user, body.referral_code)
    return {
        "ok": True,
        "user": UserOut.model_validate(result["user"]).to_wire(),
        "created": result["created"],
        "referralApplied": result["referralApplied"],
        "onboardingBonus": result["onboardingBonus"],
        "balance": result["balance"],
    }
