"""
Wheel of Fortune endpoints.
"""

from fastapi import APIRouter

from akari.economy.wheel import WheelService
from akari.server.schemas import WheelSpinOut
from akari.server.services.deps import SessionDep, TelegramUserDep

router = APIRouter()


@router.get("", summary="Spins left today and the wheel pool")
async def wheel_status(user: TelegramUserDep, session: SessionDep):
    status = await WheelService(session).status(user)
    return {"ok": True, **status, "nextResetAt": status["nextResetAt"].isoformat()}


@router.post("/spin", summary="Spin the wheel")
async def spin(user: TelegramUserDep, session: SessionDep):
    outcome = await WheelService(session).spin(user)
    return {
        "ok": True,
        "spin": WheelSpinOut.model_validate(outcome.spin).to_wire(),
        "spinsRemaining": outcome.spins_remaining,
        "poolBalance": outcome.pool_balance,
    }
