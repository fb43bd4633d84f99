"""
MYST balance and withdrawal endpoints.
"""

from fastapi import APIRouter

from akari.economy.myst import MystService
from akari.markets.ton_price import fetch_ton_price_usd
from akari.server.schemas import WithdrawalOut, WithdrawRequest
from akari.server.services.deps import SessionDep, TelegramUserDep

router = APIRouter()


@router.get("/balance", summary="MYST balance of the signed-in user")
async def get_balance(user: TelegramUserDep, session: SessionDep):
    balance = await MystService(session).get_balance(user.id)
    return {"ok": True, "balance": balance}


@router.post(
    "/withdraw",
    summary="Request a TON withdrawal",
    description="Debit MYST and queue a manual TON payout at the current TON price.",
)
async def withdraw(body: WithdrawRequest, user: TelegramUserDep, session: SessionDep):
    ton_price = await fetch_ton_price_usd()
    service = MystService(session)
    withdrawal = await service.request_withdrawal(user, body.amount_myst, ton_price)
    return {
        "ok": True,
        "withdrawal": WithdrawalOut.model_validate(withdrawal).to_wire(),
        "balance": await service.get_balance(user.id),
    }
