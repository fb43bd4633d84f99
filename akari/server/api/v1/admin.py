"""
Admin panel endpoints, guarded by the ``x-admin-token`` header.
"""

from fastapi import APIRouter

from akari.economy.myst import MystService
from akari.economy.predictions import PredictionService
from akari.server.schemas import MystGrantRequest, PredictionOut, PredictionResolve
from akari.server.services.deps import AdminTokenDep, SessionDep

router = APIRouter(dependencies=[AdminTokenDep])


@router.post(
    "/predictions/{prediction_id}/resolve",
    summary="Resolve a prediction",
    description="Pay the winners out of the treasury, or refund every bettor when nobody won.",
    responses={404: {"description": "Prediction not found"}},
)
async def resolve_prediction(prediction_id: str, body: PredictionResolve, session: SessionDep):
    result = await PredictionService(session).resolve_prediction(prediction_id, body.winning_option)
    return {
        "ok": True,
        "prediction": PredictionOut.model_validate(result.prediction).to_wire(),
        "winnersCount": result.winners_count,
        "refundedCount": result.refunded_count,
        "totalPayout": result.total_payout,
        "totalPool": result.total_pool,
        "winPool": result.win_pool,
    }


@router.get("/treasury", summary="Pool balances")
async def treasury(session: SessionDep):
    pools = await MystService(session).pool_balances()
    return {"ok": True, "pools": pools, "total": sum(pools.values())}


@router.post("/myst/grant", summary="Grant MYST to a user")
async def grant_myst(body: MystGrantRequest, session: SessionDep):
    balance = await MystService(session).admin_grant(body.user_id, body.amount, body.reason)
    return {"ok": True, "userId": body.user_id, "amount": body.amount, "balance": balance}
