"""
Prediction market endpoints.
"""

from fastapi import APIRouter, Query

from akari.economy.predictions import PredictionService
from akari.server.schemas import BetCreate, BetOut, PredictionCreate, PredictionOut
from akari.server.services.deps import SessionDep, TelegramUserDep

router = APIRouter()


@router.get(
    "",
    summary="List predictions",
    description="Open predictions (not ended yet) or resolved ones, paginated.",
)
async def list_predictions(
    session: SessionDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    resolved: bool = Query(default=False),
):
    result = await PredictionService(session).list_predictions(page=page, limit=limit, resolved=resolved)
    return {
        "ok": True,
        "predictions": [PredictionOut.model_validate(p).to_wire() for p in result["items"]],
        "pagination": result["pagination"],
    }


@router.post("", status_code=201, summary="Create a prediction")
async def create_prediction(body: PredictionCreate, user: TelegramUserDep, session: SessionDep):
    prediction = await PredictionService(session).create_prediction(
        title=body.title,
        options=body.options,
        ends_at=body.ends_at,
        description=body.description,
        creator=user,
    )
    return {"ok": True, "prediction": PredictionOut.model_validate(prediction).to_wire()}


@router.post(
    "/{prediction_id}/bet",
    summary="Bet on a prediction",
    description="The stake is spent like any MYST spend and split between the pools.",
    responses={404: {"description": "Prediction not found"}},
)
async def place_bet(prediction_id: str, body: BetCreate, user: TelegramUserDep, session: SessionDep):
    service = PredictionService(session)
    bet = await service.place_bet(user, prediction_id, body.option_index, body.amount)
    return {
        "ok": True,
        "bet": BetOut.model_validate(bet).to_wire(),
        "balance": await service.myst.get_balance(user.id),
    }
