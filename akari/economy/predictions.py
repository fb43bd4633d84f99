"""
Prediction markets.

Bets are ordinary MYST spends: at bet time the stake is split between the
pools like any other spend, so the treasury holds 70 % of every stake. On
resolution that treasury share is the win pool and is paid out to the
winners in proportion to their stakes. When nobody picked the winning
option every bettor gets the treasury share of their own stake back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import to_naive_utc, utc_now
from akari.core.database.entities.myst import MystTransaction
from akari.core.database.entities.predictions import Bet, Prediction
from akari.core.database.entities.users import User
from akari.core.database.repositories.myst import MystTransactionRepository, PoolBalanceRepository
from akari.core.database.repositories.predictions import BetRepository, PredictionRepository
from akari.core.errors import NotFoundError, PredictionError
from akari.core.logging_config import get_logger

from .myst import MINIMUM_BET, POOL_TREASURY, SPLIT_TREASURY, MystService

logger = get_logger(__name__)

STATUS_ACTIVE = "ACTIVE"
STATUS_RESOLVED = "RESOLVED"

TX_PREDICTION_WIN = "prediction_win"
TX_PREDICTION_REFUND = "prediction_refund"
SPEND_PREDICTION_BET = "spend_bet"

TITLE_MAX_LENGTH = 200
MIN_OPTIONS = 2
MAX_OPTIONS = 10


@dataclass
class ResolveResult:
    prediction: Prediction
    winners_count: int
    total_payout: float
    refunded_count: int
    total_pool: float
    win_pool: float
    winning_side_total: float


def calculate_payout(stake: float, win_pool: float, winning_side_total: float) -> float:
    """Share of ``win_pool`` owed to a winning ``stake``."""
    if winning_side_total <= 0:
        return 0.0
    return stake * (win_pool / winning_side_total)


class PredictionService:
    """Prediction lifecycle bound to one database session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.predictions = PredictionRepository(session)
        self.bets = BetRepository(session)
        self.transactions = MystTransactionRepository(session)
        self.pools = PoolBalanceRepository(session)
        self.myst = MystService(session)

    async def create_prediction(
        self,
        title: str,
        options: List[str],
        ends_at: datetime,
        description: Optional[str] = None,
        creator: Optional[User] = None,
    ) -> Prediction:
        title = title.strip()
        if not 1 <= len(title) <= TITLE_MAX_LENGTH:
            raise PredictionError(f"Title must be between 1 and {TITLE_MAX_LENGTH} characters")
        options = [option.strip() for option in options if option and option.strip()]
        if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
            raise PredictionError(f"A prediction needs between {MIN_OPTIONS} and {MAX_OPTIONS} options")
        if len(set(options)) != len(options):
            raise PredictionError("Options must be unique")

        prediction = Prediction(
            title=title,
            description=description,
            options=options,
            ends_at=to_naive_utc(ends_at),
            creator_id=creator.id if creator else None,
        )
        prediction = await self.predictions.save(prediction)
        logger.info(f"Prediction {prediction.id} created: {title}")
        return prediction

    async def list_predictions(
        self, page: int = 1, limit: int = 20, resolved: bool = False, now: Optional[datetime] = None
    ) -> Dict:
        page = max(page, 1)
        limit = min(max(limit, 1), 100)
        items, total = await self.predictions.list_page(resolved, now or utc_now(), limit, (page - 1) * limit)
        return {
            "items": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": (total + limit - 1) // limit,
            },
        }

    async def get_prediction(self, prediction_id: str) -> Prediction:
        prediction = await self.predictions.get_by_id(prediction_id)
        if prediction is None:
            raise NotFoundError("Prediction not found")
        return prediction

    async def place_bet(
        self, user: User, prediction_id: str, option_index: int, amount: float, now: Optional[datetime] = None
    ) -> Bet:
        now = now or utc_now()
        prediction = await self.get_prediction(prediction_id)
        if prediction.resolved or prediction.status != STATUS_ACTIVE:
            raise PredictionError("Prediction is closed")
        if prediction.ends_at < now:
            raise PredictionError("Prediction has ended")
        if not 0 <= option_index < len(prediction.options):
            raise PredictionError("Invalid option index")
        if amount < MINIMUM_BET:
            raise PredictionError(f"Minimum bet is {MINIMUM_BET:g} MYST")

        bet = Bet(
            prediction_id=prediction.id,
            user_id=user.id,
            option=prediction.options[option_index],
            option_index=option_index,
            myst_bet=amount,
            created_at=now,
        )
        await self.myst.stage_spend(user, amount, SPEND_PREDICTION_BET, reference_id=prediction.id)
        self.bets.add(bet)
        prediction.total_pool = prediction.total_pool + amount
        self.predictions.add(prediction)
        await self.session.commit()
        await self.session.refresh(bet)
        logger.info(
            f"User {user.id} bet {amount:g} MYST on '{bet.option}' in prediction {prediction.id}",
            extra={"user_id": user.id, "prediction_id": prediction.id, "amount": amount},
        )
        return bet

    async def resolve_prediction(
        self, prediction_id: str, winning_option: int, now: Optional[datetime] = None
    ) -> ResolveResult:
        """Settle a prediction and pay the winners out of the treasury."""
        prediction = await self.get_prediction(prediction_id)
        if prediction.resolved or prediction.status == STATUS_RESOLVED:
            raise PredictionError("Prediction already resolved")
        if not 0 <= winning_option < len(prediction.options):
            raise PredictionError("Invalid winning option index")

        winning_label = prediction.options[winning_option]
        bets = await self.bets.for_prediction(prediction.id)
        total_pool = sum(bet.myst_bet for bet in bets)
        winning_bets = [bet for bet in bets if bet.option_index == winning_option and bet.myst_bet > 0]
        winning_side_total = sum(bet.myst_bet for bet in winning_bets)
        win_pool = total_pool * SPLIT_TREASURY

        winners_count = 0
        refunded_count = 0
        total_payout = 0.0

        if winning_bets:
            for bet in winning_bets:
                payout = calculate_payout(bet.myst_bet, win_pool, winning_side_total)
                self.transactions.add(
                    MystTransaction(
                        user_id=bet.user_id,
                        type=TX_PREDICTION_WIN,
                        amount=payout,
                        meta={
                            "predictionId": prediction.id,
                            "betId": bet.id,
                            "userStake": bet.myst_bet,
                            "winPool": win_pool,
                            "winningSideTotal": winning_side_total,
                        },
                    )
                )
                bet.myst_payout = payout
                self.bets.add(bet)
                winners_count += 1
                total_payout += payout
        else:
            for bet in bets:
                if bet.myst_bet <= 0:
                    continue
                refund = bet.myst_bet * SPLIT_TREASURY
                self.transactions.add(
                    MystTransaction(
                        user_id=bet.user_id,
                        type=TX_PREDICTION_REFUND,
                        amount=refund,
                        meta={"predictionId": prediction.id, "betId": bet.id, "reason": "no_winners"},
                    )
                )
                refunded_count += 1
                total_payout += refund

        if total_payout > 0:
            await self.pools.adjust(POOL_TREASURY, -total_payout)

        prediction.status = STATUS_RESOLVED
        prediction.resolved = True
        prediction.winning_option = winning_label
        prediction.resolved_at = now or utc_now()
        self.predictions.add(prediction)
        await self.session.commit()
        await self.session.refresh(prediction)

        logger.info(
            f"Resolved prediction {prediction.id}: option {winning_option} ({winning_label}), "
            f"pool={total_pool:g}, {winners_count} winners, {total_payout:.2f} MYST paid out",
            extra={"prediction_id": prediction.id, "winners": winners_count, "payout": total_payout},
        )
        return ResolveResult(
            prediction=prediction,
            winners_count=winners_count,
            total_payout=total_payout,
            refunded_count=refunded_count,
            total_pool=total_pool,
            win_pool=win_pool,
            winning_side_total=winning_side_total,
        )
