"""
Prediction and bet repositories.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.predictions import Bet, Prediction
from .base import AsyncBaseRepository


class PredictionRepository(AsyncBaseRepository[Prediction]):
    """Repository for predictions."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Prediction)

    async def list_page(
        self, resolved: bool, now: datetime, limit: int, offset: int
    ) -> Tuple[List[Prediction], int]:
        """One page of predictions and the total matching count.

        Open predictions are only listed until they end; resolved ones are
        listed newest resolution first.
        """
        condition = [Prediction.resolved == resolved]
        if not resolved:
            condition.append(Prediction.ends_at >= now)

        count_result = await self.session.exec(select(func.count()).select_from(Prediction).where(*condition))
        total = int(count_result.one())

        order = col(Prediction.resolved_at).desc() if resolved else col(Prediction.ends_at).asc()
        stmt = select(Prediction).where(*condition).order_by(order).limit(limit).offset(offset)
        result = await self.session.exec(stmt)
        return list(result.all()), total


class BetRepository(AsyncBaseRepository[Bet]):
    """Repository for bets."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Bet)

    async def for_prediction(self, prediction_id: str, user_id: Optional[str] = None) -> List[Bet]:
        stmt = select(Bet).where(Bet.prediction_id == prediction_id)
        if user_id is not None:
            stmt = stmt.where(Bet.user_id == user_id)
        result = await self.session.exec(stmt.order_by(col(Bet.created_at).asc()))
        return list(result.all())
