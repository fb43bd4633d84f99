"""
MYST ledger repositories.

Balances are aggregates over ``myst_transactions``; pools are single rows
adjusted in place.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..base import utc_now
from ..entities.myst import MystTransaction, PoolBalance, ReferralEvent, WheelSpin, WithdrawalRequest
from .base import AsyncBaseRepository


class MystTransactionRepository(AsyncBaseRepository[MystTransaction]):
    """Repository for the MYST ledger."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, MystTransaction)

    async def balance(self, user_id: str) -> float:
        """Sum of every ledger amount of ``user_id`` (0 for no rows)."""
        stmt = select(func.coalesce(func.sum(MystTransaction.amount), 0.0)).where(MystTransaction.user_id == user_id)
        result = await self.session.exec(stmt)
        return float(result.one())

    async def top_spenders(self, limit: int, since: Optional[datetime] = None) -> List[Tuple[str, float]]:
        """Users ranked by MYST spent (``spend_*`` debits), as positive totals."""
        total = func.sum(MystTransaction.amount)
        stmt = (
            select(MystTransaction.user_id, total)
            .where(col(MystTransaction.type).like("spend_%"))
            .where(MystTransaction.amount < 0)
            .group_by(MystTransaction.user_id)
            .order_by(total.asc())
            .limit(limit)
        )
        if since is not None:
            stmt = stmt.where(MystTransaction.created_at >= since)
        result = await self.session.exec(stmt)
        return [(user_id, abs(float(amount))) for user_id, amount in result.all()]

    async def top_referrers(
        self, types: Iterable[str], limit: int, since: Optional[datetime] = None
    ) -> List[Tuple[str, float, int]]:
        """Users ranked by referral rewards earned: ``(user_id, total, count)``."""
        total = func.sum(MystTransaction.amount)
        stmt = (
            select(MystTransaction.user_id, total, func.count())
            .where(col(MystTransaction.type).in_(list(types)))
            .group_by(MystTransaction.user_id)
            .order_by(total.desc())
            .limit(limit)
        )
        if since is not None:
            stmt = stmt.where(MystTransaction.created_at >= since)
        result = await self.session.exec(stmt)
        return [(user_id, float(amount), int(count)) for user_id, amount, count in result.all()]

    async def has_entry(self, user_id: str, tx_type: str) -> bool:
        stmt = select(func.count()).select_from(MystTransaction).where(
            MystTransaction.user_id == user_id, MystTransaction.type == tx_type
        )
        result = await self.session.exec(stmt)
        return int(result.one()) > 0


class PoolBalanceRepository(AsyncBaseRepository[PoolBalance]):
    """Repository for economy pool balances."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, PoolBalance)

    async def get_balance(self, pool_id: str) -> float:
        pool = await self.get_by_id(pool_id)
        return pool.balance if pool else 0.0

    async def adjust(self, pool_id: str, delta: float) -> PoolBalance:
        """Stage ``balance += delta`` for a pool, creating the row if needed."""
        pool = await self.get_by_id(pool_id)
        if pool is None:
            pool = PoolBalance(id=pool_id, balance=0.0)
        pool.balance = pool.balance + delta
        pool.updated_at = utc_now()
        self.session.add(pool)
        return pool

    async def all_balances(self) -> Dict[str, float]:
        result = await self.session.exec(select(PoolBalance))
        return {pool.id: pool.balance for pool in result.all()}


class ReferralEventRepository(AsyncBaseRepository[ReferralEvent]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ReferralEvent)


class WheelSpinRepository(AsyncBaseRepository[WheelSpin]):
    """Repository for wheel spins."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, WheelSpin)

    async def count_since(self, user_id: str, since: datetime) -> int:
        stmt = select(func.count()).select_from(WheelSpin).where(
            WheelSpin.user_id == user_id, WheelSpin.created_at >= since
        )
        result = await self.session.exec(stmt)
        return int(result.one())


class WithdrawalRequestRepository(AsyncBaseRepository[WithdrawalRequest]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, WithdrawalRequest)
