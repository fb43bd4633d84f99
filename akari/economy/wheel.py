"""
Wheel of Fortune.

Each user gets a fixed number of spins per UTC day. Prizes are drawn by
weight; MYST prizes are paid out of the wheel pool, which is funded by 5 % of
every spend, and are downgraded to a small aXP prize when the pool cannot
cover them.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import utc_now
from akari.core.database.entities.myst import MystTransaction, WheelSpin
from akari.core.database.entities.users import User
from akari.core.database.repositories.myst import MystTransactionRepository, PoolBalanceRepository, WheelSpinRepository
from akari.core.database.repositories.users import UserRepository
from akari.core.errors import WheelLimitError
from akari.core.logging_config import get_logger

from .myst import POOL_WHEEL

logger = get_logger(__name__)

SPINS_PER_DAY = 2
TX_WHEEL_PRIZE = "wheel_prize"


@dataclass(frozen=True)
class WheelPrize:
    type: str
    label: str
    myst: float
    axp: int
    weight: int


WHEEL_PRIZES = (
    WheelPrize("axp", "aXP +5", 0, 5, 22),
    WheelPrize("myst", "0.1 MYST", 0.1, 0, 15),
    WheelPrize("axp", "aXP +10", 0, 10, 18),
    WheelPrize("myst", "0.5 MYST", 0.5, 0, 10),
    WheelPrize("axp", "aXP +15", 0, 15, 14),
    WheelPrize("axp", "aXP +20", 0, 20, 10),
    WheelPrize("axp", "aXP +25", 0, 25, 6),
    WheelPrize("myst", "1 MYST", 1, 0, 5),
)

FALLBACK_PRIZE = WheelPrize("axp", "aXP +5", 0, 5, 0)


def select_prize(pool_balance: float, rng: Optional[random.Random] = None) -> WheelPrize:
    """Draw a prize by weight, downgrading MYST prizes the pool cannot pay."""
    rng = rng or random.Random()
    prize = rng.choices(WHEEL_PRIZES, weights=[p.weight for p in WHEEL_PRIZES], k=1)[0]
    if prize.type == "myst" and prize.myst > pool_balance:
        return FALLBACK_PRIZE
    return prize


def day_start(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass
class SpinOutcome:
    spin: WheelSpin
    spins_remaining: int
    pool_balance: float


class WheelService:
    def __init__(self, session: AsyncSession, rng: Optional[random.Random] = None) -> None:
        self.session = session
        self.rng = rng
        self.spins = WheelSpinRepository(session)
        self.pools = PoolBalanceRepository(session)
        self.transactions = MystTransactionRepository(session)
        self.users = UserRepository(session)

    async def spins_today(self, user_id: str, now: Optional[datetime] = None) -> int:
        return await self.spins.count_since(user_id, day_start(now or utc_now()))

    async def status(self, user: User, now: Optional[datetime] = None) -> dict:
        now = now or utc_now()
        used = await self.spins_today(user.id, now)
        return {
            "spinsToday": used,
            "spinsRemaining": max(SPINS_PER_DAY - used, 0),
            "poolBalance": await self.pools.get_balance(POOL_WHEEL),
            "nextResetAt": day_start(now) + timedelta(days=1),
        }

    async def spin(self, user: User, now: Optional[datetime] = None) -> SpinOutcome:
        now = now or utc_now()
        used = await self.spins_today(user.id, now)
        if used >= SPINS_PER_DAY:
            raise WheelLimitError(f"No spins left today ({SPINS_PER_DAY} per day)")

        pool_balance = await self.pools.get_balance(POOL_WHEEL)
        prize = select_prize(pool_balance, self.rng)

        spin = WheelSpin(
            user_id=user.id,
            prize_type=prize.type,
            prize_label=prize.label,
            myst_amount=prize.myst,
            axp_amount=prize.axp,
            created_at=now,
        )
        self.spins.add(spin)

        if prize.type == "myst":
            pool = await self.pools.adjust(POOL_WHEEL, -prize.myst)
            pool_balance = pool.balance
            self.transactions.add(
                MystTransaction(user_id=user.id, type=TX_WHEEL_PRIZE, amount=prize.myst, meta={"label": prize.label})
            )
        else:
            user.points += prize.axp
            user.updated_at = now
            self.users.add(user)

        await self.session.commit()
        await self.session.refresh(spin)
        logger.info(f"User {user.id} spun the wheel: {prize.label}", extra={"user_id": user.id, "prize": prize.label})
        return SpinOutcome(spin=spin, spins_remaining=SPINS_PER_DAY - used - 1, pool_balance=pool_balance)
