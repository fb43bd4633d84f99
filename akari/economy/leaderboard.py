"""
Mini App leaderboards.

Three rankings are available: aXP points, MYST spent and referral earnings.
Weekly rankings reset every Tuesday at 23:00 UTC.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import utc_now
from akari.core.database.repositories.myst import MystTransactionRepository
from akari.core.database.repositories.users import UserRepository

from .myst import TX_REFERRAL_REWARD_L1, TX_REFERRAL_REWARD_L2

LEADERBOARD_SIZE = 50
REWARD_ELIGIBLE_RANKS = 10

LEADERBOARD_TYPES = ("points", "myst_spent", "referrals")
LEADERBOARD_PERIODS = ("all", "week")


def week_start(now: datetime) -> datetime:
    """Start of the current leaderboard week: the last Tuesday 23:00 UTC."""
    days_back = (now.weekday() - 1) % 7
    if now.weekday() == 1 and now.hour < 23:
        days_back = 7
    start = now - timedelta(days=days_back)
    return start.replace(hour=23, minute=0, second=0, microsecond=0)


class LeaderboardService:
    def __init__(self, session: AsyncSession) -> None:
        self.users = UserRepository(session)
        self.transactions = MystTransactionRepository(session)

    async def build(self, board_type: str = "points", period: str = "all", now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        if board_type not in LEADERBOARD_TYPES:
            board_type = "points"
        since = week_start(now or utc_now()) if period == "week" else None

        if board_type == "myst_spent":
            return await self._myst_spent(since)
        if board_type == "referrals":
            return await self._referrals(since)
        return await self._points()

    async def _points(self) -> List[Dict[str, Any]]:
        users = await self.users.top_by_points(LEADERBOARD_SIZE)
        completions = await self.users.completion_counts(user.id for user in users)
        return [
            {
                "rank": idx + 1,
                "userId": user.id,
                "username": user.username or "Anonymous",
                "tier": user.tier,
                "points": user.points,
                "completions": completions.get(user.id, 0),
                "rewardEligible": idx < REWARD_ELIGIBLE_RANKS,
            }
            for idx, user in enumerate(users)
        ]

    async def _myst_spent(self, since: Optional[datetime]) -> List[Dict[str, Any]]:
        rows = await self.transactions.top_spenders(LEADERBOARD_SIZE, since)
        users = await self.users.get_many(user_id for user_id, _ in rows)
        entries = []
        for idx, (user_id, spent) in enumerate(rows):
            user = users.get(user_id)
            entries.append(
                {
                    "rank": idx + 1,
                    "userId": user_id,
                    "username": (user.username if user else None) or "Anonymous",
                    "tier": user.tier if user else None,
                    "points": user.points if user else 0,
                    "mystSpent": spent,
                    "rewardEligible": idx < REWARD_ELIGIBLE_RANKS,
                }
            )
        return entries

    async def _referrals(self, since: Optional[datetime]) -> List[Dict[str, Any]]:
        rows = await self.transactions.top_referrers(
            (TX_REFERRAL_REWARD_L1, TX_REFERRAL_REWARD_L2), LEADERBOARD_SIZE, since
        )
        users = await self.users.get_many(user_id for user_id, _, _ in rows)
        entries = []
        for idx, (user_id, earned, count) in enumerate(rows):
            user = users.get(user_id)
            entries.append(
                {
                    "rank": idx + 1,
                    "userId": user_id,
                    "username": (user.username if user else None) or "Anonymous",
                    "tier": user.tier if user else None,
                    "points": user.points if user else 0,
                    "referralEarnings": earned,
                    "referralRewards": count,
                    "rewardEligible": idx < REWARD_ELIGIBLE_RANKS,
                }
            )
        return entries
