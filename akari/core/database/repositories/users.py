"""
User repositories: Mini App users and the read side of portal identities.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.campaigns import CampaignUserProgress
from ..entities.users import PortalSession, PortalUserRole, User
from .base import AsyncBaseRepository


class UserRepository(AsyncBaseRepository[User]):
    """Repository for Mini App users."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_telegram_id(self, telegram_id: str) -> Optional[User]:
        result = await self.session.exec(select(User).where(User.telegram_id == str(telegram_id)))
        return result.one_or_none()

    async def get_by_referral_code(self, code: str) -> Optional[User]:
        result = await self.session.exec(select(User).where(User.referral_code == code))
        return result.one_or_none()

    async def count_referrals(self, user_id: str) -> int:
        """Number of users whose direct referrer is ``user_id``."""
        result = await self.session.exec(select(func.count()).select_from(User).where(User.referrer_id == user_id))
        return int(result.one())

    async def top_by_points(self, limit: int) -> List[User]:
        stmt = select(User).where(User.points > 0).order_by(col(User.points).desc()).limit(limit)
        result = await self.session.exec(stmt)
        return list(result.all())

    async def completion_counts(self, user_ids: Iterable[str], since: Optional[datetime] = None) -> Dict[str, int]:
        """Completed campaign count per user."""
        ids = list(set(user_ids))
        if not ids:
            return {}
        stmt = (
            select(CampaignUserProgress.user_id, func.count())
            .where(col(CampaignUserProgress.user_id).in_(ids))
            .where(CampaignUserProgress.completed == True)  # noqa: E712
            .group_by(CampaignUserProgress.user_id)
        )
        if since is not None:
            stmt = stmt.where(col(CampaignUserProgress.completed_at) >= since)
        result = await self.session.exec(stmt)
        return {user_id: int(count) for user_id, count in result.all()}


class PortalSessionRepository(AsyncBaseRepository[PortalSession]):
    """Repository for ARC portal sessions."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, PortalSession)

    async def get_by_token(self, token: str) -> Optional[PortalSession]:
        result = await self.session.exec(select(PortalSession).where(PortalSession.session_token == token))
        return result.one_or_none()

    async def get_roles(self, user_id: str) -> List[str]:
        result = await self.session.exec(select(PortalUserRole.role).where(PortalUserRole.user_id == user_id))
        return list(result.all())
