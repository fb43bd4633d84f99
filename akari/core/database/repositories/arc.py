"""
ARC arena and billing repositories.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.arc import ArcBillingRecord, Arena, ArenaCreator
from .base import AsyncBaseRepository


class ArenaRepository(AsyncBaseRepository[Arena]):
    """Repository for arenas and their creators."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Arena)

    async def get_by_slug(self, slug: str) -> Optional[Arena]:
        result = await self.session.exec(select(Arena).where(Arena.slug == slug))
        return result.one_or_none()

    async def active(self) -> List[Arena]:
        result = await self.session.exec(select(Arena).where(Arena.status == "active"))
        return list(result.all())

    async def for_projects(self, project_ids: Iterable[str]) -> List[Arena]:
        ids = list(set(project_ids))
        if not ids:
            return []
        result = await self.session.exec(select(Arena).where(col(Arena.project_id).in_(ids)))
        return list(result.all())

    async def creators(self, arena_id: str) -> List[ArenaCreator]:
        stmt = (
            select(ArenaCreator)
            .where(ArenaCreator.arena_id == arena_id)
            .order_by(col(ArenaCreator.arc_points).desc(), col(ArenaCreator.created_at).asc())
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def creators_in_arenas(
        self, arena_ids: Iterable[str], since: Optional[datetime] = None, until: Optional[datetime] = None
    ) -> List[ArenaCreator]:
        ids = list(set(arena_ids))
        if not ids:
            return []
        stmt = select(ArenaCreator).where(col(ArenaCreator.arena_id).in_(ids))
        if since is not None:
            stmt = stmt.where(ArenaCreator.created_at >= since)
        if until is not None:
            stmt = stmt.where(ArenaCreator.created_at <= until)
        result = await self.session.exec(stmt)
        return list(result.all())

    async def is_creator(self, username: str) -> bool:
        stmt = select(ArenaCreator.id).where(
            func.lower(ArenaCreator.twitter_username) == username.lstrip("@").lower()
        )
        result = await self.session.exec(stmt.limit(1))
        return result.first() is not None


class ArcBillingRepository(AsyncBaseRepository[ArcBillingRecord]):
    """Repository for ARC billing records."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ArcBillingRecord)

    async def in_range(self, since: datetime, until: datetime) -> List[ArcBillingRecord]:
        stmt = select(ArcBillingRecord).where(
            ArcBillingRecord.created_at >= since, ArcBillingRecord.created_at <= until
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def paid_since(self, since: datetime) -> List[ArcBillingRecord]:
        stmt = select(ArcBillingRecord).where(
            ArcBillingRecord.payment_status == "paid", ArcBillingRecord.created_at >= since
        )
        result = await self.session.exec(stmt)
        return list(result.all())
