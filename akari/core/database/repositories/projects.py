"""
Project, tweet and mindshare snapshot repositories.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.projects import MetricsDaily, MindshareSnapshot, Project, ProjectTweet
from .base import AsyncBaseRepository


class ProjectRepository(AsyncBaseRepository[Project]):
    """Repository for tracked projects."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Project)

    async def active(self) -> List[Project]:
        result = await self.session.exec(select(Project).where(Project.is_active == True))  # noqa: E712
        return list(result.all())

    async def arc_approved(self) -> List[Project]:
        """Projects with ARC switched on at some access level."""
        stmt = select(Project).where(Project.arc_active == True, Project.arc_access_level != "none")  # noqa: E712
        result = await self.session.exec(stmt)
        return list(result.all())

    async def latest_ct_heat(self, project_id: str, as_of: date) -> Optional[float]:
        stmt = (
            select(MetricsDaily.ct_heat_score)
            .where(MetricsDaily.project_id == project_id, MetricsDaily.metric_date <= as_of)
            .order_by(col(MetricsDaily.metric_date).desc())
            .limit(1)
        )
        result = await self.session.exec(stmt)
        return result.first()


class ProjectTweetRepository(AsyncBaseRepository[ProjectTweet]):
    """Repository for project tweets."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ProjectTweet)

    async def in_window(
        self,
        project_ids: Iterable[str],
        since: datetime,
        until: Optional[datetime] = None,
        include_official: bool = True,
    ) -> List[ProjectTweet]:
        ids = list(set(project_ids))
        if not ids:
            return []
        stmt = select(ProjectTweet).where(col(ProjectTweet.project_id).in_(ids), ProjectTweet.created_at >= since)
        if until is not None:
            stmt = stmt.where(ProjectTweet.created_at <= until)
        if not include_official:
            stmt = stmt.where(ProjectTweet.is_official == False)  # noqa: E712
        result = await self.session.exec(stmt)
        return list(result.all())

    async def by_author(
        self, username: str, since: Optional[datetime] = None, project_id: Optional[str] = None
    ) -> List[ProjectTweet]:
        """Tweets of one author (handle compared case-insensitively), oldest first."""
        stmt = select(ProjectTweet).where(func.lower(ProjectTweet.author_handle) == username.lstrip("@").lower())
        if since is not None:
            stmt = stmt.where(ProjectTweet.created_at > since)
        if project_id is not None:
            stmt = stmt.where(ProjectTweet.project_id == project_id)
        result = await self.session.exec(stmt.order_by(col(ProjectTweet.created_at).asc()))
        return list(result.all())


class MindshareSnapshotRepository(AsyncBaseRepository[MindshareSnapshot]):
    """Repository for mindshare snapshots."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, MindshareSnapshot)

    async def find(self, project_id: str, window: str, as_of_date: date) -> Optional[MindshareSnapshot]:
        stmt = select(MindshareSnapshot).where(
            MindshareSnapshot.project_id == project_id,
            MindshareSnapshot.time_window == window,
            MindshareSnapshot.as_of_date == as_of_date,
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def latest_date(self, window: str) -> Optional[date]:
        stmt = select(func.max(MindshareSnapshot.as_of_date)).where(MindshareSnapshot.time_window == window)
        result = await self.session.exec(stmt)
        return result.one()

    async def for_date(self, window: str, as_of_date: date) -> List[MindshareSnapshot]:
        stmt = (
            select(MindshareSnapshot)
            .where(MindshareSnapshot.time_window == window, MindshareSnapshot.as_of_date == as_of_date)
            .order_by(col(MindshareSnapshot.mindshare_bps).desc())
        )
        result = await self.session.exec(stmt)
        return list(result.all())
