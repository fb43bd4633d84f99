"""
Platform report for super admins.

Rolls up ARC projects, creator participation, engagement, content volume and
billing over a time range into one report with revenue ratios and costs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import to_naive_utc, utc_now
from akari.core.database.entities.arc import ArcBillingRecord, Arena, ArenaCreator
from akari.core.database.entities.projects import Project, ProjectTweet
from akari.core.database.repositories.arc import ArcBillingRepository, ArenaRepository
from akari.core.database.repositories.projects import ProjectRepository, ProjectTweetRepository
from akari.core.logging_config import get_logger

logger = get_logger(__name__)

ACCESS_LEVELS = ("leaderboard", "gamified", "creator_manager")
TIME_RANGE_DAYS = {"7d": 7, "30d": 30}
DEFAULT_TIME_RANGE = "30d"


@dataclass
class ReportRange:
    type: str
    start: datetime
    end: datetime


def resolve_range(
    time_range: Optional[str],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> ReportRange:
    """Report window; anything that is not a valid range falls back to 30 days."""
    now = now or utc_now()
    if time_range == "custom" and start_date is not None and end_date is not None:
        return ReportRange("custom", to_naive_utc(start_date), to_naive_utc(end_date))
    if time_range not in TIME_RANGE_DAYS:
        time_range = DEFAULT_TIME_RANGE
    return ReportRange(time_range, now - timedelta(days=TIME_RANGE_DAYS[time_range]), now)


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    return numerator / denominator * scale if denominator > 0 else 0.0


def build_platform_report(
    report_range: ReportRange,
    projects: Sequence[Project],
    arenas: Iterable[Arena],
    creators: Iterable[ArenaCreator],
    tweets: Iterable[ProjectTweet],
    billing: Iterable[ArcBillingRecord],
    monthly_paid: Iterable[ArcBillingRecord],
) -> Dict[str, Any]:
    projects_by_level = {level: 0 for level in ACCESS_LEVELS}
    for project in projects:
        if project.arc_access_level in projects_by_level:
            projects_by_level[project.arc_access_level] += 1

    arena_projects = {arena.id: arena.project_id for arena in arenas}
    unique_creators = set()
    participations = 0
    for creator in creators:
        if not creator.profile_id:
            continue
        unique_creators.add(creator.profile_id)
        if arena_projects.get(creator.arena_id):
            participations += 1

    likes = replies = reposts = quotes = posts = threads = 0
    for tweet in tweets:
        likes += tweet.likes or 0
        replies += tweet.replies or 0
        reposts += tweet.retweets or 0
        quotes += tweet.quotes or 0
        if tweet.is_thread:
            threads += 1
        else:
            posts += 1
    total_engagement = likes + replies + reposts + quotes

    gross = net = discounts = 0.0
    revenue_by_level = {level: 0.0 for level in ACCESS_LEVELS}
    billed_projects: Dict[str, set] = {level: set() for level in ACCESS_LEVELS}
    for record in billing:
        base_price = record.base_price_usd or 0.0
        final_price = record.final_price_usd or 0.0
        gross += base_price
        net += final_price
        discounts += base_price - final_price
        if record.access_level:
            revenue_by_level[record.access_level] = revenue_by_level.get(record.access_level, 0.0) + final_price
            billed_projects.setdefault(record.access_level, set()).add(record.project_id)

    mrr = {level: 0.0 for level in ACCESS_LEVELS}
    for record in monthly_paid:
        if record.access_level:
            mrr[record.access_level] = mrr.get(record.access_level, 0.0) + (record.final_price_usd or 0.0)

    creators_count = len(unique_creators)
    return {
        "timeRange": {
            "type": report_range.type,
            "startDate": report_range.start.isoformat(),
            "endDate": report_range.end.isoformat(),
        },
        "aggregate": {
            "projects": {
                "totalActive": len(projects),
                "mindshare": projects_by_level["leaderboard"],
                "gamified": projects_by_level["gamified"],
                "crm": projects_by_level["creator_manager"],
            },
            "creators": {"unique": creators_count, "totalParticipations": participations},
            "engagement": {
                "totalLikes": likes,
                "totalReplies": replies,
                "totalReposts": reposts,
                "totalQuotes": quotes,
                "totalEngagement": total_engagement,
            },
            "content": {"totalPosts": posts, "totalThreads": threads, "totalContent": posts + threads},
        },
        "financial": {
            "revenue": {
                "gross": gross,
                "net": net,
                "discountsTotal": discounts,
                "discountRate": _ratio(discounts, gross, 100),
            },
            "mrr": {
                "mindshare": mrr["leaderboard"],
                "gamified": mrr["gamified"],
                "crm": mrr["creator_manager"],
                "total": mrr["leaderboard"] + mrr["gamified"] + mrr["creator_manager"],
            },
            "byAccessLevel": {
                level: {"revenue": revenue_by_level[level], "projects": len(billed_projects[level])}
                for level in ACCESS_LEVELS
            },
        },
        "ratios": {
            "revenuePerCreator": _ratio(net, creators_count),
            "costPerParticipation": _ratio(net, participations),
            "costPerUniqueCreator": _ratio(net, creators_count),
            "engagementToSpendRatio": _ratio(total_engagement, net),
        },
        "costs": {"cpe": _ratio(net, total_engagement)},
    }


class PlatformReportService:
    def __init__(self, session: AsyncSession) -> None:
        self.projects = ProjectRepository(session)
        self.arenas = ArenaRepository(session)
        self.tweets = ProjectTweetRepository(session)
        self.billing = ArcBillingRepository(session)

    async def generate(
        self,
        time_range: Optional[str] = DEFAULT_TIME_RANGE,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or utc_now()
        report_range = resolve_range(time_range, start_date, end_date, now)
        logger.info(
            f"Generating platform report for {report_range.type}: "
            f"{report_range.start.isoformat()} to {report_range.end.isoformat()}"
        )

        projects = await self.projects.arc_approved()
        project_ids: List[str] = [project.id for project in projects]
        arenas = await self.arenas.for_projects(project_ids)
        creators = await self.arenas.creators_in_arenas(
            [arena.id for arena in arenas], since=report_range.start, until=report_range.end
        )
        tweets = await self.tweets.in_window(project_ids, report_range.start, report_range.end)
        billing = await self.billing.in_range(report_range.start, report_range.end)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        monthly_paid = await self.billing.paid_since(month_start)

        report = build_platform_report(report_range, projects, arenas, creators, tweets, billing, monthly_paid)
        logger.info(
            "Platform report generated",
            extra={
                "projects": report["aggregate"]["projects"]["totalActive"],
                "creators": report["aggregate"]["creators"]["unique"],
                "revenue": report["financial"]["revenue"]["net"],
            },
        )
        return report
