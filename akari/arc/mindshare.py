"""
Mindshare snapshots.

For every active project and time window an *attention value* is computed
from the project's non-official tweets, then the attention values of all
projects are normalized to basis points that add up to exactly 10000. One
snapshot row per (project, window, day) is upserted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import utc_now
from akari.core.database.entities.projects import MindshareSnapshot, Project, ProjectTweet
from akari.core.database.repositories.projects import (
    MindshareSnapshotRepository,
    ProjectRepository,
    ProjectTweetRepository,
)
from akari.core.logging_config import get_logger
from akari.server.core.config import MindshareConfig, settings

logger = get_logger(__name__)

TOTAL_BPS = 10000
NEUTRAL_SENTIMENT = 50.0

WINDOW_HOURS = {
    "24h": 24,
    "48h": 48,
    "7d": 7 * 24,
    "30d": 30 * 24,
}
WINDOWS = tuple(WINDOW_HOURS)


@dataclass
class ProjectMetrics:
    project_id: str
    posts: int = 0
    unique_creators: int = 0
    engagement: int = 0
    ct_heat: float = 0.0
    sentiment: float = NEUTRAL_SENTIMENT
    attention: float = 0.0


@dataclass
class SnapshotRunResult:
    window: str
    as_of_date: date
    total_projects: int = 0
    created: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "window": self.window,
            "asOfDate": self.as_of_date.isoformat(),
            "totalProjects": self.total_projects,
            "created": self.created,
            "updated": self.updated,
            "errors": self.errors,
        }


def parse_keywords(raw: Any) -> List[str]:
    """Keywords stored as a list or as a comma separated string, lower-cased."""
    if not raw:
        return []
    if isinstance(raw, (list, tuple)):
        keywords = [str(keyword).strip().lower() for keyword in raw]
    else:
        keywords = [keyword.strip() for keyword in str(raw).lower().split(",")]
    return [keyword for keyword in keywords if keyword]


def filter_by_keywords(tweets: Sequence[ProjectTweet], keywords: Sequence[str]) -> List[ProjectTweet]:
    if not keywords:
        return list(tweets)
    return [tweet for tweet in tweets if any(keyword in (tweet.text or "").lower() for keyword in keywords)]


def engagement_points(likes: int, replies: int, retweets: int) -> int:
    return (likes or 0) + (replies or 0) * 2 + (retweets or 0) * 3


def sentiment_multiplier(score: float, config: MindshareConfig) -> float:
    if score <= NEUTRAL_SENTIMENT:
        return config.sentiment_min
    normalized = (score - NEUTRAL_SENTIMENT) / NEUTRAL_SENTIMENT
    return config.sentiment_min + normalized * (config.sentiment_max - config.sentiment_min)


def compute_metrics(
    project_id: str,
    tweets: Sequence[ProjectTweet],
    keywords: Sequence[str],
    ct_heat: Optional[float],
    config: MindshareConfig,
) -> ProjectMetrics:
    """Aggregate one project's tweets into its attention value.

    A project without any tweet in the window has zero attention.
    """
    if not tweets:
        return ProjectMetrics(project_id=project_id)

    relevant = filter_by_keywords(tweets, keywords)
    posts = len(relevant)
    creators = len({tweet.author_handle for tweet in relevant})
    engagement = sum(engagement_points(tweet.likes, tweet.replies, tweet.retweets) for tweet in relevant)
    sentiments = [tweet.sentiment_score for tweet in relevant if tweet.sentiment_score is not None]
    sentiment = sum(sentiments) / len(sentiments) if sentiments else NEUTRAL_SENTIMENT
    heat = ct_heat or 0.0

    core = (
        config.w_posts * math.log1p(posts)
        + config.w_creators * math.log1p(creators)
        + config.w_engagement * math.log1p(engagement)
        + config.w_ct_heat * (heat / 100)
    )
    keyword_strength = (
        config.keyword_strength_with_keywords if keywords else config.keyword_strength_without_keywords
    )
    attention = core * sentiment_multiplier(sentiment, config) * keyword_strength

    return ProjectMetrics(
        project_id=project_id,
        posts=posts,
        unique_creators=creators,
        engagement=engagement,
        ct_heat=heat,
        sentiment=sentiment,
        attention=attention,
    )


def normalize_to_bps(attention: Mapping[str, float]) -> Dict[str, int]:
    """Turn attention values into basis points that sum to exactly 10000.

    Shares are floored; leftover points go one each to the highest attention
    projects. When every value is zero the points are split evenly and the
    leftover goes to the first projects.
    """
    items = list(attention.items())
    if not items:
        return {}

    total = sum(value for _, value in items)
    if total <= 0:
        share, remainder = divmod(TOTAL_BPS, len(items))
        return {project_id: share + (1 if idx < remainder else 0) for idx, (project_id, _) in enumerate(items)}

    bps = {project_id: math.floor(value / total * TOTAL_BPS) for project_id, value in items}
    remainder = TOTAL_BPS - sum(bps.values())

    if remainder > 0:
        for project_id, _ in sorted(items, key=lambda item: item[1], reverse=True)[:remainder]:
            bps[project_id] += 1
    elif remainder < 0:
        to_remove = -remainder
        for project_id, _ in sorted(items, key=lambda item: item[1]):
            if to_remove == 0:
                break
            if bps[project_id] > 0:
                bps[project_id] -= 1
                to_remove -= 1
    return bps


class MindshareService:
    """Computes and reads mindshare snapshots."""

    def __init__(self, session: AsyncSession, config: Optional[MindshareConfig] = None) -> None:
        self.session = session
        self.config = config or settings.mindshare
        self.projects = ProjectRepository(session)
        self.tweets = ProjectTweetRepository(session)
        self.snapshots = MindshareSnapshotRepository(session)

    async def _project_metrics(self, project: Project, since: datetime, until: datetime) -> ProjectMetrics:
        tweets = await self.tweets.in_window([project.id], since, until, include_official=False)
        ct_heat = await self.projects.latest_ct_heat(project.id, until.date())
        return compute_metrics(project.id, tweets, parse_keywords(project.arc_keywords), ct_heat, self.config)

    async def calculate_window_snapshots(self, window: str, as_of: Optional[datetime] = None) -> SnapshotRunResult:
        """Compute and upsert the snapshots of every active project for ``window``."""
        if window not in WINDOW_HOURS:
            raise ValueError(f"Unknown mindshare window: {window}")

        as_of = as_of or utc_now()
        since = as_of - timedelta(hours=WINDOW_HOURS[window])
        result = SnapshotRunResult(window=window, as_of_date=as_of.date())

        projects = await self.projects.active()
        result.total_projects = len(projects)
        logger.info(f"Computing {window} mindshare for {len(projects)} projects as of {as_of.date()}")

        metrics: Dict[str, ProjectMetrics] = {}
        for project in projects:
            try:
                metrics[project.id] = await self._project_metrics(project, since, as_of)
            except Exception as e:
                message = f"Error processing project {project.id}: {e}"
                logger.error(message, exc_info=True)
                result.errors.append(message)

        bps = normalize_to_bps({project_id: m.attention for project_id, m in metrics.items()})

        now = utc_now()
        for project_id, value in bps.items():
            snapshot = await self.snapshots.find(project_id, window, result.as_of_date)
            if snapshot is None:
                snapshot = MindshareSnapshot(project_id=project_id, time_window=window, as_of_date=result.as_of_date)
                result.created += 1
            else:
                result.updated += 1
            snapshot.mindshare_bps = value
            snapshot.attention_value = metrics[project_id].attention
            snapshot.updated_at = now
            self.snapshots.add(snapshot)
        await self.session.commit()

        logger.info(
            f"Mindshare {window} snapshots done: created={result.created}, updated={result.updated}, "
            f"errors={len(result.errors)}"
        )
        return result

    async def calculate_all_windows(self, as_of: Optional[datetime] = None) -> List[SnapshotRunResult]:
        as_of = as_of or utc_now()
        return [await self.calculate_window_snapshots(window, as_of) for window in WINDOWS]

    async def latest(self, window: str) -> Dict[str, Any]:
        """Latest snapshot of every project with its 1 and 7 day change."""
        if window not in WINDOW_HOURS:
            raise ValueError(f"Unknown mindshare window: {window}")

        as_of_date = await self.snapshots.latest_date(window)
        if as_of_date is None:
            return {"window": window, "asOfDate": None, "projects": []}

        current = await self.snapshots.for_date(window, as_of_date)
        day_before = {s.project_id: s.mindshare_bps for s in await self.snapshots.for_date(window, as_of_date - timedelta(days=1))}
        week_before = {s.project_id: s.mindshare_bps for s in await self.snapshots.for_date(window, as_of_date - timedelta(days=7))}
        projects = await self.projects.get_many(s.project_id for s in current)

        rows = []
        for snapshot in current:
            project = projects.get(snapshot.project_id)
            previous_day = day_before.get(snapshot.project_id)
            previous_week = week_before.get(snapshot.project_id)
            rows.append(
                {
                    "projectId": snapshot.project_id,
                    "name": project.name if project else None,
                    "slug": project.slug if project else None,
                    "mindshareBps": snapshot.mindshare_bps,
                    "attentionValue": snapshot.attention_value,
                    "deltaBps1d": snapshot.mindshare_bps - previous_day if previous_day is not None else None,
                    "deltaBps7d": snapshot.mindshare_bps - previous_week if previous_week is not None else None,
                }
            )
        return {"window": window, "asOfDate": as_of_date.isoformat(), "projects": rows}
