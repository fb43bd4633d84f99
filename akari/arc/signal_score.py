"""
Creator signal score.

Rewards recent, original, well received content and discounts farming. Every
post contributes ``log1p(engagement)`` scaled by recency, content type,
originality, authenticity, sentiment and leaderboard membership weights.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import utc_now
from akari.core.database.entities.projects import ProjectTweet
from akari.core.database.repositories.arc import ArenaRepository
from akari.core.database.repositories.projects import ProjectTweetRepository

from .scoring import classify_content, round_half_up

RECENCY_HALF_LIFE_HOURS = {
    "24h": 12.0,
    "7d": 84.0,
    "30d": 360.0,
}
WINDOW_HOURS = {
    "24h": 24,
    "7d": 7 * 24,
    "30d": 30 * 24,
}

CONTENT_WEIGHTS = {
    "thread": 2.0,
    "analysis": 1.8,
    "meme": 0.8,
    "quote_rt": 1.0,
    "retweet": 0.3,
    "reply": 0.5,
}
DUPLICATE_WEIGHT = 0.3

AUTH_WEIGHT_FLOOR = 0.5
AUTH_WEIGHT_CAP = 2.0
SENTIMENT_WEIGHT_FLOOR = 0.7
SENTIMENT_WEIGHT_CAP = 1.3
JOIN_WEIGHT = 1.5

TRUST_BANDS = (("A", 80), ("B", 60), ("C", 40))


@dataclass
class PostMetrics:
    tweet_id: str
    engagement_points: float
    created_at: datetime
    content_type: str = "other"
    is_original: bool = True
    sentiment_score: Optional[float] = None
    smart_score: Optional[float] = None
    audience_org_score: Optional[float] = None


@dataclass
class SignalResult:
    final_score: float
    signal_score: int
    trust_band: str
    smart_followers_count: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "finalScore": self.final_score,
            "signalScore": self.signal_score,
            "trustBand": self.trust_band,
            "smartFollowersCount": self.smart_followers_count,
        }


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def recency_weight(age_hours: float, half_life_hours: float) -> float:
    return math.exp(-(age_hours / half_life_hours) * math.log(2))


def content_weight(content_type: str) -> float:
    return CONTENT_WEIGHTS.get(content_type, 1.0)


def auth_weight(smart_score: Optional[float], audience_org_score: Optional[float]) -> float:
    smart = smart_score if smart_score is not None else 0.5
    org = audience_org_score / 100 if audience_org_score is not None else 0.5
    return clamp((smart * 0.6 + org * 0.4) * 2, AUTH_WEIGHT_FLOOR, AUTH_WEIGHT_CAP)


def sentiment_weight(sentiment_score: Optional[float]) -> float:
    if sentiment_score is None:
        return 1.0
    return clamp(0.7 + (sentiment_score / 100) * 0.6, SENTIMENT_WEIGHT_FLOOR, SENTIMENT_WEIGHT_CAP)


def trust_band(signal_score: float) -> str:
    for band, minimum in TRUST_BANDS:
        if signal_score >= minimum:
            return band
    return "D"


def calculate_signal_score(
    posts: Sequence[PostMetrics],
    window: str = "7d",
    is_joined: bool = False,
    smart_followers_count: int = 0,
    now: Optional[datetime] = None,
) -> SignalResult:
    if not posts:
        return SignalResult(final_score=0, signal_score=0, trust_band="D", smart_followers_count=smart_followers_count)

    now = now or utc_now()
    half_life = RECENCY_HALF_LIFE_HOURS.get(window, RECENCY_HALF_LIFE_HOURS["30d"])
    join = JOIN_WEIGHT if is_joined else 1.0

    total = 0.0
    for post in posts:
        age_hours = (now - post.created_at).total_seconds() / 3600
        total += (
            math.log1p(post.engagement_points)
            * recency_weight(age_hours, half_life)
            * content_weight(post.content_type)
            * (1.0 if post.is_original else DUPLICATE_WEIGHT)
            * auth_weight(post.smart_score, post.audience_org_score)
            * sentiment_weight(post.sentiment_score)
            * join
        )

    final_score = math.floor(total * 100 + 0.5) / 100
    signal = clamp(final_score, 0, 100)
    return SignalResult(
        final_score=final_score,
        signal_score=round_half_up(signal),
        trust_band=trust_band(signal),
        smart_followers_count=smart_followers_count,
    )


def post_metrics_from_tweets(tweets: Sequence[ProjectTweet]) -> List[PostMetrics]:
    """Posts repeating an earlier text of the same author count as duplicates."""
    seen_texts = set()
    posts = []
    for tweet in tweets:
        normalized = " ".join((tweet.text or "").lower().split())
        is_original = not tweet.is_retweet and (not normalized or normalized not in seen_texts)
        if normalized:
            seen_texts.add(normalized)
        content_type = classify_content(tweet)
        posts.append(
            PostMetrics(
                tweet_id=tweet.tweet_id,
                engagement_points=(tweet.likes or 0) + (tweet.replies or 0) * 2 + (tweet.retweets or 0) * 3,
                created_at=tweet.created_at,
                content_type="analysis" if content_type == "deep_dive" else content_type,
                is_original=is_original,
                sentiment_score=tweet.sentiment_score,
            )
        )
    return posts


class SignalScoreService:
    def __init__(self, session: AsyncSession) -> None:
        self.tweets = ProjectTweetRepository(session)
        self.arenas = ArenaRepository(session)

    async def creator_signal(self, username: str, window: str = "7d", now: Optional[datetime] = None) -> Dict[str, Any]:
        if window not in WINDOW_HOURS:
            raise ValueError(f"Unknown signal window: {window}")
        now = now or utc_now()
        username = username.lstrip("@")

        tweets = await self.tweets.by_author(username, since=now - timedelta(hours=WINDOW_HOURS[window]))
        posts = post_metrics_from_tweets([tweet for tweet in tweets if tweet.created_at <= now])
        joined = await self.arenas.is_creator(username)
        result = calculate_signal_score(posts, window, is_joined=joined, now=now)
        return {"username": username, "window": window, "posts": len(posts), "joined": joined, **result.as_dict()}
