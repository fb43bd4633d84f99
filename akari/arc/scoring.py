"""
ARC arena scoring.

Creators in active arenas earn points for their project related tweets. Each
tweet is classified (content type and sentiment) and scored as::

    round_half_up(base_points * sentiment_multiplier * (1 + engagement / 4))

where ``engagement`` is ``log2(likes + 2*retweets + 2*quotes + replies + 1)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import utc_now
from akari.core.database.entities.arc import Arena, ArenaCreator
from akari.core.database.entities.projects import ProjectTweet
from akari.core.database.repositories.arc import ArenaRepository
from akari.core.database.repositories.projects import ProjectTweetRepository
from akari.core.errors import NotFoundError
from akari.core.logging_config import get_logger

logger = get_logger(__name__)

BASE_POINTS = {
    "thread": 30,
    "deep_dive": 50,
    "meme": 20,
    "quote_rt": 15,
    "retweet": 5,
    "reply": 5,
    "other": 0,
}

SENTIMENT_MULTIPLIERS = {
    "positive": 1.2,
    "neutral": 1.0,
    "negative": 0.5,
}

POSITIVE_SENTIMENT_MIN = 60
NEGATIVE_SENTIMENT_MAX = 40
DEEP_DIVE_MIN_LENGTH = 600
MEME_MAX_LENGTH = 80


def round_half_up(value: float) -> int:
    """Nearest integer with halves rounded up."""
    return math.floor(value + 0.5)


@dataclass
class ScoredPost:
    tweet_id: str
    content_type: str
    base_points: int
    sentiment: str
    sentiment_multiplier: float
    engagement_score: float
    delta_points: int


@dataclass
class ScoringJobResult:
    processed_creators: int = 0
    processed_tweets: int = 0
    updated_points: int = 0
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "processedCreators": self.processed_creators,
            "processedTweets": self.processed_tweets,
            "updatedPoints": self.updated_points,
            "errors": self.errors,
        }


def engagement_score(likes: int, retweets: int, quotes: int, replies: int) -> float:
    raw = (likes or 0) + (retweets or 0) * 2 + (quotes or 0) * 2 + (replies or 0)
    return 0.0 if raw <= 0 else math.log2(raw + 1)


def score_post(
    tweet_id: str,
    content_type: str,
    sentiment: str,
    likes: int = 0,
    retweets: int = 0,
    quotes: int = 0,
    replies: int = 0,
) -> ScoredPost:
    base = BASE_POINTS.get(content_type, 0)
    multiplier = SENTIMENT_MULTIPLIERS.get(sentiment, SENTIMENT_MULTIPLIERS["negative"])
    engagement = engagement_score(likes, retweets, quotes, replies)
    return ScoredPost(
        tweet_id=tweet_id,
        content_type=content_type,
        base_points=base,
        sentiment=sentiment,
        sentiment_multiplier=multiplier,
        engagement_score=engagement,
        delta_points=round_half_up(base * multiplier * (1 + engagement / 4)),
    )


def classify_content(tweet: ProjectTweet) -> str:
    """Content type from the tweet flags, then from the text length."""
    text = (tweet.text or "").strip()
    if tweet.is_retweet:
        return "retweet"
    if tweet.is_quote:
        return "quote_rt"
    if tweet.is_thread:
        return "deep_dive" if len(text) >= DEEP_DIVE_MIN_LENGTH else "thread"
    if tweet.is_reply:
        return "reply"
    if len(text) >= DEEP_DIVE_MIN_LENGTH:
        return "deep_dive"
    if 0 < len(text) <= MEME_MAX_LENGTH:
        return "meme"
    return "other"


def classify_sentiment(score: Optional[float]) -> str:
    if score is None:
        return "neutral"
    if score >= POSITIVE_SENTIMENT_MIN:
        return "positive"
    if score <= NEGATIVE_SENTIMENT_MAX:
        return "negative"
    return "neutral"


def score_tweet(tweet: ProjectTweet) -> ScoredPost:
    return score_post(
        tweet_id=tweet.tweet_id,
        content_type=classify_content(tweet),
        sentiment=classify_sentiment(tweet.sentiment_score),
        likes=tweet.likes,
        retweets=tweet.retweets,
        quotes=tweet.quotes,
        replies=tweet.replies,
    )


class ArcScoringService:
    """Runs the arena scoring job."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.arenas = ArenaRepository(session)
        self.tweets = ProjectTweetRepository(session)

    async def _score_creator(self, arena: Arena, creator: ArenaCreator, now: datetime) -> tuple[int, int]:
        since = creator.last_scored_at or arena.starts_at
        tweets = await self.tweets.by_author(creator.twitter_username, since=since, project_id=arena.project_id)
        tweets = [tweet for tweet in tweets if tweet.created_at <= now]
        if not tweets:
            return 0, 0

        delta = 0
        for tweet in tweets:
            scored = score_tweet(tweet)
            if scored.delta_points > 0:
                delta += scored.delta_points
                logger.debug(
                    f"Tweet {tweet.tweet_id}: +{scored.delta_points} points "
                    f"({scored.content_type}, {scored.sentiment}, {scored.engagement_score:.2f} engagement)"
                )

        creator.arc_points = (creator.arc_points or 0) + delta
        creator.last_scored_at = tweets[-1].created_at
        self.session.add(creator)
        await self.session.commit()
        return len(tweets), delta

    async def run(self, now: Optional[datetime] = None) -> ScoringJobResult:
        now = now or utc_now()
        result = ScoringJobResult()

        arenas = await self.arenas.active()
        if not arenas:
            logger.info("No active arenas to score")
            return result
        logger.info(f"Scoring {len(arenas)} active arena(s)")

        for arena in arenas:
            slug = arena.slug
            for creator in await self.arenas.creators(arena.id):
                if not creator.twitter_username:
                    logger.debug(f"Skipping creator {creator.profile_id}: no Twitter username")
                    continue
                username = creator.twitter_username
                try:
                    tweets, delta = await self._score_creator(arena, creator, now)
                except Exception as e:
                    message = f"Error scoring @{username} in arena {slug}: {e}"
                    logger.error(message, exc_info=True)
                    result.errors.append(message)
                    continue
                result.processed_creators += 1
                result.processed_tweets += tweets
                result.updated_points += delta

        logger.info(
            f"ARC scoring done: {result.processed_creators} creators, {result.processed_tweets} tweets, "
            f"{result.updated_points} points awarded"
        )
        return result

    async def arena_leaderboard(self, slug: str) -> Dict[str, Any]:
        arena = await self.arenas.get_by_slug(slug)
        if arena is None:
            raise NotFoundError("Arena not found")
        creators = await self.arenas.creators(arena.id)
        return {
            "arena": {
                "id": arena.id,
                "slug": arena.slug,
                "name": arena.name,
                "status": arena.status,
                "startsAt": arena.starts_at,
                "endsAt": arena.ends_at,
            },
            "creators": [
                {
                    "rank": idx + 1,
                    "profileId": creator.profile_id,
                    "twitterUsername": creator.twitter_username,
                    "arcPoints": creator.arc_points,
                    "ring": creator.ring,
                }
                for idx, creator in enumerate(creators)
            ],
        }
