"""
Tracked project entities used by mindshare and ARC.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field

from ..base import Base, new_id, utc_now


class Project(Base, table=True):
    """A crypto-Twitter project tracked by the portal.

    ``arc_keywords`` is either a list of keywords or a comma separated string,
    depending on how the row was written.

    Table: projects
    """

    __tablename__ = "projects"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    name: str = Field(max_length=200)
    slug: str = Field(max_length=200, unique=True, index=True)
    x_handle: Optional[str] = Field(default=None, max_length=64)
    is_active: bool = Field(default=True)
    arc_active: bool = Field(default=False)
    arc_access_level: str = Field(default="none", max_length=32)
    arc_keywords: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now)


class ProjectTweet(Base, table=True):
    """A tweet mentioning (or posted by) a project.

    Table: project_tweets
    """

    __tablename__ = "project_tweets"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    tweet_id: str = Field(max_length=64, unique=True, index=True)
    project_id: str = Field(foreign_key="projects.id", index=True, max_length=64)
    author_handle: str = Field(max_length=64, index=True)
    text: str = Field(default="")
    likes: int = Field(default=0)
    replies: int = Field(default=0)
    retweets: int = Field(default=0)
    quotes: int = Field(default=0)
    sentiment_score: Optional[float] = Field(default=None)
    is_official: bool = Field(default=False)
    is_thread: bool = Field(default=False)
    is_retweet: bool = Field(default=False)
    is_reply: bool = Field(default=False)
    is_quote: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, index=True)


class MetricsDaily(Base, table=True):
    """Daily project metrics, of which mindshare uses the CT heat score.

    Table: metrics_daily
    """

    __tablename__ = "metrics_daily"
    __table_args__ = (UniqueConstraint("project_id", "metric_date"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    project_id: str = Field(foreign_key="projects.id", index=True, max_length=64)
    metric_date: date = Field(index=True)
    ct_heat_score: Optional[float] = Field(default=None)


class MindshareSnapshot(Base, table=True):
    """Share of attention of one project in one window, in basis points.

    Table: project_mindshare_snapshots
    """

    __tablename__ = "project_mindshare_snapshots"
    __table_args__ = (UniqueConstraint("project_id", "time_window", "as_of_date"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    project_id: str = Field(foreign_key="projects.id", index=True, max_length=64)
    time_window: str = Field(max_length=8, index=True)
    mindshare_bps: int = Field(default=0)
    attention_value: float = Field(default=0.0)
    as_of_date: date = Field(index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
