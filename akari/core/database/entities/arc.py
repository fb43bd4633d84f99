"""
ARC arena and billing entities.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from ..base import Base, new_id, utc_now


class Arena(Base, table=True):
    """Time-boxed leaderboard competition scoped to a project.

    Table: arenas
    """

    __tablename__ = "arenas"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    project_id: str = Field(foreign_key="projects.id", index=True, max_length=64)
    slug: str = Field(max_length=200, unique=True, index=True)
    name: str = Field(max_length=200)
    status: str = Field(default="draft", max_length=16, index=True)
    starts_at: Optional[datetime] = Field(default=None)
    ends_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class ArenaCreator(Base, table=True):
    """A creator participating in an arena and their accumulated points.

    Table: arena_creators
    """

    __tablename__ = "arena_creators"
    __table_args__ = (UniqueConstraint("arena_id", "profile_id"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    arena_id: str = Field(foreign_key="arenas.id", index=True, max_length=64)
    profile_id: str = Field(max_length=64, index=True)
    twitter_username: Optional[str] = Field(default=None, max_length=64)
    arc_points: float = Field(default=0.0)
    ring: Optional[str] = Field(default=None, max_length=32)
    last_scored_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class ArcBillingRecord(Base, table=True):
    """What a project was charged for an ARC access level.

    Table: arc_billing_records
    """

    __tablename__ = "arc_billing_records"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    project_id: str = Field(foreign_key="projects.id", index=True, max_length=64)
    access_level: str = Field(max_length=32)
    base_price_usd: float = Field(default=0.0)
    discount_percent: float = Field(default=0.0)
    final_price_usd: float = Field(default=0.0)
    payment_status: str = Field(default="pending", max_length=32)
    created_at: datetime = Field(default_factory=utc_now, index=True)
