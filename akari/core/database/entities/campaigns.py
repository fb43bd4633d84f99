"""
Campaign entities. Completed campaigns count towards the points leaderboard.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from ..base import Base, new_id, utc_now


class Campaign(Base, table=True):
    """Table: campaigns"""

    __tablename__ = "campaigns"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    name: str = Field(max_length=200)
    status: str = Field(default="active", max_length=32)
    reward_points: int = Field(default=0)
    starts_at: Optional[datetime] = Field(default=None)
    ends_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class CampaignUserProgress(Base, table=True):
    """Table: campaign_user_progress"""

    __tablename__ = "campaign_user_progress"
    __table_args__ = (UniqueConstraint("campaign_id", "user_id"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    campaign_id: str = Field(foreign_key="campaigns.id", index=True, max_length=64)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=64)
    completed: bool = Field(default=False)
    completed_at: Optional[datetime] = Field(default=None)
