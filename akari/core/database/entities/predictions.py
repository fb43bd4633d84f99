"""
Prediction market entities.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field

from ..base import Base, new_id, utc_now


class Prediction(Base, table=True):
    """A multiple-choice prediction users bet MYST on.

    Table: predictions
    """

    __tablename__ = "predictions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None)
    options: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    creator_id: Optional[str] = Field(default=None, foreign_key="users.id", max_length=64)
    total_pool: float = Field(default=0.0)
    status: str = Field(default="ACTIVE", max_length=16, index=True)
    resolved: bool = Field(default=False, index=True)
    winning_option: Optional[str] = Field(default=None, max_length=200)
    ends_at: datetime = Field(index=True)
    resolved_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class Bet(Base, table=True):
    """A user's MYST stake on one option of a prediction.

    Table: bets
    """

    __tablename__ = "bets"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    prediction_id: str = Field(foreign_key="predictions.id", index=True, max_length=64)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=64)
    option: str = Field(max_length=200)
    option_index: int = Field()
    myst_bet: float = Field()
    myst_payout: Optional[float] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
