"""
MYST ledger entities.

The balance of a user is never stored: it is the sum of their
``myst_transactions`` rows. Pools are the only stored balances.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field

from ..base import Base, new_id, utc_now


class MystTransaction(Base, table=True):
    """Append-only MYST ledger row. Debits are negative amounts.

    Table: myst_transactions
    """

    __tablename__ = "myst_transactions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=64)
    type: str = Field(max_length=64, index=True)
    amount: float = Field()
    meta: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now, index=True)

    def __repr__(self) -> str:
        return f"MystTransaction(user_id={self.user_id}, type={self.type}, amount={self.amount})"


class PoolBalance(Base, table=True):
    """Balance of one economy pool (leaderboard, referral, wheel, treasury).

    Table: pool_balances
    """

    __tablename__ = "pool_balances"

    id: str = Field(primary_key=True, max_length=32)
    balance: float = Field(default=0.0)
    updated_at: datetime = Field(default_factory=utc_now)


class ReferralEvent(Base, table=True):
    """Referral rewards paid out for one spend.

    Table: referral_events
    """

    __tablename__ = "referral_events"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=64)
    referrer_level1_id: Optional[str] = Field(default=None, max_length=64, index=True)
    reward_level1: float = Field(default=0.0)
    referrer_level2_id: Optional[str] = Field(default=None, max_length=64, index=True)
    reward_level2: float = Field(default=0.0)
    myst_spent: float = Field()
    spend_type: str = Field(max_length=64)
    reference_id: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=utc_now)


class WheelSpin(Base, table=True):
    """One wheel-of-fortune spin and its prize.

    Table: wheel_spins
    """

    __tablename__ = "wheel_spins"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=64)
    prize_type: str = Field(max_length=16)
    prize_label: str = Field(max_length=32)
    myst_amount: float = Field(default=0.0)
    axp_amount: int = Field(default=0)
    created_at: datetime = Field(default_factory=utc_now, index=True)


class WithdrawalRequest(Base, table=True):
    """MYST to TON withdrawal awaiting manual payout.

    Table: withdrawal_requests
    """

    __tablename__ = "withdrawal_requests"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=64)
    ton_address: str = Field(max_length=128)
    myst_requested: float = Field()
    myst_fee: float = Field()
    usd_net: float = Field()
    ton_price_usd: float = Field()
    ton_amount: float = Field()
    status: str = Field(default="pending", max_length=32, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
