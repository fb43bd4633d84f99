"""
Market snapshot entities.

``market_snapshots`` and ``meme_token_snapshots`` are written by other
ingestion jobs and only supply symbols here. ``dex_market_snapshots`` is
owned by the DEX sync job.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from ..base import Base, new_id, utc_now


class MarketSnapshot(Base, table=True):
    """Table: market_snapshots"""

    __tablename__ = "market_snapshots"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    symbol: str = Field(max_length=32, index=True)
    name: Optional[str] = Field(default=None, max_length=128)
    created_at: datetime = Field(default_factory=utc_now, index=True)


class MemeTokenSnapshot(Base, table=True):
    """Table: meme_token_snapshots"""

    __tablename__ = "meme_token_snapshots"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    symbol: str = Field(max_length=32, index=True)
    name: Optional[str] = Field(default=None, max_length=128)
    chain: str = Field(default="solana", max_length=32)
    address: Optional[str] = Field(default=None, max_length=128)
    created_at: datetime = Field(default_factory=utc_now, index=True)


class DexMarketSnapshot(Base, table=True):
    """Latest known state of one DEX pool.

    Table: dex_market_snapshots
    """

    __tablename__ = "dex_market_snapshots"
    __table_args__ = (UniqueConstraint("dex_source", "chain", "address"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    symbol: str = Field(max_length=32, index=True)
    name: Optional[str] = Field(default=None, max_length=128)
    chain: str = Field(max_length=32)
    address: str = Field(max_length=128)
    pair_address: Optional[str] = Field(default=None, max_length=128)
    dex_source: str = Field(max_length=32)
    dex_name: Optional[str] = Field(default=None, max_length=64)
    base_token: Optional[str] = Field(default=None, max_length=64)
    quote_token: Optional[str] = Field(default=None, max_length=64)
    price_usd: Optional[float] = Field(default=None)
    liquidity_usd: Optional[float] = Field(default=None)
    volume_24h_usd: Optional[float] = Field(default=None)
    fdv_usd: Optional[float] = Field(default=None)
    price_change_24h: Optional[float] = Field(default=None)
    txns_24h: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, index=True)
