"""
Market snapshot repositories.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.markets import DexMarketSnapshot, MarketSnapshot, MemeTokenSnapshot
from .base import AsyncBaseRepository


class MarketSnapshotRepository(AsyncBaseRepository[MarketSnapshot]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, MarketSnapshot)

    async def recent_symbols(self, limit: int) -> List[str]:
        stmt = select(MarketSnapshot.symbol).order_by(col(MarketSnapshot.created_at).desc()).limit(limit)
        result = await self.session.exec(stmt)
        return list(result.all())


class MemeTokenSnapshotRepository(AsyncBaseRepository[MemeTokenSnapshot]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, MemeTokenSnapshot)

    async def recent_tokens(self, limit: int, chain: str = "solana") -> List[Tuple[str, Optional[str]]]:
        """Newest (symbol, address) pairs on ``chain``."""
        stmt = (
            select(MemeTokenSnapshot.symbol, MemeTokenSnapshot.address)
            .where(MemeTokenSnapshot.chain == chain)
            .order_by(col(MemeTokenSnapshot.created_at).desc())
            .limit(limit)
        )
        result = await self.session.exec(stmt)
        return [tuple(row) for row in result.all()]


class DexMarketSnapshotRepository(AsyncBaseRepository[DexMarketSnapshot]):
    """Repository for DEX pool snapshots."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, DexMarketSnapshot)

    async def find(self, dex_source: str, chain: str, address: str) -> Optional[DexMarketSnapshot]:
        stmt = select(DexMarketSnapshot).where(
            DexMarketSnapshot.dex_source == dex_source,
            DexMarketSnapshot.chain == chain,
            DexMarketSnapshot.address == address,
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete snapshots not refreshed since ``cutoff`` and commit."""
        result = await self.session.execute(delete(DexMarketSnapshot).where(col(DexMarketSnapshot.updated_at) < cutoff))
        await self.session.commit()
        return result.rowcount or 0
