"""
DEX market snapshot sync job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import utc_now
from akari.core.database.entities.markets import DexMarketSnapshot
from akari.core.database.repositories.markets import (
    DexMarketSnapshotRepository,
    MarketSnapshotRepository,
    MemeTokenSnapshotRepository,
)
from akari.core.database.utils import with_db_retry
from akari.core.logging_config import get_logger
from akari.server.core.config import DexConfig, settings

from .dex_aggregator import DEX_SOURCES, DexAggregator, DexMarketInfo, TokenQuery

logger = get_logger(__name__)

_UPDATABLE_FIELDS = (
    "symbol",
    "name",
    "pair_address",
    "dex_name",
    "price_usd",
    "liquidity_usd",
    "volume_24h_usd",
    "fdv_usd",
    "base_token",
    "quote_token",
    "price_change_24h",
    "txns_24h",
)


@dataclass
class DexSyncResult:
    updated: int = 0
    sources: Dict[str, int] = field(default_factory=lambda: {source: 0 for source in DEX_SOURCES})
    tokens_queried: int = 0
    results_received: int = 0
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "updated": self.updated,
            "sources": self.sources,
            "debug": {"tokensQueried": self.tokens_queried, "resultsReceived": self.results_received},
        }
        if self.error:
            body["error"] = self.error
        return body


class DexSyncService:
    """Refreshes ``dex_market_snapshots`` from the DEX providers."""

    def __init__(
        self,
        session: AsyncSession,
        aggregator: Optional[DexAggregator] = None,
        config: Optional[DexConfig] = None,
    ) -> None:
        self.session = session
        self.config = config or settings.dex
        self.aggregator = aggregator or DexAggregator(self.config)
        self.market_snapshots = MarketSnapshotRepository(session)
        self.meme_snapshots = MemeTokenSnapshotRepository(session)
        self.dex_snapshots = DexMarketSnapshotRepository(session)

    async def load_tokens(self) -> List[TokenQuery]:
        """Recent market and solana meme symbols, deduplicated case-insensitively.

        A meme token with a known mint address replaces a bare symbol entry.
        """
        limit = self.config.symbols_per_source
        tokens: Dict[str, TokenQuery] = {}
        for symbol in await self.market_snapshots.recent_symbols(limit):
            tokens.setdefault(symbol.upper(), TokenQuery(symbol=symbol))
        for symbol, address in await self.meme_snapshots.recent_tokens(limit, chain="solana"):
            key = symbol.upper()
            if key not in tokens or (address and not tokens[key].address):
                tokens[key] = TokenQuery(symbol=symbol, chain="solana", address=address)
        return list(tokens.values())

    async def _upsert(self, market: DexMarketInfo) -> None:
        snapshot = await self.dex_snapshots.find(market.dex_source, market.chain, market.address)
        if snapshot is None:
            snapshot = DexMarketSnapshot(dex_source=market.dex_source, chain=market.chain, address=market.address)
        for name in _UPDATABLE_FIELDS:
            setattr(snapshot, name, getattr(market, name))
        snapshot.updated_at = utc_now()
        self.session.add(snapshot)
        await self.session.commit()

    async def _upsert_with_retry(self, market: DexMarketInfo) -> None:
        async def attempt() -> None:
            try:
                await self._upsert(market)
            except Exception:
                await self.session.rollback()
                raise

        await with_db_retry(attempt, label=f"upsert {market.dex_source}:{market.symbol}")

    async def run(self, now: Optional[datetime] = None) -> DexSyncResult:
        now = now or utc_now()
        result = DexSyncResult()

        tokens = await self.load_tokens()
        result.tokens_queried = len(tokens)
        logger.info(f"Querying DEX data for {len(tokens)} tokens")

        markets = await self.aggregator.markets_for_tokens(tokens)
        result.results_received = len(markets)
        if not markets:
            logger.info("No DEX data found")
            result.error = "No DEX data found for any tokens"
            return result

        for market in markets:
            result.sources[market.dex_source] = result.sources.get(market.dex_source, 0) + 1

        try:
            deleted = await self.dex_snapshots.delete_older_than(now - timedelta(hours=self.config.retention_hours))
            if deleted:
                logger.info(f"Deleted {deleted} old DEX snapshots")
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Cleanup error (non-fatal): {e}", exc_info=True)

        for market in markets:
            try:
                await self._upsert_with_retry(market)
            except Exception as e:
                logger.error(f"Upsert error for {market.symbol}: {e}", exc_info=True)
                continue
            result.updated += 1

        logger.info(f"Upserted {result.updated} DEX snapshots")
        return result
