"""
DEX market data aggregated from DexScreener, GeckoTerminal and Birdeye.

DexScreener is the primary source. GeckoTerminal is only asked when
DexScreener has no pair for a symbol, and Birdeye (Solana only, API key
required) can only look tokens up by address. Provider failures are logged
and produce no results; they never raise.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import BaseModel, Field

from akari.core.logging_config import get_logger
from akari.server.core.config import DexConfig, settings

logger = get_logger(__name__)

DEX_SOURCES = ("dexscreener", "geckoterminal", "birdeye")

CHAIN_ALIASES = {
    "ethereum": "ethereum",
    "eth": "ethereum",
    "solana": "solana",
    "sol": "solana",
    "base": "base",
    "bsc": "bsc",
    "binance": "bsc",
    "arbitrum": "arbitrum",
    "polygon": "polygon",
    "avalanche": "avalanche",
    "optimism": "optimism",
}


def normalize_chain(chain: Optional[str]) -> str:
    if not chain:
        return "unknown"
    lower = chain.lower()
    return CHAIN_ALIASES.get(lower, lower)


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _txns(h24: Optional[Dict[str, Any]]) -> Optional[int]:
    if not h24:
        return None
    return (h24.get("buys") or 0) + (h24.get("sells") or 0)


class TokenQuery(BaseModel):
    symbol: str
    chain: Optional[str] = None
    address: Optional[str] = None


class DexMarketInfo(BaseModel):
    symbol: str
    name: Optional[str] = None
    chain: str
    address: str
    pair_address: Optional[str] = None
    dex_source: str
    dex_name: Optional[str] = None
    price_usd: Optional[float] = None
    liquidity_usd: Optional[float] = None
    volume_24h_usd: Optional[float] = None
    fdv_usd: Optional[float] = None
    base_token: Optional[str] = None
    quote_token: Optional[str] = None
    price_change_24h: Optional[float] = None
    txns_24h: Optional[int] = Field(default=None)


class DexAggregator:
    """Queries the DEX providers for market data.

    The ``httpx.AsyncClient`` may be injected; otherwise one is created with
    the configured timeout and closed by :meth:`aclose`.
    """

    def __init__(
        self,
        config: Optional[DexConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        birdeye_api_key: Optional[str] = None,
    ) -> None:
        self.config = config or settings.dex
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(timeout=self.config.timeout_seconds, follow_redirects=True)
        self.birdeye_api_key = birdeye_api_key if birdeye_api_key is not None else settings.birdeye_api_key

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "DexAggregator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _get_json(
        self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None
    ) -> Optional[Any]:
        request_headers = {"Accept": "application/json", **(headers or {})}
        try:
            response = await self._http.get(url, params=params, headers=request_headers)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException:
            logger.error(f"Timeout for {url}")
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error {e.response.status_code} for {url}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Fetch error for {url}: {e}")
        return None

    def _from_dexscreener_pairs(self, pairs: Sequence[Dict[str, Any]]) -> List[DexMarketInfo]:
        top = sorted(pairs, key=lambda p: (p.get("liquidity") or {}).get("usd") or 0, reverse=True)
        results = []
        for pair in top[: self.config.results_per_symbol]:
            base = pair.get("baseToken") or {}
            quote = pair.get("quoteToken") or {}
            results.append(
                DexMarketInfo(
                    symbol=base.get("symbol", ""),
                    name=base.get("name"),
                    chain=normalize_chain(pair.get("chainId")),
                    address=base.get("address", ""),
                    pair_address=pair.get("pairAddress"),
                    dex_source="dexscreener",
                    dex_name=pair.get("dexId"),
                    price_usd=_to_float(pair.get("priceUsd")),
                    liquidity_usd=_to_float((pair.get("liquidity") or {}).get("usd")),
                    volume_24h_usd=_to_float((pair.get("volume") or {}).get("h24")),
                    fdv_usd=_to_float(pair.get("fdv")),
                    base_token=base.get("symbol"),
                    quote_token=quote.get("symbol"),
                    price_change_24h=_to_float((pair.get("priceChange") or {}).get("h24")),
                    txns_24h=_txns((pair.get("txns") or {}).get("h24")),
                )
            )
        return results

    async def search_dexscreener(self, symbol: str) -> List[DexMarketInfo]:
        """Pairs whose base token symbol equals ``symbol``, best liquidity first."""
        data = await self._get_json(f"{self.config.dexscreener_url}/search", params={"q": symbol})
        pairs = data.get("pairs") if isinstance(data, dict) else None
        if not isinstance(pairs, list):
            logger.debug(f"DexScreener: no pairs found for {symbol}")
            return []
        matching = [p for p in pairs if ((p.get("baseToken") or {}).get("symbol") or "").upper() == symbol.upper()]
        return self._from_dexscreener_pairs(matching)

    async def dexscreener_by_address(self, address: str, chain: Optional[str] = None) -> List[DexMarketInfo]:
        data = await self._get_json(f"{self.config.dexscreener_url}/tokens/{address}")
        pairs = data.get("pairs") if isinstance(data, dict) else None
        if not isinstance(pairs, list):
            logger.debug(f"DexScreener: no pairs found for address {address}")
            return []
        if chain:
            wanted = normalize_chain(chain)
            pairs = [p for p in pairs if normalize_chain(p.get("chainId")) == wanted]
        return self._from_dexscreener_pairs(pairs)

    async def search_geckoterminal(self, symbol: str) -> List[DexMarketInfo]:
        """Pools whose name contains ``symbol``, best reserve first."""
        data = await self._get_json(
            f"{self.config.geckoterminal_url}/search/pools", params={"query": symbol, "page": 1}
        )
        pools = data.get("data") if isinstance(data, dict) else None
        if not isinstance(pools, list):
            logger.debug(f"GeckoTerminal: no pools found for {symbol}")
            return []

        matching = [p for p in pools if symbol.upper() in ((p.get("attributes") or {}).get("name") or "").upper()]
        matching.sort(key=lambda p: _to_float((p.get("attributes") or {}).get("reserve_in_usd")) or 0, reverse=True)

        results = []
        for pool in matching[: self.config.results_per_symbol]:
            attributes = pool.get("attributes") or {}
            pool_id = pool.get("id") or ""
            network = pool_id.split("_")[0]
            name_parts = [part.strip() for part in (attributes.get("name") or "").split("/")]
            base_symbol = name_parts[0] or symbol
            quote_symbol = name_parts[1] if len(name_parts) > 1 else None
            dex = ((pool.get("relationships") or {}).get("dex") or {}).get("data") or {}
            results.append(
                DexMarketInfo(
                    symbol=base_symbol,
                    name=attributes.get("name"),
                    chain=normalize_chain(network),
                    address=attributes.get("address") or pool_id,
                    pair_address=attributes.get("address"),
                    dex_source="geckoterminal",
                    dex_name=dex.get("id"),
                    price_usd=_to_float(attributes.get("base_token_price_usd")),
                    liquidity_usd=_to_float(attributes.get("reserve_in_usd")),
                    volume_24h_usd=_to_float((attributes.get("volume_usd") or {}).get("h24")),
                    fdv_usd=_to_float(attributes.get("fdv_usd")),
                    base_token=base_symbol,
                    quote_token=quote_symbol,
                    price_change_24h=_to_float((attributes.get("price_change_percentage") or {}).get("h24")),
                    txns_24h=_txns((attributes.get("transactions") or {}).get("h24")),
                )
            )
        return results

    async def birdeye_by_address(self, address: str) -> Optional[DexMarketInfo]:
        if not self.birdeye_api_key:
            logger.debug("Birdeye: BIRDEYE_API_KEY not set, skipping")
            return None
        data = await self._get_json(
            f"{self.config.birdeye_url}/public/token_overview",
            params={"address": address},
            headers={"x-api-key": self.birdeye_api_key},
        )
        if not isinstance(data, dict) or not data.get("success") or not data.get("data"):
            logger.debug(f"Birdeye: no data for address {address}")
            return None
        token = data["data"]
        return DexMarketInfo(
            symbol=token.get("symbol") or "UNKNOWN",
            name=token.get("name"),
            chain="solana",
            address=token.get("address") or address,
            dex_source="birdeye",
            price_usd=_to_float(token.get("price")),
            liquidity_usd=_to_float(token.get("liquidity")),
            volume_24h_usd=_to_float(token.get("v24hUSD")),
            fdv_usd=_to_float(token.get("fdv")),
            price_change_24h=_to_float(token.get("priceChange24hPercent")),
        )

    async def markets_for_token(self, token: TokenQuery) -> List[DexMarketInfo]:
        results: List[DexMarketInfo] = []
        try:
            if token.address:
                results.extend(await self.dexscreener_by_address(token.address, token.chain))
                if normalize_chain(token.chain) == "solana":
                    birdeye = await self.birdeye_by_address(token.address)
                    if birdeye is not None:
                        results.append(birdeye)
            else:
                results.extend(await self.search_dexscreener(token.symbol))
                if not results:
                    results.extend(await self.search_geckoterminal(token.symbol))
        except Exception as e:
            logger.error(f"Error processing {token.symbol}: {e}", exc_info=True)
        return results

    async def markets_for_tokens(self, tokens: Sequence[TokenQuery]) -> List[DexMarketInfo]:
        """Query tokens in concurrent batches with a pause between batches."""
        logger.info(f"Fetching DEX markets for {len(tokens)} tokens")
        seen = set()
        unique: List[TokenQuery] = []
        for token in tokens:
            key = (token.symbol, token.chain or "any", token.address or "none")
            if key not in seen:
                seen.add(key)
                unique.append(token)

        results: List[DexMarketInfo] = []
        batch_size = max(self.config.batch_size, 1)
        for start in range(0, len(unique), batch_size):
            batch = unique[start : start + batch_size]
            for markets in await asyncio.gather(*(self.markets_for_token(token) for token in batch)):
                results.extend(markets)
            if start + batch_size < len(unique):
                await asyncio.sleep(self.config.batch_delay_seconds)

        logger.info(f"Received {len(results)} DEX results")
        return results
