"""
TON/USD price lookup used to quote MYST withdrawals.
"""

from __future__ import annotations

from typing import Optional

import httpx

from akari.core.logging_config import get_logger
from akari.server.core.config import EconomyConfig, settings

logger = get_logger(__name__)


async def fetch_ton_price_usd(
    client: Optional[httpx.AsyncClient] = None, config: Optional[EconomyConfig] = None
) -> float:
    """Current TON price from the configured ticker, or the fallback price.

    The ticker answers ``{"symbol": "TONUSDT", "price": "<decimal>"}``.
    """
    config = config or settings.economy
    http = client or httpx.AsyncClient(timeout=10.0)
    try:
        response = await http.get(config.ton_price_url)
        response.raise_for_status()
        price = float(response.json()["price"])
        if price > 0:
            return price
        logger.warning(f"TON ticker returned non-positive price {price}, using fallback")
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"TON price lookup failed, using fallback {config.ton_price_fallback_usd}: {e}")
    finally:
        if client is None:
            await http.aclose()
    return config.ton_price_fallback_usd
