"""Unit tests for the DEX market aggregator."""

import httpx
import pytest

from akari.markets.dex_aggregator import DexAggregator, TokenQuery, normalize_chain
from akari.server.core.config import DexConfig

pytestmark = pytest.mark.asyncio

CONFIG = DexConfig(
    dexscreener_url="https://mock-dexscreener/latest/dex",
    geckoterminal_url="https://mock-geckoterminal/api/v2",
    birdeye_url="https://mock-birdeye",
    batch_size=2,
    batch_delay_seconds=0,
    results_per_symbol=2,
)


def dexscreener_pair(symbol="BONK", liquidity=1000.0, chain="solana", address="bonk-mint", pair="pair-1"):
    return {
        "chainId": chain,
        "dexId": "raydium",
        "pairAddress": pair,
        "baseToken": {"symbol": symbol, "name": f"{symbol} token", "address": address},
        "quoteToken": {"symbol": "SOL"},
        "priceUsd": "0.0000213",
        "liquidity": {"usd": liquidity},
        "volume": {"h24": 5000},
        "fdv": 1_000_000,
        "priceChange": {"h24": -3.5},
        "txns": {"h24": {"buys": 10, "sells": 4}},
    }


GECKO_POOLS = {
    "data": [
        {
            "id": "eth_0xpool1",
            "attributes": {
                "name": "WIF / WETH",
                "address": "0xpool1",
                "base_token_price_usd": "2.5",
                "reserve_in_usd": "500",
                "volume_usd": {"h24": "100"},
                "price_change_percentage": {"h24": "1.5"},
                "transactions": {"h24": {"buys": 3, "sells": 2}},
            },
            "relationships": {"dex": {"data": {"id": "uniswap_v3"}}},
        },
        {
            "id": "solana_pool2",
            "attributes": {"name": "WIF / SOL", "address": "pool2", "reserve_in_usd": "9000"},
        },
        {"id": "base_pool3", "attributes": {"name": "OTHER / USDC", "reserve_in_usd": "99999"}},
    ]
}


def make_aggregator(handler, **kwargs) -> DexAggregator:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DexAggregator(CONFIG, client=client, **kwargs)


class TestNormalizeChain:
    @pytest.mark.parametrize(
        "chain, expected",
        [("ETH", "ethereum"), ("sol", "solana"), ("binance", "bsc"), ("Fantom", "fantom"), (None, "unknown")],
    )
    async def test_aliases(self, chain, expected):
        assert normalize_chain(chain) == expected


class TestDexScreener:
    async def test_search_keeps_exact_symbol_by_liquidity(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/latest/dex/search"
            assert request.url.params["q"] == "bonk"
            pairs = [
                dexscreener_pair(liquidity=10, pair="small"),
                dexscreener_pair(liquidity=3000, pair="big"),
                dexscreener_pair(symbol="BONKY", liquidity=1e9, pair="lookalike"),
                dexscreener_pair(liquidity=500, pair="medium"),
            ]
            return httpx.Response(200, json={"pairs": pairs})

        markets = await make_aggregator(handler).search_dexscreener("bonk")

        assert [m.pair_address for m in markets] == ["big", "medium"]
        market = markets[0]
        assert market.symbol == "BONK"
        assert market.chain == "solana"
        assert market.dex_source == "dexscreener"
        assert market.dex_name == "raydium"
        assert market.price_usd == pytest.approx(0.0000213)
        assert market.quote_token == "SOL"
        assert market.price_change_24h == -3.5
        assert market.txns_24h == 14

    async def test_by_address_filters_chain(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/latest/dex/tokens/0xabc"
            pairs = [
                dexscreener_pair(chain="ethereum", address="0xabc", pair="eth-pair"),
                dexscreener_pair(chain="bsc", address="0xabc", pair="bsc-pair"),
            ]
            return httpx.Response(200, json={"pairs": pairs})

        markets = await make_aggregator(handler).dexscreener_by_address("0xabc", chain="eth")

        assert [m.pair_address for m in markets] == ["eth-pair"]

    async def test_http_errors_yield_nothing(self):
        markets = await make_aggregator(lambda request: httpx.Response(503)).search_dexscreener("BONK")
        assert markets == []

    async def test_http_errors_are_logged(self, caplog):
        with caplog.at_level("ERROR", logger="akari.markets.dex_aggregator"):
            await make_aggregator(lambda request: httpx.Response(503)).search_dexscreener("BONK")
        assert "HTTP error 503" in caplog.text

    async def test_missing_pairs(self):
        markets = await make_aggregator(lambda request: httpx.Response(200, json={"pairs": None})).search_dexscreener(
            "BONK"
        )
        assert markets == []


class TestGeckoTerminal:
    async def test_pools_matching_name_by_reserve(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v2/search/pools"
            assert request.url.params["query"] == "WIF"
            return httpx.Response(200, json=GECKO_POOLS)

        markets = await make_aggregator(handler).search_geckoterminal("WIF")

        assert [m.address for m in markets] == ["pool2", "0xpool1"]
        eth_pool = markets[1]
        assert eth_pool.chain == "ethereum"
        assert eth_pool.symbol == "WIF"
        assert eth_pool.quote_token == "WETH"
        assert eth_pool.dex_name == "uniswap_v3"
        assert eth_pool.price_usd == 2.5
        assert eth_pool.volume_24h_usd == 100
        assert eth_pool.txns_24h == 5
        assert markets[0].dex_name is None


class TestBirdeye:
    async def test_skipped_without_api_key(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("Birdeye must not be called")

        assert await make_aggregator(handler, birdeye_api_key="").birdeye_by_address("mint") is None

    async def test_token_overview(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["x-api-key"] == "secret"
            assert request.url.params["address"] == "mint"
            return httpx.Response(
                200,
                json={"success": True, "data": {"symbol": "BONK", "price": 0.5, "liquidity": 10, "v24hUSD": 20}},
            )

        market = await make_aggregator(handler, birdeye_api_key="secret").birdeye_by_address("mint")

        assert market.symbol == "BONK"
        assert market.chain == "solana"
        assert market.address == "mint"
        assert market.dex_source == "birdeye"
        assert market.volume_24h_usd == 20

    async def test_unsuccessful_response(self):
        market = await make_aggregator(
            lambda request: httpx.Response(200, json={"success": False}), birdeye_api_key="secret"
        ).birdeye_by_address("mint")
        assert market is None


class TestMarketsForTokens:
    async def test_geckoterminal_only_when_dexscreener_is_empty(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            if request.url.host == "mock-dexscreener":
                query = request.url.params["q"]
                return httpx.Response(200, json={"pairs": [dexscreener_pair()] if query == "BONK" else []})
            return httpx.Response(200, json=GECKO_POOLS)

        aggregator = make_aggregator(handler)
        markets = await aggregator.markets_for_tokens(
            [TokenQuery(symbol="BONK"), TokenQuery(symbol="WIF"), TokenQuery(symbol="BONK")]
        )

        assert [m.dex_source for m in markets] == ["dexscreener", "geckoterminal", "geckoterminal"]
        assert calls.count("mock-geckoterminal") == 1
        assert calls.count("mock-dexscreener") == 2

    async def test_address_lookup_adds_birdeye_on_solana(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "mock-birdeye":
                return httpx.Response(200, json={"success": True, "data": {"symbol": "BONK", "price": 1}})
            return httpx.Response(200, json={"pairs": [dexscreener_pair(address="mint")]})

        aggregator = make_aggregator(handler, birdeye_api_key="secret")
        markets = await aggregator.markets_for_tokens([TokenQuery(symbol="BONK", chain="solana", address="mint")])

        assert [m.dex_source for m in markets] == ["dexscreener", "birdeye"]

    async def test_network_failures_are_swallowed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        markets = await make_aggregator(handler).markets_for_tokens([TokenQuery(symbol="BONK")])
        assert markets == []

    async def test_context_manager_closes_own_client(self):
        async with DexAggregator(CONFIG) as aggregator:
            assert aggregator._owns_client is True
        assert aggregator._http.is_closed
