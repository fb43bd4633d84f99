"""Tests for the MYST balance and withdrawal endpoints."""

from unittest.mock import AsyncMock, patch

import pytest

pytestmark = pytest.mark.asyncio

TON_PRICE = "akari.server.api.v1.myst.fetch_ton_price_usd"


class TestBalance:
    async def test_balance(self, client, make_user, fund, init_headers):
        user = await make_user(telegram_id=777)
        await fund(user.id, 12.5)

        response = await client.get("/api/myst/balance", headers=init_headers(777))

        assert response.status_code == 200
        assert response.json() == {"ok": True, "balance": 12.5}

    async def test_requires_init_data(self, client):
        response = await client.get("/api/myst/balance")
        assert response.status_code == 401
        assert response.json()["error"] == "Missing Telegram init data"

    async def test_init_data_in_query(self, client, make_init_data):
        response = await client.get("/api/myst/balance", params={"initData": make_init_data(777)})
        assert response.json() == {"ok": True, "balance": 0.0}


class TestWithdraw:
    async def test_withdrawal(self, client, make_user, fund, init_headers):
        user = await make_user(telegram_id=777, ton_address="EQ-wallet")
        await fund(user.id, 3500)

        with patch(TON_PRICE, AsyncMock(return_value=5.0)):
            response = await client.post("/api/myst/withdraw", json={"amountMyst": 3000}, headers=init_headers(777))

        assert response.status_code == 200
        body = response.json()
        assert body["balance"] == pytest.approx(500)
        withdrawal = body["withdrawal"]
        assert withdrawal["tonAddress"] == "EQ-wallet"
        assert withdrawal["mystFee"] == pytest.approx(60)
        assert withdrawal["usdNet"] == pytest.approx(58.8)
        assert withdrawal["tonAmount"] == pytest.approx(11.76)
        assert withdrawal["status"] == "pending"

    async def test_below_minimum(self, client, make_user, fund, init_headers):
        user = await make_user(telegram_id=777, ton_address="EQ-wallet")
        await fund(user.id, 3500)

        with patch(TON_PRICE, AsyncMock(return_value=5.0)):
            response = await client.post("/api/myst/withdraw", json={"amountMyst": 2000}, headers=init_headers(777))

        assert response.status_code == 400
        assert response.json()["error"] == "Minimum withdrawal is $50. Your net: $39.20"

    async def test_wallet_not_linked(self, client, make_user, fund, init_headers):
        user = await make_user(telegram_id=777)
        await fund(user.id, 3500)

        with patch(TON_PRICE, AsyncMock(return_value=5.0)):
            response = await client.post("/api/myst/withdraw", json={"amountMyst": 3000}, headers=init_headers(777))

        assert response.json() == {"ok": False, "error": "TON wallet not linked"}

    async def test_insufficient_balance(self, client, make_user, init_headers):
        await make_user(telegram_id=777, ton_address="EQ-wallet")

        with patch(TON_PRICE, AsyncMock(return_value=5.0)):
            response = await client.post("/api/myst/withdraw", json={"amountMyst": 3000}, headers=init_headers(777))

        assert response.status_code == 400
        assert response.json()["error"].startswith("Insufficient MYST balance")

    async def test_amount_must_be_positive(self, client, init_headers):
        response = await client.post("/api/myst/withdraw", json={"amountMyst": 0}, headers=init_headers(777))
        assert response.status_code == 400
