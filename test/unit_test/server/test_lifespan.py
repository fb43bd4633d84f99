"""
Unit tests for FastAPI application lifespan management.

Tests verify that startup creates the database tables and that a database
failure does not prevent the server from starting.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI

pytestmark = pytest.mark.asyncio


class TestLifespan:
    async def test_startup_initializes_database(self):
        from akari.server.main import lifespan

        with patch("akari.server.main.init_db", new_callable=AsyncMock) as mock_init_db:
            async with lifespan(FastAPI()):
                mock_init_db.assert_awaited_once()

    async def test_startup_survives_database_failure(self):
        from akari.server.main import lifespan

        with patch("akari.server.main.init_db", new_callable=AsyncMock, side_effect=ConnectionError("refused")), patch(
            "akari.server.main.logger"
        ) as mock_logger:
            async with lifespan(FastAPI()):
                pass

        mock_logger.error.assert_called_once()
        assert "Database initialization failed" in mock_logger.error.call_args[0][0]

    async def test_shutdown_is_logged(self):
        from akari.server.main import lifespan

        with patch("akari.server.main.init_db", new_callable=AsyncMock), patch("akari.server.main.logger") as mock_logger:
            async with lifespan(FastAPI()):
                pass

        messages = [call[0][0] for call in mock_logger.info.call_args_list]
        assert messages[-1] == "Shutting down AKARI server..."

    async def test_init_db_creates_tables(self, test_engine):
        from sqlalchemy import inspect

        from akari.core.database import session as db_session

        with patch.object(db_session, "engine", test_engine):
            await db_session.init_db()

        async with test_engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert {"users", "myst_transactions", "predictions", "dex_market_snapshots"} <= set(tables)

    async def test_routes_registered(self):
        from akari.server.main import app

        paths = {route.path for route in app.routes}
        assert {
            "/health",
            "/api/auth/telegram",
            "/api/myst/balance",
            "/api/wheel/spin",
            "/api/leaderboard",
            "/api/predictions/{prediction_id}/bet",
            "/api/admin/treasury",
            "/api/portal/mindshare",
            "/api/portal/cron/sync-dex-markets",
        } <= paths
