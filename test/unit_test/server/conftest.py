import json
import time
from datetime import datetime, timedelta
from typing import AsyncGenerator, Optional
from unittest.mock import patch
from urllib.parse import quote

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

BOT_TOKEN = "123456:test-bot-token"
ADMIN_TOKEN = "admin-panel-token"
CRON_SECRET = "cron-secret"


def build_init_data(
    telegram_id: int = 777,
    username: Optional[str] = "mystic",
    bot_token: str = BOT_TOKEN,
    auth_date: Optional[int] = None,
    **user_fields,
) -> str:
    """Mini App initData signed the way Telegram signs it."""
    from akari.server.services.auth import sign_init_data

    user = {"id": telegram_id, "first_name": "Mystic", **user_fields}
    if username is not None:
        user["username"] = username
    pairs = {
        "auth_date": str(auth_date if auth_date is not None else int(time.time())),
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "user": quote(json.dumps(user)),
    }
    signature = sign_init_data(pairs, bot_token)
    return "&".join(f"{key}={value}" for key, value in pairs.items()) + f"&hash={signature}"


@pytest.fixture(autouse=True)
def server_settings(monkeypatch):
    """Pin the settings every API test depends on."""
    from akari.server.core.config import settings

    monkeypatch.setattr(settings, "telegram_bot_token", BOT_TOKEN)
    monkeypatch.setattr(settings, "admin_panel_token", ADMIN_TOKEN)
    monkeypatch.setattr(settings, "cron_secret", CRON_SECRET)
    monkeypatch.setattr(settings, "admin_telegram_id", None)
    monkeypatch.setattr(settings, "environment", "development")
    return settings


@pytest.fixture
def promo_open(monkeypatch):
    """Keep onboarding and milestone promotions running."""
    from akari.server.core.config import settings

    monkeypatch.setattr(settings.economy, "promo_cutoff", datetime(2100, 1, 1))


@pytest.fixture
def init_headers():
    def _headers(telegram_id: int = 777, **kwargs) -> dict:
        return {"x-telegram-init-data": build_init_data(telegram_id, **kwargs)}

    return _headers


@pytest.fixture
def portal_login(session: AsyncSession):
    """Factory creating a portal session and returning its cookie."""
    from akari.core.database.base import utc_now
    from akari.core.database.entities.users import PortalSession, PortalUserRole

    counter = {"next": 0}

    async def _login(roles=(), expires_in: timedelta = timedelta(hours=1)) -> dict:
        counter["next"] += 1
        token = f"session-token-{counter['next']}"
        user_id = f"portal-user-{counter['next']}"
        session.add(PortalSession(session_token=token, user_id=user_id, expires_at=utc_now() + expires_in))
        for role in roles:
            session.add(PortalUserRole(user_id=user_id, role=role))
        await session.commit()
        return {"akari_session": token}

    return _login


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and overridden dependencies."""
    from akari.core.database.session import get_session
    from akari.server.main import app

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_session] = get_session_override

    # Mock the lifespan to prevent database initialization during tests
    async def mock_lifespan(app):
        yield

    with patch("akari.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_init_data():
    return build_init_data
