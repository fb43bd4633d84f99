"""Unit tests for server configuration settings model.

Tests verify that the Settings model binds environment variables (including
those listed in .env.example) and the nested ``__`` groups.
"""

from datetime import datetime
from pathlib import Path

import pytest

from akari.server.core.config import CORSConfig, DexConfig, EconomyConfig, MindshareConfig, Settings


@pytest.fixture
def env_example_path() -> Path:
    """Get path to .env.example file."""
    return Path(__file__).resolve().parents[4] / ".env.example"


@pytest.fixture
def env_example_vars(env_example_path: Path) -> dict[str, str]:
    """Parse .env.example file and return the variables that have a value."""
    env_vars = {}
    with open(env_example_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            if value.strip():
                env_vars[key.strip()] = value.strip()
    return env_vars


class TestDefaults:
    def test_defaults(self, monkeypatch):
        for name in ("AKARI_ENV", "CRON_SECRET", "ADMIN_PANEL_TOKEN", "TELEGRAM_BOT_TOKEN"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.server_port == 8000
        assert settings.environment == "development"
        assert settings.is_production is False
        assert settings.cron_secret is None
        assert settings.init_data_max_age_seconds == 86400
        assert settings.economy.promo_cutoff == datetime(2026, 1, 1)
        assert settings.dex.results_per_symbol == 3

    def test_group_defaults(self):
        assert MindshareConfig().w_posts + MindshareConfig().w_creators == pytest.approx(0.5)
        assert DexConfig().dexscreener_url.startswith("https://api.dexscreener.com")
        assert EconomyConfig().ton_price_fallback_usd == 5.0
        assert CORSConfig().origins == ["*"]


class TestSettingsBinding:
    def test_env_example_binds(self, env_example_vars: dict[str, str], monkeypatch):
        """Every value in .env.example is accepted by the settings model."""
        for key, value in env_example_vars.items():
            monkeypatch.setenv(key, value)

        settings = Settings(_env_file=None)

        assert settings.server_host == env_example_vars["AKARI_SERVER_HOST"]
        assert settings.server_port == int(env_example_vars["AKARI_SERVER_PORT"])
        assert settings.database_url == env_example_vars["DATABASE_URL"]

    def test_secrets(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
        monkeypatch.setenv("ADMIN_PANEL_TOKEN", "panel")
        monkeypatch.setenv("CRON_SECRET", "cron")
        monkeypatch.setenv("ADMIN_TELEGRAM_ID", "42")

        settings = Settings(_env_file=None)

        assert settings.telegram_bot_token == "123:abc"
        assert settings.admin_panel_token == "panel"
        assert settings.cron_secret == "cron"
        assert settings.admin_telegram_id == "42"

    @pytest.mark.parametrize("value, expected", [("production", True), ("PRODUCTION", True), ("staging", False)])
    def test_is_production(self, monkeypatch, value, expected):
        monkeypatch.setenv("AKARI_ENV", value)
        assert Settings(_env_file=None).is_production is expected

    def test_nested_groups(self, monkeypatch):
        monkeypatch.setenv("DEX__batch_size", "9")
        monkeypatch.setenv("ECONOMY__promo_cutoff", "2027-03-01T00:00:00")
        monkeypatch.setenv("MINDSHARE__w_posts", "0.4")

        settings = Settings(_env_file=None)

        assert settings.dex.batch_size == 9
        assert settings.economy.promo_cutoff == datetime(2027, 3, 1)
        assert settings.mindshare.w_posts == pytest.approx(0.4)
        assert settings.mindshare.w_creators == pytest.approx(0.25)
