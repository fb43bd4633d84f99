"""
Telegram Mini App authentication.

Mini App requests carry Telegram ``initData``: a query string signed by the
bot. The signature is an HMAC-SHA256 over the sorted ``key=value`` pairs
(``hash`` excluded, joined by newlines) keyed with ``SHA256(bot_token)``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from typing import Optional
from urllib.parse import unquote

from pydantic import BaseModel, ValidationError
from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import utc_now
from akari.core.database.entities.users import User
from akari.core.database.repositories.users import UserRepository
from akari.core.errors import AkariError
from akari.core.logging_config import get_logger
from akari.economy.myst import MystService

logger = get_logger(__name__)

DEFAULT_MAX_AGE_SECONDS = 24 * 60 * 60


class TelegramUser(BaseModel):
    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    language_code: Optional[str] = None
    photo_url: Optional[str] = None


def _data_check_string(pairs: dict) -> str:
    return "\n".join(f"{key}={pairs[key]}" for key in sorted(pairs))


def sign_init_data(pairs: dict, bot_token: str) -> str:
    """Hex signature Telegram would attach to ``pairs``."""
    secret = hashlib.sha256(bot_token.encode()).digest()
    return hmac.new(secret, _data_check_string(pairs).encode(), hashlib.sha256).hexdigest()


def verify_telegram_init_data(
    init_data: str,
    bot_token: str,
    now: Optional[float] = None,
    max_age: int = DEFAULT_MAX_AGE_SECONDS,
) -> Optional[TelegramUser]:
    """Return the signed-in Telegram user, or ``None`` when ``init_data`` is not valid.

    Args:
        init_data: Raw ``initData`` query string
        bot_token: Token of the bot that signed it
        now: Current unix time, defaults to ``time.time()``
        max_age: Oldest accepted ``auth_date`` in seconds
    """
    if not init_data or not bot_token:
        return None

    pairs = {}
    for part in init_data.split("&"):
        key, sep, value = part.partition("=")
        if sep:
            pairs[key] = value
    received_hash = pairs.pop("hash", None)
    if not received_hash:
        return None

    expected = sign_init_data(pairs, bot_token)
    if not hmac.compare_digest(expected.encode("utf-8"), received_hash.lower().encode("utf-8")):
        logger.debug("Telegram initData signature mismatch")
        return None

    try:
        auth_date = int(pairs.get("auth_date", ""))
    except ValueError:
        return None
    now = time.time() if now is None else now
    if now - auth_date > max_age:
        logger.debug(f"Telegram initData expired (auth_date={auth_date})")
        return None

    raw_user = pairs.get("user")
    if not raw_user:
        return None
    try:
        return TelegramUser.model_validate(json.loads(unquote(raw_user)))
    except (ValueError, ValidationError):
        return None


class TelegramAuthService:
    """Signs Telegram users in, creating their account on first visit."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = UserRepository(session)
        self.myst = MystService(session)

    async def get_or_create_user(self, telegram_user: TelegramUser) -> tuple[User, bool]:
        telegram_id = str(telegram_user.id)
        user = await self.users.get_by_telegram_id(telegram_id)
        if user is None:
            user = await self.users.save(
                User(
                    telegram_id=telegram_id,
                    username=telegram_user.username,
                    first_name=telegram_user.first_name,
                    last_name=telegram_user.last_name,
                )
            )
            logger.info(f"Registered user {user.id} for telegram id {telegram_id}")
            return user, True

        changed = False
        for name in ("username", "first_name", "last_name"):
            value = getattr(telegram_user, name)
            if value is not None and getattr(user, name) != value:
                setattr(user, name, value)
                changed = True
        if changed:
            user.updated_at = utc_now()
            user = await self.users.save(user)
        return user, False

    async def login(self, telegram_user: TelegramUser, referral_code: Optional[str] = None) -> dict:
        user, created = await self.get_or_create_user(telegram_user)
        await self.myst.ensure_referral_code(user)

        referral_applied = False
        if created and referral_code:
            try:
                await self.myst.apply_referral_code(user, referral_code)
                referral_applied = True
            except AkariError as e:
                logger.info(f"Referral code ignored for user {user.id}: {e.message}")

        onboarding = await self.myst.grant_onboarding_bonus(user)
        return {
            "user": user,
            "created": created,
            "referralApplied": referral_applied,
            "onboardingBonus": onboarding.amount if onboarding.granted else 0.0,
            "balance": await self.myst.get_balance(user.id),
        }
