"""
Request dependencies.

Database session plus the four ways a request can authenticate: Telegram
initData, the portal session cookie (optionally with the super admin role),
the admin panel token and the cron secret.
"""

from __future__ import annotations

import hmac
from typing import Annotated, Optional

from fastapi import Cookie, Depends, Header, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import utc_now
from akari.core.database.entities.users import PortalSession, User
from akari.core.database.repositories.users import PortalSessionRepository
from akari.core.database.session import get_session
from akari.core.logging_config import get_logger
from akari.server.core.config import settings

from .auth import TelegramAuthService, TelegramUser, verify_telegram_init_data

logger = get_logger(__name__)

SUPER_ADMIN_ROLE = "super_admin"

SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_telegram_user(
    session: SessionDep,
    x_telegram_init_data: Annotated[Optional[str], Header()] = None,
    init_data: Annotated[Optional[str], Query(alias="initData")] = None,
) -> User:
    """Mini App user signed in through Telegram initData."""
    raw = x_telegram_init_data or init_data
    auth = TelegramAuthService(session)

    if not raw:
        if not settings.is_production and settings.admin_telegram_id:
            logger.debug("No initData sent, using ADMIN_TELEGRAM_ID outside production")
            user, _ = await auth.get_or_create_user(TelegramUser(id=int(settings.admin_telegram_id)))
            return user
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing Telegram init data")

    telegram_user = verify_telegram_init_data(
        raw, settings.telegram_bot_token, max_age=settings.init_data_max_age_seconds
    )
    if telegram_user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Telegram init data")
    user, _ = await auth.get_or_create_user(telegram_user)
    return user


async def get_portal_session(
    session: SessionDep,
    akari_session: Annotated[Optional[str], Cookie()] = None,
) -> PortalSession:
    if not akari_session:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    sessions = PortalSessionRepository(session)
    portal_session = await sessions.get_by_token(akari_session)
    if portal_session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    if portal_session.expires_at < utc_now():
        await sessions.delete(portal_session.id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")
    return portal_session


PortalSessionDep = Annotated[PortalSession, Depends(get_portal_session)]


async def require_super_admin(session: SessionDep, portal_session: PortalSessionDep) -> PortalSession:
    roles = await PortalSessionRepository(session).get_roles(portal_session.user_id)
    if SUPER_ADMIN_ROLE not in roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="SuperAdmin only")
    return portal_session


def require_admin_token(x_admin_token: Annotated[Optional[str], Header()] = None) -> None:
    expected = settings.admin_panel_token
    if not expected:
        logger.error("ADMIN_PANEL_TOKEN is not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Admin token not configured")
    if not x_admin_token or not hmac.compare_digest(x_admin_token.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def require_cron_secret(
    authorization: Annotated[Optional[str], Header()] = None,
    x_cron_secret: Annotated[Optional[str], Header()] = None,
    secret: Annotated[Optional[str], Query()] = None,
) -> None:
    """Bearer token, then ``x-cron-secret``, then ``?secret=``."""
    expected = settings.cron_secret
    if not expected:
        logger.warning("CRON_SECRET is not configured, allowing cron request")
        return

    provided = None
    if authorization and authorization.startswith("Bearer "):
        provided = authorization[len("Bearer ") :]
    provided = provided or x_cron_secret or secret
    if not provided or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Unauthorized cron request")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


TelegramUserDep = Annotated[User, Depends(get_telegram_user)]
SuperAdminDep = Annotated[PortalSession, Depends(require_super_admin)]
AdminTokenDep = Depends(require_admin_token)
CronSecretDep = Depends(require_cron_secret)
