"""
User and portal identity entities.

Mini App users are keyed by their Telegram id. Portal sessions and roles
belong to the separate ARC portal identity and are read-only for this
service: sessions are issued by the login flow of the portal itself.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class User(Base, table=True):
    """Telegram Mini App user.

    Table: users
    """

    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    telegram_id: str = Field(max_length=64, unique=True, index=True)
    username: Optional[str] = Field(default=None, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=128)
    last_name: Optional[str] = Field(default=None, max_length=128)

    tier: Optional[str] = Field(default=None, max_length=32)
    # aXP
    points: int = Field(default=0)

    referral_code: Optional[str] = Field(default=None, max_length=64, unique=True, index=True)
    referrer_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True, max_length=64)
    ton_address: Optional[str] = Field(default=None, max_length=128)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def display_name(self) -> str:
        return self.username or self.first_name or "Anonymous"

    def __repr__(self) -> str:
        return f"User(id={self.id}, telegram_id={self.telegram_id}, username={self.username})"


class PortalSession(Base, table=True):
    """ARC portal login session looked up from the ``akari_session`` cookie.

    Table: akari_user_sessions
    """

    __tablename__ = "akari_user_sessions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    session_token: str = Field(max_length=255, unique=True, index=True)
    user_id: str = Field(max_length=64, index=True)
    expires_at: datetime = Field()
    created_at: datetime = Field(default_factory=utc_now)


class PortalUserRole(Base, table=True):
    """Role granted to a portal user (e.g. ``super_admin``).

    Table: akari_user_roles
    """

    __tablename__ = "akari_user_roles"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    user_id: str = Field(max_length=64, index=True)
    role: str = Field(max_length=64)
