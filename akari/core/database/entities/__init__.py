"""
Database entity models, organized by business domain.

Importing this package registers every table on the shared metadata.
"""

from .arc import ArcBillingRecord, Arena, ArenaCreator
from .campaigns import Campaign, CampaignUserProgress
from .markets import DexMarketSnapshot, MarketSnapshot, MemeTokenSnapshot
from .myst import MystTransaction, PoolBalance, ReferralEvent, WheelSpin, WithdrawalRequest
from .predictions import Bet, Prediction
from .projects import MetricsDaily, MindshareSnapshot, Project, ProjectTweet
from .users import PortalSession, PortalUserRole, User

__all__ = [
    "ArcBillingRecord",
    "Arena",
    "ArenaCreator",
    "Bet",
    "Campaign",
    "CampaignUserProgress",
    "DexMarketSnapshot",
    "MarketSnapshot",
    "MemeTokenSnapshot",
    "MetricsDaily",
    "MindshareSnapshot",
    "MystTransaction",
    "PoolBalance",
    "PortalSession",
    "PortalUserRole",
    "Prediction",
    "Project",
    "ProjectTweet",
    "ReferralEvent",
    "User",
    "WheelSpin",
    "WithdrawalRequest",
]
