"""
Data access layer, organized by business domain.
"""

from .arc import ArcBillingRepository, ArenaRepository
from .base import AsyncBaseRepository
from .markets import DexMarketSnapshotRepository, MarketSnapshotRepository, MemeTokenSnapshotRepository
from .myst import (
    MystTransactionRepository,
    PoolBalanceRepository,
    ReferralEventRepository,
    WheelSpinRepository,
    WithdrawalRequestRepository,
)
from .predictions import BetRepository, PredictionRepository
from .projects import MindshareSnapshotRepository, ProjectRepository, ProjectTweetRepository
from .users import PortalSessionRepository, UserRepository

__all__ = [
    "ArcBillingRepository",
    "ArenaRepository",
    "AsyncBaseRepository",
    "BetRepository",
    "DexMarketSnapshotRepository",
    "MarketSnapshotRepository",
    "MemeTokenSnapshotRepository",
    "MindshareSnapshotRepository",
    "MystTransactionRepository",
    "PoolBalanceRepository",
    "PortalSessionRepository",
    "PredictionRepository",
    "ProjectRepository",
    "ProjectTweetRepository",
    "ReferralEventRepository",
    "UserRepository",
    "WheelSpinRepository",
    "WithdrawalRequestRepository",
]
