"""
MYST Token Service.

Core economic rules of the AKARI Mystic Club currency.

- 1 USD = 50 MYST, so 1 MYST = 0.02 USD.
- MYST enters the economy through TON deposits, admin grants, the
  onboarding bonus, the referral milestone, wheel prizes, prediction
  payouts, referral rewards and Telegram Stars conversion.
- Every spend of S MYST is split 15 % leaderboard pool, 10 % referral,
  5 % wheel pool and 70 % treasury. The referral share pays 8 % of S to the
  direct referrer and 2 % of S to their referrer; whatever is not paid out
  goes to the treasury.
- A user's balance is the sum of their ledger rows.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.database.base import utc_now
from akari.core.database.entities.myst import MystTransaction, ReferralEvent, WithdrawalRequest
from akari.core.database.entities.users import User
from akari.core.database.repositories.myst import (
    MystTransactionRepository,
    PoolBalanceRepository,
    ReferralEventRepository,
    WithdrawalRequestRepository,
)
from akari.core.database.repositories.users import UserRepository
from akari.core.errors import AkariError, InsufficientBalanceError, NotFoundError, ReferralError, WithdrawalError
from akari.core.logging_config import get_logger
from akari.server.core.config import settings

logger = get_logger(__name__)

# ============================================
# ECONOMIC CONSTANTS
# ============================================

MYST_PER_USD = 50
USD_PER_MYST = 1 / MYST_PER_USD

DEFAULT_FEE_RATE = 0.08
MINIMUM_BET = 2.0

SPLIT_LEADERBOARD = 0.15
SPLIT_REFERRAL = 0.10
SPLIT_WHEEL = 0.05
SPLIT_TREASURY = 0.70

REFERRAL_LEVEL_1_RATE = 0.08
REFERRAL_LEVEL_2_RATE = 0.02

ONBOARDING_BONUS_AMOUNT = 5.0
REFERRAL_MILESTONE_AMOUNT = 10.0
REFERRAL_MILESTONE_THRESHOLD = 5

WITHDRAWAL_FEE_RATE = 0.02
WITHDRAWAL_MIN_USD = 50.0

STARS_PER_MYST = 100

POOL_LEADERBOARD = "leaderboard"
POOL_REFERRAL = "referral"
POOL_WHEEL = "wheel"
POOL_TREASURY = "treasury"
POOL_IDS = (POOL_LEADERBOARD, POOL_REFERRAL, POOL_WHEEL, POOL_TREASURY)

# Ledger types
TX_ADMIN_GRANT = "admin_grant"
TX_ONBOARDING_BONUS = "onboarding_bonus"
TX_REFERRAL_MILESTONE = "referral_milestone"
TX_REFERRAL_REWARD_L1 = "referral_reward_l1"
TX_REFERRAL_REWARD_L2 = "referral_reward_l2"
TX_STARS_CONVERSION = "stars_conversion"
TX_WITHDRAW_REQUEST = "withdraw_request"
SPEND_PREFIX = "spend_"


@dataclass
class SpendResult:
    spent: float
    splits: Dict[str, float]
    referral_rewards: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GrantResult:
    granted: bool
    reason: str
    amount: float = 0.0


def generate_referral_code(telegram_id: str) -> str:
    """``AKARI_<last 6 of the telegram id>_<4 random upper-case characters>``."""
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(4))
    return f"AKARI_{str(telegram_id)[-6:]}_{suffix}"


def stars_to_myst(stars: float) -> float:
    return stars / STARS_PER_MYST


class MystService:
    """MYST ledger operations bound to one database session.

    Every public mutating method commits exactly once.
    """

    def __init__(self, session: AsyncSession, promo_cutoff: Optional[datetime] = None) -> None:
        if promo_cutoff is None:
            promo_cutoff = settings.economy.promo_cutoff
        self.session = session
        self.promo_cutoff = promo_cutoff.replace(tzinfo=None)
        self.transactions = MystTransactionRepository(session)
        self.pools = PoolBalanceRepository(session)
        self.users = UserRepository(session)
        self.referral_events = ReferralEventRepository(session)
        self.withdrawals = WithdrawalRequestRepository(session)

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    async def get_balance(self, user_id: str) -> float:
        return await self.transactions.balance(user_id)

    async def pool_balances(self) -> Dict[str, float]:
        """Balances of every known pool; pools never funded report 0."""
        stored = await self.pools.all_balances()
        balances = {pool_id: 0.0 for pool_id in POOL_IDS}
        balances.update(stored)
        return balances

    # ------------------------------------------------------------------
    # Credits
    # ------------------------------------------------------------------

    def _stage_credit(self, user_id: str, amount: float, tx_type: str, meta: Optional[Dict[str, Any]] = None):
        if amount <= 0:
            raise AkariError("Credit amount must be positive")
        return self.transactions.add(MystTransaction(user_id=user_id, type=tx_type, amount=amount, meta=meta or {}))

    async def credit(
        self, user_id: str, amount: float, tx_type: str, meta: Optional[Dict[str, Any]] = None
    ) -> float:
        """Credit ``amount`` MYST and return the new balance."""
        self._stage_credit(user_id, amount, tx_type, meta)
        await self.session.commit()
        logger.info(f"Credited {amount:g} MYST to user {user_id} ({tx_type})")
        return await self.get_balance(user_id)

    async def admin_grant(self, user_id: str, amount: float, reason: Optional[str] = None) -> float:
        if await self.users.get_by_id(user_id) is None:
            raise NotFoundError("User not found")
        return await self.credit(user_id, amount, TX_ADMIN_GRANT, {"reason": reason} if reason else None)

    async def convert_stars(self, user_id: str, stars: float) -> Dict[str, float]:
        """Credit MYST for an already verified Telegram Stars payment."""
        if stars <= 0:
            raise AkariError("Stars amount must be positive")
        received = stars_to_myst(stars)
        balance = await self.credit(
            user_id, received, TX_STARS_CONVERSION, {"starsAmount": stars, "rate": STARS_PER_MYST}
        )
        return {"mystReceived": received, "newBalance": balance}

    # ------------------------------------------------------------------
    # Spending
    # ------------------------------------------------------------------

    async def stage_spend(
        self, user: User, amount: float, spend_type: str, reference_id: Optional[str] = None
    ) -> SpendResult:
        """Stage a spend with its splits and referral rewards, without committing."""
        if amount <= 0:
            raise AkariError("Spend amount must be positive")
        if not spend_type.startswith(SPEND_PREFIX):
            raise AkariError(f"Unknown spend type: {spend_type}")

        balance = await self.get_balance(user.id)
        if balance < amount:
            raise InsufficientBalanceError(balance, amount)

        leaderboard_split = amount * SPLIT_LEADERBOARD
        referral_split = amount * SPLIT_REFERRAL
        wheel_split = amount * SPLIT_WHEEL
        treasury_split = amount * SPLIT_TREASURY

        level1_id: Optional[str] = None
        level1_amount = 0.0
        level2_id: Optional[str] = None
        level2_amount = 0.0
        unused_referral = referral_split

        if user.referrer_id:
            level1 = await self.users.get_by_id(user.referrer_id)
            if level1 is not None:
                level1_id = level1.id
                level1_amount = amount * REFERRAL_LEVEL_1_RATE
                unused_referral -= level1_amount
                if level1.referrer_id:
                    level2_id = level1.referrer_id
                    level2_amount = amount * REFERRAL_LEVEL_2_RATE
                    unused_referral -= level2_amount

        self.transactions.add(
            MystTransaction(
                user_id=user.id,
                type=spend_type,
                amount=-amount,
                meta={"referenceId": reference_id, "spendType": spend_type},
            )
        )
        reward_meta = {"fromUserId": user.id, "originalSpend": amount, "spendType": spend_type, "referenceId": reference_id}
        if level1_id and level1_amount > 0:
            self._stage_credit(level1_id, level1_amount, TX_REFERRAL_REWARD_L1, reward_meta)
        if level2_id and level2_amount > 0:
            self._stage_credit(level2_id, level2_amount, TX_REFERRAL_REWARD_L2, reward_meta)

        self.referral_events.add(
            ReferralEvent(
                user_id=user.id,
                referrer_level1_id=level1_id,
                reward_level1=level1_amount,
                referrer_level2_id=level2_id,
                reward_level2=level2_amount,
                myst_spent=amount,
                spend_type=spend_type,
                reference_id=reference_id,
            )
        )

        await self.pools.adjust(POOL_LEADERBOARD, leaderboard_split)
        await self.pools.adjust(POOL_WHEEL, wheel_split)
        await self.pools.adjust(POOL_TREASURY, treasury_split + unused_referral)

        return SpendResult(
            spent=amount,
            splits={
                POOL_LEADERBOARD: leaderboard_split,
                POOL_REFERRAL: referral_split,
                POOL_WHEEL: wheel_split,
                POOL_TREASURY: treasury_split,
            },
            referral_rewards={
                "level1UserId": level1_id,
                "level1Amount": level1_amount,
                "level2UserId": level2_id,
                "level2Amount": level2_amount,
            },
        )

    async def spend(
        self, user: User, amount: float, spend_type: str, reference_id: Optional[str] = None
    ) -> SpendResult:
        """Debit ``amount`` MYST from ``user`` and distribute it."""
        result = await self.stage_spend(user, amount, spend_type, reference_id)
        await self.session.commit()
        logger.info(
            f"User {user.id} spent {amount:g} MYST ({spend_type})",
            extra={"user_id": user.id, "amount": amount, "spend_type": spend_type, "reference_id": reference_id},
        )
        return result

    # ------------------------------------------------------------------
    # Promotions and referrals
    # ------------------------------------------------------------------

    def _promotions_open(self, now: datetime) -> bool:
        return now.replace(tzinfo=None) < self.promo_cutoff

    async def grant_onboarding_bonus(self, user: User, now: Optional[datetime] = None) -> GrantResult:
        """Grant the one-time onboarding bonus while promotions are open."""
        now = now or utc_now()
        if not self._promotions_open(now):
            return GrantResult(False, "after-cutoff")
        if await self.transactions.has_entry(user.id, TX_ONBOARDING_BONUS):
            return GrantResult(False, "already-granted")

        self._stage_credit(user.id, ONBOARDING_BONUS_AMOUNT, TX_ONBOARDING_BONUS, {"source": "onboarding"})
        await self.session.commit()
        logger.info(f"Granted {ONBOARDING_BONUS_AMOUNT:g} MYST onboarding bonus to user {user.id}")
        return GrantResult(True, "granted", ONBOARDING_BONUS_AMOUNT)

    async def check_referral_milestone(self, referrer_id: str, now: Optional[datetime] = None) -> GrantResult:
        """Grant the milestone bonus once a user has referred enough users."""
        now = now or utc_now()
        if not self._promotions_open(now):
            return GrantResult(False, "milestone_expired")
        if await self.transactions.has_entry(referrer_id, TX_REFERRAL_MILESTONE):
            return GrantResult(False, "already-granted")

        referral_count = await self.users.count_referrals(referrer_id)
        if referral_count < REFERRAL_MILESTONE_THRESHOLD:
            return GrantResult(False, "not-enough-referrals")

        self._stage_credit(
            referrer_id,
            REFERRAL_MILESTONE_AMOUNT,
            TX_REFERRAL_MILESTONE,
            {"source": "referral_milestone", "referralCount": referral_count},
        )
        await self.session.commit()
        logger.info(f"Granted {REFERRAL_MILESTONE_AMOUNT:g} MYST referral milestone to user {referrer_id}")
        return GrantResult(True, "granted", REFERRAL_MILESTONE_AMOUNT)

    async def ensure_referral_code(self, user: User) -> str:
        """Give ``user`` a referral code if they do not have one yet."""
        if user.referral_code:
            return user.referral_code
        code = generate_referral_code(user.telegram_id)
        while await self.users.get_by_referral_code(code) is not None:
            code = generate_referral_code(user.telegram_id)
        user.referral_code = code
        user.updated_at = utc_now()
        await self.users.save(user)
        return code

    async def apply_referral_code(self, user: User, code: str, now: Optional[datetime] = None) -> User:
        """Attach the owner of ``code`` as the referrer of ``user``.

        Returns:
            The referrer
        """
        referrer = await self.users.get_by_referral_code(code.strip())
        if referrer is None:
            raise ReferralError("Invalid referral code")
        if referrer.id == user.id:
            raise ReferralError("Cannot refer yourself")
        if user.referrer_id:
            raise ReferralError("Already have a referrer")

        user.referrer_id = referrer.id
        user.updated_at = utc_now()
        await self.users.save(user)
        logger.info(f"User {user.id} joined with referral code of user {referrer.id}")

        await self.check_referral_milestone(referrer.id, now)
        return referrer

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    async def request_withdrawal(self, user: User, amount_myst: float, ton_price_usd: float) -> WithdrawalRequest:
        """Debit ``amount_myst`` and queue a manual TON payout.

        The 2 % fee is kept by the treasury, the rest is burned and paid out
        in TON at ``ton_price_usd``.
        """
        if amount_myst <= 0:
            raise WithdrawalError("Amount must be positive")
        if not user.ton_address:
            raise WithdrawalError("TON wallet not linked")
        if ton_price_usd <= 0:
            raise WithdrawalError("TON price unavailable")

        balance = await self.get_balance(user.id)
        if balance < amount_myst:
            raise InsufficientBalanceError(balance, amount_myst)

        fee_myst = amount_myst * WITHDRAWAL_FEE_RATE
        burn_myst = amount_myst - fee_myst
        net_usd = burn_myst * USD_PER_MYST
        if net_usd < WITHDRAWAL_MIN_USD:
            raise WithdrawalError(f"Minimum withdrawal is ${WITHDRAWAL_MIN_USD:g}. Your net: ${net_usd:.2f}")

        self.transactions.add(
            MystTransaction(user_id=user.id, type=TX_WITHDRAW_REQUEST, amount=-amount_myst, meta={"purpose": "withdrawal"})
        )
        await self.pools.adjust(POOL_TREASURY, fee_myst)
        withdrawal = self.withdrawals.add(
            WithdrawalRequest(
                user_id=user.id,
                ton_address=user.ton_address,
                myst_requested=amount_myst,
                myst_fee=fee_myst,
                usd_net=net_usd,
                ton_price_usd=ton_price_usd,
                ton_amount=net_usd / ton_price_usd,
            )
        )
        await self.session.commit()
        await self.session.refresh(withdrawal)
        logger.info(
            f"Withdrawal request {withdrawal.id} created: {amount_myst:g} MYST -> {withdrawal.ton_amount:.4f} TON",
            extra={"user_id": user.id, "withdrawal_id": withdrawal.id},
        )
        return withdrawal
