"""
Purchase pricing for the round-tiered sale.

`PurchaseEngine.quote` turns a payment into a `PurchaseOutcome` without
touching any state; `PurchaseEngine.apply` books an outcome onto the sale and
participant rows. The ledger runs both inside one database transaction.

Conversion at a tier:  tokens = (paid // UNIT_SIZE) * rate
Bonus at a tier:       bonus  = tokens * bonus_pct // 100

A purchase whose tokens would pass the active tier's cap is split at the cap.
The part below the cap is bought at the current rate; the remaining payment is
bought at the next tier's rate and only that part earns the next tier's
bonus. At the last tier the remaining payment is refunded instead.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from django.utils import timezone

from .constants import PERCENT, UNIT_SIZE
from .exceptions import (
    BelowMinimum,
    InvalidArgument,
    SaleNotActive,
    SalePaused,
    UnsupportedPurchase,
)
from .models import SaleParticipant, TokenSale
from .tiers import TierTable

logger = logging.getLogger(__name__)


def split_distribution(total: int) -> Tuple[int, int]:
    """Return (deliver_now, lock). The odd token goes to the locked half."""
    deliver = total // 2
    return deliver, total - deliver


@dataclass(frozen=True)
class PurchaseOutcome:
    paid_amount: int
    tokens_at_tier: int
    bonus_tokens: int
    refund_amount: int
    round_before: int
    new_round: int

    @property
    def accepted_amount(self) -> int:
        return self.paid_amount - self.refund_amount

    @property
    def total_tokens(self) -> int:
        return self.tokens_at_tier + self.bonus_tokens

    @property
    def crossed(self) -> bool:
        return self.new_round != self.round_before or self.refund_amount > 0

    @property
    def tokens_to_deliver(self) -> int:
        return split_distribution(self.total_tokens)[0]

    @property
    def tokens_to_lock(self) -> int:
        return split_distribution(self.total_tokens)[1]


class PurchaseEngine:
    def __init__(self, tiers: TierTable):
        self.tiers = tiers

    def check_purchase(self, paid_amount: int, state: TokenSale, now: datetime) -> None:
        """Raise the first refusal that applies to this payment, if any."""
        if paid_amount is None or paid_amount <= 0:
            raise InvalidArgument("Payment must be greater than zero")
        if state.paused:
            raise SalePaused()
        if not state.is_open(now):
            raise SaleNotActive("Sale is outside its time window")
        if int(state.sold_tokens) >= self.tiers.max_tokens_raised:
            raise SaleNotActive("All tokens have been sold")
        if paid_amount < int(state.min_purchase):
            raise BelowMinimum(f"Minimum purchase is {state.min_purchase}")

    def active_tier(self, state: TokenSale) -> int:
        # The round pointer never moves backwards, even if a tier lookup would.
        return max(self.tiers.tier_for(int(state.sold_tokens)), state.current_round)

    def quote(self, paid_amount: int, state: TokenSale, now: Optional[datetime] = None) -> PurchaseOutcome:
        now = now or timezone.now()
        self.check_purchase(paid_amount, state, now)

        sold = int(state.sold_tokens)
        tier = self.active_tier(state)
        rate = self.tiers.rate(tier)
        cap = self.tiers.cap(tier)
        tokens = (paid_amount // UNIT_SIZE) * rate
        if tokens == 0:
            raise InvalidArgument(f"Payment below one unit ({UNIT_SIZE}) buys no tokens")

        if sold + tokens <= cap:
            bonus = tokens * self.tiers.bonus_pct(tier) // PERCENT
            if self.tiers.is_terminal(tier):
                bonus = min(bonus, cap - sold - tokens)
            return PurchaseOutcome(
                paid_amount=paid_amount,
                tokens_at_tier=tokens,
                bonus_tokens=bonus,
                refund_amount=0,
                round_before=state.current_round,
                new_round=tier,
            )
        return self._quote_crossing(paid_amount, state, tier)

    def _quote_crossing(self, paid_amount: int, state: TokenSale, tier: int) -> PurchaseOutcome:
        sold = int(state.sold_tokens)
        cap = self.tiers.cap(tier)
        tokens_this_tier = cap - sold
        # Truncates: the fraction of a payment unit below the boundary is not
        # carried into the next tier.
        wei_this_tier = tokens_this_tier * UNIT_SIZE // self.tiers.rate(tier)
        wei_next_tier = paid_amount - wei_this_tier

        if self.tiers.is_terminal(tier):
            logger.info(
                "Purchase of %s fills the last tier; refunding %s",
                paid_amount, wei_next_tier,
            )
            return PurchaseOutcome(
                paid_amount=paid_amount,
                tokens_at_tier=tokens_this_tier,
                bonus_tokens=0,
                refund_amount=wei_next_tier,
                round_before=state.current_round,
                new_round=tier,
            )

        next_tier = tier + 1
        tokens_next_tier = wei_next_tier * self.tiers.rate(next_tier) // UNIT_SIZE
        bonus = self.excess_bonus(sold, tokens_this_tier, tokens_next_tier, tier)
        if cap + tokens_next_tier + bonus > self.tiers.cap(next_tier):
            raise UnsupportedPurchase(
                f"Payment of {paid_amount} would cross more than one tier boundary"
            )
        return PurchaseOutcome(
            paid_amount=paid_amount,
            tokens_at_tier=tokens_this_tier + tokens_next_tier,
            bonus_tokens=bonus,
            refund_amount=0,
            round_before=state.current_round,
            new_round=next_tier,
        )

    def excess_bonus(self, sold: int, tokens_this_tier: int, tokens_next_tier: int, tier: int) -> int:
        """Bonus of the next tier, paid on the tokens past `cap(tier)` only."""
        excess = sold + tokens_this_tier + tokens_next_tier - self.tiers.cap(tier)
        return excess * self.tiers.bonus_pct(tier + 1) // PERCENT

    def apply(self, outcome: PurchaseOutcome, state: TokenSale, participant: SaleParticipant,
              now: Optional[datetime] = None) -> None:
        """Book `outcome` onto the in-memory rows; the caller saves them."""
        now = now or timezone.now()
        deliver, lock = split_distribution(outcome.total_tokens)

        state.sold_tokens = int(state.sold_tokens) + outcome.total_tokens
        state.wei_raised = int(state.wei_raised) + outcome.accepted_amount
        state.locked_tokens = int(state.locked_tokens) + lock
        state.distributed_tokens = int(state.distributed_tokens) + deliver
        if outcome.new_round > state.current_round:
            state.current_round = outcome.new_round
            state.current_round_start = now

        participant.paid = int(participant.paid) + outcome.accepted_amount
        participant.tokens_bought = int(participant.tokens_bought) + outcome.tokens_at_tier
        participant.bonus_tokens = int(participant.bonus_tokens) + outcome.bonus_tokens
        participant.locked = int(participant.locked) + lock
        participant.distributed = int(participant.distributed) + deliver
