"""
Sale ledger: the entry point for every operation on a token sale.

Each mutating call locks the sale row (`select_for_update`) inside
`transaction.atomic()`, runs all checks before changing anything, and performs
the external transfer as its last step. A refusal or a failed transfer rolls
the whole call back; `self.sale` is only replaced after a commit.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, Tuple

from django.db import transaction
from django.utils import timezone

from .constants import DEFAULT_TIER_LADDER
from .engine import PurchaseEngine, PurchaseOutcome
from .exceptions import InvalidArgument, InvalidState
from .models import SaleParticipant, SalePurchase, TokenSale
from .permissions import require_owner
from .tiers import TierTable, validate_ladder
from .transfer import TokenTransfer, call_transfer
from .unlock import UnlockGate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleTotals:
    sold_tokens: int
    wei_raised: int
    withdrawn_wei: int
    unsold_tokens: int
    locked_tokens: int
    distributed_tokens: int
    max_tokens_raised: int
    participants: int


class SaleLedger:
    def __init__(self, sale: TokenSale, token: TokenTransfer, payments: Optional[TokenTransfer] = None):
        self.sale = sale
        self.token = token
        self.payments = payments

    @classmethod
    def open(
        cls,
        *,
        name: str,
        owner: str,
        wallet: str,
        start_time: datetime,
        end_time: datetime,
        locked_till: datetime,
        token: TokenTransfer,
        payments: Optional[TokenTransfer] = None,
        ladder: Sequence[Tuple[int, int, int]] = DEFAULT_TIER_LADDER,
        min_purchase: int = 0,
    ) -> 'SaleLedger':
        """Create a sale with its tier ladder and return a ledger over it."""
        if not owner or not wallet:
            raise InvalidArgument("Owner and wallet addresses are required")
        if start_time >= end_time:
            raise InvalidArgument("Start time must be before end time")
        if min_purchase < 0:
            raise InvalidArgument("Minimum purchase cannot be negative")
        validate_ladder(ladder)

        with transaction.atomic():
            sale = TokenSale.objects.create(
                name=name,
                owner=owner,
                wallet=wallet,
                start_time=start_time,
                end_time=end_time,
                locked_till=locked_till,
                min_purchase=min_purchase,
                current_round_start=start_time,
            )
            TierTable.create(sale, ladder)
        logger.info("Opened sale %s (%s) with %s tiers, owner %s", sale.pk, name, len(ladder), owner)
        return cls(sale, token, payments)

    @property
    def owner(self) -> str:
        return self.sale.owner

    def _lock_sale(self) -> TokenSale:
        return TokenSale.objects.select_for_update().get(pk=self.sale.pk)

    def refresh(self) -> TokenSale:
        self.sale = TokenSale.objects.get(pk=self.sale.pk)
        return self.sale

    def tiers(self) -> TierTable:
        return TierTable(self.sale)

    # Purchases and releases

    def quote(self, paid_amount: int, now: Optional[datetime] = None) -> PurchaseOutcome:
        """Price a payment against the current state without booking it."""
        return PurchaseEngine(self.tiers()).quote(paid_amount, self.sale, now)

    def buy(self, participant: str, paid_amount: int, now: Optional[datetime] = None) -> PurchaseOutcome:
        """Book a purchase and deliver the unlocked half of its tokens."""
        if not participant:
            raise InvalidArgument("Participant address is required")
        now = now or timezone.now()

        with transaction.atomic():
            sale = self._lock_sale()
            engine = PurchaseEngine(TierTable(sale))
            outcome = engine.quote(paid_amount, sale, now)

            record, created = SaleParticipant.objects.select_for_update().get_or_create(
                sale=sale,
                address=participant,
            )
            engine.apply(outcome, sale, record, now)
            sale.save()
            record.save()
            SalePurchase.objects.create(
                sale=sale,
                participant=record,
                paid_amount=outcome.paid_amount,
                refund_amount=outcome.refund_amount,
                tokens=outcome.tokens_at_tier,
                bonus_tokens=outcome.bonus_tokens,
                delivered=outcome.tokens_to_deliver,
                locked=outcome.tokens_to_lock,
                round_before=outcome.round_before,
                round_after=sale.current_round,
            )
            if outcome.tokens_to_deliver > 0:
                call_transfer(self.token, participant, outcome.tokens_to_deliver)

        self.sale = sale
        if created:
            logger.info("New participant %s in sale %s", participant, sale.pk)
        logger.info(
            "Sale %s purchase by %s: paid=%s tokens=%s bonus=%s delivered=%s locked=%s refund=%s round=%s",
            sale.pk, participant, paid_amount, outcome.tokens_at_tier, outcome.bonus_tokens,
            outcome.tokens_to_deliver, outcome.tokens_to_lock, outcome.refund_amount, sale.current_round,
        )
        return outcome

    def release(self, participant: str, now: Optional[datetime] = None) -> int:
        """Release a participant's locked tokens; callable by anyone."""
        now = now or timezone.now()
        with transaction.atomic():
            sale = self._lock_sale()
            record = SaleParticipant.objects.select_for_update().filter(
                sale=sale,
                address=participant,
            ).first()
            amount = UnlockGate(self.token).release(sale, record, now)
            sale.save()
            record.save()
        self.sale = sale
        return amount

    # Owner operations

    @require_owner
    def advance_round(self, caller: str, now: Optional[datetime] = None) -> int:
        """Close the current round early; the untouched part of its cap becomes unsold."""
        now = now or timezone.now()
        with transaction.atomic():
            sale = self._lock_sale()
            tiers = TierTable(sale)
            if tiers.is_terminal(sale.current_round):
                raise InvalidState(f"Round {sale.current_round} is the last round")
            cap = tiers.cap(sale.current_round)
            sold = int(sale.sold_tokens)
            skipped = max(cap - sold, 0)
            if skipped:
                sale.unsold_tokens = int(sale.unsold_tokens) + skipped
                sale.sold_tokens = cap
            sale.current_round += 1
            sale.current_round_start = now
            sale.save()
        self.sale = sale
        logger.info("Sale %s advanced to round %s by %s (%s unsold)", sale.pk, sale.current_round, caller, skipped)
        return sale.current_round

    @require_owner
    def set_rate(self, caller: str, tier: int, value: int) -> None:
        with transaction.atomic():
            self._lock_sale()
            self.tiers().set_rate(caller, tier, value)

    @require_owner
    def set_bonus(self, caller: str, tier: int, value: int) -> None:
        with transaction.atomic():
            self._lock_sale()
            self.tiers().set_bonus(caller, tier, value)

    @require_owner
    def set_min_purchase(self, caller: str, value: int) -> None:
        if value is None or value < 0:
            raise InvalidArgument("Minimum purchase cannot be negative")
        self._update(min_purchase=value)
        logger.info("Sale %s minimum purchase set to %s by %s", self.sale.pk, value, caller)

    @require_owner
    def pause(self, caller: str) -> None:
        self._set_paused(True)
        logger.info("Sale %s paused by %s", self.sale.pk, caller)

    @require_owner
    def unpause(self, caller: str) -> None:
        self._set_paused(False)
        logger.info("Sale %s unpaused by %s", self.sale.pk, caller)

    def _set_paused(self, paused: bool) -> None:
        with transaction.atomic():
            sale = self._lock_sale()
            if sale.paused == paused:
                raise InvalidState("Sale is already paused" if paused else "Sale is not paused")
            sale.paused = paused
            sale.save(update_fields=['paused', 'updated_at'])
        self.sale = sale

    @require_owner
    def change_wallet(self, caller: str, wallet: str) -> None:
        if not wallet:
            raise InvalidArgument("Wallet address is required")
        self._update(wallet=wallet)
        logger.info("Sale %s wallet changed to %s by %s", self.sale.pk, wallet, caller)

    @require_owner
    def withdraw_funds(self, caller: str) -> int:
        """Forward all payments not yet withdrawn to the sale wallet."""
        if self.payments is None:
            raise InvalidState("No payment collaborator configured")
        with transaction.atomic():
            sale = self._lock_sale()
            amount = sale.pending_withdrawal
            if amount <= 0:
                raise InvalidState("No funds to withdraw")
            sale.withdrawn_wei = int(sale.withdrawn_wei) + amount
            sale.save()
            call_transfer(self.payments, sale.wallet, amount)
        self.sale = sale
        logger.info("Sale %s withdrew %s to %s", sale.pk, amount, sale.wallet)
        return amount

    @require_owner
    def withdraw_unsold_tokens(self, caller: str, now: Optional[datetime] = None) -> int:
        """Send tokens skipped by closed rounds to the wallet once the sale is over."""
        now = now or timezone.now()
        with transaction.atomic():
            sale = self._lock_sale()
            sold_out = int(sale.sold_tokens) >= TierTable(sale).max_tokens_raised
            if sale.has_not_ended(now) and not sold_out:
                raise InvalidState("Sale has not ended")
            amount = int(sale.unsold_tokens)
            if amount <= 0:
                raise InvalidState("No unsold tokens")
            sale.unsold_tokens = 0
            sale.save()
            call_transfer(self.token, sale.wallet, amount)
        self.sale = sale
        logger.info("Sale %s sent %s unsold tokens to %s", sale.pk, amount, sale.wallet)
        return amount

    def _update(self, **fields) -> None:
        with transaction.atomic():
            sale = self._lock_sale()
            for name, value in fields.items():
                setattr(sale, name, value)
            sale.save(update_fields=list(fields) + ['updated_at'])
        self.sale = sale

    # Queries

    @property
    def current_round(self) -> int:
        return self.sale.current_round

    @property
    def current_rate(self) -> int:
        return self.tiers().rate(self.sale.current_round)

    @property
    def current_bonus_pct(self) -> int:
        return self.tiers().bonus_pct(self.sale.current_round)

    @property
    def current_cap(self) -> int:
        return self.tiers().cap(self.sale.current_round)

    def has_started(self, now: Optional[datetime] = None) -> bool:
        return self.sale.has_started(now)

    def has_not_ended(self, now: Optional[datetime] = None) -> bool:
        return self.sale.has_not_ended(now)

    def participant(self, address: str) -> Optional[SaleParticipant]:
        return SaleParticipant.objects.filter(sale=self.sale, address=address).first()

    def totals(self) -> SaleTotals:
        sale = self.sale
        return SaleTotals(
            sold_tokens=int(sale.sold_tokens),
            wei_raised=int(sale.wei_raised),
            withdrawn_wei=int(sale.withdrawn_wei),
            unsold_tokens=int(sale.unsold_tokens),
            locked_tokens=int(sale.locked_tokens),
            distributed_tokens=int(sale.distributed_tokens),
            max_tokens_raised=self.tiers().max_tokens_raised,
            participants=sale.participants.count(),
        )
