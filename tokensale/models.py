from django.db import models
from django.utils import timezone

from .fields import AmountField


class TokenSale(models.Model):
    """Sale-wide state: running totals, schedule and round pointer."""
    name = models.CharField(max_length=100)
    owner = models.CharField(
        max_length=64,
        help_text="Address allowed to run administrative operations"
    )
    wallet = models.CharField(
        max_length=64,
        help_text="Destination for withdrawn payments and unsold tokens"
    )

    sold_tokens = AmountField(help_text="Tokens sold including bonus")
    wei_raised = AmountField(help_text="Payments accepted (refunds excluded)")
    withdrawn_wei = AmountField(help_text="Payments already sent to the wallet")
    unsold_tokens = AmountField(help_text="Tokens skipped by force-closed rounds")
    locked_tokens = AmountField(help_text="Tokens waiting for the unlock date")
    distributed_tokens = AmountField(help_text="Tokens delivered to participants")
    min_purchase = AmountField(help_text="Smallest accepted payment")

    current_round = models.PositiveSmallIntegerField(default=1)
    current_round_start = models.DateTimeField(default=timezone.now)
    paused = models.BooleanField(default=False)

    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    locked_till = models.DateTimeField(
        help_text="Locked balances can be released from this moment on"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} (round {self.current_round})"

    def has_started(self, now=None):
        return (now or timezone.now()) >= self.start_time

    def has_not_ended(self, now=None):
        return (now or timezone.now()) < self.end_time

    def is_open(self, now=None):
        now = now or timezone.now()
        return self.has_started(now) and self.has_not_ended(now)

    @property
    def pending_withdrawal(self):
        return int(self.wei_raised) - int(self.withdrawn_wei)


class SaleTier(models.Model):
    """One pricing round: cumulative cap, rate and bonus."""
    sale = models.ForeignKey(
        TokenSale,
        on_delete=models.CASCADE,
        related_name='tiers'
    )
    index = models.PositiveSmallIntegerField()
    cap = AmountField(help_text="Cumulative tokens-sold ceiling of this round")
    rate = AmountField(help_text="Tokens per payment unit")
    bonus_pct = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['sale', 'index']
        unique_together = ['sale', 'index']

    def __str__(self):
        return f"Tier {self.index}: cap {self.cap} @ {self.rate} (+{self.bonus_pct}%)"


class SaleParticipant(models.Model):
    """Per-address balances; created on first purchase and never removed."""
    sale = models.ForeignKey(
        TokenSale,
        on_delete=models.PROTECT,
        related_name='participants'
    )
    address = models.CharField(max_length=64)
    paid = AmountField()
    tokens_bought = AmountField()
    bonus_tokens = AmountField()
    locked = AmountField()
    distributed = AmountField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['sale', 'address']
        indexes = [
            models.Index(fields=['sale', 'address'], name='tokensale_participant_idx'),
        ]

    def __str__(self):
        return f"{self.address} - {self.tokens_bought} (+{self.bonus_tokens} bonus)"

    @property
    def total_tokens(self):
        return int(self.tokens_bought) + int(self.bonus_tokens)


class SalePurchase(models.Model):
    """Append-only record of each accepted purchase"""
    sale = models.ForeignKey(
        TokenSale,
        on_delete=models.PROTECT,
        related_name='purchases'
    )
    participant = models.ForeignKey(
        SaleParticipant,
        on_delete=models.PROTECT,
        related_name='purchases'
    )
    paid_amount = AmountField()
    refund_amount = AmountField()
    tokens = AmountField()
    bonus_tokens = AmountField()
    delivered = AmountField()
    locked = AmountField()
    round_before = models.PositiveSmallIntegerField()
    round_after = models.PositiveSmallIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['sale', '-created_at'], name='tokensale_purchase_idx'),
        ]

    def __str__(self):
        return f"{self.participant.address} - {self.paid_amount} for {self.tokens} (+{self.bonus_tokens})"
