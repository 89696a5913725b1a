"""
Tier ladder of a sale.

Each round has a cumulative token cap, an exchange rate (tokens per payment
unit) and a bonus percentage. Rounds are numbered from 1; the last round's
cap is the sale-wide maximum.
"""
import logging
from typing import Iterable, List, Sequence, Tuple

from .constants import DEFAULT_TIER_COUNT
from .exceptions import InvalidArgument
from .models import SaleTier, TokenSale
from .permissions import require_owner

logger = logging.getLogger(__name__)


class TierTable:
    """Read access to a sale's tiers plus the owner-only setters."""

    def __init__(self, sale: TokenSale, tiers: Iterable[SaleTier] = None):
        self.sale = sale
        if tiers is None:
            tiers = SaleTier.objects.filter(sale=sale).order_by('index')
        self._tiers: List[SaleTier] = sorted(tiers, key=lambda t: t.index)
        if not self._tiers:
            raise InvalidArgument(f"Sale {sale.pk} has no tiers configured")

    @classmethod
    def create(cls, sale: TokenSale, ladder: Sequence[Tuple[int, int, int]]) -> 'TierTable':
        """Validate and persist `ladder` as (cap, rate, bonus_pct) rows."""
        validate_ladder(ladder)
        tiers = [
            SaleTier.objects.create(sale=sale, index=i, cap=cap, rate=rate, bonus_pct=bonus)
            for i, (cap, rate, bonus) in enumerate(ladder, start=1)
        ]
        return cls(sale, tiers)

    @property
    def owner(self):
        return self.sale.owner

    def __iter__(self):
        return iter(self._tiers)

    def __len__(self):
        return len(self._tiers)

    @property
    def last_index(self) -> int:
        return len(self._tiers)

    def tier(self, index: int) -> SaleTier:
        if not 1 <= index <= len(self._tiers):
            raise InvalidArgument(f"Tier {index} out of range 1..{len(self._tiers)}")
        return self._tiers[index - 1]

    def rate(self, index: int) -> int:
        return int(self.tier(index).rate)

    def cap(self, index: int) -> int:
        return int(self.tier(index).cap)

    def bonus_pct(self, index: int) -> int:
        return int(self.tier(index).bonus_pct)

    def is_terminal(self, index: int) -> bool:
        return index >= len(self._tiers)

    @property
    def max_tokens_raised(self) -> int:
        return self.cap(self.last_index)

    def tier_for(self, sold_tokens: int) -> int:
        """Smallest tier whose cap exceeds `sold_tokens`, else the last tier."""
        for tier in self._tiers:
            if int(tier.cap) > sold_tokens:
                return tier.index
        return self.last_index

    @require_owner
    def set_rate(self, caller: str, index: int, value: int) -> None:
        if value <= 0:
            raise InvalidArgument("Rate must be greater than zero")
        tier = self.tier(index)
        tier.rate = value
        tier.save(update_fields=['rate'])
        logger.info("Sale %s tier %s rate set to %s by %s", self.sale.pk, index, value, caller)

    @require_owner
    def set_bonus(self, caller: str, index: int, value: int) -> None:
        if value < 0:
            raise InvalidArgument("Bonus cannot be negative")
        tier = self.tier(index)
        tier.bonus_pct = value
        tier.save(update_fields=['bonus_pct'])
        logger.info("Sale %s tier %s bonus set to %s%% by %s", self.sale.pk, index, value, caller)


def validate_ladder(ladder: Sequence[Tuple[int, int, int]]) -> None:
    if not ladder:
        raise InvalidArgument("At least one tier is required")
    if len(ladder) != DEFAULT_TIER_COUNT:
        logger.debug("Configuring a %s-tier ladder (default is %s)", len(ladder), DEFAULT_TIER_COUNT)
    previous_cap = 0
    for index, (cap, rate, bonus) in enumerate(ladder, start=1):
        if cap <= previous_cap:
            raise InvalidArgument(f"Tier {index} cap must be greater than {previous_cap}")
        if rate <= 0:
            raise InvalidArgument(f"Tier {index} rate must be greater than zero")
        if bonus < 0:
            raise InvalidArgument(f"Tier {index} bonus cannot be negative")
        previous_cap = cap
