import logging
from datetime import datetime
from typing import Optional

from django.utils import timezone

from .exceptions import NothingLocked, TooEarly
from .models import SaleParticipant, TokenSale
from .transfer import TokenTransfer, call_transfer

logger = logging.getLogger(__name__)


class UnlockGate:
    """
    Releases a participant's locked balance once `locked_till` has passed.

    Anyone may trigger a release for any participant; the tokens always go to
    the participant's own address. Two checks guard the release:

    * the sale-wide `locked_tokens` counter must be non-zero, and
    * the participant itself must hold a non-zero locked balance.

    On success the released amount is subtracted from the sale-wide counter
    and added to the distributed totals.
    """

    def __init__(self, token: TokenTransfer):
        self.token = token

    def check_release(self, state: TokenSale, participant: Optional[SaleParticipant],
                      now: datetime) -> int:
        if now < state.locked_till:
            raise TooEarly(f"Tokens are locked until {state.locked_till.isoformat()}")
        if int(state.locked_tokens) == 0:
            raise NothingLocked()
        if participant is None or int(participant.locked) == 0:
            raise NothingLocked("Participant has no locked tokens")
        return int(participant.locked)

    def release(self, state: TokenSale, participant: Optional[SaleParticipant],
                now: Optional[datetime] = None) -> int:
        """Transfer the whole locked balance; the caller saves both rows."""
        now = now or timezone.now()
        amount = self.check_release(state, participant, now)

        participant.locked = 0
        participant.distributed = int(participant.distributed) + amount
        state.locked_tokens = int(state.locked_tokens) - amount
        state.distributed_tokens = int(state.distributed_tokens) + amount

        call_transfer(self.token, participant.address, amount)
        logger.info("Released %s locked tokens to %s (sale %s)", amount, participant.address, state.pk)
        return amount
