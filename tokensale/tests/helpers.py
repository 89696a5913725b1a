from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from tokensale.constants import UNIT_SIZE
from tokensale.ledger import SaleLedger
from tokensale.models import SaleParticipant, SalePurchase, TokenSale

OWNER = 'OWNER-ADDRESS'
WALLET = 'WALLET-ADDRESS'
ALICE = 'ALICE-ADDRESS'
BOB = 'BOB-ADDRESS'

# (cap, rate, bonus %) with caps in 4-decimal token units
LADDER = (
    (1_500_000_000_000, 100, 5),
    (3_000_000_000_000, 80, 4),
    (4_500_000_000_000, 60, 3),
    (6_000_000_000_000, 50, 2),
    (7_500_000_000_000, 40, 1),
    (9_000_000_000_000, 20, 1),
)
CAP_1 = LADDER[0][0]
CAP_6 = LADDER[5][0]


class RecordingTransfer:
    """Transfer double that records calls and answers with `ok`."""

    def __init__(self, ok=True, error=None):
        self.ok = ok
        self.error = error
        self.calls = []

    def transfer(self, to, amount):
        if self.error is not None:
            raise self.error
        if self.ok:
            self.calls.append((to, amount))
        return self.ok


class SaleTestCase(TestCase):
    """Opens a six-round sale that started an hour ago and ends tomorrow."""

    ladder = LADDER
    min_purchase = 0

    def setUp(self):
        self.now = timezone.now()
        self.token = RecordingTransfer()
        self.payments = RecordingTransfer()
        self.ledger = SaleLedger.open(
            name='Test Sale',
            owner=OWNER,
            wallet=WALLET,
            start_time=self.now - timedelta(hours=1),
            end_time=self.now + timedelta(days=1),
            locked_till=self.now + timedelta(days=2),
            token=self.token,
            payments=self.payments,
            ladder=self.ladder,
            min_purchase=self.min_purchase,
        )
        self.sale = self.ledger.sale

    def units(self, count):
        return count * UNIT_SIZE

    def set_state(self, **fields):
        TokenSale.objects.filter(pk=self.sale.pk).update(**fields)
        self.sale = self.ledger.refresh()

    def snapshot(self):
        sale = TokenSale.objects.get(pk=self.sale.pk)
        participants = list(
            SaleParticipant.objects.filter(sale=sale)
            .order_by('address')
            .values_list('address', 'paid', 'tokens_bought', 'bonus_tokens', 'locked', 'distributed')
        )
        return {
            'sold_tokens': sale.sold_tokens,
            'wei_raised': sale.wei_raised,
            'locked_tokens': sale.locked_tokens,
            'distributed_tokens': sale.distributed_tokens,
            'unsold_tokens': sale.unsold_tokens,
            'current_round': sale.current_round,
            'participants': participants,
            'purchases': SalePurchase.objects.filter(sale=sale).count(),
        }
