from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from tokensale.constants import DEFAULT_TIER_LADDER
from tokensale.exceptions import SaleError
from tokensale.ledger import SaleLedger
from tokensale.models import TokenSale


class Command(BaseCommand):
    help = 'Create a token sale with the default six-round tier ladder'

    def add_arguments(self, parser):
        parser.add_argument('--name', required=True)
        parser.add_argument('--owner', required=True, help='Admin address')
        parser.add_argument('--wallet', required=True, help='Funds wallet address')
        parser.add_argument('--start', help='ISO start time (default: now)')
        parser.add_argument('--days', type=int, default=30, help='Sale duration in days')
        parser.add_argument('--lock-days', type=int, default=90,
                            help='Days after the end before locked tokens can be released')
        parser.add_argument('--min-purchase', type=int, default=0)

    def handle(self, *args, **options):
        if TokenSale.objects.filter(name=options['name']).exists():
            self.stdout.write(self.style.WARNING(f"Sale already exists: {options['name']}"))
            return

        start = timezone.now()
        if options['start']:
            start = parse_datetime(options['start'])
            if start is None:
                raise CommandError(f"Invalid --start value: {options['start']}")
            if timezone.is_naive(start):
                start = timezone.make_aware(start)
        end = start + timedelta(days=options['days'])

        try:
            ledger = SaleLedger.open(
                name=options['name'],
                owner=options['owner'],
                wallet=options['wallet'],
                start_time=start,
                end_time=end,
                locked_till=end + timedelta(days=options['lock_days']),
                token=None,
                ladder=DEFAULT_TIER_LADDER,
                min_purchase=options['min_purchase'],
            )
        except SaleError as e:
            raise CommandError(str(e))

        for tier in ledger.tiers():
            self.stdout.write(f"  Round {tier.index}: cap {tier.cap}, rate {tier.rate}, bonus {tier.bonus_pct}%")
        self.stdout.write(self.style.SUCCESS(f"Token sale {ledger.sale.pk} created: {ledger.sale.name}"))
