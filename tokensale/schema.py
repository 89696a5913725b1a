import logging

import graphene
from graphene_django import DjangoObjectType
from graphene_django.converter import convert_django_field

from .exceptions import SaleError
from .fields import AmountField
from .ledger import SaleLedger
from .models import SaleParticipant, SaleTier, TokenSale
from .tiers import TierTable
from .transfer import get_token_transfer

logger = logging.getLogger(__name__)


@convert_django_field.register(AmountField)
def convert_amount_field(field, registry=None):
    # Wei totals overflow GraphQL Int; amounts travel as digit strings
    return graphene.String(description=field.help_text, required=not field.null)


class SaleTierType(DjangoObjectType):
    class Meta:
        model = SaleTier
        fields = ('index', 'cap', 'rate', 'bonus_pct')


class SaleParticipantType(DjangoObjectType):
    total_tokens = graphene.String()

    class Meta:
        model = SaleParticipant
        fields = ('address', 'paid', 'tokens_bought', 'bonus_tokens', 'locked', 'distributed', 'created_at')

    def resolve_total_tokens(self, info):
        return self.total_tokens


class TokenSaleType(DjangoObjectType):
    current_rate = graphene.String()
    current_bonus_pct = graphene.Int()
    current_cap = graphene.String()
    max_tokens_raised = graphene.String()
    has_started = graphene.Boolean()
    has_not_ended = graphene.Boolean()
    total_participants = graphene.Int()
    tiers = graphene.List(SaleTierType)

    class Meta:
        model = TokenSale
        fields = (
            'id', 'name', 'wallet', 'sold_tokens', 'wei_raised', 'unsold_tokens',
            'locked_tokens', 'distributed_tokens', 'min_purchase', 'current_round',
            'current_round_start', 'paused', 'start_time', 'end_time', 'locked_till',
        )

    def resolve_current_rate(self, info):
        return TierTable(self).rate(self.current_round)

    def resolve_current_bonus_pct(self, info):
        return TierTable(self).bonus_pct(self.current_round)

    def resolve_current_cap(self, info):
        return TierTable(self).cap(self.current_round)

    def resolve_max_tokens_raised(self, info):
        return TierTable(self).max_tokens_raised

    def resolve_has_started(self, info):
        return self.has_started()

    def resolve_has_not_ended(self, info):
        return self.has_not_ended()

    def resolve_total_participants(self, info):
        return self.participants.count()

    def resolve_tiers(self, info):
        return self.tiers.order_by('index')


class Query(graphene.ObjectType):
    """Read-only sale queries; no login required"""

    token_sale = graphene.Field(TokenSaleType, sale_id=graphene.ID(required=True))
    all_token_sales = graphene.List(TokenSaleType)
    sale_participant = graphene.Field(
        SaleParticipantType,
        sale_id=graphene.ID(required=True),
        address=graphene.String(required=True)
    )

    def resolve_token_sale(self, info, sale_id):
        return TokenSale.objects.filter(pk=sale_id).first()

    def resolve_all_token_sales(self, info):
        return TokenSale.objects.all()

    def resolve_sale_participant(self, info, sale_id, address):
        return SaleParticipant.objects.filter(sale_id=sale_id, address=address).first()


class ReleaseLockedTokens(graphene.Mutation):
    """Release a participant's locked tokens once the unlock date has passed"""

    class Arguments:
        sale_id = graphene.ID(required=True)
        address = graphene.String(required=True)

    success = graphene.Boolean()
    message = graphene.String()
    code = graphene.String()
    amount = graphene.String()

    def mutate(self, info, sale_id, address):
        sale = TokenSale.objects.filter(pk=sale_id).first()
        if sale is None:
            return ReleaseLockedTokens(success=False, message="Sale not found", code='NOT_FOUND')

        try:
            token = get_token_transfer()
        except RuntimeError as e:
            logger.error("Token transfer is not configured: %s", e)
            return ReleaseLockedTokens(
                success=False,
                message="Token transfer is not configured",
                code='NOT_CONFIGURED'
            )

        ledger = SaleLedger(sale, token)
        try:
            amount = ledger.release(address)
        except SaleError as e:
            logger.info("Release for %s in sale %s refused: %s", address, sale_id, e)
            return ReleaseLockedTokens(success=False, message=str(e), code=e.code)

        return ReleaseLockedTokens(success=True, message="Tokens released", amount=amount)


class Mutation(graphene.ObjectType):
    release_locked_tokens = ReleaseLockedTokens.Field()
