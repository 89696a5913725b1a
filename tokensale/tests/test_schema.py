from decimal import Decimal
from unittest.mock import patch

from config.schema import schema
from tokensale.constants import UNIT_SIZE

from .helpers import ALICE, CAP_1, RecordingTransfer, SaleTestCase


class SaleQueryTests(SaleTestCase):
    def setUp(self):
        super().setUp()
        self.ledger.buy(ALICE, UNIT_SIZE, now=self.now)

    def test_token_sale_query(self):
        result = schema.execute(
            '''
            query ($id: ID!) {
              tokenSale(saleId: $id) {
                name currentRound currentRate currentBonusPct currentCap
                soldTokens lockedTokens hasStarted hasNotEnded totalParticipants
                tiers { index rate }
              }
            }
            ''',
            variables={'id': str(self.sale.pk)},
        )

        self.assertIsNone(result.errors)
        data = result.data['tokenSale']
        self.assertEqual(data['name'], 'Test Sale')
        self.assertEqual(data['currentRound'], 1)
        self.assertEqual(data['currentBonusPct'], 5)
        self.assertEqual(Decimal(data['currentRate']), 100)
        self.assertEqual(Decimal(data['currentCap']), CAP_1)
        self.assertEqual(Decimal(data['soldTokens']), 105)
        self.assertEqual(Decimal(data['lockedTokens']), 53)
        self.assertTrue(data['hasStarted'])
        self.assertTrue(data['hasNotEnded'])
        self.assertEqual(data['totalParticipants'], 1)
        self.assertEqual([t['index'] for t in data['tiers']], [1, 2, 3, 4, 5, 6])

    def test_participant_query(self):
        result = schema.execute(
            '''
            query ($id: ID!, $address: String!) {
              saleParticipant(saleId: $id, address: $address) {
                address tokensBought bonusTokens locked distributed totalTokens
              }
            }
            ''',
            variables={'id': str(self.sale.pk), 'address': ALICE},
        )

        self.assertIsNone(result.errors)
        data = result.data['saleParticipant']
        self.assertEqual(data['address'], ALICE)
        self.assertEqual(Decimal(data['tokensBought']), 100)
        self.assertEqual(Decimal(data['bonusTokens']), 5)
        self.assertEqual(Decimal(data['locked']), 53)
        self.assertEqual(Decimal(data['distributed']), 52)
        self.assertEqual(Decimal(data['totalTokens']), 105)

    def test_unknown_participant_is_null(self):
        result = schema.execute(
            'query { saleParticipant(saleId: "%s", address: "NOBODY") { address } }' % self.sale.pk
        )
        self.assertIsNone(result.errors)
        self.assertIsNone(result.data['saleParticipant'])


class ReleaseMutationTests(SaleTestCase):
    mutation = '''
        mutation ($id: ID!, $address: String!) {
          releaseLockedTokens(saleId: $id, address: $address) { success code message amount }
        }
    '''

    def setUp(self):
        super().setUp()
        self.ledger.buy(ALICE, UNIT_SIZE, now=self.now)

    def run_release(self, sale_id=None):
        return schema.execute(
            self.mutation,
            variables={'id': str(sale_id or self.sale.pk), 'address': ALICE},
        )

    @patch('tokensale.schema.get_token_transfer')
    def test_release_too_early_reports_code(self, mock_transfer):
        mock_transfer.return_value = RecordingTransfer()

        result = self.run_release()

        self.assertIsNone(result.errors)
        payload = result.data['releaseLockedTokens']
        self.assertFalse(payload['success'])
        self.assertEqual(payload['code'], 'TOO_EARLY')

    @patch('tokensale.schema.get_token_transfer')
    def test_release_after_unlock(self, mock_transfer):
        token = RecordingTransfer()
        mock_transfer.return_value = token
        self.set_state(locked_till=self.now)

        result = self.run_release()

        self.assertIsNone(result.errors)
        payload = result.data['releaseLockedTokens']
        self.assertTrue(payload['success'])
        self.assertEqual(Decimal(payload['amount']), 53)
        self.assertEqual(token.calls, [(ALICE, 53)])

    @patch('tokensale.schema.get_token_transfer', side_effect=RuntimeError("asset_id must be configured"))
    def test_unconfigured_transfer_reports_code(self, mock_transfer):
        self.set_state(locked_till=self.now)

        result = self.run_release()

        self.assertIsNone(result.errors)
        payload = result.data['releaseLockedTokens']
        self.assertFalse(payload['success'])
        self.assertEqual(payload['code'], 'NOT_CONFIGURED')
        self.assertEqual(self.ledger.participant(ALICE).locked, 53)

    def test_unknown_sale(self):
        result = self.run_release(sale_id=999999)
        self.assertEqual(result.data['releaseLockedTokens']['code'], 'NOT_FOUND')
