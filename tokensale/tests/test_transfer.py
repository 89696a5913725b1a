from unittest.mock import MagicMock, patch

from algosdk import account, mnemonic, transaction
from algosdk.error import AlgodHTTPError, ConfirmationTimeoutError
from django.test import TestCase, override_settings

from tokensale.exceptions import TransferFailed
from tokensale.transfer import AlgorandAssetTransfer, call_transfer, get_token_transfer

from .helpers import RecordingTransfer

GENESIS_HASH = "SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI="


def suggested_params():
    return transaction.SuggestedParams(fee=1000, first=1, last=1000, gh=GENESIS_HASH, flat_fee=True)


class CallTransferTests(TestCase):
    def test_success(self):
        collaborator = RecordingTransfer()
        call_transfer(collaborator, 'ADDR', 10)
        self.assertEqual(collaborator.calls, [('ADDR', 10)])

    def test_false_return_is_failure(self):
        with self.assertRaises(TransferFailed):
            call_transfer(RecordingTransfer(ok=False), 'ADDR', 10)

    def test_exception_is_wrapped(self):
        with self.assertRaises(TransferFailed) as ctx:
            call_transfer(RecordingTransfer(error=RuntimeError('boom')), 'ADDR', 10)
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)


class AlgorandAssetTransferTests(TestCase):
    def setUp(self):
        sender_sk, self.sender_addr = account.generate_account()
        _, self.receiver_addr = account.generate_account()
        self.sender_mnemonic = mnemonic.from_private_key(sender_sk)
        self.algod = MagicMock()
        self.algod.suggested_params.return_value = suggested_params()
        self.algod.send_transaction.return_value = 'TXID'
        self.sender = AlgorandAssetTransfer(asset_id=1234, sender_mnemonic=self.sender_mnemonic, client=self.algod)

    def test_sender_address_derived_from_mnemonic(self):
        self.assertEqual(self.sender.sender_address, self.sender_addr)

    @patch('tokensale.transfer.transaction.wait_for_confirmation', return_value={'confirmed-round': 42})
    def test_transfer_sends_signed_asset_transfer(self, mock_wait):
        self.assertTrue(self.sender.transfer(self.receiver_addr, 500))

        signed = self.algod.send_transaction.call_args[0][0]
        self.assertIsInstance(signed.transaction, transaction.AssetTransferTxn)
        self.assertEqual(signed.transaction.index, 1234)
        self.assertEqual(signed.transaction.amount, 500)
        self.assertEqual(signed.transaction.receiver, self.receiver_addr)
        mock_wait.assert_called_once_with(self.algod, 'TXID', AlgorandAssetTransfer.CONFIRMATION_ROUNDS)

    def test_rejected_transaction_returns_false(self):
        self.algod.send_transaction.side_effect = AlgodHTTPError('overspend')
        self.assertFalse(self.sender.transfer(self.receiver_addr, 500))

    @patch('tokensale.transfer.transaction.wait_for_confirmation', side_effect=ConfirmationTimeoutError('timed out'))
    def test_unconfirmed_transfer_logs_tx_id(self, mock_wait):
        with self.assertLogs('tokensale.transfer', level='ERROR') as logs:
            with self.assertRaises(TransferFailed):
                call_transfer(self.sender, self.receiver_addr, 500)

        self.assertTrue(any('TXID' in line for line in logs.output))

    def test_non_positive_amount(self):
        with self.assertRaises(ValueError):
            self.sender.transfer(self.receiver_addr, 0)

    def test_requires_configuration(self):
        with self.assertRaises(RuntimeError):
            AlgorandAssetTransfer(asset_id=0, sender_mnemonic=self.sender_mnemonic, client=self.algod)
        with self.assertRaises(RuntimeError):
            AlgorandAssetTransfer(asset_id=1, sender_mnemonic='', client=self.algod)

    def test_get_token_transfer_reads_settings(self):
        with override_settings(TOKENSALE_TOKEN_ASSET_ID=777, TOKENSALE_SENDER_MNEMONIC=self.sender_mnemonic):
            collaborator = get_token_transfer()
        self.assertEqual(collaborator.asset_id, 777)
        self.assertEqual(collaborator.sender_address, self.sender_addr)
