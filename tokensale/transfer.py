"""
Transfer collaborators used by the sale ledger.

The ledger only needs `transfer(to, amount) -> bool`. `AlgorandAssetTransfer`
implements it as an ASA transfer signed by a configured sender account; it is
used both for the sold token and for the payment asset forwarded to the
sale wallet.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from algosdk import account, mnemonic, transaction
from algosdk.error import AlgodHTTPError
from algosdk.v2client import algod
from django.conf import settings

from .exceptions import TransferFailed

logger = logging.getLogger(__name__)


class TokenTransfer(Protocol):
    def transfer(self, to: str, amount: int) -> bool:
        ...


def call_transfer(collaborator: TokenTransfer, to: str, amount: int) -> None:
    """Run a transfer and turn a refusal or error into TransferFailed."""
    try:
        ok = collaborator.transfer(to, amount)
    except TransferFailed:
        raise
    except Exception as exc:
        logger.error("Transfer of %s to %s raised: %s", amount, to, exc)
        raise TransferFailed(f"Transfer of {amount} to {to} failed: {exc}") from exc
    if not ok:
        logger.warning("Transfer of %s to %s was refused", amount, to)
        raise TransferFailed(f"Transfer of {amount} to {to} was refused")


class AlgorandAssetTransfer:
    """Send an Algorand Standard Asset from the configured sender account."""

    CONFIRMATION_ROUNDS = 4

    def __init__(
        self,
        asset_id: int,
        sender_mnemonic: str,
        client: Optional[algod.AlgodClient] = None,
    ) -> None:
        if not asset_id:
            raise RuntimeError("asset_id must be configured")
        if not sender_mnemonic:
            raise RuntimeError("sender mnemonic must be configured")
        self.asset_id = int(asset_id)
        self.private_key = mnemonic.to_private_key(" ".join(sender_mnemonic.strip().split()))
        self.sender_address = account.address_from_private_key(self.private_key)
        self.algod = client or algod.AlgodClient(
            settings.ALGORAND_ALGOD_TOKEN,
            settings.ALGORAND_ALGOD_ADDRESS,
        )

    def transfer(self, to: str, amount: int) -> bool:
        if amount <= 0:
            raise ValueError("amount must be positive")

        params = self.algod.suggested_params()
        txn = transaction.AssetTransferTxn(
            sender=self.sender_address,
            sp=params,
            receiver=to,
            amt=int(amount),
            index=self.asset_id,
        )
        signed = txn.sign(self.private_key)
        try:
            tx_id = self.algod.send_transaction(signed)
        except AlgodHTTPError as exc:
            logger.warning(
                "ASA %s transfer of %s to %s rejected by algod: %s",
                self.asset_id, amount, to, exc,
            )
            return False

        try:
            result = transaction.wait_for_confirmation(self.algod, tx_id, self.CONFIRMATION_ROUNDS)
        except Exception as exc:
            # The transaction may still land on chain; the ledger rolls back.
            logger.error(
                "ASA %s transfer of %s to %s sent as tx %s but not confirmed, reconcile manually: %s",
                self.asset_id, amount, to, tx_id, exc,
            )
            raise

        logger.info(
            "ASA %s transfer of %s to %s confirmed in round %s (tx %s)",
            self.asset_id, amount, to, result.get('confirmed-round'), tx_id,
        )
        return True


def get_token_transfer() -> AlgorandAssetTransfer:
    """Collaborator for the sold token, built from Django settings."""
    return AlgorandAssetTransfer(
        asset_id=getattr(settings, 'TOKENSALE_TOKEN_ASSET_ID', 0),
        sender_mnemonic=getattr(settings, 'TOKENSALE_SENDER_MNEMONIC', ''),
    )


def get_payment_transfer() -> AlgorandAssetTransfer:
    """Collaborator for the payment asset forwarded to the sale wallet."""
    return AlgorandAssetTransfer(
        asset_id=getattr(settings, 'TOKENSALE_PAYMENT_ASSET_ID', 0),
        sender_mnemonic=getattr(settings, 'TOKENSALE_SENDER_MNEMONIC', ''),
    )
