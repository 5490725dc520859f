import importlib
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional
from uuid import UUID

from goalie.errors import StoreError
from goalie.models.dc_models import TxStateModel
from goalie.models.schema_models import PayoutRecipientSchema

# transfer(from_wallet, to_wallet, amount) -> tx_hash
Transfer = Callable[[str, str, float], Awaitable[str]]


class PayoutService(ABC):
    """Moves committed funds to the winners of a challenge.

    The engine calls pay at most once per successful settlement, so
    implementations do not need to be idempotent themselves.
    """

    @abstractmethod
    async def pay(self, challenge_id: UUID, recipients: List[PayoutRecipientSchema]) -> bool:
        """Return True once every recipient has been paid, False on failure."""


class LedgerPayoutService(PayoutService):
    def __init__(
        self,
        store,
        transfer: Optional[Transfer],
        vault_wallet: str,
        token: str = "SOL",
    ):
        self.store = store
        self.transfer = transfer
        self.vault_wallet = vault_wallet
        self.token = token

    async def pay(self, challenge_id: UUID, recipients: List[PayoutRecipientSchema]) -> bool:
        """Send one transfer per recipient from the vault, recording each as a payout transaction.

        Recipients already confirmed by an earlier, partially failed attempt are skipped.
        A transfer whose row is still Pending may have moved funds, so it is never sent
        again and the payout reports failure until the row is reconciled.

        Args:
            challenge_id (UUID): Challenge being settled
            recipients (List[PayoutRecipientSchema]): Wallets and amounts to pay

        Returns:
            bool: True if every recipient is confirmed
        """
        if self.transfer is None:
            logging.error(f"No transfer configured, cannot pay out challenge {challenge_id}")
            return False

        transactions = await self.store.list_payout_transactions(challenge_id)
        confirmed = {
            (tx.to_wallet, tx.amount) for tx in transactions if tx.tx_state == TxStateModel.confirmed.value
        }
        pending = {
            (tx.to_wallet, tx.amount) for tx in transactions if tx.tx_state == TxStateModel.pending.value
        }
        for recipient in recipients:
            if (recipient.wallet, recipient.amount) in confirmed:
                logging.info(f"Skipping {recipient.wallet} on challenge {challenge_id}: already paid")
                continue
            if (recipient.wallet, recipient.amount) in pending:
                logging.error(
                    f"Transfer to {recipient.wallet} on challenge {challenge_id} is still pending "
                    f"from an earlier attempt, needs reconciliation"
                )
                return False

            tx = await self.store.create_payout_transaction(
                challenge_id, self.vault_wallet, recipient.wallet, recipient.amount, self.token
            )
            try:
                tx_hash = await self.transfer(self.vault_wallet, recipient.wallet, recipient.amount)
            except Exception as e:
                logging.error(f"Transfer {tx.tx_id} to {recipient.wallet} failed: {e}")
                await self.store.fail_payout_transaction(tx.tx_id)
                return False

            try:
                await self.store.confirm_payout_transaction(tx.tx_id, tx_hash)
            except StoreError as e:
                # Funds moved; the row stays Pending so no retry sends them again.
                logging.error(f"Transfer {tx.tx_id} to {recipient.wallet} sent tx={tx_hash} but not confirmed: {e}")
                return False
            logging.info(
                f"Paid {recipient.amount} {self.token} to {recipient.wallet} "
                f"for challenge {challenge_id} tx={tx_hash}"
            )
        return True


def load_transfer(path: str) -> Optional[Transfer]:
    """Resolve a "package.module:function" path to the transfer callable. Empty path gives None."""
    if not path:
        return None
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Transfer path must look like 'package.module:function', got {path!r}")
    module = importlib.import_module(module_name)
    return getattr(module, attribute)
