import pytest

from conftest import CHALLENGER, CREATOR
from goalie.engine import SettlementEngine
from goalie.errors import PayoutFailed, StoreError
from goalie.models.schema_models import PayoutRecipientSchema
from goalie.payout import LedgerPayoutService, load_transfer

VAULT = "Vau1tWa11et44444444444444444444444444444444"


class FakeTransfer:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    async def __call__(self, from_wallet, to_wallet, amount):
        if to_wallet in self.fail_for:
            raise ConnectionError("transfer rejected")
        self.sent.append((from_wallet, to_wallet, amount))
        return f"tx-{len(self.sent)}"


async def fake_transfer(from_wallet, to_wallet, amount):
    return "tx"


@pytest.fixture()
async def challenge_id(create_challenge):
    return await create_challenge()


async def test_pay_records_confirmed_transactions(store, challenge_id):
    transfer = FakeTransfer()
    service = LedgerPayoutService(store, transfer, vault_wallet=VAULT)

    paid = await service.pay(challenge_id, [PayoutRecipientSchema(wallet=CHALLENGER, amount=3.0)])

    assert paid is True
    assert transfer.sent == [(VAULT, CHALLENGER, 3.0)]
    [tx] = await store.list_payout_transactions(challenge_id)
    assert tx.tx_state == "Confirmed"
    assert tx.tx_hash == "tx-1"
    assert tx.from_wallet == VAULT
    assert tx.token == "SOL"
    assert tx.confirmed_at is not None


async def test_failed_transfer_is_recorded(store, challenge_id):
    service = LedgerPayoutService(store, FakeTransfer(fail_for={CHALLENGER}), vault_wallet=VAULT)

    paid = await service.pay(challenge_id, [PayoutRecipientSchema(wallet=CHALLENGER, amount=3.0)])

    assert paid is False
    [tx] = await store.list_payout_transactions(challenge_id)
    assert tx.tx_state == "Failed"


async def test_retry_skips_recipients_already_paid(store, challenge_id):
    recipients = [
        PayoutRecipientSchema(wallet=CREATOR, amount=1.0),
        PayoutRecipientSchema(wallet=CHALLENGER, amount=1.0),
    ]
    failing = FakeTransfer(fail_for={CHALLENGER})
    assert await LedgerPayoutService(store, failing, vault_wallet=VAULT).pay(challenge_id, recipients) is False

    retry = FakeTransfer()
    assert await LedgerPayoutService(store, retry, vault_wallet=VAULT).pay(challenge_id, recipients) is True

    assert retry.sent == [(VAULT, CHALLENGER, 1.0)]
    states = [tx.tx_state for tx in await store.list_payout_transactions(challenge_id)]
    assert states == ["Confirmed", "Failed", "Confirmed"]


async def test_pay_without_transfer_fails(store, challenge_id):
    service = LedgerPayoutService(store, None, vault_wallet=VAULT)
    assert await service.pay(challenge_id, [PayoutRecipientSchema(wallet=CHALLENGER, amount=1.0)]) is False
    assert await store.list_payout_transactions(challenge_id) == []


def test_load_transfer():
    assert load_transfer("") is None
    assert load_transfer("test_payout:fake_transfer") is fake_transfer
    with pytest.raises(ValueError):
        load_transfer("test_payout")


@pytest.fixture()
def unconfirmable(store, monkeypatch):
    """Makes the first confirm of a sent transfer fail like a dropped database connection."""
    confirm = store.confirm_payout_transaction
    failures = []

    async def confirm_once_failing(tx_id, tx_hash):
        if not failures:
            failures.append(tx_id)
            raise StoreError("Failed to confirm payout transaction")
        return await confirm(tx_id, tx_hash)

    monkeypatch.setattr(store, "confirm_payout_transaction", confirm_once_failing)
    return failures


async def test_unconfirmed_transfer_is_never_sent_again(store, challenge_id, unconfirmable):
    recipients = [PayoutRecipientSchema(wallet=CHALLENGER, amount=3.0)]
    first = FakeTransfer()
    assert await LedgerPayoutService(store, first, vault_wallet=VAULT).pay(challenge_id, recipients) is False

    retry = FakeTransfer()
    assert await LedgerPayoutService(store, retry, vault_wallet=VAULT).pay(challenge_id, recipients) is False

    assert first.sent == [(VAULT, CHALLENGER, 3.0)]
    assert retry.sent == []
    [tx] = await store.list_payout_transactions(challenge_id)
    assert tx.tx_state == "Pending"


async def test_settlement_retry_after_unconfirmed_transfer_pays_once(
    store, challenge_id, unconfirmable
):
    transfer = FakeTransfer()
    engine = SettlementEngine(store, LedgerPayoutService(store, transfer, vault_wallet=VAULT), capacity=1)
    await engine.submit_guess(challenge_id, CHALLENGER, 5, "guess-sig")

    with pytest.raises(PayoutFailed):
        await engine.try_settle(challenge_id)
    with pytest.raises(PayoutFailed):
        await engine.try_settle(challenge_id)

    assert transfer.sent == [(VAULT, CHALLENGER, 3.0)]
    assert (await store.get_challenge(challenge_id)).completed_at is None
