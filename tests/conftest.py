import pytest

from goalie.create_sqlite_engine import create_sqlite_engine
from goalie.db import create_session_factory
from goalie.engine import SettlementEngine
from goalie.payout import PayoutService
from goalie.services.challenge_db import ChallengeStore

CREATOR = "CreatorWa11et111111111111111111111111111111"
CHALLENGER = "Cha11engerWa11et22222222222222222222222222"
OTHER_CHALLENGER = "OtherWa11et3333333333333333333333333333333"


class RecordingPayoutService(PayoutService):
    """Payout double that records every call instead of moving funds."""

    def __init__(self):
        self.calls = []
        self.result = True
        self.error = None

    async def pay(self, challenge_id, recipients):
        self.calls.append((challenge_id, list(recipients)))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture()
async def store(tmp_path):
    # File backed so concurrent sessions use separate connections
    engine = create_sqlite_engine(f"sqlite+aiosqlite:///{tmp_path / 'goalie-test.sqlite3'}")
    challenge_store = ChallengeStore(create_session_factory(engine))
    await challenge_store.create_tables()
    yield challenge_store
    await engine.dispose()


@pytest.fixture()
def payout():
    return RecordingPayoutService()


@pytest.fixture()
def engine(store, payout):
    return SettlementEngine(store, payout, capacity=1, protocol_fee_bps=0, default_user_name="User")


@pytest.fixture()
def create_challenge(engine):
    async def _create(target_grid_index=5, total_amount=1.5, creator=CREATOR, proof="create-sig"):
        return await engine.create_challenge(creator, target_grid_index, total_amount, proof)

    return _create
