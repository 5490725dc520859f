import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from conftest import CHALLENGER, OTHER_CHALLENGER
from goalie.scanner import SCAN_JOB_ID, FullnessScanner


class CountingEngine:
    """Wraps the real engine and records try_settle calls."""

    def __init__(self, engine):
        self.engine = engine
        self.settle_calls = []

    async def list_open_challenges(self):
        return await self.engine.list_open_challenges()

    def is_full(self, challenge):
        return self.engine.is_full(challenge)

    async def try_settle(self, challenge_id):
        self.settle_calls.append(challenge_id)
        return await self.engine.try_settle(challenge_id)


@pytest.fixture()
def counting_engine(engine):
    return CountingEngine(engine)


async def test_tick_without_full_challenges_settles_nothing(counting_engine, payout, create_challenge):
    await create_challenge()
    await create_challenge()
    scanner = FullnessScanner(counting_engine, interval_sec=60, max_settlements_per_tick=0)

    assert await scanner.tick() == []
    assert counting_engine.settle_calls == []
    assert payout.calls == []
    assert scanner.state == FullnessScanner.IDLE


async def test_tick_settles_the_full_challenge(engine, counting_engine, store, create_challenge):
    await create_challenge()
    full_id = await create_challenge()
    await engine.submit_guess(full_id, CHALLENGER, 5, "guess-sig")
    scanner = FullnessScanner(counting_engine, interval_sec=60, max_settlements_per_tick=0)

    assert await scanner.tick() == [full_id]
    assert counting_engine.settle_calls == [full_id]
    assert (await store.get_challenge(full_id)).completed_at is not None

    # Completed challenges are not picked up again
    assert await scanner.tick() == []
    assert counting_engine.settle_calls == [full_id]


async def test_tick_settles_every_full_challenge(engine, counting_engine, create_challenge):
    first = await create_challenge()
    second = await create_challenge()
    await engine.submit_guess(first, CHALLENGER, 5, "sig-a")
    await engine.submit_guess(second, OTHER_CHALLENGER, 2, "sig-b")
    scanner = FullnessScanner(counting_engine, interval_sec=60, max_settlements_per_tick=0)

    assert await scanner.tick() == [first, second]


async def test_tick_respects_settlement_limit(engine, counting_engine, create_challenge):
    first = await create_challenge()
    second = await create_challenge()
    await engine.submit_guess(first, CHALLENGER, 5, "sig-a")
    await engine.submit_guess(second, OTHER_CHALLENGER, 2, "sig-b")
    scanner = FullnessScanner(counting_engine, interval_sec=60, max_settlements_per_tick=1)

    assert await scanner.tick() == [first]
    assert await scanner.tick() == [second]


async def test_failed_payout_is_retried_next_tick(engine, counting_engine, payout, store, create_challenge):
    challenge_id = await create_challenge()
    await engine.submit_guess(challenge_id, CHALLENGER, 5, "guess-sig")
    payout.error = RuntimeError("rpc down")
    scanner = FullnessScanner(counting_engine, interval_sec=60, max_settlements_per_tick=0)

    assert await scanner.tick() == []
    assert (await store.get_challenge(challenge_id)).completed_at is None
    assert scanner.state == FullnessScanner.IDLE

    payout.error = None
    assert await scanner.tick() == [challenge_id]
    assert len(payout.calls) == 2


async def test_listing_failure_does_not_escape_tick():
    class BrokenEngine:
        async def list_open_challenges(self):
            raise RuntimeError("database unavailable")

    scanner = FullnessScanner(BrokenEngine(), interval_sec=60)

    assert await scanner.tick() == []
    assert scanner.state == FullnessScanner.IDLE


async def test_start_and_stop_schedule_the_scan(counting_engine):
    scanner = FullnessScanner(counting_engine, interval_sec=60)

    scanner.start()
    try:
        job = scanner.scheduler.get_job(SCAN_JOB_ID)
        assert job is not None
        assert job.trigger.interval.total_seconds() == 60
        assert scanner.scheduler.running
    finally:
        scanner.stop()

    assert not scanner.scheduler.running


async def test_stop_leaves_a_shared_scheduler_running(counting_engine):
    async def other_job():
        pass

    scheduler = AsyncIOScheduler()
    scheduler.add_job(other_job, "interval", seconds=60, id="other-job")
    scheduler.start()
    try:
        scanner = FullnessScanner(counting_engine, interval_sec=60, scheduler=scheduler)
        scanner.start()
        assert scheduler.get_job(SCAN_JOB_ID) is not None

        scanner.stop()

        assert scheduler.running
        assert scheduler.get_job(SCAN_JOB_ID) is None
        assert scheduler.get_job("other-job") is not None
    finally:
        scheduler.shutdown(wait=False)
