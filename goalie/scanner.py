import logging
from typing import List
from uuid import UUID

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from goalie.config import Config
from goalie.errors import GoalieError

SCAN_JOB_ID = "fullness-scan"


class FullnessScanner:
    """Periodically settles every challenge that has reached capacity.

    Failed settlements leave completed_at unset, so they are picked up again
    on the next tick.
    """

    IDLE = "idle"
    SCANNING = "scanning"

    def __init__(
        self,
        engine,
        interval_sec: int = Config.SCAN_INTERVAL_SEC,
        max_settlements_per_tick: int = Config.MAX_SETTLEMENTS_PER_TICK,
        scheduler: AsyncIOScheduler | None = None,
    ):
        self.engine = engine
        self.interval_sec = interval_sec
        self.max_settlements_per_tick = max_settlements_per_tick
        # Only a scheduler created here is shut down by stop()
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler if scheduler is not None else AsyncIOScheduler()
        self.state = self.IDLE

    def start(self) -> None:
        self.scheduler.add_job(
            self.tick,
            "interval",
            seconds=self.interval_sec,
            id=SCAN_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logging.info(f"Fullness scanner started, interval={self.interval_sec}s")

    def stop(self) -> None:
        if self.scheduler.get_job(SCAN_JOB_ID) is not None:
            self.scheduler.remove_job(SCAN_JOB_ID)
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logging.info("Fullness scanner stopped")

    async def tick(self) -> List[UUID]:
        """Run one scan pass

        Returns:
            List[UUID]: Challenges settled during this pass
        """
        if self.state == self.SCANNING:
            logging.info("[scan-skip] previous pass still running")
            return []

        self.state = self.SCANNING
        settled = []
        attempts = 0
        try:
            challenges = await self.engine.list_open_challenges()
            for challenge in challenges:
                if challenge.completed_at is not None or not self.engine.is_full(challenge):
                    continue
                if self.max_settlements_per_tick and attempts >= self.max_settlements_per_tick:
                    logging.info(f"[scan-limit] reached {attempts} settlements this tick")
                    break
                attempts += 1
                try:
                    outcome = await self.engine.try_settle(challenge.id)
                except GoalieError as e:
                    logging.warning(f"[scan-settle-failed] challenge={challenge.id} {type(e).__name__}: {e}")
                    continue
                except Exception:
                    logging.exception(f"[scan-settle-error] challenge={challenge.id}")
                    continue
                settled.append(outcome.challenge_id)
        except Exception as e:
            logging.error(f"[scan-failed] {e}")
        finally:
            self.state = self.IDLE

        if settled:
            logging.info(f"[scan-done] settled={[str(challenge_id) for challenge_id in settled]}")
        return settled
