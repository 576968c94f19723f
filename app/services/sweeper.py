import asyncio
from datetime import datetime
from typing import Callable, List, Optional

from app.logger_config import logger
from app.models.hold import Hold
from app.services.hold_manager import HoldManager
from app.store.base import InventoryStore
from app.utils import utc_now


class ExpirySweeper:
    """Periodically releases ACTIVE holds that have outlived their expiry.

    Release is idempotent and status-guarded, so sweeps may overlap with
    each other and with settlement; a hold confirmed first stays confirmed.
    """

    def __init__(self, store: InventoryStore, hold_manager: HoldManager,
                 interval_seconds: float = 15.0, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.hold_manager = hold_manager
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    def _expired(self, now: Optional[datetime]) -> List[Hold]:
        return self.store.find_expired_holds(now or self.clock())

    def _release(self, hold: Hold) -> bool:
        try:
            self.hold_manager.release_hold(hold.hold_id)
            return True
        except Exception:
            logger.exception(f"Failed to release expired hold {hold.hold_id}")
            return False

    def sweep_once(self, now: Optional[datetime] = None) -> int:
        """Release every lapsed hold; returns how many releases succeeded"""
        expired = self._expired(now)
        released = sum(1 for hold in expired if self._release(hold))
        if expired:
            logger.info(f"Sweep released {released}/{len(expired)} expired holds")
        return released

    async def sweep_once_async(self, now: Optional[datetime] = None) -> int:
        expired = await asyncio.to_thread(self._expired, now)
        if not expired:
            return 0
        # Each release runs in its own worker thread so one slow store call
        # never holds up the others or the event loop
        results = await asyncio.gather(
            *(asyncio.to_thread(self._release, hold) for hold in expired)
        )
        released = sum(1 for ok in results if ok)
        logger.info(f"Sweep released {released}/{len(expired)} expired holds")
        return released

    async def run_forever(self) -> None:
        logger.info(f"Expiry sweeper started (every {self.interval_seconds}s)")
        while True:
            try:
                await self.sweep_once_async()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Expiry sweep failed; retrying next tick")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiry sweeper stopped")
