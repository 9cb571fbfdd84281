"""
Sync Worker
Background worker that runs a lead sync pass for every company on a fixed cadence.

Run as separate process:
    python -m leadsync.workers.sync_worker

Each company gets its own periodic task: an immediate pass, then one pass
every ``sync_interval_seconds``. A failing pass is logged and the next
tick still runs.
"""
import asyncio
import logging
import signal
from typing import Any, Awaitable, Callable, Dict, List, Optional

from dotenv import load_dotenv

from leadsync.services.sync_service import LeadSyncService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class CancelHandle:
    """
    Controls a periodic task. ``cancel`` is safe to call more than once.

    ``reset`` only re-arms the wait before the next run; a run already in
    progress is never interrupted by it.
    """

    def __init__(self, task: "asyncio.Task[None]", rearm: asyncio.Event):
        self._task = task
        self._rearm = rearm

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()

    def reset(self) -> None:
        """Push the next run a full interval away."""
        if not self._task.done():
            self._rearm.set()

    @property
    def active(self) -> bool:
        return not self._task.done()

    async def wait(self) -> None:
        """Wait for the task to finish after cancel()."""
        try:
            await self._task
        except asyncio.CancelledError:
            pass


def start_periodic_task(
    interval: float,
    fn: Callable[[], Awaitable[Any]],
    initial_delay: float = 0.0,
    name: Optional[str] = None,
) -> CancelHandle:
    """
    Call ``fn`` now (or after ``initial_delay``) and then every ``interval`` seconds.

    Exceptions from ``fn`` are logged and never end the loop; only
    ``CancelHandle.cancel()`` does. ``CancelHandle.reset()`` during a wait
    restarts it with the full interval.
    """
    rearm = asyncio.Event()

    async def _sleep(delay: float) -> None:
        while True:
            rearm.clear()
            try:
                await asyncio.wait_for(rearm.wait(), timeout=delay)
            except asyncio.TimeoutError:
                return
            delay = interval

    async def _loop() -> None:
        if initial_delay > 0:
            await _sleep(initial_delay)
        while True:
            try:
                await fn()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Periodic task {name or fn} failed: {e}", exc_info=True)
            await _sleep(interval)

    return CancelHandle(asyncio.create_task(_loop(), name=name), rearm)


class SyncWorker:
    """
    Background worker scheduling sync passes per company.

    Responsibilities:
    - Keep at most one periodic task per company
    - Restart a company's timer after an explicit refresh
    - Pick up companies created while the worker is running
    - Cancel every task on shutdown
    """

    # Worker configuration
    POLL_INTERVAL = 300.0  # Seconds between sync passes
    COMPANY_SCAN_INTERVAL = 60.0  # Seconds between company list refreshes
    MAX_CONSECUTIVE_ERRORS = 10

    def __init__(
        self,
        sync_service: Optional[LeadSyncService] = None,
        interval: Optional[float] = None,
    ):
        self.running = False
        self.sync_service = sync_service
        self.interval = interval or self.POLL_INTERVAL
        self._handles: Dict[str, CancelHandle] = {}
        self._supabase = None

        # Stats
        self._passes_run = 0
        self._passes_failed = 0
        self._leads_imported = 0

    async def initialize(self) -> None:
        """Initialize connections and services when run standalone."""
        if self.sync_service is not None:
            return

        logger.info("Initializing Sync Worker...")

        # Lazy import to avoid circular deps
        from leadsync.api.v1.dependencies import get_supabase
        from leadsync.core.config import get_settings
        from leadsync.services.factory import create_sync_service

        settings = get_settings()
        self._supabase = get_supabase()
        self.sync_service = create_sync_service(self._supabase, settings)
        self.interval = settings.sync_interval_seconds

        logger.info("Sync Worker initialized successfully")

    async def _sync_pass(self, company_id: str) -> None:
        result = await self.sync_service.sync_company(company_id)
        if result.skipped:
            return
        self._passes_run += 1
        if not result.success:
            self._passes_failed += 1
            logger.warning(f"Background sync failed for company {company_id}: {result.error}")
            return
        self._leads_imported += result.new_count

    def start_company(self, company_id: str, initial_delay: float = 0.0) -> CancelHandle:
        """Schedule a company. Already-scheduled companies keep their task."""
        handle = self._handles.get(company_id)
        if handle is not None and handle.active:
            return handle

        handle = start_periodic_task(
            self.interval,
            lambda: self._sync_pass(company_id),
            initial_delay=initial_delay,
            name=f"lead-sync-{company_id}",
        )
        self._handles[company_id] = handle
        logger.info(f"Scheduled lead sync for company {company_id} every {self.interval:.0f}s")
        return handle

    def stop_company(self, company_id: str) -> None:
        handle = self._handles.pop(company_id, None)
        if handle is not None:
            handle.cancel()

    def reset_company(self, company_id: str) -> None:
        """
        Restart the timer so the next background pass is a full interval away.

        A pass already running for the company is left to finish.
        """
        handle = self._handles.get(company_id)
        if handle is None or not handle.active:
            return
        handle.reset()

    def scheduled_companies(self) -> List[str]:
        return [company_id for company_id, handle in self._handles.items() if handle.active]

    async def _load_company_ids(self) -> List[str]:
        response = self._supabase.table("companies").select("id").execute()
        return [str(row["id"]) for row in response.data or []]

    async def run(self) -> None:
        """
        Main worker loop.

        Continuously:
        1. Load the company list
        2. Schedule a periodic sync for each company not yet scheduled
        """
        await self.initialize()

        self.running = True
        consecutive_errors = 0

        logger.info("Sync Worker started")

        while self.running:
            try:
                for company_id in await self._load_company_ids():
                    self.start_company(company_id)
                consecutive_errors = 0

                await asyncio.sleep(self.COMPANY_SCAN_INTERVAL)

            except asyncio.CancelledError:
                logger.info("Worker received cancellation signal")
                break
            except Exception as e:
                consecutive_errors += 1
                logger.error(f"Worker error ({consecutive_errors}): {e}", exc_info=True)

                if consecutive_errors >= self.MAX_CONSECUTIVE_ERRORS:
                    logger.critical("Too many consecutive errors, stopping worker")
                    break

                await asyncio.sleep(min(5 * consecutive_errors, 60))

        await self.shutdown()

    async def shutdown(self) -> None:
        """Graceful shutdown."""
        logger.info("Shutting down Sync Worker...")
        self.running = False

        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            handle.cancel()
        for handle in handles:
            await handle.wait()

        logger.info(
            f"Sync Worker shutdown complete. "
            f"Passes: {self._passes_run}, "
            f"Failed: {self._passes_failed}, "
            f"Leads imported: {self._leads_imported}"
        )

    def get_stats(self) -> dict:
        """Get worker statistics."""
        return {
            "running": self.running,
            "companies": len(self.scheduled_companies()),
            "passes_run": self._passes_run,
            "passes_failed": self._passes_failed,
            "leads_imported": self._leads_imported,
        }


async def main():
    """Entry point for running sync worker as separate process."""
    # Configure logging for worker
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    worker = SyncWorker()

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        worker.running = False

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        await worker.run()
    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
