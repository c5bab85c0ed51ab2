import time

from doccompare.config.settings import Settings
from doccompare.database.exceptions import BackendUnavailableError
from doccompare.database.models import QueueItem
from doccompare.database.repositories.queue_repository import QueueRepository
from doccompare.logging.logger import Log
from doccompare.worker.job_runner import TaskOutcome, TaskRunner


class Worker:
    """Poll loop: claim -> dispatch -> sleep when idle."""

    def __init__(
        self,
        queue: QueueRepository,
        task_runner: TaskRunner,
        settings: Settings,
    ) -> None:
        self._queue = queue
        self._task_runner = task_runner
        self._settings = settings

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_jobs is set, stop after processing that many items (for testing).
        """
        Log.info("Worker started, polling for queue items")
        jobs_done = 0
        try:
            while True:
                if max_jobs is not None and jobs_done >= max_jobs:
                    break
                item = self._try_claim_job()
                if item:
                    self._task_runner.run(item)
                    jobs_done += 1
                else:
                    Log.debug("No queue items available, sleeping")
                    time.sleep(self._settings.job_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def drain(self, limit: int | None = None) -> list[TaskOutcome]:
        """Process due items until the queue is empty or limit is reached. Never sleeps."""
        outcomes: list[TaskOutcome] = []
        while limit is None or len(outcomes) < limit:
            item = self._try_claim_job()
            if item is None:
                break
            outcomes.append(self._task_runner.run(item))
        return outcomes

    def _try_claim_job(self) -> QueueItem | None:
        """Attempt to claim the next due item. Gracefully handle database outages."""
        try:
            return self._queue.claim_next()
        except BackendUnavailableError as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
