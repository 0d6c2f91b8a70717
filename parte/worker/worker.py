import signal
import time
from collections import Counter
from types import FrameType

import psycopg

from parte.config.settings import Settings
from parte.database.connection import get_connection
from parte.database.models import JobRecord
from parte.database.repositories.job_repository import JobRepository
from parte.logging.logger import Log
from parte.worker.job_runner import JobRunner


class Worker:
    """Poll loop: claim a due job -> run it -> repeat; sleep when the queue is empty."""

    def __init__(
        self,
        job_repo: JobRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings
        self._stopping = False
        self.outcomes: Counter[str] = Counter()

    def run(self, max_jobs: int | None = None) -> None:
        """Poll until interrupted, SIGTERM, or ``max_jobs`` jobs have run.

        The job in progress always finishes before the loop exits.
        """
        Log.info("Worker started, polling for extraction jobs")
        previous_handler = signal.signal(signal.SIGTERM, self._request_stop)
        try:
            while not self._stopping:
                if max_jobs is not None and sum(self.outcomes.values()) >= max_jobs:
                    break
                job = self._try_claim_job()
                if job is None:
                    Log.debug("No jobs available, sleeping")
                    time.sleep(self._settings.job_poll_interval_seconds)
                    continue
                outcome = self._job_runner.run(job)
                self.outcomes[outcome.status.value] += 1
        except KeyboardInterrupt:
            Log.info("Worker interrupted")
        finally:
            signal.signal(signal.SIGTERM, previous_handler)
            Log.info("Worker stopped", **dict(self.outcomes))

    def stop(self) -> None:
        self._stopping = True

    def _request_stop(self, signum: int, frame: FrameType | None) -> None:
        Log.info(f"Received signal {signum}, finishing current job before exit")
        self.stop()

    def _try_claim_job(self) -> JobRecord | None:
        """Claim the next due job; database errors are logged and retried next poll."""
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(conn)
        except (psycopg.Error, RuntimeError) as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
