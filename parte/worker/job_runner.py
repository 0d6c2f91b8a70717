import psycopg

from parte.config.settings import Settings
from parte.database.models import JobRecord
from parte.database.repositories.job_repository import JobRepository
from parte.logging.logger import Log
from parte.processor.models import JobOutcome, OutcomeStatus
from parte.processor.processor import Processor


class JobRunner:
    """Run one job and turn its outcome into done / retry-later / failed."""

    def __init__(
        self,
        processor: Processor,
        job_repo: JobRepository,
        settings: Settings,
    ) -> None:
        self._processor = processor
        self._job_repo = job_repo
        self._settings = settings

    def run(self, job: JobRecord) -> JobOutcome:
        Log.info(f"Running job {job.id} (attempt {job.attempts + 1})")
        outcome = self._processor.process(job)
        try:
            self._record(job, outcome)
        except psycopg.Error as exc:
            Log.error(f"Could not record outcome of job {job.id}: {exc}")
        return outcome

    def _record(self, job: JobRecord, outcome: JobOutcome) -> None:
        if outcome.status is OutcomeStatus.SUCCESS:
            self._job_repo.mark_done(job.id)
            Log.info(f"Job {job.id} completed successfully")
            return

        attempt = job.attempts + 1
        if outcome.status is OutcomeStatus.RETRY and attempt < self._settings.max_job_attempts:
            self._job_repo.schedule_retry(
                job.id, outcome.message, self._settings.job_retry_backoff_seconds
            )
            Log.warning(
                f"Job {job.id} will be retried in "
                f"{self._settings.job_retry_backoff_seconds}s (attempt {attempt} failed)"
            )
            return

        self._job_repo.mark_failed(job.id, outcome.message)
        Log.error(f"Job {job.id} permanently failed after {attempt} attempts: {outcome.message}")
