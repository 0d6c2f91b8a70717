import signal
from unittest.mock import MagicMock, patch

import psycopg

from parte.database.models import JobRecord
from parte.processor.models import JobOutcome
from parte.worker.worker import Worker


def _make_worker() -> tuple[Worker, MagicMock, MagicMock]:
    """Create a Worker with mocked dependencies."""
    mock_repo = MagicMock()
    mock_runner = MagicMock()
    mock_runner.run.return_value = JobOutcome.success()
    settings = MagicMock(job_poll_interval_seconds=1)
    worker = Worker(mock_repo, mock_runner, settings)
    return worker, mock_repo, mock_runner


def _make_job(job_id: int = 1) -> JobRecord:
    return JobRecord(id=job_id, death_notice_id=10, kind="name_funeral", status="processing", attempts=0)


class TestWorkerDispatch:
    def test_dispatches_job_to_runner(self) -> None:
        worker, _repo, mock_runner = _make_worker()
        job = _make_job()

        with patch.object(worker, "_try_claim_job", side_effect=[job, KeyboardInterrupt]):
            worker.run()

        mock_runner.run.assert_called_once_with(job)

    def test_counts_outcomes(self) -> None:
        worker, _repo, mock_runner = _make_worker()
        mock_runner.run.side_effect = [JobOutcome.success(), JobOutcome.retry("provider down")]

        with patch.object(
            worker, "_try_claim_job", side_effect=[_make_job(1), _make_job(2), KeyboardInterrupt]
        ):
            worker.run()

        assert worker.outcomes == {"success": 1, "retry": 1}

    def test_stops_after_max_jobs(self) -> None:
        worker, _repo, mock_runner = _make_worker()

        with patch.object(worker, "_try_claim_job", return_value=_make_job()):
            worker.run(max_jobs=2)

        assert mock_runner.run.call_count == 2


class TestWorkerSleep:
    def test_sleeps_when_no_job(self) -> None:
        worker, _repo, _runner = _make_worker()

        with (
            patch.object(worker, "_try_claim_job", side_effect=[None, KeyboardInterrupt]),
            patch("parte.worker.worker.time.sleep") as mock_sleep,
        ):
            worker.run()

        mock_sleep.assert_called_once_with(1)


class TestWorkerShutdown:
    def test_handles_keyboard_interrupt(self) -> None:
        worker, _repo, _runner = _make_worker()

        with patch.object(worker, "_try_claim_job", side_effect=KeyboardInterrupt):
            worker.run()  # Should not raise

    def test_stop_finishes_current_job(self) -> None:
        worker, _repo, mock_runner = _make_worker()

        def run_and_stop(job: JobRecord) -> JobOutcome:
            worker.stop()
            return JobOutcome.success()

        mock_runner.run.side_effect = run_and_stop
        with patch.object(worker, "_try_claim_job", return_value=_make_job()):
            worker.run()

        assert mock_runner.run.call_count == 1
        assert worker.outcomes == {"success": 1}

    def test_restores_sigterm_handler(self) -> None:
        worker, _repo, _runner = _make_worker()
        before = signal.getsignal(signal.SIGTERM)

        with patch.object(worker, "_try_claim_job", side_effect=KeyboardInterrupt):
            worker.run()

        assert signal.getsignal(signal.SIGTERM) == before


class TestTryClaimJob:
    def test_database_error_returns_none(self) -> None:
        worker, mock_repo, _runner = _make_worker()
        mock_repo.claim_next_job.side_effect = psycopg.OperationalError("connection lost")

        with patch("parte.worker.worker.get_connection"):
            assert worker._try_claim_job() is None

    def test_uninitialized_pool_returns_none(self) -> None:
        worker, _repo, _runner = _make_worker()

        with patch(
            "parte.worker.worker.get_connection",
            side_effect=RuntimeError("Connection pool not initialized"),
        ):
            assert worker._try_claim_job() is None
