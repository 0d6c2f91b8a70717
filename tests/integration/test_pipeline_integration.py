from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from parte.config.settings import Settings
from parte.database.connection import get_connection
from parte.database.models import DeathNoticeRecord, JobRecord
from parte.database.repositories.death_notice_repository import DeathNoticeRepository
from parte.database.repositories.job_repository import JobRepository
from parte.database.repositories.media_repository import MediaRepository
from parte.extraction.models import ExtractionResult, PhotoDetection
from parte.media.pdf_renderer import PdfRenderer
from parte.media.portrait import PortraitExtractor
from parte.media.storage import MediaStore
from parte.processor.models import JobKind, OutcomeStatus
from parte.processor.processor import FOLLOW_UP_FIELDS, Processor
from parte.processor.steps import (
    DetectPortraitStep,
    ExtractNameAndFuneralStep,
    LoadNoticeStep,
    PersistChangesStep,
    QueueFollowUpStep,
    ResolveSourceImageStep,
)
from parte.worker.job_runner import JobRunner


def _make_processor(tmp_path: Path, orchestrator: MagicMock) -> Processor:
    media_store = MediaStore(tmp_path / "media", tmp_path / "temp")
    notice_repo = DeathNoticeRepository()
    media_repo = MediaRepository()
    steps = [
        LoadNoticeStep(notice_repo),
        ResolveSourceImageStep(media_repo, PdfRenderer(dpi=72), media_store),
        ExtractNameAndFuneralStep(orchestrator),
        DetectPortraitStep(orchestrator, PortraitExtractor(media_store), media_store, media_repo),
        QueueFollowUpStep(JobKind.TEXT_FIELDS, FOLLOW_UP_FIELDS),
        PersistChangesStep(notice_repo, JobRepository(max_attempts=3)),
    ]
    return Processor({JobKind.NAME_FUNERAL.value: steps}, media_store)


@pytest.mark.integration
class TestNameFuneralPipeline:
    def test_updates_notice_and_queues_follow_up(
        self,
        tmp_path: Path,
        seed_notice: DeathNoticeRecord,
        seed_job: JobRecord,
        sample_pdf_bytes: bytes,
        test_settings: Settings,
    ) -> None:
        pdf = tmp_path / "media" / seed_notice.hash / "pdf.pdf"
        pdf.parent.mkdir(parents=True)
        pdf.write_bytes(sample_pdf_bytes)
        MediaRepository().attach(seed_notice.id, "pdf", pdf, "application/pdf")
        orchestrator = MagicMock()
        orchestrator.extract_from_image.return_value = ExtractionResult(
            full_name="Jan Dvořák", funeral_date="2026-01-05"
        )
        orchestrator.detect_photo.return_value = PhotoDetection()
        runner = JobRunner(
            _make_processor(tmp_path, orchestrator),
            JobRepository(max_attempts=3),
            test_settings,
        )

        outcome = runner.run(seed_job)

        assert outcome.status is OutcomeStatus.SUCCESS
        notice = DeathNoticeRepository().find_by_id(seed_notice.id)
        assert notice is not None
        assert notice.funeral_date == date(2026, 1, 5)
        assert notice.has_photo is False
        with get_connection() as conn:
            rows = conn.execute(
                "SELECT kind, status, payload FROM extraction_jobs "
                "WHERE death_notice_id = %s ORDER BY id",
                (seed_notice.id,),
            ).fetchall()
        assert rows[0][:2] == ("name_funeral", "done")
        assert rows[1] == ("text_fields", "pending", FOLLOW_UP_FIELDS.to_payload())
        assert list((tmp_path / "temp").iterdir()) == []

    def test_missing_media_schedules_retry(
        self,
        tmp_path: Path,
        seed_job: JobRecord,
        test_settings: Settings,
    ) -> None:
        runner = JobRunner(
            _make_processor(tmp_path, MagicMock()),
            JobRepository(max_attempts=3),
            test_settings,
        )

        outcome = runner.run(seed_job)

        assert outcome.status is OutcomeStatus.RETRY
        job = JobRepository(max_attempts=3).find_by_id(seed_job.id)
        assert job is not None
        assert job.status == "pending"
        assert job.attempts == 1
        assert job.error_message is not None
