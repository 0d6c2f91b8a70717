from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from parte.database.models import DeathNoticeRecord, JobRecord
from parte.extraction.models import BoundingBox, ExtractionMode, ExtractionResult, PhotoDetection
from parte.media.exceptions import ConversionError
from parte.processor.exceptions import (
    ExtractionExhaustedError,
    InvalidJobPayloadError,
    NoticeNotFoundError,
    SourceImageMissingError,
)
from parte.processor.models import JobKind, OutcomeStatus, TextFieldsRequest
from parte.processor.pipeline import FollowUpJob, PipelineContext, PipelineStep
from parte.processor.processor import FOLLOW_UP_FIELDS, Processor
from parte.processor.steps import (
    DetectPortraitStep,
    ExtractNameAndFuneralStep,
    ExtractTextFieldsStep,
    LoadNoticeStep,
    PersistChangesStep,
    QueueFollowUpStep,
    ResolveSourceImageStep,
)


def _make_notice(**overrides: Any) -> DeathNoticeRecord:
    values: dict[str, Any] = {
        "id": 7,
        "hash": "abc123def456",
        "full_name": "Jan Dvořák",
        "source": "parte.cz",
        "source_url": "https://parte.cz/1",
    }
    values.update(overrides)
    return DeathNoticeRecord(**values)


def _make_job(kind: str = "name_funeral", payload: dict[str, Any] | None = None) -> JobRecord:
    return JobRecord(
        id=1,
        death_notice_id=7,
        kind=kind,
        status="processing",
        attempts=0,
        payload=payload or {},
    )


def _make_context(
    kind: str = "name_funeral",
    payload: dict[str, Any] | None = None,
    image_path: Path | None = Path("/tmp/parte.jpg"),
) -> PipelineContext:
    return PipelineContext(job=_make_job(kind, payload), notice=_make_notice(), image_path=image_path)


class TestTextFieldsRequest:
    def test_all_expands_to_every_field(self) -> None:
        request = TextFieldsRequest.from_payload({"fields": ["all"], "detect_portrait": True})
        assert request.fields == frozenset(TextFieldsRequest.FIELDS)
        assert request.detect_portrait is True

    def test_missing_fields_means_all(self) -> None:
        assert TextFieldsRequest.from_payload({}).fields == frozenset(TextFieldsRequest.FIELDS)

    def test_death_date_only(self) -> None:
        assert TextFieldsRequest.from_payload({"fields": ["death_date"]}).death_date_only

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(InvalidJobPayloadError, match="Unknown fields"):
            TextFieldsRequest.from_payload({"fields": ["funeral_date"]})

    def test_non_list_rejected(self) -> None:
        with pytest.raises(InvalidJobPayloadError):
            TextFieldsRequest.from_payload({"fields": "death_date"})

    def test_payload_round_trip_is_sorted(self) -> None:
        assert FOLLOW_UP_FIELDS.to_payload() == {
            "fields": ["announcement_text", "death_date", "opening_quote"],
            "detect_portrait": False,
        }


class TestLoadNoticeStep:
    def test_loads_notice(self) -> None:
        repo = MagicMock()
        repo.find_by_id.return_value = _make_notice()
        context = PipelineContext(job=_make_job())

        LoadNoticeStep(repo).run(context)

        assert context.notice == _make_notice()
        repo.find_by_id.assert_called_once_with(7)

    def test_missing_notice_is_permanent(self) -> None:
        repo = MagicMock()
        repo.find_by_id.return_value = None

        with pytest.raises(NoticeNotFoundError):
            LoadNoticeStep(repo).run(PipelineContext(job=_make_job()))


class TestResolveSourceImageStep:
    def test_prefers_original_image(self, parte_image: Path) -> None:
        media_repo = MagicMock()
        media_repo.find_path.return_value = parte_image
        renderer = MagicMock()
        context = _make_context(image_path=None)

        ResolveSourceImageStep(media_repo, renderer, MagicMock()).run(context)

        assert context.image_path == parte_image
        assert context.temp_files == []
        renderer.render_page.assert_not_called()

    def test_renders_pdf_into_run_owned_temp_file(self, tmp_path: Path) -> None:
        pdf = tmp_path / "pdf.pdf"
        pdf.write_bytes(b"%PDF")
        media_repo = MagicMock()
        media_repo.find_path.side_effect = [None, pdf]
        media_store = MagicMock()
        media_store.temp_path.return_value = tmp_path / "rendered.jpg"
        renderer = MagicMock()
        context = _make_context(image_path=None)

        ResolveSourceImageStep(media_repo, renderer, media_store).run(context)

        assert context.image_path == tmp_path / "rendered.jpg"
        assert context.temp_files == [tmp_path / "rendered.jpg"]
        renderer.render_page.assert_called_once_with(pdf, tmp_path / "rendered.jpg")

    def test_no_media_raises(self) -> None:
        media_repo = MagicMock()
        media_repo.find_path.return_value = None

        with pytest.raises(SourceImageMissingError):
            ResolveSourceImageStep(media_repo, MagicMock(), MagicMock()).run(
                _make_context(image_path=None)
            )

    def test_render_failure_keeps_temp_for_cleanup(self, tmp_path: Path) -> None:
        pdf = tmp_path / "pdf.pdf"
        pdf.write_bytes(b"%PDF")
        media_repo = MagicMock()
        media_repo.find_path.side_effect = [None, pdf]
        media_store = MagicMock()
        media_store.temp_path.return_value = tmp_path / "rendered.jpg"
        renderer = MagicMock()
        renderer.render_page.side_effect = ConversionError("broken")
        context = _make_context(image_path=None)

        with pytest.raises(SourceImageMissingError):
            ResolveSourceImageStep(media_repo, renderer, media_store).run(context)
        assert context.temp_files == [tmp_path / "rendered.jpg"]


class TestExtractNameAndFuneralStep:
    def test_records_name_and_funeral_date(self) -> None:
        orchestrator = MagicMock()
        orchestrator.extract_from_image.return_value = ExtractionResult(
            full_name="Jan Novák", funeral_date="2026-01-05"
        )
        context = _make_context()

        ExtractNameAndFuneralStep(orchestrator).run(context)

        assert context.changes == {"full_name": "Jan Novák", "funeral_date": date(2026, 1, 5)}
        orchestrator.extract_from_image.assert_called_once_with(
            Path("/tmp/parte.jpg"), ExtractionMode.NAME_AND_FUNERAL
        )

    def test_no_name_is_retryable(self) -> None:
        orchestrator = MagicMock()
        orchestrator.extract_from_image.return_value = ExtractionResult(funeral_date="2026-01-05")

        with pytest.raises(ExtractionExhaustedError) as excinfo:
            ExtractNameAndFuneralStep(orchestrator).run(_make_context())
        assert excinfo.value.retryable is True


class TestExtractTextFieldsStep:
    def test_overwrites_only_requested_fields(self) -> None:
        orchestrator = MagicMock()
        orchestrator.extract_text.return_value = ExtractionResult(
            full_name="Jan Dvořák",
            opening_quote="Kdo v srdci žije, neumírá.",
            death_date="2025-12-29",
            announcement_text="S hlubokým zármutkem oznamujeme, že nás opustil Jan Dvořák.",
        )
        context = _make_context(
            kind="text_fields", payload={"fields": ["opening_quote", "death_date"]}
        )

        ExtractTextFieldsStep(orchestrator).run(context)

        assert context.changes == {
            "opening_quote": "Kdo v srdci žije, neumírá.",
            "death_date": date(2025, 12, 29),
        }
        orchestrator.extract_text.assert_called_once_with(
            Path("/tmp/parte.jpg"), known_name="Jan Dvořák"
        )

    def test_requested_field_missing_from_result_is_cleared(self) -> None:
        orchestrator = MagicMock()
        orchestrator.extract_text.return_value = ExtractionResult(full_name="Jan Dvořák")
        context = _make_context(kind="text_fields", payload={"fields": ["all"]})

        ExtractTextFieldsStep(orchestrator).run(context)

        assert context.changes["full_name"] == "Jan Dvořák"
        assert context.changes["opening_quote"] is None
        assert context.changes["death_date"] is None
        assert context.changes["announcement_text"] is None

    def test_death_date_only_uses_local_first_mode(self) -> None:
        orchestrator = MagicMock()
        orchestrator.extract_from_image.return_value = ExtractionResult(
            full_name="Jan Dvořák", death_date="2025-12-29"
        )
        context = _make_context(kind="text_fields", payload={"fields": ["death_date"]})

        ExtractTextFieldsStep(orchestrator).run(context)

        assert context.changes == {"death_date": date(2025, 12, 29)}
        orchestrator.extract_from_image.assert_called_once_with(
            Path("/tmp/parte.jpg"), ExtractionMode.DEATH_DATE
        )
        orchestrator.extract_text.assert_not_called()

    def test_death_date_not_found_is_exhausted(self) -> None:
        orchestrator = MagicMock()
        orchestrator.extract_from_image.return_value = ExtractionResult(full_name="Jan Dvořák")
        context = _make_context(kind="text_fields", payload={"fields": ["death_date"]})

        with pytest.raises(ExtractionExhaustedError):
            ExtractTextFieldsStep(orchestrator).run(context)
        assert context.changes == {}

    def test_all_providers_failed_is_exhausted(self) -> None:
        orchestrator = MagicMock()
        orchestrator.extract_text.return_value = None

        with pytest.raises(ExtractionExhaustedError, match="Vision OCR extraction failed"):
            ExtractTextFieldsStep(orchestrator).run(
                _make_context(kind="text_fields", payload={"fields": ["all"]})
            )


class TestDetectPortraitStep:
    def _make_step(
        self, detection: PhotoDetection, portrait: Path | None = None, enabled: bool = True
    ) -> tuple[DetectPortraitStep, MagicMock, MagicMock, MagicMock]:
        orchestrator = MagicMock()
        orchestrator.detect_photo.return_value = detection
        extractor = MagicMock()
        extractor.extract.return_value = portrait
        media_store = MagicMock()
        media_store.store.return_value = Path("/media/abc123def456/portrait.jpg")
        media_repo = MagicMock()
        step = DetectPortraitStep(orchestrator, extractor, media_store, media_repo, enabled=enabled)
        return step, orchestrator, media_store, media_repo

    def test_stores_portrait_and_bbox(self) -> None:
        bbox = BoundingBox(10, 20, 30, 40)
        step, _orchestrator, media_store, media_repo = self._make_step(
            PhotoDetection(has_photo=True, photo_bbox=bbox), portrait=Path("/tmp/portrait_1.jpg")
        )
        context = _make_context()

        step.run(context)

        assert context.changes["has_photo"] is True
        assert context.changes["photo_bbox"] == bbox.as_dict()
        assert Path("/tmp/portrait_1.jpg") in context.temp_files
        media_store.store.assert_called_once_with(
            "abc123def456", "portrait", Path("/tmp/portrait_1.jpg")
        )
        media_repo.attach.assert_called_once_with(
            7, "portrait", Path("/media/abc123def456/portrait.jpg"), "image/jpeg"
        )

    def test_no_photo_recorded(self) -> None:
        step, _orchestrator, media_store, _repo = self._make_step(PhotoDetection())
        context = _make_context()

        step.run(context)

        assert context.changes == {"has_photo": False, "photo_bbox": None}
        media_store.store.assert_not_called()

    def test_not_requested_for_text_job_without_flag(self) -> None:
        step, orchestrator, _store, _repo = self._make_step(PhotoDetection(has_photo=True))

        step.run(_make_context(kind="text_fields", payload={"fields": ["death_date"]}))

        orchestrator.detect_photo.assert_not_called()

    def test_disabled_step_does_nothing(self) -> None:
        step, orchestrator, _store, _repo = self._make_step(PhotoDetection(), enabled=False)

        step.run(_make_context())

        orchestrator.detect_photo.assert_not_called()

    def test_failure_does_not_fail_job(self) -> None:
        step, orchestrator, _store, _repo = self._make_step(PhotoDetection())
        orchestrator.detect_photo.side_effect = OSError("disk full")
        context = _make_context()

        step.run(context)

        assert context.changes == {}


class TestQueueAndPersist:
    def test_queue_follow_up(self) -> None:
        context = _make_context()

        QueueFollowUpStep(JobKind.TEXT_FIELDS, FOLLOW_UP_FIELDS).run(context)

        assert context.follow_ups == [
            FollowUpJob("text_fields", FOLLOW_UP_FIELDS.to_payload())
        ]

    def test_persists_changes_and_follow_ups_in_one_transaction(self) -> None:
        notice_repo = MagicMock()
        job_repo = MagicMock()
        context = _make_context()
        context.changes = {"full_name": "Jan Novák"}
        context.follow_ups = [FollowUpJob("text_fields", {"fields": ["death_date"]})]

        with patch("parte.processor.steps.transaction") as mock_transaction:
            conn = mock_transaction.return_value.__enter__.return_value
            PersistChangesStep(notice_repo, job_repo).run(context)

        notice_repo.apply_update.assert_called_once_with(7, {"full_name": "Jan Novák"}, conn=conn)
        job_repo.enqueue.assert_called_once_with(
            7, "text_fields", {"fields": ["death_date"]}, conn=conn
        )

    def test_nothing_to_persist(self) -> None:
        notice_repo = MagicMock()

        with patch("parte.processor.steps.transaction") as mock_transaction:
            PersistChangesStep(notice_repo, MagicMock()).run(_make_context())

        mock_transaction.assert_not_called()
        notice_repo.apply_update.assert_not_called()


class _RecordingStep(PipelineStep):
    def __init__(self, error: Exception | None = None, temp_file: Path | None = None) -> None:
        self.calls = 0
        self._error = error
        self._temp_file = temp_file

    def run(self, context: PipelineContext) -> PipelineContext:
        self.calls += 1
        if self._temp_file is not None:
            context.temp_files.append(self._temp_file)
        if self._error is not None:
            raise self._error
        return context


class TestProcessor:
    def test_runs_steps_for_job_kind(self) -> None:
        first, second = _RecordingStep(), _RecordingStep()
        processor = Processor({"name_funeral": [first, second]}, MagicMock())

        outcome = processor.process(_make_job())

        assert outcome.status is OutcomeStatus.SUCCESS
        assert (first.calls, second.calls) == (1, 1)

    def test_unknown_kind_fails_permanently(self) -> None:
        processor = Processor({"name_funeral": []}, MagicMock())

        outcome = processor.process(_make_job(kind="reindex"))

        assert outcome.status is OutcomeStatus.FAILED
        assert "Unknown job kind 'reindex'" in outcome.message

    def test_retryable_error_means_retry(self) -> None:
        processor = Processor(
            {"name_funeral": [_RecordingStep(ExtractionExhaustedError("all providers failed"))]},
            MagicMock(),
        )

        outcome = processor.process(_make_job())

        assert outcome.status is OutcomeStatus.RETRY
        assert outcome.message == "all providers failed"

    def test_permanent_error_means_failed(self) -> None:
        after = _RecordingStep()
        processor = Processor(
            {"name_funeral": [_RecordingStep(NoticeNotFoundError("gone")), after]}, MagicMock()
        )

        outcome = processor.process(_make_job())

        assert outcome.status is OutcomeStatus.FAILED
        assert after.calls == 0

    def test_unexpected_error_means_retry(self) -> None:
        processor = Processor({"name_funeral": [_RecordingStep(KeyError("x"))]}, MagicMock())

        assert processor.process(_make_job()).status is OutcomeStatus.RETRY

    def test_temp_files_discarded_on_every_path(self) -> None:
        media_store = MagicMock()
        temp = Path("/tmp/abc_rendered.jpg")
        processor = Processor(
            {"name_funeral": [_RecordingStep(ExtractionExhaustedError("x"), temp_file=temp)]},
            media_store,
        )

        processor.process(_make_job())

        media_store.discard.assert_called_once_with(temp)
