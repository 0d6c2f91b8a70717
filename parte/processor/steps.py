from datetime import date

from parte.database.connection import transaction
from parte.database.repositories.death_notice_repository import DeathNoticeRepository
from parte.database.repositories.job_repository import JobRepository
from parte.database.repositories.media_repository import MediaRepository
from parte.extraction.models import ExtractionMode, ExtractionResult
from parte.extraction.orchestrator import ExtractionOrchestrator
from parte.logging.logger import Log
from parte.media.exceptions import ConversionError
from parte.media.pdf_renderer import PdfRenderer
from parte.media.portrait import PortraitExtractor
from parte.media.storage import MediaStore
from parte.processor.exceptions import (
    ExtractionExhaustedError,
    NoticeNotFoundError,
    SourceImageMissingError,
)
from parte.processor.models import JobKind, TextFieldsRequest
from parte.processor.pipeline import FollowUpJob, PipelineContext, PipelineStep

ORIGINAL_IMAGE = "original_image"
PDF = "pdf"
PORTRAIT = "portrait"


def _to_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


class LoadNoticeStep(PipelineStep):
    def __init__(self, notice_repo: DeathNoticeRepository) -> None:
        self._notice_repo = notice_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        notice = self._notice_repo.find_by_id(context.job.death_notice_id)
        if notice is None:
            raise NoticeNotFoundError(f"Death notice {context.job.death_notice_id} not found")
        context.notice = notice
        Log.info(
            f"Loaded notice {notice.hash} for job {context.job.id}",
            kind=context.job.kind,
            attempt=context.job.attempts + 1,
        )
        return context


class ResolveSourceImageStep(PipelineStep):
    """Original image first, else page 0 of the stored PDF rendered to a temp JPEG."""

    def __init__(
        self,
        media_repo: MediaRepository,
        renderer: PdfRenderer,
        media_store: MediaStore,
    ) -> None:
        self._media_repo = media_repo
        self._renderer = renderer
        self._media_store = media_store

    def run(self, context: PipelineContext) -> PipelineContext:
        notice = context.require_notice()
        original = self._media_repo.find_path(notice.id, ORIGINAL_IMAGE)
        if original is not None and original.is_file():
            context.image_path = original
            return context

        pdf_path = self._media_repo.find_path(notice.id, PDF)
        if pdf_path is None or not pdf_path.is_file():
            raise SourceImageMissingError(
                f"Notice {notice.hash} has neither an original image nor a PDF"
            )

        rendered = self._media_store.temp_path(f"{notice.hash}_", ".jpg")
        context.temp_files.append(rendered)
        try:
            self._renderer.render_page(pdf_path, rendered)
        except ConversionError as exc:
            raise SourceImageMissingError(f"Cannot render PDF for {notice.hash}: {exc}") from exc
        context.image_path = rendered
        Log.info(f"Rendered PDF page for notice {notice.hash}", image_path=str(rendered))
        return context


class ExtractNameAndFuneralStep(PipelineStep):
    def __init__(self, orchestrator: ExtractionOrchestrator) -> None:
        self._orchestrator = orchestrator

    def run(self, context: PipelineContext) -> PipelineContext:
        notice = context.require_notice()
        result = self._orchestrator.extract_from_image(
            context.require_image(), ExtractionMode.NAME_AND_FUNERAL
        )
        if result is None or not result.is_valid_for(ExtractionMode.NAME_AND_FUNERAL):
            raise ExtractionExhaustedError(
                f"Image extraction returned no valid name for notice {notice.hash}"
            )

        context.extraction = result
        context.changes["full_name"] = result.full_name
        if result.funeral_date:
            context.changes["funeral_date"] = _to_date(result.funeral_date)
        if result.announcement_text:
            context.changes["announcement_text"] = result.announcement_text
        Log.info(
            f"Extracted name and funeral date for notice {notice.hash}",
            full_name=result.full_name,
            funeral_date=result.funeral_date,
        )
        return context


class ExtractTextFieldsStep(PipelineStep):
    """Overwrites exactly the requested fields; a missing name keeps the stored one."""

    def __init__(self, orchestrator: ExtractionOrchestrator) -> None:
        self._orchestrator = orchestrator

    def run(self, context: PipelineContext) -> PipelineContext:
        notice = context.require_notice()
        request = TextFieldsRequest.from_payload(context.job.payload)
        image_path = context.require_image()

        result: ExtractionResult | None
        if request.death_date_only:
            result = self._orchestrator.extract_from_image(image_path, ExtractionMode.DEATH_DATE)
            if result is not None and not result.is_valid_for(ExtractionMode.DEATH_DATE):
                result = None
        else:
            result = self._orchestrator.extract_text(image_path, known_name=notice.full_name)
        if result is None:
            raise ExtractionExhaustedError(f"Vision OCR extraction failed for notice {notice.hash}")

        context.extraction = result
        if "full_name" in request.fields:
            context.changes["full_name"] = result.full_name or notice.full_name
        if "opening_quote" in request.fields:
            context.changes["opening_quote"] = result.opening_quote
        if "death_date" in request.fields:
            context.changes["death_date"] = _to_date(result.death_date)
        if "announcement_text" in request.fields:
            context.changes["announcement_text"] = result.announcement_text
        Log.info(
            f"Extracted text fields for notice {notice.hash}",
            fields=sorted(request.fields),
            death_date=result.death_date,
        )
        return context


class DetectPortraitStep(PipelineStep):
    """Portrait detection and cropping. Failures here never fail the job."""

    def __init__(
        self,
        orchestrator: ExtractionOrchestrator,
        portrait_extractor: PortraitExtractor,
        media_store: MediaStore,
        media_repo: MediaRepository,
        enabled: bool = True,
    ) -> None:
        self._orchestrator = orchestrator
        self._portrait_extractor = portrait_extractor
        self._media_store = media_store
        self._media_repo = media_repo
        self._enabled = enabled

    def run(self, context: PipelineContext) -> PipelineContext:
        if not self._enabled or not self._requested(context):
            return context
        notice = context.require_notice()
        try:
            self._detect(context)
        except Exception as exc:
            Log.warning(f"Portrait extraction failed for notice {notice.hash}: {exc}")
        return context

    @staticmethod
    def _requested(context: PipelineContext) -> bool:
        if context.job.kind == JobKind.NAME_FUNERAL.value:
            return True
        return TextFieldsRequest.from_payload(context.job.payload).detect_portrait

    def _detect(self, context: PipelineContext) -> None:
        notice = context.require_notice()
        photo = self._orchestrator.detect_photo(context.require_image())
        context.photo = photo
        context.changes["has_photo"] = photo.has_photo
        context.changes["photo_bbox"] = photo.photo_bbox.as_dict() if photo.photo_bbox else None
        if photo.photo_bbox is None:
            return

        portrait = self._portrait_extractor.extract(context.require_image(), photo.photo_bbox)
        if portrait is None:
            return
        context.temp_files.append(portrait)
        stored = self._media_store.store(notice.hash, PORTRAIT, portrait)
        self._media_repo.attach(notice.id, PORTRAIT, stored, "image/jpeg")
        Log.info(f"Saved portrait for notice {notice.hash}", description=photo.description)


class QueueFollowUpStep(PipelineStep):
    def __init__(self, kind: JobKind, request: TextFieldsRequest) -> None:
        self._kind = kind
        self._request = request

    def run(self, context: PipelineContext) -> PipelineContext:
        context.follow_ups.append(FollowUpJob(self._kind.value, self._request.to_payload()))
        return context


class PersistChangesStep(PipelineStep):
    """One transaction: the notice UPDATE plus any follow-up jobs."""

    def __init__(self, notice_repo: DeathNoticeRepository, job_repo: JobRepository) -> None:
        self._notice_repo = notice_repo
        self._job_repo = job_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        notice = context.require_notice()
        if not context.changes and not context.follow_ups:
            Log.warning(f"No fields to update for notice {notice.hash}")
            return context

        with transaction() as conn:
            self._notice_repo.apply_update(notice.id, context.changes, conn=conn)
            for follow_up in context.follow_ups:
                self._job_repo.enqueue(notice.id, follow_up.kind, follow_up.payload, conn=conn)
        Log.info(
            f"Updated notice {notice.hash}",
            fields=sorted(context.changes),
            follow_ups=[f.kind for f in context.follow_ups],
        )
        return context
