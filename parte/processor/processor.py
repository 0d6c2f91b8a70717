from collections.abc import Mapping, Sequence

from parte.config.settings import Settings
from parte.database.models import JobRecord
from parte.database.repositories.death_notice_repository import DeathNoticeRepository
from parte.database.repositories.job_repository import JobRepository
from parte.database.repositories.media_repository import MediaRepository
from parte.extraction.orchestrator import build_orchestrator
from parte.logging.logger import Log
from parte.media.pdf_renderer import PdfRenderer
from parte.media.portrait import PortraitExtractor
from parte.media.storage import MediaStore
from parte.processor.exceptions import ProcessorError
from parte.processor.models import JobKind, JobOutcome, TextFieldsRequest
from parte.processor.pipeline import PipelineContext, PipelineStep
from parte.processor.steps import (
    DetectPortraitStep,
    ExtractNameAndFuneralStep,
    ExtractTextFieldsStep,
    LoadNoticeStep,
    PersistChangesStep,
    QueueFollowUpStep,
    ResolveSourceImageStep,
)

FOLLOW_UP_FIELDS = TextFieldsRequest(
    fields=frozenset({"death_date", "announcement_text", "opening_quote"})
)


class Processor:
    """Runs the step list registered for a job's kind and reports a JobOutcome.

    Never raises: step errors become RETRY or FAILED outcomes, and temp files
    created by the run are deleted before returning.
    """

    def __init__(
        self,
        pipelines: Mapping[str, Sequence[PipelineStep]],
        media_store: MediaStore,
    ) -> None:
        self._pipelines = pipelines
        self._media_store = media_store

    def process(self, job: JobRecord) -> JobOutcome:
        steps = self._pipelines.get(job.kind)
        if steps is None:
            supported = sorted(self._pipelines)
            return JobOutcome.failed(f"Unknown job kind '{job.kind}'. Choose from: {supported}")

        Log.info(f"Processing job {job.id} ({job.kind}) for notice {job.death_notice_id}")
        context = PipelineContext(job=job)
        try:
            for step in steps:
                context = step.run(context)
        except ProcessorError as exc:
            Log.error(f"Job {job.id} step failed: {exc}", retryable=exc.retryable)
            if exc.retryable:
                return JobOutcome.retry(str(exc))
            return JobOutcome.failed(str(exc))
        except Exception as exc:
            Log.error(f"Job {job.id} crashed: {exc!r}")
            return JobOutcome.retry(str(exc) or type(exc).__name__)
        finally:
            for path in context.temp_files:
                self._media_store.discard(path)
        return JobOutcome.success()


def build_processor(settings: Settings) -> Processor:
    """Build a Processor with the step lists for every job kind."""
    orchestrator = build_orchestrator(settings)
    media_store = MediaStore(settings.media_root, settings.temp_root)
    notice_repo = DeathNoticeRepository()
    media_repo = MediaRepository()
    job_repo = JobRepository(settings.max_job_attempts)

    load = LoadNoticeStep(notice_repo)
    resolve = ResolveSourceImageStep(media_repo, PdfRenderer(), media_store)
    portrait = DetectPortraitStep(
        orchestrator,
        PortraitExtractor(media_store),
        media_store,
        media_repo,
        enabled=settings.extract_portraits,
    )
    persist = PersistChangesStep(notice_repo, job_repo)

    pipelines: dict[str, list[PipelineStep]] = {
        JobKind.NAME_FUNERAL.value: [
            load,
            resolve,
            ExtractNameAndFuneralStep(orchestrator),
            portrait,
            QueueFollowUpStep(JobKind.TEXT_FIELDS, FOLLOW_UP_FIELDS),
            persist,
        ],
        JobKind.TEXT_FIELDS.value: [
            load,
            resolve,
            ExtractTextFieldsStep(orchestrator),
            portrait,
            persist,
        ],
    }
    return Processor(pipelines=pipelines, media_store=media_store)
