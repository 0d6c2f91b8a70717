from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import psycopg

from parte.database.connection import transaction
from parte.database.exceptions import DuplicateNoticeError
from parte.database.models import DeathNoticeRecord
from parte.database.repositories.death_notice_repository import DeathNoticeRepository
from parte.database.repositories.job_repository import JobRepository
from parte.database.repositories.media_repository import MediaRepository
from parte.extraction.image_payload import mime_type_for
from parte.ingestion.candidates import NoticeCandidate
from parte.logging.logger import Log
from parte.media.exceptions import MediaError
from parte.media.pdf_generator import PdfGenerator
from parte.media.storage import MediaStore
from parte.media.templates import render_notice_html
from parte.processor.models import JobKind, TextFieldsRequest
from parte.processor.steps import ORIGINAL_IMAGE, PDF


class IngestOutcome(str, Enum):
    NEW = "new"
    DUPLICATE = "duplicate"
    RECOVERED = "recovered"


@dataclass
class IngestionSummary:
    total: int = 0
    new: int = 0
    duplicates: int = 0
    recovered: int = 0
    errors: int = 0


class IngestionService:
    """Stores new scraped notices, produces their PDF and queues extraction.

    A notice row is committed before any media is fetched, so a concurrent
    ingester with the same hash loses at the unique index and never touches
    the shared ``{hash}/`` media folder. A stored notice that never got its
    PDF (a failed download) has its media retried the next time the same
    candidate is scraped.
    """

    def __init__(
        self,
        notice_repo: DeathNoticeRepository,
        job_repo: JobRepository,
        media_repo: MediaRepository,
        media_store: MediaStore,
        pdf_generator: PdfGenerator,
        download_max_retries: int = 3,
    ) -> None:
        self._notice_repo = notice_repo
        self._job_repo = job_repo
        self._media_repo = media_repo
        self._media_store = media_store
        self._pdf_generator = pdf_generator
        self._download_max_retries = download_max_retries

    def ingest(self, candidates: Iterable[NoticeCandidate]) -> IngestionSummary:
        summary = IngestionSummary()
        for candidate in candidates:
            summary.total += 1
            try:
                outcome = self._ingest_one(candidate)
            except DuplicateNoticeError:
                Log.info(f"Notice {candidate.hash} inserted concurrently, skipping")
                summary.duplicates += 1
                continue
            except (MediaError, psycopg.Error, OSError, ValueError) as exc:
                Log.error(
                    f"Failed to ingest notice {candidate.hash}: {exc}",
                    source=candidate.source,
                    source_url=candidate.source_url,
                )
                summary.errors += 1
                continue
            if outcome is IngestOutcome.NEW:
                summary.new += 1
            elif outcome is IngestOutcome.RECOVERED:
                summary.recovered += 1
            else:
                summary.duplicates += 1

        Log.info(
            "Ingestion finished",
            total=summary.total,
            new=summary.new,
            duplicates=summary.duplicates,
            recovered=summary.recovered,
            errors=summary.errors,
        )
        return summary

    def _ingest_one(self, candidate: NoticeCandidate) -> IngestOutcome:
        existing = self._notice_repo.find_by_hash(candidate.hash)
        if existing is not None:
            if self._media_repo.find_path(existing.id, PDF) is not None:
                Log.debug(f"Notice {candidate.hash} already stored")
                return IngestOutcome.DUPLICATE
            Log.warning(
                f"Notice {existing.hash} has no PDF, retrying its media",
                source_url=candidate.source_url,
            )
            self._ingest_media(existing, candidate)
            return IngestOutcome.RECOVERED

        with transaction() as conn:
            notice = self._notice_repo.insert(
                conn,
                notice_hash=candidate.hash,
                full_name=candidate.full_name,
                source=candidate.source,
                source_url=candidate.source_url,
                funeral_date=candidate.funeral_date,
                death_date=candidate.death_date,
            )
        Log.info(f"Created notice {notice.hash}", full_name=notice.full_name, source=notice.source)
        self._ingest_media(notice, candidate)
        return IngestOutcome.NEW

    def _ingest_media(self, notice: DeathNoticeRecord, candidate: NoticeCandidate) -> None:
        if candidate.pdf_url:
            self._ingest_pdf(notice, candidate.pdf_url)
        elif candidate.image_url:
            self._ingest_image(notice, candidate.image_url)
        else:
            self._ingest_html(notice, candidate)

    def _ingest_pdf(self, notice: DeathNoticeRecord, pdf_url: str) -> None:
        target = self._media_store.path_for(notice.hash, PDF, ".pdf")
        self._pdf_generator.download(pdf_url, target, self._download_max_retries)
        request = TextFieldsRequest(
            fields=frozenset(TextFieldsRequest.FIELDS), detect_portrait=True
        )
        with transaction() as conn:
            self._media_repo.attach(notice.id, PDF, target, "application/pdf", conn=conn)
            self._job_repo.enqueue(
                notice.id, JobKind.TEXT_FIELDS.value, request.to_payload(), conn=conn
            )

    def _ingest_image(self, notice: DeathNoticeRecord, image_url: str) -> None:
        pdf_target = self._media_store.path_for(notice.hash, PDF, ".pdf")
        original = self._media_store.path_for(
            notice.hash, ORIGINAL_IMAGE, PdfGenerator.suffix_of(image_url)
        )
        converted = self._pdf_generator.download_and_convert_to_pdf(
            image_url, pdf_target, self._download_max_retries, keep_source=original
        )
        if not converted:
            raise MediaError(f"Could not download and convert {image_url}")
        with transaction() as conn:
            self._media_repo.attach(notice.id, PDF, pdf_target, "application/pdf", conn=conn)
            self._media_repo.attach(
                notice.id, ORIGINAL_IMAGE, original, mime_type_for(original), conn=conn
            )
            self._job_repo.enqueue(notice.id, JobKind.NAME_FUNERAL.value, conn=conn)

    def _ingest_html(self, notice: DeathNoticeRecord, candidate: NoticeCandidate) -> None:
        html = render_notice_html(
            full_name=notice.full_name,
            funeral_date=candidate.funeral_date,
            source=notice.source,
            notice_hash=notice.hash,
            downloaded_at=datetime.now(),
        )
        target = self._media_store.path_for(notice.hash, PDF, ".pdf")
        if not self._pdf_generator.convert_html_to_pdf(html, target):
            raise MediaError(f"Could not render placeholder PDF for {notice.hash}")
        self._media_repo.attach(notice.id, PDF, target, "application/pdf")
