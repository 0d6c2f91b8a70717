from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from parte.database.models import DeathNoticeRecord, JobRecord
from parte.extraction.models import ExtractionResult, PhotoDetection


@dataclass(slots=True)
class FollowUpJob:
    kind: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class PipelineContext:
    job: JobRecord
    notice: DeathNoticeRecord | None = None
    image_path: Path | None = None
    extraction: ExtractionResult | None = None
    photo: PhotoDetection | None = None
    changes: dict[str, Any] = field(default_factory=dict)
    follow_ups: list[FollowUpJob] = field(default_factory=list)
    # Files this run created; removed when the run ends, whatever the outcome.
    temp_files: list[Path] = field(default_factory=list)

    def require_notice(self) -> DeathNoticeRecord:
        if self.notice is None:
            raise ValueError("PipelineContext.notice must be loaded first")
        return self.notice

    def require_image(self) -> Path:
        if self.image_path is None:
            raise ValueError("PipelineContext.image_path must be resolved first")
        return self.image_path


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
