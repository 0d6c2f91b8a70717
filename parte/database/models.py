from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


@dataclass
class DeathNoticeRecord:
    """Represents a row from the death_notices table."""

    id: int
    hash: str
    full_name: str
    source: str
    source_url: str
    opening_quote: str | None = None
    death_date: date | None = None
    funeral_date: date | None = None
    announcement_text: str | None = None
    has_photo: bool = False
    photo_bbox: dict[str, float] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class JobRecord:
    """Represents a row from the extraction_jobs table."""

    id: int
    death_notice_id: int
    kind: str
    status: str
    attempts: int
    payload: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    available_at: datetime | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
