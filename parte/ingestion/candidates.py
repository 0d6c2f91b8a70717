"""What a scraper hands to the pipeline."""

import hashlib
from dataclasses import dataclass, field
from datetime import date

from parte.extraction.local.dates import find_dates

HASH_LENGTH = 12


def generate_hash(full_name: str, funeral_date: date | None, source_url: str) -> str:
    """Content-derived identity: ``sha256("name|date|url")`` cut to 12 hex chars."""
    date_part = funeral_date.isoformat() if funeral_date else ""
    digest = hashlib.sha256(f"{full_name}|{date_part}|{source_url}".encode()).hexdigest()
    return digest[:HASH_LENGTH]


def parse_dates_from_parte_text(text: str) -> tuple[date | None, date | None]:
    """Pre-fill ``(death_date, funeral_date)`` from text a scraper already has."""
    death, funeral = find_dates(text)
    return (
        date.fromisoformat(death) if death else None,
        date.fromisoformat(funeral) if funeral else None,
    )


@dataclass(frozen=True)
class NoticeCandidate:
    """A scraped notice. The hash is computed once, from the fields given here."""

    full_name: str
    funeral_date: date | None
    source: str
    source_url: str
    image_url: str | None = None
    pdf_url: str | None = None
    death_date: date | None = None
    hash: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "hash", generate_hash(self.full_name, self.funeral_date, self.source_url)
        )
