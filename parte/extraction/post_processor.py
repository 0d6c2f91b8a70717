"""Turns a raw provider JSON object into a cleaned ExtractionResult."""

import re
from collections.abc import Mapping
from datetime import date
from typing import Any

from parte.extraction.bbox import bbox_from_mapping, is_valid_bbox
from parte.extraction.models import BoundingBox, ExtractionResult
from parte.extraction.names import NameGuard, clean_full_name
from parte.extraction.quotes import split_opening_quote
from parte.extraction.signatures import strip_business_footer
from parte.logging.logger import Log

MAX_QUOTE_LENGTH = 500
MIN_ANNOUNCEMENT_LENGTH = 50
QUOTE_SPLIT_MIN_ANNOUNCEMENT = 100

_WHITESPACE_RE = re.compile(r"\s+")


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


def encoded_length(value: str) -> int:
    """Length thresholds count UTF-8 bytes, so diacritics weigh more than ASCII."""
    return len(value.encode("utf-8"))


class PostProcessor:
    """Applies the cleanup chain to provider output.

    Order matters: the name is fixed first, then the announcement is
    normalized and length-checked as a whole, split from its quote and
    finally stripped of the funeral-home footer. Length thresholds count
    UTF-8 bytes.
    """

    def __init__(self, name_guard: NameGuard | None = None) -> None:
        self._name_guard = name_guard or NameGuard()

    def process(
        self,
        raw: Mapping[str, Any],
        known_name: str | None = None,
        image_size: tuple[int, int] | None = None,
    ) -> ExtractionResult:
        full_name = self._clean_name(raw.get("full_name"), known_name)
        opening_quote = self._clean_quote(raw.get("opening_quote"))
        announcement = self._as_text(raw.get("announcement_text"))
        announcement = collapse_whitespace(announcement) if announcement else None
        announcement = self._reject_short_announcement(announcement)

        if (
            opening_quote is None
            and announcement
            and encoded_length(announcement) > QUOTE_SPLIT_MIN_ANNOUNCEMENT
        ):
            split = split_opening_quote(announcement)
            if split is not None:
                opening_quote, announcement = split
                Log.info("Opening quote recovered from announcement", length=len(opening_quote))

        if announcement and opening_quote and opening_quote in announcement:
            announcement = announcement.replace(opening_quote, "", 1).strip()

        if announcement:
            announcement = strip_business_footer(announcement) or None

        has_photo = bool(raw.get("has_photo", False))
        return ExtractionResult(
            full_name=full_name,
            opening_quote=opening_quote,
            death_date=self._clean_date(raw.get("death_date"), "death_date"),
            funeral_date=self._clean_date(raw.get("funeral_date"), "funeral_date"),
            announcement_text=announcement or None,
            has_photo=has_photo,
            photo_bbox=self._clean_bbox(raw.get("photo_bbox"), image_size),
        )

    def _clean_name(self, value: Any, known_name: str | None) -> str | None:
        name = self._as_text(value)
        name = clean_full_name(name) if name else None
        return self._name_guard.enforce(name or None, known_name)

    def _clean_quote(self, value: Any) -> str | None:
        if value is None or not isinstance(value, str):
            return None
        if encoded_length(value) > MAX_QUOTE_LENGTH:
            Log.warning(
                "Opening quote suspiciously long, might be full announcement",
                length=encoded_length(value),
            )
        return collapse_whitespace(value)

    @staticmethod
    def _reject_short_announcement(announcement: str | None) -> str | None:
        if not announcement:
            return None
        if encoded_length(announcement) < MIN_ANNOUNCEMENT_LENGTH:
            Log.warning(
                "Announcement text suspiciously short, discarding",
                length=encoded_length(announcement),
                text=announcement,
            )
            return None
        return announcement

    @staticmethod
    def _clean_date(value: Any, field_name: str) -> str | None:
        if not value or not isinstance(value, str):
            return None
        try:
            return date.fromisoformat(value.strip()).isoformat()
        except ValueError:
            Log.warning(f"Ignoring unparseable {field_name}", value=value)
            return None

    @staticmethod
    def _clean_bbox(value: Any, image_size: tuple[int, int] | None) -> BoundingBox | None:
        if value is None:
            return None
        bbox = bbox_from_mapping(value, image_size)
        if bbox is None or not is_valid_bbox(bbox):
            Log.warning("Discarding invalid photo bounding box", bbox=value)
            return None
        return bbox

    @staticmethod
    def _as_text(value: Any) -> str | None:
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)
