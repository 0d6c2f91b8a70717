from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from parte.processor.exceptions import InvalidJobPayloadError


class JobKind(str, Enum):
    NAME_FUNERAL = "name_funeral"
    TEXT_FIELDS = "text_fields"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    RETRY = "retry"
    FAILED = "failed"


@dataclass(frozen=True)
class JobOutcome:
    """Tagged result of one job run; the runner decides what happens next."""

    status: OutcomeStatus
    message: str = ""

    @classmethod
    def success(cls) -> "JobOutcome":
        return cls(OutcomeStatus.SUCCESS)

    @classmethod
    def retry(cls, message: str) -> "JobOutcome":
        return cls(OutcomeStatus.RETRY, message)

    @classmethod
    def failed(cls, message: str) -> "JobOutcome":
        return cls(OutcomeStatus.FAILED, message)


@dataclass(frozen=True)
class TextFieldsRequest:
    """Which notice fields a ``text_fields`` job may overwrite."""

    FIELD_ALL: ClassVar[str] = "all"
    FIELDS: ClassVar[tuple[str, ...]] = (
        "full_name",
        "opening_quote",
        "death_date",
        "announcement_text",
    )

    fields: frozenset[str]
    detect_portrait: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TextFieldsRequest":
        """Parse a job payload.

        Raises:
            InvalidJobPayloadError: for an empty or unknown field selection.
        """
        requested = payload.get("fields") or [cls.FIELD_ALL]
        if not isinstance(requested, list) or not all(isinstance(f, str) for f in requested):
            raise InvalidJobPayloadError(f"'fields' must be a list of strings, got {requested!r}")
        unknown = set(requested) - {cls.FIELD_ALL, *cls.FIELDS}
        if unknown:
            raise InvalidJobPayloadError(
                f"Unknown fields {sorted(unknown)}. Choose from: {[cls.FIELD_ALL, *cls.FIELDS]}"
            )
        fields = set(cls.FIELDS) if cls.FIELD_ALL in requested else set(requested)
        return cls(
            fields=frozenset(fields),
            detect_portrait=bool(payload.get("detect_portrait", False)),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "fields": sorted(self.fields),
            "detect_portrait": self.detect_portrait,
        }

    @property
    def death_date_only(self) -> bool:
        return self.fields == {"death_date"}
