from dataclasses import dataclass, replace
from enum import Enum


class ExtractionMode(str, Enum):
    """Which fields a single-image extraction pass is responsible for."""

    NAME_AND_FUNERAL = "name_and_funeral"
    DEATH_DATE = "death_date"


class ProviderName(str, Enum):
    """Closed set of supported vision-model providers."""

    GEMINI = "gemini"
    ZHIPUAI = "zhipuai"
    ANTHROPIC = "anthropic"
    ABACUSAI = "abacusai"


@dataclass(frozen=True)
class ProviderSpec:
    """A provider identifier with an optional model variant."""

    provider: str
    model: str | None = None

    @classmethod
    def parse(cls, value: str | None) -> "ProviderSpec | None":
        """Parse ``"provider/model"`` or bare ``"provider"``.

        Only the first slash separates provider from model, so
        ``"abacusai/models/x"`` keeps ``"models/x"`` as the model.
        Returns None for a blank value.
        """
        if value is None or not value.strip():
            return None
        provider, _, model = value.partition("/")
        model = model.strip()
        return cls(provider=provider.strip(), model=model or None)

    @property
    def label(self) -> str:
        return f"{self.provider}/{self.model}" if self.model else self.provider


@dataclass(frozen=True)
class BoundingBox:
    """Portrait region as percentages of the image dimensions."""

    x_percent: float
    y_percent: float
    width_percent: float
    height_percent: float

    def as_dict(self) -> dict[str, float]:
        return {
            "x_percent": self.x_percent,
            "y_percent": self.y_percent,
            "width_percent": self.width_percent,
            "height_percent": self.height_percent,
        }


@dataclass(frozen=True)
class ExtractionResult:
    """Structured fields recovered from one parte image."""

    full_name: str | None = None
    opening_quote: str | None = None
    death_date: str | None = None
    funeral_date: str | None = None
    announcement_text: str | None = None
    has_photo: bool = False
    photo_bbox: BoundingBox | None = None

    def is_valid_for_text(self) -> bool:
        return bool(self.full_name and self.full_name.strip())

    def is_valid_for(self, mode: ExtractionMode) -> bool:
        if mode is ExtractionMode.DEATH_DATE:
            return self.death_date is not None
        return self.is_valid_for_text()

    def merged_with(self, other: "ExtractionResult", mode: ExtractionMode) -> "ExtractionResult":
        """Overlay ``other`` onto this result for the fields owned by ``mode``.

        Values from ``other`` win when present; fields outside the mode are
        never touched.
        """
        if mode is ExtractionMode.DEATH_DATE:
            return replace(self, death_date=other.death_date or self.death_date)
        return replace(
            self,
            full_name=other.full_name or self.full_name,
            funeral_date=other.funeral_date or self.funeral_date,
        )


@dataclass(frozen=True)
class PhotoDetection:
    """Outcome of the portrait-only detection task."""

    has_photo: bool = False
    photo_bbox: BoundingBox | None = None
    description: str | None = None


@dataclass(frozen=True)
class LocalParseResult:
    """Fields the regex heuristics recovered from OCR text."""

    full_name: str | None = None
    death_date: str | None = None
    funeral_date: str | None = None
    raw_text: str = ""
