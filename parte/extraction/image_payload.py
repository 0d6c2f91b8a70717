import base64
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from parte.extraction.exceptions import ExtractionError

MIME_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "heic": "image/heic",
    "pdf": "application/pdf",
}
DEFAULT_MIME_TYPE = "image/jpeg"


def mime_type_for(path: Path) -> str:
    """Infer the MIME type from the file extension, defaulting to JPEG."""
    return MIME_TYPES.get(path.suffix.lower().lstrip("."), DEFAULT_MIME_TYPE)


@dataclass(frozen=True)
class ImagePayload:
    """An image ready to be embedded in a vision request."""

    path: Path
    mime_type: str
    data_base64: str

    @classmethod
    def from_path(cls, path: Path) -> "ImagePayload":
        """Read and base64-encode an image.

        Raises:
            ExtractionError: if the file is missing or unreadable.
        """
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ExtractionError(f"Cannot read image {path}: {exc}") from exc
        return cls(
            path=path,
            mime_type=mime_type_for(path),
            data_base64=base64.b64encode(raw).decode("ascii"),
        )

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data_base64}"


def image_dimensions(path: Path) -> tuple[int, int] | None:
    """Return ``(width, height)`` in pixels, or None if Pillow cannot open the file."""
    try:
        with Image.open(path) as image:
            return image.size
    except (OSError, ValueError):
        return None
