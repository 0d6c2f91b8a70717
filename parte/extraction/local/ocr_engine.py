from abc import ABC, abstractmethod
from pathlib import Path

import pytesseract
from PIL import Image

from parte.extraction.exceptions import OcrError


class BaseOcrEngine(ABC):
    """Contract for optical character recognition backends."""

    @abstractmethod
    def read_text(self, image_path: Path) -> str:
        """Recognize text in an image.

        Args:
            image_path: Path to a raster image (JPEG, PNG, ...).

        Returns:
            Recognized text, stripped. May be empty.

        Raises:
            OcrError: if the engine cannot process the image.
        """


class TesseractOcrEngine(BaseOcrEngine):
    """Tesseract via pytesseract, tuned for Czech/Polish partes."""

    def __init__(
        self,
        languages: str = "ces+pol+eng",
        page_segmentation_mode: int = 3,
        timeout_seconds: int = 60,
    ) -> None:
        self._languages = languages
        self._config = f"--psm {page_segmentation_mode}"
        self._timeout_seconds = timeout_seconds

    def read_text(self, image_path: Path) -> str:
        try:
            with Image.open(image_path) as image:
                text = pytesseract.image_to_string(
                    image,
                    lang=self._languages,
                    config=self._config,
                    timeout=self._timeout_seconds,
                )
        except (pytesseract.TesseractError, RuntimeError, OSError) as exc:
            raise OcrError(f"Tesseract OCR failed for {image_path}: {exc}") from exc
        return text.strip()
