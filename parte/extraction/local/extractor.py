from pathlib import Path

from parte.extraction.exceptions import OcrError
from parte.extraction.local.ocr_engine import BaseOcrEngine
from parte.extraction.local.text_parser import ParteTextParser
from parte.extraction.models import LocalParseResult
from parte.logging.logger import Log


class LocalExtractor:
    """First-tier extractor: Tesseract OCR plus regex heuristics.

    Returns None whenever there is no text to work with, which tells the
    caller to go straight to the vision providers.
    """

    def __init__(self, ocr_engine: BaseOcrEngine, parser: ParteTextParser | None = None) -> None:
        self._ocr_engine = ocr_engine
        self._parser = parser or ParteTextParser()

    def extract(self, image_path: Path) -> LocalParseResult | None:
        try:
            text = self._ocr_engine.read_text(image_path)
        except OcrError as exc:
            Log.error(f"Local OCR failed: {exc}", image_path=str(image_path))
            return None

        if not text:
            Log.info("OCR returned no text, skipping regex extraction", image_path=str(image_path))
            return None

        result = self._parser.parse(text)
        Log.info(
            "Local extraction finished",
            image_path=str(image_path),
            has_name=result.full_name is not None,
            has_death_date=result.death_date is not None,
            has_funeral_date=result.funeral_date is not None,
        )
        return result
