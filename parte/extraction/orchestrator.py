"""Extraction state machine.

Text task:  primary provider -> fallback provider; an attempt counts only if
the reply is valid for the requested mode (a non-empty ``full_name``, or a
``death_date`` in death-date mode).
Photo task: primary provider -> fallback provider; an attempt counts only if
``has_photo`` is true, so a "no photo" answer always escalates.
Image task: local OCR/regex first, vision text chain only when the regex
result is insufficient for the requested mode.
"""

import time
from collections.abc import Callable
from functools import partial
from pathlib import Path

from parte.config.settings import Settings
from parte.extraction.bbox import bbox_from_mapping, is_valid_bbox
from parte.extraction.config import VisionConfig
from parte.extraction.exceptions import ExtractionError, ProviderError
from parte.extraction.image_payload import ImagePayload, image_dimensions
from parte.extraction.local.extractor import LocalExtractor
from parte.extraction.local.ocr_engine import TesseractOcrEngine
from parte.extraction.models import (
    ExtractionMode,
    ExtractionResult,
    PhotoDetection,
    ProviderSpec,
)
from parte.extraction.post_processor import PostProcessor
from parte.extraction.prompt_loader import (
    PHOTO_DETECTION_PROMPT,
    TEXT_EXTRACTION_PROMPT,
    load_prompt,
    render_text_prompt,
)
from parte.extraction.providers.base import BaseVisionProvider
from parte.extraction.providers.factory import VisionProviderFactory
from parte.logging.logger import Log

ProviderLoader = Callable[[ProviderSpec], BaseVisionProvider]


class ExtractionOrchestrator:
    """Runs the local extractor and the provider chains for one image at a time."""

    def __init__(
        self,
        *,
        config: VisionConfig,
        provider_loader: ProviderLoader,
        local_extractor: LocalExtractor,
        post_processor: PostProcessor,
        text_prompt_template: str,
        photo_prompt: str,
    ) -> None:
        self._config = config
        self._provider_loader = provider_loader
        self._local_extractor = local_extractor
        self._post_processor = post_processor
        self._text_prompt_template = text_prompt_template
        self._photo_prompt = photo_prompt
        self._providers: dict[ProviderSpec, BaseVisionProvider] = {}

    def extract_from_image(
        self, image_path: Path, mode: ExtractionMode
    ) -> ExtractionResult | None:
        """Local OCR first; escalate to the text chain when it falls short.

        Only the fields owned by ``mode`` are taken from the vision result
        when merging with a partial regex result.
        """
        if not image_path.is_file():
            Log.error("Image file not found for extraction", image_path=str(image_path))
            return None

        local = self._local_extractor.extract(image_path)
        if local is None:
            Log.info("No OCR text, escalating to vision providers", mode=mode.value)
            return self.extract_text(image_path, mode=mode)

        regex_result = ExtractionResult(
            full_name=local.full_name,
            death_date=local.death_date,
            funeral_date=local.funeral_date,
        )
        if regex_result.is_valid_for(mode):
            Log.info("Regex extraction succeeded", mode=mode.value)
            return regex_result

        Log.info("Regex extraction insufficient, escalating to vision providers", mode=mode.value)
        vision_result = self.extract_text(image_path, mode=mode)
        if vision_result is None:
            return regex_result
        return regex_result.merged_with(vision_result, mode)

    def extract_text(
        self,
        image_path: Path,
        known_name: str | None = None,
        mode: ExtractionMode = ExtractionMode.NAME_AND_FUNERAL,
    ) -> ExtractionResult | None:
        """Run the text task through the primary and fallback providers.

        A reply that is not valid for ``mode`` moves on to the next provider.
        """
        image = self._load_image(image_path)
        if image is None:
            return None
        image_size = image_dimensions(image_path)
        prompt = render_text_prompt(self._text_prompt_template, known_name)

        started = time.monotonic()
        for role, spec in self._chain(self._config.text_provider, self._config.text_fallback):
            provider = self._provider_for(spec, role)
            if provider is None:
                continue
            try:
                raw = provider.extract_text(image, prompt)
            except ProviderError as exc:
                Log.warning(f"Text extraction failed: {exc}", provider=spec.label, role=role)
                continue

            result = self._post_processor.process(raw, known_name, image_size)
            if not result.is_valid_for(mode):
                Log.warning(
                    "Provider reply insufficient for mode",
                    provider=spec.label,
                    role=role,
                    mode=mode.value,
                )
                continue
            Log.info(
                "Text extraction succeeded",
                provider=spec.label,
                role=role,
                has_name=bool(result.full_name),
                has_opening_quote=bool(result.opening_quote),
                has_death_date=result.death_date is not None,
                has_funeral_date=result.funeral_date is not None,
                has_announcement=result.announcement_text is not None,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            return result

        Log.error("All text providers failed", image_path=str(image_path))
        return None

    def detect_photo(self, image_path: Path) -> PhotoDetection:
        """Run the portrait task; a negative answer never ends the chain early."""
        image = self._load_image(image_path)
        if image is None:
            return PhotoDetection()
        image_size = image_dimensions(image_path)

        for role, spec in self._chain(self._config.photo_provider, self._config.photo_fallback):
            provider = self._provider_for(spec, role)
            if provider is None:
                continue
            try:
                raw = provider.detect_photo(image, self._photo_prompt)
            except ProviderError as exc:
                Log.warning(f"Photo detection failed: {exc}", provider=spec.label, role=role)
                continue

            if not raw.get("has_photo"):
                Log.info("Provider reported no photo", provider=spec.label, role=role)
                continue

            bbox = bbox_from_mapping(raw.get("photo_bbox"), image_size)
            if bbox is not None and not is_valid_bbox(bbox):
                Log.warning("Discarding invalid photo bounding box", bbox=raw.get("photo_bbox"))
                bbox = None
            description = raw.get("photo_description")
            Log.info("Photo detected", provider=spec.label, role=role, has_bbox=bbox is not None)
            return PhotoDetection(
                has_photo=True,
                photo_bbox=bbox,
                description=description if isinstance(description, str) else None,
            )

        return PhotoDetection()

    @staticmethod
    def _chain(
        primary: ProviderSpec, fallback: ProviderSpec | None
    ) -> list[tuple[str, ProviderSpec]]:
        chain = [("primary", primary)]
        if fallback is not None:
            chain.append(("fallback", fallback))
        return chain

    def _provider_for(self, spec: ProviderSpec, role: str) -> BaseVisionProvider | None:
        if not self._config.is_credentialed(spec):
            Log.warning("Skipping provider without credentials", provider=spec.label, role=role)
            return None
        if spec not in self._providers:
            self._providers[spec] = self._provider_loader(spec)
        return self._providers[spec]

    @staticmethod
    def _load_image(image_path: Path) -> ImagePayload | None:
        try:
            return ImagePayload.from_path(image_path)
        except ExtractionError as exc:
            Log.error(str(exc))
            return None


def build_orchestrator(settings: Settings) -> ExtractionOrchestrator:
    """Build an orchestrator wired to Tesseract and the configured providers.

    Raises:
        ProviderConfigurationError: if the provider roles are not usable.
    """
    config = VisionConfig.from_settings(settings)
    ocr_engine = TesseractOcrEngine(
        languages=settings.ocr_languages,
        page_segmentation_mode=settings.ocr_page_segmentation_mode,
        timeout_seconds=settings.ocr_timeout_seconds,
    )
    Log.info(
        "Vision providers configured",
        text=config.text_provider.label,
        text_fallback=config.text_fallback.label if config.text_fallback else None,
        photo=config.photo_provider.label,
        photo_fallback=config.photo_fallback.label if config.photo_fallback else None,
    )
    return ExtractionOrchestrator(
        config=config,
        provider_loader=partial(VisionProviderFactory.create, settings=settings),
        local_extractor=LocalExtractor(ocr_engine),
        post_processor=PostProcessor(),
        text_prompt_template=load_prompt(TEXT_EXTRACTION_PROMPT),
        photo_prompt=load_prompt(PHOTO_DETECTION_PROMPT),
    )
