from abc import ABC, abstractmethod
from typing import Any, ClassVar

from parte.extraction.image_payload import ImagePayload
from parte.extraction.json_response import parse_required
from parte.extraction.models import ProviderName


class BaseVisionProvider(ABC):
    """Contract for vision-model providers.

    Subclasses only implement the transport in ``complete``; the two
    extraction tasks and their response validation are shared.
    """

    name: ClassVar[ProviderName]

    def __init__(self, *, model: str) -> None:
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    @property
    def label(self) -> str:
        return f"{self.name.value}/{self._model}"

    @abstractmethod
    def complete(self, image: ImagePayload, prompt: str) -> str:
        """Send one image with an instruction and return the reply text.

        Args:
            image: Base64-encoded image with its MIME type.
            prompt: Natural-language instruction describing the JSON to return.

        Returns:
            The model's raw reply, possibly wrapped in a markdown fence.

        Raises:
            ProviderNetworkError: on transport failures, timeouts and non-2xx replies.
            ProviderResponseError: when the reply envelope has an unexpected shape.
        """

    def extract_text(self, image: ImagePayload, prompt: str) -> dict[str, Any]:
        """Run the text-and-structure task. The reply must carry ``full_name``."""
        raw = self.complete(image, prompt)
        return parse_required(
            raw,
            "full_name",
            "Failed to parse text extraction response",
            non_empty=True,
        )

    def detect_photo(self, image: ImagePayload, prompt: str) -> dict[str, Any]:
        """Run the portrait-only task. The reply must carry ``has_photo``."""
        raw = self.complete(image, prompt)
        return parse_required(raw, "has_photo", "Failed to parse photo detection response")
