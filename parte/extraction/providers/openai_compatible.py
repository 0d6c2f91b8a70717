from typing import ClassVar

import httpx
import openai

from parte.extraction.exceptions import ProviderNetworkError, ProviderResponseError
from parte.extraction.image_payload import ImagePayload
from parte.extraction.models import ProviderName
from parte.extraction.providers.base import BaseVisionProvider


class OpenAICompatibleProvider(BaseVisionProvider):
    """Vision provider speaking the OpenAI chat-completions dialect."""

    temperature: ClassVar[float | None] = None

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        super().__init__(model=model)
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    def image_url(self, image: ImagePayload) -> str:
        return image.data_uri

    def complete(self, image: ImagePayload, prompt: str) -> str:
        options: dict[str, object] = {}
        if self.temperature is not None:
            options["temperature"] = self.temperature
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "image_url", "image_url": {"url": self.image_url(image)}},
                            {"type": "text", "text": prompt},
                        ],
                    }
                ],
                **options,
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ProviderNetworkError(f"{self.label} network error: {exc}") from exc
        except openai.APIError as exc:
            raise ProviderNetworkError(f"{self.label} API error: {exc}") from exc

        if not response.choices:
            raise ProviderResponseError(f"{self.label} returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise ProviderResponseError(f"{self.label} returned empty response")
        return content


class ZhipuAiProvider(OpenAICompatibleProvider):
    """GLM vision models. The endpoint expects the bare base64 string as URL."""

    name = ProviderName.ZHIPUAI

    def image_url(self, image: ImagePayload) -> str:
        return image.data_base64


class AbacusAiProvider(OpenAICompatibleProvider):
    """Abacus.AI RouteLLM gateway in front of several model families."""

    name = ProviderName.ABACUSAI
    temperature = 0.0

    MODEL_ALIASES: ClassVar[dict[str, str]] = {
        "gemini-3-flash": "GEMINI-3-FLASH-PREVIEW",
        "claude-sonnet-4.5": "CLAUDE-SONNET-4-5-20250929",
        "gemini-2.5-pro": "GEMINI-2.5-PRO",
        "gpt-5.2": "GPT-5.2",
    }

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            model=self.MODEL_ALIASES.get(model, model),
            timeout_seconds=timeout_seconds,
            base_url=base_url,
        )
