import httpx

from parte.extraction.exceptions import ProviderNetworkError, ProviderResponseError
from parte.extraction.image_payload import ImagePayload
from parte.extraction.models import ProviderName
from parte.extraction.providers.base import BaseVisionProvider


class AnthropicProvider(BaseVisionProvider):
    """Anthropic Messages API over plain HTTP."""

    name = ProviderName.ANTHROPIC

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        api_version: str,
        max_tokens: int,
        timeout_seconds: int,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(model=model)
        self._base_url = base_url.rstrip("/")
        self._max_tokens = max_tokens
        self._headers = {
            "x-api-key": api_key,
            "anthropic-version": api_version,
            "content-type": "application/json",
        }
        self._http = http_client or httpx.Client(timeout=timeout_seconds)

    def complete(self, image: ImagePayload, prompt: str) -> str:
        payload = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": image.mime_type,
                                "data": image.data_base64,
                            },
                        },
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        }
        try:
            response = self._http.post(
                f"{self._base_url}/messages", headers=self._headers, json=payload
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderNetworkError(
                f"Anthropic API error: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderNetworkError(f"Anthropic network error: {exc}") from exc

        try:
            return str(response.json()["content"][0]["text"])
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ProviderResponseError("Invalid Anthropic API response structure") from exc
