import httpx

from parte.extraction.exceptions import ProviderNetworkError, ProviderResponseError
from parte.extraction.image_payload import ImagePayload
from parte.extraction.models import ProviderName
from parte.extraction.providers.base import BaseVisionProvider


class GeminiProvider(BaseVisionProvider):
    """Google Gemini ``generateContent`` REST endpoint."""

    name = ProviderName.GEMINI
    TEMPERATURE = 0.4

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        timeout_seconds: int,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(model=model)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._http = http_client or httpx.Client(timeout=timeout_seconds)

    def complete(self, image: ImagePayload, prompt: str) -> str:
        payload = {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": image.mime_type,
                                "data": image.data_base64,
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {"temperature": self.TEMPERATURE},
        }
        try:
            response = self._http.post(
                f"{self._base_url}/models/{self._model}:generateContent",
                params={"key": self._api_key},
                json=payload,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderNetworkError(
                f"Gemini API error: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderNetworkError(f"Gemini network error: {exc}") from exc

        try:
            return str(response.json()["candidates"][0]["content"]["parts"][0]["text"])
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ProviderResponseError("Invalid Gemini API response structure") from exc
