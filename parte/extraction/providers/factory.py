from collections.abc import Callable
from typing import ClassVar

from parte.config.settings import Settings
from parte.extraction.exceptions import ProviderConfigurationError
from parte.extraction.models import ProviderName, ProviderSpec
from parte.extraction.providers.anthropic import AnthropicProvider
from parte.extraction.providers.base import BaseVisionProvider
from parte.extraction.providers.gemini import GeminiProvider
from parte.extraction.providers.openai_compatible import AbacusAiProvider, ZhipuAiProvider


def _build_gemini(settings: Settings, model: str | None) -> BaseVisionProvider:
    return GeminiProvider(
        api_key=settings.gemini_api_key,
        model=model or settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout_seconds=settings.gemini_timeout_seconds,
    )


def _build_zhipuai(settings: Settings, model: str | None) -> BaseVisionProvider:
    return ZhipuAiProvider(
        api_key=settings.zhipuai_api_key,
        model=model or settings.zhipuai_model,
        timeout_seconds=settings.zhipuai_timeout_seconds,
        base_url=settings.zhipuai_base_url,
    )


def _build_anthropic(settings: Settings, model: str | None) -> BaseVisionProvider:
    return AnthropicProvider(
        api_key=settings.anthropic_api_key,
        model=model or settings.anthropic_model,
        base_url=settings.anthropic_base_url,
        api_version=settings.anthropic_version,
        max_tokens=settings.anthropic_max_tokens,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )


def _build_abacusai(settings: Settings, model: str | None) -> BaseVisionProvider:
    return AbacusAiProvider(
        api_key=settings.abacusai_api_key,
        model=model or settings.abacusai_model,
        timeout_seconds=settings.abacusai_timeout_seconds,
        base_url=settings.abacusai_base_url,
    )


class VisionProviderFactory:
    """Creates vision providers from a ProviderSpec and application settings."""

    BUILDERS: ClassVar[
        dict[ProviderName, Callable[[Settings, str | None], BaseVisionProvider]]
    ] = {
        ProviderName.GEMINI: _build_gemini,
        ProviderName.ZHIPUAI: _build_zhipuai,
        ProviderName.ANTHROPIC: _build_anthropic,
        ProviderName.ABACUSAI: _build_abacusai,
    }

    API_KEYS: ClassVar[dict[ProviderName, Callable[[Settings], str]]] = {
        ProviderName.GEMINI: lambda s: s.gemini_api_key,
        ProviderName.ZHIPUAI: lambda s: s.zhipuai_api_key,
        ProviderName.ANTHROPIC: lambda s: s.anthropic_api_key,
        ProviderName.ABACUSAI: lambda s: s.abacusai_api_key,
    }

    @classmethod
    def resolve_name(cls, identifier: str) -> ProviderName:
        """Map a configured identifier onto the closed provider enumeration."""
        try:
            return ProviderName(identifier.lower())
        except ValueError:
            supported = sorted(name.value for name in ProviderName)
            raise ValueError(
                f"Unknown vision provider '{identifier}'. Choose from: {supported}"
            ) from None

    @classmethod
    def credentialed(cls, settings: Settings) -> frozenset[ProviderName]:
        """Providers whose API key is present in settings."""
        return frozenset(
            name for name, key_of in cls.API_KEYS.items() if key_of(settings).strip()
        )

    @classmethod
    def create(cls, spec: ProviderSpec, settings: Settings) -> BaseVisionProvider:
        """Create the provider described by ``spec``.

        Raises:
            ValueError: for an unknown provider identifier.
            ProviderConfigurationError: when the provider has no API key.
        """
        name = cls.resolve_name(spec.provider)
        if name not in cls.credentialed(settings):
            raise ProviderConfigurationError(
                f"Vision provider '{name.value}' has no API key configured"
            )
        return cls.BUILDERS[name](settings, spec.model)
