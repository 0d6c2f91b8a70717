from dataclasses import dataclass

from parte.config.settings import Settings
from parte.extraction.exceptions import ProviderConfigurationError
from parte.extraction.models import ProviderName, ProviderSpec
from parte.extraction.providers.factory import VisionProviderFactory


@dataclass(frozen=True)
class VisionConfig:
    """Provider roles for the two extraction tasks, fixed at startup."""

    text_provider: ProviderSpec
    photo_provider: ProviderSpec
    credentialed: frozenset[ProviderName]
    text_fallback: ProviderSpec | None = None
    photo_fallback: ProviderSpec | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "VisionConfig":
        """Build and validate the provider roles.

        Raises:
            ProviderConfigurationError: when no provider has credentials or a
                primary role is missing or points at an uncredentialed provider.
            ValueError: when a primary role names an unknown provider.
        """
        credentialed = VisionProviderFactory.credentialed(settings)
        if not credentialed:
            raise ProviderConfigurationError(
                "No vision provider credentials configured. Set at least one of: "
                + ", ".join(f"{name.value}_api_key" for name in ProviderName)
            )

        text_provider = cls._require_primary("vision_text_provider", settings.vision_text_provider)
        photo_provider = cls._require_primary(
            "vision_photo_provider", settings.vision_photo_provider
        )
        for role, spec in (("text", text_provider), ("photo", photo_provider)):
            name = VisionProviderFactory.resolve_name(spec.provider)
            if name not in credentialed:
                raise ProviderConfigurationError(
                    f"Primary {role} provider '{spec.label}' is not configured "
                    f"(configured: {sorted(n.value for n in credentialed)})"
                )

        return cls(
            text_provider=text_provider,
            photo_provider=photo_provider,
            credentialed=credentialed,
            text_fallback=ProviderSpec.parse(settings.vision_text_fallback),
            photo_fallback=ProviderSpec.parse(settings.vision_photo_fallback),
        )

    @staticmethod
    def _require_primary(setting_name: str, value: str) -> ProviderSpec:
        spec = ProviderSpec.parse(value)
        if spec is None:
            raise ProviderConfigurationError(f"{setting_name} must be set")
        return spec

    def is_credentialed(self, spec: ProviderSpec) -> bool:
        """True when ``spec`` names a known provider that has an API key.

        Raises:
            ValueError: for an unknown provider identifier.
        """
        return VisionProviderFactory.resolve_name(spec.provider) in self.credentialed
