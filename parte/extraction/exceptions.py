class ExtractionError(Exception):
    """Base exception for all extraction-related errors."""


class ProviderConfigurationError(ExtractionError):
    """Raised when provider identifiers or credentials are missing or invalid."""


class ProviderError(ExtractionError):
    """Raised when a vision provider call fails."""


class ProviderNetworkError(ProviderError):
    """Raised when the provider call fails due to network/infrastructure issues."""


class ProviderResponseError(ProviderError):
    """Raised when the provider reply cannot be parsed into the expected shape."""


class OcrError(ExtractionError):
    """Raised when the local OCR engine cannot read an image."""
