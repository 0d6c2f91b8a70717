class ProcessorError(Exception):
    """Base exception for all processor-related errors.

    ``retryable`` tells the processor which outcome to report.
    """

    retryable: bool = True


class NoticeNotFoundError(ProcessorError):
    """Raised when the job's death notice no longer exists."""

    retryable = False


class InvalidJobPayloadError(ProcessorError):
    """Raised when a job carries an unknown kind or malformed payload."""

    retryable = False


class SourceImageMissingError(ProcessorError):
    """Raised when neither an original image nor a PDF is available to read."""


class ExtractionExhaustedError(ProcessorError):
    """Raised when every extraction strategy failed for the image."""
