class MediaError(Exception):
    """Base exception for media storage and conversion errors."""


class DownloadError(MediaError):
    """Raised when a remote file cannot be fetched after every allowed attempt."""


class ConversionError(MediaError):
    """Raised when a PDF or image cannot be converted."""
