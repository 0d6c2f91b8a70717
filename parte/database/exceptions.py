class DuplicateNoticeError(Exception):
    """Raised when a notice with the same identity hash already exists."""
