class AttentionError(Exception):
    """Base class for every error raised by the attention package."""
    pass


class ValidationError(AttentionError, ValueError):
    """Raised when user input or a settings record fails validation."""
    pass


class StorageError(AttentionError):
    """Raised by store adapters when a record cannot be read or written."""
    pass
