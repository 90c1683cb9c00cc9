class StorageError(Exception):
    """Base exception for all object-store errors."""


class ObjectNotFoundError(StorageError):
    """Raised when no object exists under the requested key."""


class ObjectExistsError(StorageError):
    """Raised when uploading to a key that is already taken."""
