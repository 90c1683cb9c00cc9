class RepositoryError(Exception):
    """Base exception for registry and submission persistence errors."""


class DuplicateCertificateError(RepositoryError):
    """Raised when registering a certificate code that is already in the registry."""
