import hashlib


def content_hash(data: bytes) -> str:
    """Return the SHA-256 hex digest of the full content."""
    return hashlib.sha256(data).hexdigest()
