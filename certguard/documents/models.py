from dataclasses import dataclass
from typing import Literal

DocumentKind = Literal["pdf", "jpeg", "png", "unsupported"]

IMAGE_KINDS: frozenset[str] = frozenset({"jpeg", "png"})

MEDIA_TYPES: dict[str, DocumentKind] = {
    "application/pdf": "pdf",
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/png": "png",
}

EXTENSIONS: dict[DocumentKind, str] = {
    "pdf": "pdf",
    "jpeg": "jpg",
    "png": "png",
    "unsupported": "bin",
}


@dataclass(frozen=True)
class RawDocument:
    """Uploaded file as received: bytes plus the client-declared media type."""

    content: bytes
    media_type: str
    filename: str = ""
