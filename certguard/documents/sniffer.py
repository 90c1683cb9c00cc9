from certguard.documents.models import MEDIA_TYPES, DocumentKind

PDF_SIGNATURE = b"%PDF-"
JPEG_SIGNATURE = b"\xff\xd8"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def classify(data: bytes) -> DocumentKind:
    """Classify document bytes by their leading signature."""
    if data.startswith(PDF_SIGNATURE):
        return "pdf"
    if data.startswith(JPEG_SIGNATURE):
        return "jpeg"
    if data.startswith(PNG_SIGNATURE):
        return "png"
    return "unsupported"


def declared_kind(media_type: str) -> DocumentKind:
    """Map a declared media type onto a document kind."""
    return MEDIA_TYPES.get(media_type.strip().lower(), "unsupported")


def sniff(media_type: str, data: bytes) -> tuple[DocumentKind, bool]:
    """Classify bytes and report whether the declared media type agrees.

    The signature always wins: a file whose content matches no known
    signature is unsupported whatever the client claimed.

    Returns:
        (kind, declared_matches)
    """
    kind = classify(data)
    return kind, declared_kind(media_type) == kind
