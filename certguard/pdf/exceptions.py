class PdfExtractionError(Exception):
    """Raised when a PDF engine cannot read text from or render a document."""
