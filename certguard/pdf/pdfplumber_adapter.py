import io

import pdfplumber
from PIL import Image

from certguard.pdf.base import BasePdfEngine
from certguard.pdf.exceptions import PdfExtractionError

PDF_POINTS_PER_INCH = 72


class PdfPlumberAdapter(BasePdfEngine):
    """Reads and renders PDFs using pdfplumber."""

    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                return [page.extract_text() or "" for page in pdf.pages]
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc

    def render_pages(
        self, pdf_bytes: bytes, max_pages: int, scale: float
    ) -> list[Image.Image]:
        resolution = int(PDF_POINTS_PER_INCH * scale)
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                return [
                    page.to_image(resolution=resolution).original.convert("RGB")
                    for page in pdf.pages[:max_pages]
                ]
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber rendering failed: {exc}") from exc
