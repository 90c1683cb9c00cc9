import pymupdf
from PIL import Image

from certguard.pdf.base import BasePdfEngine
from certguard.pdf.exceptions import PdfExtractionError


class PyMuPdfAdapter(BasePdfEngine):
    """Reads and renders PDFs using PyMuPDF."""

    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return [page.get_text() for page in doc]
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc

    def render_pages(
        self, pdf_bytes: bytes, max_pages: int, scale: float
    ) -> list[Image.Image]:
        matrix = pymupdf.Matrix(scale, scale)
        images: list[Image.Image] = []
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                for index in range(min(max_pages, doc.page_count)):
                    pix = doc[index].get_pixmap(matrix=matrix, alpha=False)
                    images.append(
                        Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
                    )
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf rendering failed: {exc}") from exc
        return images
