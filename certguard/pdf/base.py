from abc import ABC, abstractmethod

from PIL import Image


class BasePdfEngine(ABC):
    """Contract for PDF text-layer and page-render adapters."""

    @abstractmethod
    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        """Extract the native text layer of every page.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            One string per page; pages without selectable text yield "".

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """

    @abstractmethod
    def render_pages(
        self, pdf_bytes: bytes, max_pages: int, scale: float
    ) -> list[Image.Image]:
        """Rasterize the first ``max_pages`` pages as RGB images.

        Raises:
            PdfExtractionError: if rendering fails for any reason.
        """
