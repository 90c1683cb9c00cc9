from abc import ABC, abstractmethod

from PIL import Image

from certguard.ocr.models import OcrPage


class BaseOcrEngine(ABC):
    """Contract for all OCR adapters."""

    @abstractmethod
    def recognize(self, image: Image.Image) -> OcrPage:
        """Recognize text in a bitmap.

        Args:
            image: Page or photo to read.

        Returns:
            Recognized text, mean word confidence (0-100) and per-word data.

        Raises:
            OcrError: if recognition fails for any reason.
        """
