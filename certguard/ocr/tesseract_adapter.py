import pytesseract
from PIL import Image

from certguard.ocr.base import BaseOcrEngine
from certguard.ocr.exceptions import OcrError
from certguard.ocr.models import OcrPage, OcrWord


class TesseractAdapter(BaseOcrEngine):
    """Recognizes text using the Tesseract binary through pytesseract."""

    def __init__(self, language: str = "eng") -> None:
        self._language = language

    def recognize(self, image: Image.Image) -> OcrPage:
        try:
            text = pytesseract.image_to_string(image, lang=self._language)
            data = pytesseract.image_to_data(
                image, lang=self._language, output_type=pytesseract.Output.DICT
            )
        except OcrError:
            raise
        except Exception as exc:
            raise OcrError(f"tesseract recognition failed: {exc}") from exc

        words = self._collect_words(data)
        confidence = (
            sum(word.confidence for word in words) / len(words) if words else 0.0
        )
        return OcrPage(text=text.strip(), confidence=confidence, words=tuple(words))

    @staticmethod
    def _collect_words(data: dict[str, list]) -> list[OcrWord]:
        words: list[OcrWord] = []
        for index, raw_text in enumerate(data.get("text", [])):
            text = str(raw_text).strip()
            confidence = float(data["conf"][index])
            # Tesseract reports -1 for layout rows that carry no word.
            if not text or confidence < 0:
                continue
            words.append(
                OcrWord(
                    text=text,
                    confidence=confidence,
                    bbox=(
                        int(data["left"][index]),
                        int(data["top"][index]),
                        int(data["left"][index]) + int(data["width"][index]),
                        int(data["top"][index]) + int(data["height"][index]),
                    ),
                )
            )
        return words
