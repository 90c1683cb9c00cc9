import io

from PIL import Image

from certguard.analysis.models import ExtractionResult
from certguard.documents.models import DocumentKind
from certguard.logging.logger import ComponentLog, Log
from certguard.ocr.base import BaseOcrEngine
from certguard.ocr.exceptions import OcrError
from certguard.pdf.base import BasePdfEngine
from certguard.pdf.exceptions import PdfExtractionError

NATIVE_TEXT_CONFIDENCE = 95.0


class TextExtractionPipeline:
    """Recovers document text: native PDF text layer first, OCR as fallback.

    Scanned PDFs are rasterized and OCR'd up to ``max_pages`` pages. When a
    PDF carries a thin text layer that is too short to trust on its own, the
    native text is kept and the OCR output appended, tagged ``hybrid``.
    Raster images are always OCR'd and keep their per-word data.
    """

    def __init__(
        self,
        pdf_engine: BasePdfEngine,
        ocr_engine: BaseOcrEngine,
        max_pages: int = 5,
        render_scale: float = 2.0,
        native_min_chars: int = 50,
        log: ComponentLog | None = None,
    ) -> None:
        self._pdf_engine = pdf_engine
        self._ocr_engine = ocr_engine
        self._max_pages = max_pages
        self._render_scale = render_scale
        self._native_min_chars = native_min_chars
        self._log = log or Log.bind("text_extraction")

    def extract(self, kind: DocumentKind, data: bytes) -> ExtractionResult:
        """Extract text; never raises, returns an empty result on failure."""
        try:
            if kind == "pdf":
                return self._extract_pdf(data)
            if kind in ("jpeg", "png"):
                return self._extract_image(data)
        except (PdfExtractionError, OcrError, OSError, Image.DecompressionBombError) as exc:
            self._log.warning(f"Text extraction failed for {kind} document: {exc}")
        return ExtractionResult.empty()

    def _extract_pdf(self, data: bytes) -> ExtractionResult:
        native_text = ""
        try:
            pages = self._pdf_engine.extract_pages(data)
            native_text = " ".join(page.strip() for page in pages if page.strip())
        except PdfExtractionError as exc:
            self._log.warning(f"Native text layer unreadable, falling back to OCR: {exc}")

        if len(native_text) > self._native_min_chars:
            self._log.debug(f"Accepted native text layer ({len(native_text)} chars)")
            return ExtractionResult(
                text=native_text, confidence=NATIVE_TEXT_CONFIDENCE, method="native"
            )

        try:
            images = self._pdf_engine.render_pages(
                data, self._max_pages, self._render_scale
            )
        except PdfExtractionError as exc:
            self._log.warning(f"Page rendering failed: {exc}")
            images = []
        ocr_texts: list[str] = []
        total_confidence = 0.0
        for page_number, image in enumerate(images, start=1):
            try:
                page = self._ocr_engine.recognize(image)
            except OcrError as exc:
                self._log.warning(f"OCR failed on page {page_number}: {exc}")
                continue
            ocr_texts.append(page.text)
            total_confidence += page.confidence

        ocr_text = "\n".join(text for text in ocr_texts if text).strip()
        confidence = total_confidence / len(images) if images else 0.0
        self._log.info(
            f"OCR recovered {len(ocr_text)} chars from {len(images)} rendered page(s)"
        )
        if native_text and ocr_text:
            return ExtractionResult(
                text=f"{native_text}\n{ocr_text}", confidence=confidence, method="hybrid"
            )
        if native_text and not ocr_text:
            return ExtractionResult(
                text=native_text, confidence=NATIVE_TEXT_CONFIDENCE, method="native"
            )
        return ExtractionResult(text=ocr_text, confidence=confidence, method="ocr")

    def _extract_image(self, data: bytes) -> ExtractionResult:
        with Image.open(io.BytesIO(data)) as image:
            page = self._ocr_engine.recognize(image.convert("RGB"))
        return ExtractionResult(
            text=page.text, confidence=page.confidence, words=page.words, method="ocr"
        )
