from unittest.mock import MagicMock

import pytest
from PIL import Image

from certguard.ocr.factory import OcrEngineFactory
from certguard.ocr.tesseract_adapter import TesseractAdapter
from certguard.pdf.factory import PdfEngineFactory
from certguard.pdf.pdfplumber_adapter import PdfPlumberAdapter
from certguard.pdf.pymupdf_adapter import PyMuPdfAdapter
from certguard.qr.factory import QrDecoderFactory
from certguard.qr.opencv_adapter import OpenCvQrDecoder
from certguard.qr.pyzbar_adapter import PyzbarQrDecoder


def _make_settings(**values: str) -> MagicMock:
    settings = MagicMock()
    for name, value in values.items():
        setattr(settings, name, value)
    return settings


class TestPdfEngineFactory:
    @pytest.mark.parametrize(
        ("engine", "adapter_cls"),
        [("pdfplumber", PdfPlumberAdapter), ("PyMuPDF", PyMuPdfAdapter)],
    )
    def test_creates_configured_adapter(self, engine: str, adapter_cls: type) -> None:
        settings = _make_settings(pdf_engine=engine)
        assert isinstance(PdfEngineFactory.create(settings), adapter_cls)

    @pytest.mark.parametrize("engine", ["pdfplumber", "pymupdf"])
    def test_created_engine_extracts_and_renders(
        self, engine: str, multi_page_pdf_bytes: bytes
    ) -> None:
        pdf_engine = PdfEngineFactory.create(_make_settings(pdf_engine=engine))

        pages = pdf_engine.extract_pages(multi_page_pdf_bytes)
        bitmaps = pdf_engine.render_pages(multi_page_pdf_bytes, max_pages=5, scale=1.0)

        assert "Page two content" in pages[1]
        assert len(bitmaps) == 2
        assert all(isinstance(bitmap, Image.Image) for bitmap in bitmaps)
        assert bitmaps[0].mode == "RGB"

    def test_raises_for_unknown_engine(self) -> None:
        with pytest.raises(ValueError, match="Unknown PDF engine"):
            PdfEngineFactory.create(_make_settings(pdf_engine="pypdf2"))


class TestOcrEngineFactory:
    def test_creates_tesseract_adapter(self) -> None:
        settings = _make_settings(ocr_engine="tesseract", ocr_language="eng")
        adapter = OcrEngineFactory.create(settings)
        assert isinstance(adapter, TesseractAdapter)

    def test_is_case_insensitive(self) -> None:
        settings = _make_settings(ocr_engine="Tesseract", ocr_language="eng")
        adapter = OcrEngineFactory.create(settings)
        assert isinstance(adapter, TesseractAdapter)

    def test_raises_for_unknown_engine(self) -> None:
        with pytest.raises(ValueError, match="Unknown OCR engine"):
            OcrEngineFactory.create(_make_settings(ocr_engine="easyocr", ocr_language="eng"))


class TestQrDecoderFactory:
    def test_creates_opencv_decoder(self) -> None:
        decoder = QrDecoderFactory.create(_make_settings(qr_decoder="opencv"))
        assert isinstance(decoder, OpenCvQrDecoder)

    def test_creates_pyzbar_decoder(self) -> None:
        decoder = QrDecoderFactory.create(_make_settings(qr_decoder="pyzbar"))
        assert isinstance(decoder, PyzbarQrDecoder)

    def test_raises_for_unknown_decoder(self) -> None:
        with pytest.raises(ValueError, match="Unknown QR decoder"):
            QrDecoderFactory.create(_make_settings(qr_decoder="zxing"))
