from certguard.config.settings import Settings
from certguard.pdf.base import BasePdfEngine
from certguard.pdf.pdfplumber_adapter import PdfPlumberAdapter
from certguard.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfEngineFactory:
    """Selects the engine used for both text-layer extraction and page rendering.

    The same engine feeds the text pipeline and the bitmap used by pixel
    forensics and QR decoding, so `settings.pdf_engine` governs both.
    """

    ADAPTERS: dict[str, type[BasePdfEngine]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfEngine:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
