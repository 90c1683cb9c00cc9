import httpx

from certguard.analysis.anomalies import AnomalyAggregator
from certguard.analysis.image_forensics import ImageForensicsAnalyzer
from certguard.analysis.metadata import MetadataForensicsAnalyzer
from certguard.analysis.models import FraudAnalysisResult, FraudIndicators
from certguard.analysis.name_matcher import NameMatcher
from certguard.analysis.pipeline import AnalysisContext, AnalysisStep
from certguard.analysis.scoring import FraudScoringEngine, risk_level
from certguard.analysis.steps import (
    AnomalyStep,
    AssembleTextAnalysisStep,
    ExtractTextStep,
    ImageForensicsStep,
    LoadBitmapStep,
    MetadataStep,
    NameMatchStep,
    QrStep,
    ScoreStep,
    SniffStep,
    WarningsStep,
)
from certguard.analysis.text_extraction import TextExtractionPipeline
from certguard.config.settings import Settings
from certguard.documents.models import RawDocument
from certguard.logging.logger import ComponentLog, Log
from certguard.ocr.factory import OcrEngineFactory
from certguard.pdf.factory import PdfEngineFactory
from certguard.qr.factory import QrDecoderFactory
from certguard.qr.verifier import QrCodeVerifier


class FraudAnalyzer:
    """Runs the forensic pipeline over one document.

    Pipeline: sniff -> metadata -> text -> bitmap -> name -> image forensics
    -> QR -> anomalies -> score -> warnings. Steps share nothing between
    calls, so one instance may serve many threads. A failing text step only
    loses its own signal; the steps after it still run.
    """

    def __init__(
        self,
        *,
        structure_steps: list[AnalysisStep],
        text_steps: list[AnalysisStep],
        score_step: AnalysisStep,
        warnings_step: AnalysisStep,
        log: ComponentLog | None = None,
    ) -> None:
        self._structure_steps = structure_steps
        self._text_steps = text_steps
        self._score_step = score_step
        self._warnings_step = warnings_step
        self._log = log or Log.bind("analyzer")

    def analyze(
        self, document: RawDocument, expected_name: str | None = None
    ) -> FraudAnalysisResult:
        """Analyze a document; content problems surface as warnings, never exceptions."""
        context = AnalysisContext(document=document, expected_name=expected_name)
        self._log.info(
            f"Analyzing '{document.filename or 'document'}' "
            f"({document.media_type}, {len(document.content)} bytes)"
        )

        try:
            for step in self._structure_steps:
                context = step.run(context)
        except Exception as exc:
            self._log.error(f"Structural analysis failed: {exc}")
            context.completed = False

        for step in self._text_steps:
            try:
                context = step.run(context)
            except Exception as exc:
                self._log.error(f"Text analysis step {type(step).__name__} failed: {exc}")
                context.text_failed = True

        context = self._score_step.run(context)
        context = self._warnings_step.run(context)
        return self._to_result(context)

    @staticmethod
    def _to_result(context: AnalysisContext) -> FraudAnalysisResult:
        score = context.score
        fraud_score = score.fraud_score if score is not None else 0
        return FraudAnalysisResult(
            indicators=FraudIndicators(metadata=context.metadata, text=context.text_analysis),
            fraud_score=fraud_score,
            risk_level=score.risk_level if score is not None else risk_level(fraud_score),
            warnings=context.warnings,
            analysis_completed=context.completed,
            base_score=score.base_score if score is not None else 0,
            text_score=score.text_score if score is not None else 0,
        )


def build_fraud_analyzer(
    settings: Settings,
    http_client: httpx.Client | None = None,
) -> FraudAnalyzer:
    """Build a FraudAnalyzer with the adapters named in settings."""
    pdf_engine = PdfEngineFactory.create(settings)
    ocr_engine = OcrEngineFactory.create(settings)
    qr_decoder = QrDecoderFactory.create(settings)
    text_pipeline = TextExtractionPipeline(
        pdf_engine,
        ocr_engine,
        max_pages=settings.ocr_max_pages,
        render_scale=settings.ocr_render_scale,
        native_min_chars=settings.native_text_min_chars,
    )
    verifier = QrCodeVerifier(
        qr_decoder,
        http_client=http_client,
        verification_domains=settings.qr_verification_domains,
        url_check_timeout_seconds=settings.qr_url_check_timeout_seconds,
    )
    return FraudAnalyzer(
        structure_steps=[SniffStep(), MetadataStep(MetadataForensicsAnalyzer())],
        text_steps=[
            ExtractTextStep(text_pipeline),
            LoadBitmapStep(pdf_engine, render_scale=settings.ocr_render_scale),
            NameMatchStep(NameMatcher()),
            ImageForensicsStep(ImageForensicsAnalyzer()),
            QrStep(verifier),
            AnomalyStep(AnomalyAggregator()),
            AssembleTextAnalysisStep(),
        ],
        score_step=ScoreStep(FraudScoringEngine()),
        warnings_step=WarningsStep(),
    )
