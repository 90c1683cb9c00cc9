import io

from PIL import Image

from certguard.analysis.anomalies import AnomalyAggregator
from certguard.analysis.fingerprints import find_suspicious_software
from certguard.analysis.image_forensics import ImageForensicsAnalyzer
from certguard.analysis.metadata import MetadataForensicsAnalyzer
from certguard.analysis.models import AnalysisWarning, QrCodeAnalysis, TextAnalysisResult
from certguard.analysis.name_matcher import NameMatcher
from certguard.analysis.pipeline import AnalysisContext, AnalysisStep
from certguard.analysis.scoring import FraudScoringEngine
from certguard.analysis.text_extraction import TextExtractionPipeline
from certguard.documents.models import IMAGE_KINDS
from certguard.documents.sniffer import sniff
from certguard.logging.logger import ComponentLog, Log
from certguard.pdf.base import BasePdfEngine
from certguard.pdf.exceptions import PdfExtractionError
from certguard.qr.verifier import QrCodeVerifier

STORED_TEXT_LIMIT = 2000


class SniffStep(AnalysisStep):
    def run(self, context: AnalysisContext) -> AnalysisContext:
        context.kind, context.declared_matches = sniff(
            context.document.media_type, context.document.content
        )
        return context


class MetadataStep(AnalysisStep):
    def __init__(self, analyzer: MetadataForensicsAnalyzer) -> None:
        self._analyzer = analyzer

    def run(self, context: AnalysisContext) -> AnalysisContext:
        context.metadata = self._analyzer.analyze(context.kind, context.document.content)
        return context


class ExtractTextStep(AnalysisStep):
    def __init__(self, pipeline: TextExtractionPipeline) -> None:
        self._pipeline = pipeline

    def run(self, context: AnalysisContext) -> AnalysisContext:
        context.extraction = self._pipeline.extract(context.kind, context.document.content)
        return context


class LoadBitmapStep(AnalysisStep):
    """Provide the bitmap inspected by pixel forensics and QR decoding.

    That is the raw image for raster uploads and the first rendered page
    for PDFs.
    """

    def __init__(
        self,
        pdf_engine: BasePdfEngine,
        render_scale: float = 2.0,
        log: ComponentLog | None = None,
    ) -> None:
        self._pdf_engine = pdf_engine
        self._render_scale = render_scale
        self._log = log or Log.bind("bitmap")

    def run(self, context: AnalysisContext) -> AnalysisContext:
        data = context.document.content
        try:
            if context.kind == "pdf":
                pages = self._pdf_engine.render_pages(data, 1, self._render_scale)
                context.bitmap = pages[0] if pages else None
            elif context.kind in IMAGE_KINDS:
                with Image.open(io.BytesIO(data)) as image:
                    context.bitmap = image.convert("RGB")
        except (PdfExtractionError, OSError, Image.DecompressionBombError) as exc:
            self._log.warning(f"Could not obtain a bitmap for {context.kind} document: {exc}")
            context.bitmap = None
        return context


class NameMatchStep(AnalysisStep):
    def __init__(self, matcher: NameMatcher) -> None:
        self._matcher = matcher

    def run(self, context: AnalysisContext) -> AnalysisContext:
        text = context.extraction.text
        context.names_found = self._matcher.extract_names(text)
        if context.expected_name:
            context.name_match = self._matcher.match(
                context.names_found, context.expected_name, text
            )
        context.name_status = NameMatcher.verification_status(
            context.name_match, context.expected_name
        )
        return context


class ImageForensicsStep(AnalysisStep):
    def __init__(self, analyzer: ImageForensicsAnalyzer) -> None:
        self._analyzer = analyzer

    def run(self, context: AnalysisContext) -> AnalysisContext:
        if context.bitmap is None:
            return context
        source = "image" if context.kind in IMAGE_KINDS else "pdf_render"
        context.image_edit = self._analyzer.analyze(
            context.bitmap, source, context.extraction.words
        )
        return context


class QrStep(AnalysisStep):
    def __init__(self, verifier: QrCodeVerifier) -> None:
        self._verifier = verifier

    def run(self, context: AnalysisContext) -> AnalysisContext:
        if context.bitmap is not None:
            context.qr = self._verifier.analyze(context.bitmap)
        elif context.kind != "unsupported":
            context.qr = QrCodeAnalysis(
                verification_details=("QR code scan could not be completed",)
            )
        return context


class AnomalyStep(AnalysisStep):
    def __init__(self, aggregator: AnomalyAggregator) -> None:
        self._aggregator = aggregator

    def run(self, context: AnalysisContext) -> AnalysisContext:
        context.anomalies = self._aggregator.aggregate(
            context.extraction.text, context.extraction.words, context.image_edit
        )
        return context


class AssembleTextAnalysisStep(AnalysisStep):
    def run(self, context: AnalysisContext) -> AnalysisContext:
        extraction = context.extraction
        context.text_analysis = TextAnalysisResult(
            extracted_text=extraction.text[:STORED_TEXT_LIMIT],
            confidence=extraction.confidence,
            text_extraction_method=extraction.method,
            names_found=tuple(context.names_found),
            name_match=context.name_match,
            name_verification_status=context.name_status,
            text_anomalies=context.anomalies.anomalies,
            font_inconsistencies=context.anomalies.font_inconsistencies,
            image_edit_analysis=context.image_edit,
            qr_code_analysis=context.qr,
        )
        return context


class ScoreStep(AnalysisStep):
    def __init__(self, engine: FraudScoringEngine) -> None:
        self._engine = engine

    def run(self, context: AnalysisContext) -> AnalysisContext:
        context.score = self._engine.score(
            context.metadata, context.text_analysis, context.kind
        )
        return context


class WarningsStep(AnalysisStep):
    """Turn the gathered signals into ordered, severity-tagged warnings."""

    def run(self, context: AnalysisContext) -> AnalysisContext:
        warnings: list[AnalysisWarning] = []
        if context.kind == "unsupported":
            warnings.append(
                AnalysisWarning("medium", "Unsupported file type for deep analysis")
            )
        if not context.declared_matches:
            warnings.append(
                AnalysisWarning(
                    "medium",
                    f"Declared media type '{context.document.media_type}' does not match "
                    f"file content ({context.kind})",
                )
            )
        if context.text_analysis is not None:
            warnings.extend(self._text_warnings(context.text_analysis))
        if context.text_failed:
            warnings.append(AnalysisWarning("medium", "Text analysis could not be completed"))
        if not context.completed:
            warnings.append(AnalysisWarning("medium", "Could not complete full fraud analysis"))
        warnings.extend(self._metadata_warnings(context))
        context.warnings = tuple(warnings)
        return context

    @staticmethod
    def _text_warnings(text: TextAnalysisResult) -> list[AnalysisWarning]:
        warnings: list[AnalysisWarning] = []
        edit = text.image_edit_analysis
        if edit is not None and edit.source == "image" and edit.likely_edited:
            warnings.append(
                AnalysisWarning(
                    "high",
                    f"IMAGE EDITING DETECTED ({edit.edit_confidence}% confidence)"
                    " - Certificate may have been manipulated",
                )
            )

        qr = text.qr_code_analysis
        if qr is not None:
            details = ", ".join(qr.verification_details)
            if qr.verification_status == "invalid":
                warnings.append(AnalysisWarning("high", f"INVALID QR CODE: {details}"))
            elif qr.verification_status == "suspicious":
                warnings.append(AnalysisWarning("medium", f"SUSPICIOUS QR CODE: {details}"))
            elif qr.verification_status == "verified":
                warnings.append(AnalysisWarning("low", f"QR CODE VERIFIED: {details}"))
            else:
                warnings.append(
                    AnalysisWarning("low", details or "No QR codes found in certificate")
                )

        status = text.name_verification_status
        if status == "mismatch":
            warnings.append(
                AnalysisWarning(
                    "high", "NAME MISMATCH: Certificate name does not match the expected name"
                )
            )
            if text.names_found:
                warnings.append(
                    AnalysisWarning(
                        "medium",
                        f"Names found in certificate: {', '.join(text.names_found)}",
                    )
                )
        elif status == "suspicious":
            warnings.append(
                AnalysisWarning(
                    "medium", f"Name match is suspicious ({text.name_match_score}% confidence)"
                )
            )
        elif status == "not_found":
            warnings.append(
                AnalysisWarning("low", "Could not extract name from certificate for verification")
            )

        for anomaly in text.text_anomalies:
            if anomaly.severity == "high":
                warnings.append(
                    AnalysisWarning("high", f"Text anomaly detected: {anomaly.description}")
                )
        if text.font_inconsistencies:
            warnings.append(
                AnalysisWarning("medium", "Font inconsistencies detected - possible text editing")
            )
        return warnings

    @staticmethod
    def _metadata_warnings(context: AnalysisContext) -> list[AnalysisWarning]:
        metadata = context.metadata
        warnings: list[AnalysisWarning] = []
        for software in (
            metadata.modification_software,
            metadata.creation_software,
            metadata.producer,
        ):
            if software and find_suspicious_software(software):
                warnings.append(
                    AnalysisWarning(
                        "high", f"Edited with {software} - commonly used for document manipulation"
                    )
                )
                break

        if metadata.multiple_modifications:
            warnings.append(AnalysisWarning("medium", "Document has been modified multiple times"))
        if metadata.metadata_stripped:
            warnings.append(
                AnalysisWarning(
                    "medium",
                    "Document metadata has been stripped - "
                    "possible attempt to hide editing history",
                )
            )
        if metadata.has_layers:
            warnings.append(
                AnalysisWarning(
                    "medium",
                    "Document contains layers - may have been assembled from multiple sources",
                )
            )
        if context.kind != "unsupported" and not metadata.has_digital_signature:
            warnings.append(AnalysisWarning("low", "No digital signature present"))
        if (
            metadata.creation_date is not None
            and metadata.modification_date is not None
            and metadata.modification_date > metadata.creation_date
        ):
            warnings.append(AnalysisWarning("low", "Document was modified after initial creation"))
        return warnings
