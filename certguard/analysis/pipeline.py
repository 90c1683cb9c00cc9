from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from PIL import Image

from certguard.analysis.anomalies import AnomalyReport
from certguard.analysis.models import (
    AnalysisWarning,
    ExtractionResult,
    ImageEditAnalysis,
    MetadataIndicators,
    NameMatchResult,
    NameVerificationStatus,
    QrCodeAnalysis,
    TextAnalysisResult,
)
from certguard.analysis.scoring import ScoreBreakdown
from certguard.documents.models import DocumentKind, RawDocument


@dataclass(slots=True)
class AnalysisContext:
    """Per-call working state of one document analysis; never shared."""

    document: RawDocument
    expected_name: str | None = None
    kind: DocumentKind = "unsupported"
    declared_matches: bool = True
    metadata: MetadataIndicators = field(default_factory=MetadataIndicators)
    extraction: ExtractionResult = field(default_factory=ExtractionResult.empty)
    bitmap: Image.Image | None = None
    names_found: list[str] = field(default_factory=list)
    name_match: NameMatchResult | None = None
    name_status: NameVerificationStatus = "not_found"
    image_edit: ImageEditAnalysis | None = None
    qr: QrCodeAnalysis | None = None
    anomalies: AnomalyReport = field(default_factory=AnomalyReport)
    text_analysis: TextAnalysisResult | None = None
    text_failed: bool = False
    completed: bool = True
    score: ScoreBreakdown | None = None
    warnings: tuple[AnalysisWarning, ...] = ()


class AnalysisStep(ABC):
    @abstractmethod
    def run(self, context: AnalysisContext) -> AnalysisContext:
        raise NotImplementedError
