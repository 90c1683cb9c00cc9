from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from certguard.ocr.models import OcrWord

Severity = Literal["low", "medium", "high"]
ExtractionMethod = Literal["native", "ocr", "hybrid"]
MatchType = Literal["exact", "partial", "fuzzy", "no_match"]
NameVerificationStatus = Literal["verified", "suspicious", "mismatch", "not_found"]
QrStatus = Literal["verified", "invalid", "suspicious", "not_found"]
RiskLevel = Literal["low", "moderate", "elevated", "high", "critical"]
ImageSource = Literal["image", "pdf_render"]


@dataclass(frozen=True)
class Anomaly:
    """Discrete, severity-tagged forensic observation."""

    type: str
    description: str
    severity: Severity
    location: str | None = None


@dataclass(frozen=True)
class ExtractionResult:
    text: str = ""
    confidence: float = 0.0
    words: tuple[OcrWord, ...] = field(default_factory=tuple)
    method: ExtractionMethod = "ocr"

    @classmethod
    def empty(cls) -> "ExtractionResult":
        """Zero-confidence result returned when every extraction stage failed."""
        return cls()


@dataclass(frozen=True)
class NameMatchResult:
    matched: bool
    confidence: int
    extracted_name: str
    expected_name: str
    match_type: MatchType
    discrepancies: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ImageEditAnalysis:
    """Pixel-level manipulation signals for one bitmap."""

    source: ImageSource
    likely_edited: bool = False
    edit_confidence: int = 0
    suspicious_regions: tuple[str, ...] = field(default_factory=tuple)
    compression_quality_variance: float = 0.0
    color_inconsistencies: bool = False
    edge_anomalies: bool = False
    ocr_confidence_variance: float = 0.0
    suspicious_words: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class QrCodeData:
    data: str
    format: str
    position: tuple[int, int, int, int]
    # None means the payload could not be confirmed either way.
    is_valid: bool | None
    validation_result: str


@dataclass(frozen=True)
class QrCodeAnalysis:
    qr_codes_found: int = 0
    qr_codes: tuple[QrCodeData, ...] = field(default_factory=tuple)
    verification_status: QrStatus = "not_found"
    verification_details: tuple[str, ...] = field(default_factory=tuple)
    inconclusive: bool = False

    @property
    def qr_codes_verified(self) -> int:
        return sum(1 for code in self.qr_codes if code.is_valid)

    @property
    def all_invalid(self) -> bool:
        return self.qr_codes_found > 0 and all(
            code.is_valid is False for code in self.qr_codes
        )


@dataclass(frozen=True)
class PdfStructure:
    """PDF-only metadata fields."""

    pdf_version: str | None = None
    page_count: int | None = None
    is_scanned: bool = False
    has_layers: bool = False


@dataclass(frozen=True)
class ImageExif:
    """Image-only metadata fields."""

    has_exif: bool = False
    raw_preview: str = ""


@dataclass(frozen=True)
class MetadataIndicators:
    """Structural and metadata signals of one document.

    Exactly one of ``pdf`` / ``image`` is set for a supported document;
    both stay None when the bytes could not be classified.
    """

    creation_software: str | None = None
    modification_software: str | None = None
    producer: str | None = None
    author: str | None = None
    creation_date: datetime | None = None
    modification_date: datetime | None = None
    has_digital_signature: bool = False
    metadata_stripped: bool = False
    multiple_modifications: bool = False
    suspicious_indicators: tuple[str, ...] = field(default_factory=tuple)
    pdf: PdfStructure | None = None
    image: ImageExif | None = None

    @property
    def has_layers(self) -> bool:
        return self.pdf is not None and self.pdf.has_layers

    @property
    def is_scanned(self) -> bool:
        return self.pdf is not None and self.pdf.is_scanned


@dataclass(frozen=True)
class TextAnalysisResult:
    extracted_text: str
    confidence: float
    text_extraction_method: ExtractionMethod
    names_found: tuple[str, ...] = field(default_factory=tuple)
    name_match: NameMatchResult | None = None
    name_verification_status: NameVerificationStatus = "not_found"
    text_anomalies: tuple[Anomaly, ...] = field(default_factory=tuple)
    font_inconsistencies: bool = False
    image_edit_analysis: ImageEditAnalysis | None = None
    qr_code_analysis: QrCodeAnalysis | None = None

    @property
    def name_match_score(self) -> int:
        return self.name_match.confidence if self.name_match is not None else 0


@dataclass(frozen=True)
class FraudIndicators:
    """All raw signals gathered for a document."""

    metadata: MetadataIndicators
    text: TextAnalysisResult | None = None


@dataclass(frozen=True)
class AnalysisWarning:
    severity: Severity
    message: str


@dataclass(frozen=True)
class FraudAnalysisResult:
    indicators: FraudIndicators
    fraud_score: int
    risk_level: RiskLevel
    warnings: tuple[AnalysisWarning, ...] = field(default_factory=tuple)
    analysis_completed: bool = True
    base_score: int = 0
    text_score: int = 0
