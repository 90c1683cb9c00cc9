import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from certguard.analysis.fingerprints import find_suspicious_software, is_legitimate_producer
from certguard.analysis.models import (
    MetadataIndicators,
    QrCodeAnalysis,
    RiskLevel,
    TextAnalysisResult,
)
from certguard.documents.models import IMAGE_KINDS, DocumentKind
from certguard.logging.logger import ComponentLog, Log

MAX_SCORE = 100
MAX_TEXT_SCORE = 50
SIGNATURE_BONUS = 20

RISK_BANDS: tuple[tuple[int, RiskLevel], ...] = (
    (20, "low"),
    (40, "moderate"),
    (60, "elevated"),
    (80, "high"),
)

SEVERITY_POINTS = {"high": 8, "medium": 4, "low": 2}
QR_STATUS_POINTS = {"verified": -10, "invalid": 25, "suspicious": 15, "not_found": 0}

NON_PRINTABLE_PATTERNS = (
    re.compile(r"[^\x20-\x7E\n\r\t]"),
    re.compile(r"\x00"),
    re.compile("\ufffd"),
)
LF_PATTERN = re.compile(r"\n(?!\r)")
FONT_DIRECTIVE_PATTERN = re.compile(r"/F\d+")
RENDER_MODE_PATTERN = re.compile(r"\bTr\b")
CERTIFICATE_PHRASES = (
    "this is to certify",
    "certificate of",
    "awarded to",
    "presented to",
    "successfully completed",
)


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, comparable with parsed metadata dates."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def risk_level(score: int) -> RiskLevel:
    for upper, level in RISK_BANDS:
        if score <= upper:
            return level
    return "critical"


def indicator_band(count: int) -> int:
    """Points for the raw suspicious-indicator count; a single stray finding barely counts."""
    if count >= 3:
        return min(count * 2, 15)
    if count == 2:
        return 3
    if count == 1:
        return 1
    return 0


@dataclass(frozen=True)
class ScoreBreakdown:
    base_score: int
    text_score: int
    fraud_score: int
    risk_level: RiskLevel


class FraudScoringEngine:
    """Combines metadata and text/image/QR signals into a bounded fraud score.

    The base component is clamped to [0, 100], the text component to
    [0, 50], and their sum to [0, 100]. Pixel-forensics penalties apply to
    raster uploads only; PDF renders are analyzed but never scored.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        log: ComponentLog | None = None,
    ) -> None:
        self._clock = clock
        self._log = log or Log.bind("scoring")

    def score(
        self,
        metadata: MetadataIndicators,
        text: TextAnalysisResult | None,
        kind: DocumentKind,
    ) -> ScoreBreakdown:
        base = self.base_score(metadata)
        text_score = self.text_score(text, kind) if text is not None else 0
        total = clamp(base + text_score, 0, MAX_SCORE)
        level = risk_level(total)
        self._log.info(f"Scored document: base={base} text={text_score} total={total} ({level})")
        return ScoreBreakdown(
            base_score=base, text_score=text_score, fraud_score=total, risk_level=level
        )

    def base_score(self, metadata: MetadataIndicators) -> int:
        score = 0
        software = "".join(
            (value or "").lower()
            for value in (
                metadata.creation_software,
                metadata.modification_software,
                metadata.producer,
            )
        )
        suspicious_software = find_suspicious_software(software)
        if suspicious_software is not None:
            score += 25
            self._log.debug(f"Suspicious software ({suspicious_software}): +25")

        if metadata.producer and not is_legitimate_producer(software):
            score += 8 if suspicious_software is not None else 2

        creation, modification = metadata.creation_date, metadata.modification_date
        if creation is not None and modification is not None:
            if modification - creation > timedelta(hours=24):
                score += 15
        if metadata.multiple_modifications:
            score += 20
        if metadata.metadata_stripped:
            score += 15
        if metadata.has_layers:
            score += 10
        if creation is not None and modification is not None:
            score += self._timing_points(creation, modification)

        if metadata.author is not None:
            author = metadata.author.strip().lower()
            if not author or "unknown" in author or "anonymous" in author:
                score += 10

        score += indicator_band(len(metadata.suspicious_indicators))

        if metadata.has_digital_signature:
            score = max(0, score - SIGNATURE_BONUS)
        return clamp(score, 0, MAX_SCORE)

    def _timing_points(self, creation: datetime, modification: datetime) -> int:
        now = self._clock()
        points = 0
        if creation > now + timedelta(hours=1):
            points += 30
        if modification > now + timedelta(hours=1):
            points += 25

        # TODO: validate the recency nudges against labelled submissions.
        if creation > now - timedelta(hours=1):
            points += 2
        elif creation > now - timedelta(days=1):
            points += 1
        if modification > now - timedelta(hours=1):
            points += 3
        elif modification > now - timedelta(days=1):
            points += 2
        elif modification > now - timedelta(weeks=1):
            points += 1
        return points

    @staticmethod
    def qr_component(qr: QrCodeAnalysis) -> int:
        """Contribution of the QR analysis; a missing QR code is neutral."""
        points = 0
        if not (qr.verification_status == "suspicious" and qr.inconclusive):
            points += QR_STATUS_POINTS[qr.verification_status]
        if qr.all_invalid:
            points += 10
        return points

    def text_score(self, text: TextAnalysisResult, kind: DocumentKind) -> int:
        score = 0
        if text.qr_code_analysis is not None:
            score += self.qr_component(text.qr_code_analysis)

        score += sum(SEVERITY_POINTS[anomaly.severity] for anomaly in text.text_anomalies)
        if text.font_inconsistencies:
            score += 5
        if 0 < text.confidence < 50:
            score += 3

        edit = text.image_edit_analysis
        if kind in IMAGE_KINDS and edit is not None:
            if edit.likely_edited:
                score += min(10, math.floor(edit.edit_confidence * 0.1))
            if edit.compression_quality_variance > 0.7:
                score += 5
            elif edit.compression_quality_variance > 0.4:
                score += 3
            if edit.ocr_confidence_variance > 0.8:
                score += 5
            elif edit.ocr_confidence_variance > 0.5:
                score += 3

        if kind == "pdf" and text.extracted_text:
            score += self._pdf_text_points(text.extracted_text, text.confidence)
        return clamp(score, 0, MAX_TEXT_SCORE)

    @staticmethod
    def _pdf_text_points(text: str, confidence: float) -> int:
        points = 0
        suspicious_chars = sum(len(pattern.findall(text)) for pattern in NON_PRINTABLE_PATTERNS)
        if suspicious_chars > 10:
            points += 3
        elif suspicious_chars > 5:
            points += 2

        crlf = text.count("\r\n")
        lf = len(LF_PATTERN.findall(text))
        if crlf > 0 and lf > 0 and abs(crlf - lf) > 5:
            points += 2

        if len(text) < 100:
            points += 3

        lowered = text.lower()
        if any(phrase in lowered for phrase in CERTIFICATE_PHRASES) and confidence < 60:
            points += 4

        words = text.split()
        if words:
            average_length = sum(len(word) for word in words) / len(words)
            if average_length > 20 and len(words) > 20:
                points += 3
            seen: set[str] = set()
            repeated = 0
            for word in words:
                if word in seen and len(word) > 4:
                    repeated += 1
                seen.add(word)
            if repeated > len(words) * 0.15:
                points += 4

        if len(FONT_DIRECTIVE_PATTERN.findall(text)) > 15:
            points += 2
        if len(RENDER_MODE_PATTERN.findall(text)) > 10:
            points += 2
        return points
