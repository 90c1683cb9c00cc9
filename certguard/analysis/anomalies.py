import re
from collections.abc import Sequence
from dataclasses import dataclass

from certguard.analysis.models import Anomaly, ImageEditAnalysis
from certguard.ocr.models import OcrWord

SPACING_PATTERN = re.compile(r"\s{3,}")
REPEATED_CHAR_PATTERN = re.compile(r"(.)\1{4,}")
MIXED_CASE_PATTERN = re.compile(r"\b[A-Z][a-z]+[A-Z]+[a-z]*\b")
NON_ASCII_PATTERN = re.compile(r"[^\x00-\x7F]")

MIXED_CASE_LIMIT = 2
NON_ASCII_LIMIT = 5
LOW_CONFIDENCE = 60.0
LOW_CONFIDENCE_SHARE = 0.3
CONFIDENCE_DROP = 30.0
SUSPICIOUS_WORDS_SHOWN = 5
COMPRESSION_ANOMALY = 0.2
COMPRESSION_ANOMALY_HIGH = 0.35


@dataclass(frozen=True)
class AnomalyReport:
    anomalies: tuple[Anomaly, ...] = ()
    font_inconsistencies: bool = False


def detect_text_anomalies(text: str, words: Sequence[OcrWord] = ()) -> list[Anomaly]:
    """Typographic irregularities in recovered text and its OCR word data."""
    anomalies: list[Anomaly] = []

    spacing = SPACING_PATTERN.findall(text)
    if spacing:
        anomalies.append(
            Anomaly(
                type="spacing",
                description=(
                    f"Unusual spacing detected ({len(spacing)} instances)"
                    " - may indicate text insertion"
                ),
                severity="medium",
            )
        )

    if REPEATED_CHAR_PATTERN.search(text):
        anomalies.append(
            Anomaly(
                type="character",
                description="Repeated characters detected - possible text covering or fill",
                severity="medium",
            )
        )

    mixed_case = MIXED_CASE_PATTERN.findall(text)
    if len(mixed_case) > MIXED_CASE_LIMIT:
        anomalies.append(
            Anomaly(
                type="case",
                description=f"Inconsistent capitalization detected in {len(mixed_case)} words",
                severity="low",
            )
        )

    if words:
        average = sum(word.confidence for word in words) / len(words)
        dropped = [
            word.text
            for word in words
            if word.confidence < average - CONFIDENCE_DROP and len(word.text) > 2
        ]
        if dropped:
            anomalies.append(
                Anomaly(
                    type="editing_artifact",
                    description=(
                        f"{len(dropped)} word(s) have significantly lower OCR confidence"
                        " - possible editing artifacts"
                    ),
                    severity="high",
                    location=", ".join(dropped),
                )
            )

        low = sum(1 for word in words if word.confidence < LOW_CONFIDENCE)
        if low > len(words) * LOW_CONFIDENCE_SHARE:
            anomalies.append(
                Anomaly(
                    type="font",
                    description=(
                        "Significant portion of text has low recognition confidence"
                        " - possible font inconsistency"
                    ),
                    severity="medium",
                )
            )

    non_ascii = NON_ASCII_PATTERN.findall(text)
    if len(non_ascii) > NON_ASCII_LIMIT:
        anomalies.append(
            Anomaly(
                type="character",
                description=(
                    f"Non-standard characters detected ({len(non_ascii)})"
                    " - possible character substitution"
                ),
                severity="high",
            )
        )
    return anomalies


def pixel_anomalies(edit: ImageEditAnalysis) -> list[Anomaly]:
    """Translate pixel-forensics signals into anomalies."""
    anomalies: list[Anomaly] = []
    if edit.suspicious_words:
        shown = ", ".join(edit.suspicious_words[:SUSPICIOUS_WORDS_SHOWN])
        anomalies.append(
            Anomaly(
                type="pixel_anomaly",
                description=f"Words with inconsistent OCR quality: {shown}",
                severity="high",
                location=", ".join(edit.suspicious_words),
            )
        )
    if edit.likely_edited:
        anomalies.append(
            Anomaly(
                type="pixel_anomaly",
                description=(
                    f"Image appears edited ({edit.edit_confidence}% confidence)"
                    " - possible certificate manipulation"
                ),
                severity="high",
            )
        )
    if edit.compression_quality_variance > COMPRESSION_ANOMALY:
        anomalies.append(
            Anomaly(
                type="compression_artifact",
                description=(
                    "Inconsistent compression quality detected"
                    " - parts of image may have been edited and re-saved"
                ),
                severity=(
                    "high"
                    if edit.compression_quality_variance > COMPRESSION_ANOMALY_HIGH
                    else "medium"
                ),
            )
        )
    if edit.edge_anomalies:
        anomalies.append(
            Anomaly(
                type="pixel_anomaly",
                description=(
                    "Rectangular edge patterns detected - may indicate pasted or edited content"
                ),
                severity="high",
            )
        )
    if edit.color_inconsistencies:
        anomalies.append(
            Anomaly(
                type="pixel_anomaly",
                description="Color inconsistencies detected across image regions",
                severity="medium",
            )
        )
    return anomalies


class AnomalyAggregator:
    """Collects severity-tagged anomalies from the text and pixel analyzers.

    Pixel findings are only folded in for raster uploads; a rendered PDF
    page keeps its raw signals but contributes no anomalies.
    """

    def aggregate(
        self,
        text: str,
        words: Sequence[OcrWord] = (),
        image_edit: ImageEditAnalysis | None = None,
    ) -> AnomalyReport:
        anomalies = detect_text_anomalies(text, words)
        if image_edit is not None and image_edit.source == "image":
            anomalies.extend(pixel_anomalies(image_edit))

        font_inconsistencies = any(
            anomaly.type == "font"
            or (anomaly.type == "editing_artifact" and anomaly.severity == "high")
            for anomaly in anomalies
        )
        return AnomalyReport(
            anomalies=tuple(anomalies), font_inconsistencies=font_inconsistencies
        )
