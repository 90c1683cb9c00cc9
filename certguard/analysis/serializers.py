from dataclasses import asdict
from datetime import datetime
from typing import Any

from certguard.analysis.models import (
    Anomaly,
    FraudAnalysisResult,
    MetadataIndicators,
    QrCodeAnalysis,
    TextAnalysisResult,
)

# Anomaly types persisted with the flattened indicators; pixel findings stay
# in the text_analysis sub-object only.
INDICATOR_ANOMALY_TYPES = frozenset(
    {"spacing", "font", "alignment", "case", "character", "editing_artifact"}
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _anomaly_to_dict(anomaly: Anomaly) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": anomaly.type,
        "description": anomaly.description,
        "severity": anomaly.severity,
    }
    if anomaly.location is not None:
        payload["location"] = anomaly.location
    return payload


def _qr_to_dict(qr: QrCodeAnalysis) -> dict[str, Any]:
    return {
        "qr_codes_found": qr.qr_codes_found,
        "qr_codes": [
            {
                "data": code.data,
                "format": code.format,
                "position": dict(zip(("x", "y", "width", "height"), code.position)),
                "is_valid": code.is_valid,
                "validation_result": code.validation_result,
            }
            for code in qr.qr_codes
        ],
        "verification_status": qr.verification_status,
        "verification_details": list(qr.verification_details),
        "inconclusive": qr.inconclusive,
    }


def metadata_to_dict(metadata: MetadataIndicators) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "creation_software": metadata.creation_software,
        "modification_software": metadata.modification_software,
        "producer": metadata.producer,
        "author": metadata.author,
        "creation_date": _iso(metadata.creation_date),
        "modification_date": _iso(metadata.modification_date),
        "has_digital_signature": metadata.has_digital_signature,
        "suspicious_indicators": list(metadata.suspicious_indicators),
        "metadata_stripped": metadata.metadata_stripped,
        "multiple_modifications": metadata.multiple_modifications,
    }
    if metadata.pdf is not None:
        payload.update(
            pdf_version=metadata.pdf.pdf_version,
            page_count=metadata.pdf.page_count,
            is_scanned=metadata.pdf.is_scanned,
            has_layers=metadata.pdf.has_layers,
        )
    if metadata.image is not None:
        payload.update(
            has_exif=metadata.image.has_exif,
            raw_exif_preview=metadata.image.raw_preview,
        )
    return payload


def text_analysis_to_dict(text: TextAnalysisResult) -> dict[str, Any]:
    return {
        "extracted_text": text.extracted_text,
        "confidence": text.confidence,
        "names_found": list(text.names_found),
        "name_match": asdict(text.name_match) if text.name_match is not None else None,
        "name_match_score": text.name_match_score,
        "name_verification_status": text.name_verification_status,
        "text_anomalies": [_anomaly_to_dict(anomaly) for anomaly in text.text_anomalies],
        "font_inconsistencies": text.font_inconsistencies,
        "text_extraction_method": text.text_extraction_method,
        "image_edit_analysis": (
            asdict(text.image_edit_analysis) if text.image_edit_analysis is not None else None
        ),
        "qr_code_analysis": (
            _qr_to_dict(text.qr_code_analysis) if text.qr_code_analysis is not None else None
        ),
    }


def fraud_indicators_to_dict(result: FraudAnalysisResult) -> dict[str, Any]:
    """Flattened indicator mapping as stored alongside a submission."""
    payload = metadata_to_dict(result.indicators.metadata)
    text = result.indicators.text
    if text is None:
        return payload

    payload.update(
        extracted_text=text.extracted_text,
        text_confidence=text.confidence,
        names_found=list(text.names_found),
        name_match_score=text.name_match_score,
        name_verification_status=text.name_verification_status,
        text_anomalies=[
            _anomaly_to_dict(anomaly)
            for anomaly in text.text_anomalies
            if anomaly.type in INDICATOR_ANOMALY_TYPES
        ],
        font_inconsistencies=text.font_inconsistencies,
        text_extraction_method=text.text_extraction_method,
    )
    edit = text.image_edit_analysis
    if edit is not None:
        payload.update(
            image_edit_detected=edit.likely_edited,
            image_edit_confidence=edit.edit_confidence,
            image_suspicious_regions=list(edit.suspicious_regions),
        )
    qr = text.qr_code_analysis
    if qr is not None:
        payload.update(
            qr_codes_found=qr.qr_codes_found,
            qr_codes_verified=qr.verification_status == "verified",
            qr_code_status=qr.verification_status,
        )
    return payload


def analysis_to_dict(result: FraudAnalysisResult) -> dict[str, Any]:
    """Render an analysis result as a JSON-ready mapping."""
    text = result.indicators.text
    return {
        "fraud_indicators": fraud_indicators_to_dict(result),
        "fraud_score": result.fraud_score,
        "risk_level": result.risk_level,
        "warnings": [
            {"severity": warning.severity, "message": warning.message}
            for warning in result.warnings
        ],
        "analysis_completed": result.analysis_completed,
        "text_analysis": text_analysis_to_dict(text) if text is not None else None,
    }
