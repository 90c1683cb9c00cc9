from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

ValidationStatus = Literal["valid", "fake", "tampered"]
ApprovalStatus = Literal["pending", "approved", "rejected"]


@dataclass(frozen=True)
class VerifiedCertificateRecord:
    """Represents a row from the verified_certificates registry."""

    certificate_code: str
    issuing_organization: str
    file_hash: str
    metadata: dict[str, Any] | None = None
    added_by: str | None = None
    id: str | None = None
    created_at: datetime | None = None


@dataclass
class SubmissionRecord:
    """Represents a row from the certificate_submissions table."""

    student_id: str
    certificate_code: str
    title: str
    issuing_organization: str
    issue_date: date
    file_url: str
    file_hash: str
    validation_status: ValidationStatus
    fraud_score: int
    fraud_indicators: dict[str, Any] = field(default_factory=dict)
    analysis_completed: bool = True
    description: str | None = None
    approval_status: ApprovalStatus = "pending"
    id: str | None = None
    created_at: datetime | None = None


@dataclass
class ValidationLogRecord:
    """Represents a row from the certificate_validation_logs table."""

    certificate_code: str
    validation_status: ValidationStatus
    submission_id: str | None = None
    uploaded_file_hash: str | None = None
    validated_by: str | None = None
    user_agent: str | None = None
    fraud_score: int | None = None
    analysis: dict[str, Any] | None = None


@dataclass(frozen=True)
class CertificateStats:
    """Aggregate submission counters; recent covers the last seven days."""

    total_submissions: int = 0
    pending_submissions: int = 0
    approved_submissions: int = 0
    rejected_submissions: int = 0
    valid_certificates: int = 0
    fake_certificates: int = 0
    tampered_certificates: int = 0
    recent_submissions: int = 0
