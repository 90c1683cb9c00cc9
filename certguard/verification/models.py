from dataclasses import dataclass
from datetime import datetime
from typing import Any

from certguard.database.models import ValidationStatus, VerifiedCertificateRecord


@dataclass(frozen=True)
class CertificateSummary:
    certificate_code: str
    issuing_organization: str

    @classmethod
    def from_record(cls, record: VerifiedCertificateRecord) -> "CertificateSummary":
        return cls(
            certificate_code=record.certificate_code,
            issuing_organization=record.issuing_organization,
        )


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a public registry lookup."""

    status: ValidationStatus
    message: str
    verified_at: datetime
    certificate: CertificateSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": self.status,
            "message": self.message,
            "verified_at": self.verified_at.isoformat(),
        }
        if self.certificate is not None:
            payload["certificate"] = {
                "certificate_code": self.certificate.certificate_code,
                "issuing_organization": self.certificate.issuing_organization,
            }
        return payload
