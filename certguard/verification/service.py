from collections.abc import Callable
from datetime import datetime, timezone

from certguard.database.models import ValidationStatus
from certguard.database.repositories.verified_certificates_repository import (
    VerifiedCertificatesRepository,
)
from certguard.documents.hashing import content_hash
from certguard.logging.logger import ComponentLog, Log
from certguard.verification.models import CertificateSummary, VerificationResult

FILE_MATCH_MESSAGE = "This certificate is authentic and verified. The file matches our records."
FILE_UNKNOWN_MESSAGE = (
    "This certificate file is not recognized. "
    "It may be fake or not yet registered in our system."
)
CODE_UNKNOWN_MESSAGE = "This certificate code does not exist in our verified database."
CODE_KNOWN_MESSAGE = "This certificate code is registered in our verified database."
TAMPERED_MESSAGE = (
    "Warning: This certificate code exists but the file has been modified or altered."
)

COMBINED_MESSAGES: dict[ValidationStatus, str] = {
    "valid": FILE_MATCH_MESSAGE,
    "tampered": TAMPERED_MESSAGE,
    "fake": CODE_UNKNOWN_MESSAGE,
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VerificationService:
    """Public registry lookups by file, by code, or by both.

    A registry miss is an answer ("fake"), not an error. Only the combined
    code + file check can report "tampered".
    """

    def __init__(
        self,
        registry: VerifiedCertificatesRepository,
        clock: Callable[[], datetime] = _utc_now,
        log: ComponentLog | None = None,
    ) -> None:
        self._registry = registry
        self._clock = clock
        self._log = log or Log.bind("verification")

    def verify_by_file(self, data: bytes) -> VerificationResult:
        file_hash = content_hash(data)
        record = self._registry.find_by_hash(file_hash)
        if record is None:
            self._log.info(f"No registry entry for hash {file_hash[:12]}...")
            return VerificationResult("fake", FILE_UNKNOWN_MESSAGE, self._clock())
        self._log.info(f"File hash matches registered certificate {record.certificate_code}")
        return VerificationResult(
            "valid",
            FILE_MATCH_MESSAGE,
            self._clock(),
            CertificateSummary.from_record(record),
        )

    def verify_by_code(self, certificate_code: str) -> VerificationResult:
        record = self._registry.find_by_code(certificate_code)
        if record is None:
            self._log.info(f"Certificate code {certificate_code} is not registered")
            return VerificationResult("fake", CODE_UNKNOWN_MESSAGE, self._clock())
        return VerificationResult(
            "valid",
            CODE_KNOWN_MESSAGE,
            self._clock(),
            CertificateSummary.from_record(record),
        )

    def verify_by_code_and_file(self, certificate_code: str, data: bytes) -> VerificationResult:
        status = self._registry.validate_submission(certificate_code, content_hash(data))
        record = self._registry.find_by_code(certificate_code)
        self._log.info(f"Combined check for {certificate_code}: {status}")
        return VerificationResult(
            status,
            COMBINED_MESSAGES[status],
            self._clock(),
            CertificateSummary.from_record(record) if record is not None else None,
        )
