from datetime import datetime, timezone
from unittest.mock import MagicMock

from certguard.database.models import VerifiedCertificateRecord
from certguard.database.repositories.verified_certificates_repository import (
    VerifiedCertificatesRepository,
)
from certguard.documents.hashing import content_hash
from certguard.logging.logger import ComponentLog
from certguard.verification.service import (
    CODE_KNOWN_MESSAGE,
    CODE_UNKNOWN_MESSAGE,
    FILE_MATCH_MESSAGE,
    FILE_UNKNOWN_MESSAGE,
    TAMPERED_MESSAGE,
    VerificationService,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
FILE = b"%PDF-1.4 genuine certificate"


def _record() -> VerifiedCertificateRecord:
    return VerifiedCertificateRecord(
        id="1",
        certificate_code="CERT-2024-001",
        issuing_organization="Example Institute",
        file_hash=content_hash(FILE),
    )


def _service() -> tuple[VerificationService, MagicMock]:
    registry = MagicMock(spec=VerifiedCertificatesRepository)
    service = VerificationService(registry, clock=lambda: NOW, log=MagicMock(spec=ComponentLog))
    return service, registry


class TestVerifyByFile:
    def test_registered_file_is_valid(self) -> None:
        service, registry = _service()
        registry.find_by_hash.return_value = _record()

        result = service.verify_by_file(FILE)

        registry.find_by_hash.assert_called_once_with(content_hash(FILE))
        assert result.status == "valid"
        assert result.message == FILE_MATCH_MESSAGE
        assert result.certificate is not None
        assert result.certificate.certificate_code == "CERT-2024-001"

    def test_unknown_file_is_fake(self) -> None:
        service, registry = _service()
        registry.find_by_hash.return_value = None

        result = service.verify_by_file(b"forged")

        assert result.status == "fake"
        assert result.message == FILE_UNKNOWN_MESSAGE
        assert result.certificate is None


class TestVerifyByCode:
    def test_registered_code_is_valid(self) -> None:
        service, registry = _service()
        registry.find_by_code.return_value = _record()

        result = service.verify_by_code("CERT-2024-001")

        assert result.status == "valid"
        assert result.message == CODE_KNOWN_MESSAGE

    def test_unknown_code_is_fake(self) -> None:
        service, registry = _service()
        registry.find_by_code.return_value = None

        result = service.verify_by_code("CERT-0000")

        assert result.status == "fake"
        assert result.message == CODE_UNKNOWN_MESSAGE


class TestVerifyByCodeAndFile:
    def test_matching_hash_is_valid(self) -> None:
        service, registry = _service()
        registry.validate_submission.return_value = "valid"
        registry.find_by_code.return_value = _record()

        result = service.verify_by_code_and_file("CERT-2024-001", FILE)

        registry.validate_submission.assert_called_once_with("CERT-2024-001", content_hash(FILE))
        assert result.status == "valid"
        assert result.message == FILE_MATCH_MESSAGE
        assert result.certificate is not None

    def test_different_hash_is_tampered(self) -> None:
        service, registry = _service()
        registry.validate_submission.return_value = "tampered"
        registry.find_by_code.return_value = _record()

        result = service.verify_by_code_and_file("CERT-2024-001", b"edited copy")

        assert result.status == "tampered"
        assert result.message == TAMPERED_MESSAGE

    def test_unknown_code_is_fake(self) -> None:
        service, registry = _service()
        registry.validate_submission.return_value = "fake"
        registry.find_by_code.return_value = None

        result = service.verify_by_code_and_file("CERT-0000", FILE)

        assert result.status == "fake"
        assert result.message == CODE_UNKNOWN_MESSAGE
        assert result.certificate is None


class TestVerificationResultToDict:
    def test_includes_certificate_summary(self) -> None:
        service, registry = _service()
        registry.find_by_code.return_value = _record()

        payload = service.verify_by_code("CERT-2024-001").to_dict()

        assert payload == {
            "status": "valid",
            "message": CODE_KNOWN_MESSAGE,
            "verified_at": "2025-06-01T12:00:00+00:00",
            "certificate": {
                "certificate_code": "CERT-2024-001",
                "issuing_organization": "Example Institute",
            },
        }

    def test_omits_missing_certificate(self) -> None:
        service, registry = _service()
        registry.find_by_hash.return_value = None

        assert "certificate" not in service.verify_by_file(b"x").to_dict()
