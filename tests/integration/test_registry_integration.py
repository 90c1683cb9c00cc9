from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import psycopg
import pytest

from certguard.analysis.analyzer import FraudAnalyzer
from certguard.analysis.models import FraudAnalysisResult, FraudIndicators, MetadataIndicators
from certguard.database.exceptions import DuplicateCertificateError
from certguard.database.models import (
    SubmissionRecord,
    ValidationLogRecord,
    VerifiedCertificateRecord,
)
from certguard.database.repositories.submissions_repository import SubmissionsRepository
from certguard.database.repositories.validation_logs_repository import ValidationLogsRepository
from certguard.database.repositories.verified_certificates_repository import (
    VerifiedCertificatesRepository,
)
from certguard.documents.hashing import content_hash
from certguard.documents.models import RawDocument
from certguard.storage.local_store import LocalObjectStore
from certguard.submission.models import SubmissionRequest
from certguard.submission.processor import SubmissionProcessor
from certguard.submission.steps import (
    AnalyzeStep,
    HashStep,
    InsertSubmissionStep,
    ResolveStatusStep,
    RollbackUploadStep,
    UploadStep,
    WriteValidationLogStep,
)
from certguard.verification.service import VerificationService

GENUINE = b"%PDF-1.4 genuine registry certificate"


def _register(code: str, cleanup: list[tuple[str, str]]) -> VerifiedCertificateRecord:
    cleanup.append(("verified_certificates", code))
    return VerifiedCertificatesRepository().add(
        VerifiedCertificateRecord(
            certificate_code=code,
            issuing_organization="Example Institute",
            file_hash=content_hash(GENUINE),
            metadata={"course": "Python"},
            added_by="integration",
        )
    )


@pytest.mark.integration
class TestVerifiedCertificatesRepositoryIntegration:
    def test_add_then_find(self, certificate_code: str, integration_cleanup) -> None:
        stored = _register(certificate_code, integration_cleanup)
        repo = VerifiedCertificatesRepository()

        assert stored.id is not None
        assert stored.created_at is not None
        by_code = repo.find_by_code(certificate_code)
        assert by_code is not None
        assert by_code.metadata == {"course": "Python"}
        by_hash = repo.find_by_hash(content_hash(GENUINE))
        assert by_hash is not None
        assert by_hash.file_hash == content_hash(GENUINE)

    def test_duplicate_code_is_rejected(self, certificate_code: str, integration_cleanup) -> None:
        _register(certificate_code, integration_cleanup)

        with pytest.raises(DuplicateCertificateError):
            _register(certificate_code, integration_cleanup)

    def test_validate_submission_verdicts(
        self, certificate_code: str, integration_cleanup
    ) -> None:
        _register(certificate_code, integration_cleanup)
        repo = VerifiedCertificatesRepository()

        assert repo.validate_submission(certificate_code, content_hash(GENUINE)) == "valid"
        assert repo.validate_submission(certificate_code, content_hash(b"edited")) == "tampered"
        assert repo.validate_submission(f"{certificate_code}-X", content_hash(GENUINE)) == "fake"

    def test_verification_service_against_registry(
        self, certificate_code: str, integration_cleanup
    ) -> None:
        _register(certificate_code, integration_cleanup)
        service = VerificationService(VerifiedCertificatesRepository())

        assert service.verify_by_code_and_file(certificate_code, GENUINE).status == "valid"
        assert service.verify_by_code_and_file(certificate_code, b"copy").status == "tampered"


@pytest.mark.integration
class TestSubmissionsIntegration:
    def test_insert_updates_stats_and_logs(
        self,
        certificate_code: str,
        integration_cleanup,
        db_conn: psycopg.Connection[Any],
    ) -> None:
        integration_cleanup.append(("certificate_submissions", certificate_code))
        integration_cleanup.append(("certificate_validation_logs", certificate_code))
        submissions = SubmissionsRepository()
        before = submissions.get_stats()

        submission_id = submissions.insert(
            SubmissionRecord(
                student_id="integration-student",
                certificate_code=certificate_code,
                title="Advanced Python",
                issuing_organization="Example Institute",
                issue_date=date(2024, 5, 1),
                file_url="file:///tmp/cert.pdf",
                file_hash=content_hash(GENUINE),
                validation_status="tampered",
                fraud_score=45,
                fraud_indicators={"producer": "ReportLab"},
            )
        )
        ValidationLogsRepository().insert(
            ValidationLogRecord(
                certificate_code=certificate_code,
                validation_status="tampered",
                submission_id=submission_id,
                fraud_score=45,
                analysis={"fraud_score": 45},
            )
        )

        after = submissions.get_stats()
        assert after.total_submissions == before.total_submissions + 1
        assert after.tampered_certificates == before.tampered_certificates + 1
        assert after.pending_submissions == before.pending_submissions + 1
        with db_conn.cursor() as cur:
            cur.execute(
                "SELECT analysis, fraud_score FROM certificate_validation_logs "
                "WHERE submission_id = %s",
                (submission_id,),
            )
            row = cur.fetchone()
        assert row is not None
        assert row[0] == {"fraud_score": 45}
        assert row[1] == 45

    def test_processor_stores_registered_submission(
        self,
        certificate_code: str,
        integration_cleanup,
        tmp_path: Path,
        certificate_pdf_bytes: bytes,
    ) -> None:
        integration_cleanup.append(("certificate_submissions", certificate_code))
        integration_cleanup.append(("certificate_validation_logs", certificate_code))
        integration_cleanup.append(("verified_certificates", certificate_code))
        registry = VerifiedCertificatesRepository()
        registry.add(
            VerifiedCertificateRecord(
                certificate_code=certificate_code,
                issuing_organization="Example Institute of Technology",
                file_hash=content_hash(certificate_pdf_bytes),
            )
        )
        analyzer = MagicMock(spec=FraudAnalyzer)
        analyzer.analyze.return_value = FraudAnalysisResult(
            indicators=FraudIndicators(metadata=MetadataIndicators()),
            fraud_score=80,
            risk_level="high",
        )
        store = LocalObjectStore(tmp_path)
        processor = SubmissionProcessor(
            steps=[
                HashStep(),
                AnalyzeStep(analyzer),
                ResolveStatusStep(registry),
                UploadStep(store),
                InsertSubmissionStep(SubmissionsRepository()),
                WriteValidationLogStep(ValidationLogsRepository()),
            ],
            failure_step=RollbackUploadStep(store),
        )

        result = processor.process(
            SubmissionRequest(
                student_id="integration-student",
                certificate_code=certificate_code,
                title="Data Science",
                issuing_organization="Example Institute of Technology",
                issue_date=date(2024, 5, 1),
                document=RawDocument(certificate_pdf_bytes, "application/pdf", "cert.pdf"),
            )
        )

        assert result.validation_status == "valid"
        assert result.file_url.startswith("file://")
