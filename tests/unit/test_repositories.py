from datetime import date, datetime
from unittest.mock import MagicMock, patch

import pytest
from psycopg.errors import UniqueViolation

from certguard.database.exceptions import DuplicateCertificateError
from certguard.database.models import (
    CertificateStats,
    SubmissionRecord,
    ValidationLogRecord,
    VerifiedCertificateRecord,
)
from certguard.database.repositories.submissions_repository import SubmissionsRepository
from certguard.database.repositories.validation_logs_repository import ValidationLogsRepository
from certguard.database.repositories.verified_certificates_repository import (
    VerifiedCertificatesRepository,
)

REGISTRY = "certguard.database.repositories.verified_certificates_repository.get_connection"
SUBMISSIONS = "certguard.database.repositories.submissions_repository.get_connection"
LOGS = "certguard.database.repositories.validation_logs_repository.get_connection"


def _registry_row() -> dict:
    return {
        "id": 7,
        "certificate_code": "CERT-2024-001",
        "issuing_organization": "Example Institute",
        "file_hash": "a" * 64,
        "metadata": {"course": "Python"},
        "added_by": "admin",
        "created_at": datetime(2024, 5, 1, 10, 0),
    }


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


class TestVerifiedCertificatesFind:
    @patch(REGISTRY)
    def test_find_by_hash_returns_record(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _registry_row()

        record = VerifiedCertificatesRepository().find_by_hash("a" * 64)

        assert record is not None
        assert record.id == "7"
        assert record.certificate_code == "CERT-2024-001"
        assert record.metadata == {"course": "Python"}
        assert mock_cursor.execute.call_args[0][1] == ("a" * 64,)

    @patch(REGISTRY)
    def test_find_by_hash_returns_none_when_missing(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert VerifiedCertificatesRepository().find_by_hash("b" * 64) is None

    @patch(REGISTRY)
    def test_find_by_code_returns_record(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _registry_row()

        record = VerifiedCertificatesRepository().find_by_code("CERT-2024-001")

        assert record is not None
        assert record.issuing_organization == "Example Institute"


class TestValidateSubmission:
    @pytest.mark.parametrize("status", ["valid", "tampered", "fake"])
    @patch(REGISTRY)
    def test_returns_database_verdict(self, mock_get_conn: MagicMock, status: str) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = (status,)

        result = VerifiedCertificatesRepository().validate_submission("CERT-1", "a" * 64)

        assert result == status
        sql, params = mock_cursor.execute.call_args[0]
        assert "validate_certificate_submission" in sql
        assert params == ("CERT-1", "a" * 64)

    @patch(REGISTRY)
    def test_unexpected_result_is_fake(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert VerifiedCertificatesRepository().validate_submission("CERT-1", "a" * 64) == "fake"


class TestVerifiedCertificatesAdd:
    @patch(REGISTRY)
    def test_add_commits_and_returns_stored_row(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _registry_row()

        stored = VerifiedCertificatesRepository().add(
            VerifiedCertificateRecord(
                certificate_code="CERT-2024-001",
                issuing_organization="Example Institute",
                file_hash="a" * 64,
            )
        )

        assert stored.id == "7"
        mock_conn.commit.assert_called_once()

    @patch(REGISTRY)
    def test_duplicate_code_raises(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.execute.side_effect = UniqueViolation("duplicate key")

        with pytest.raises(DuplicateCertificateError, match="CERT-2024-001 is already registered"):
            VerifiedCertificatesRepository().add(
                VerifiedCertificateRecord(
                    certificate_code="CERT-2024-001",
                    issuing_organization="Example Institute",
                    file_hash="a" * 64,
                )
            )


class TestSubmissionsRepository:
    @patch(SUBMISSIONS)
    def test_insert_returns_new_id(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = ("5b0e3c1a-0000-4000-8000-000000000001",)

        submission_id = SubmissionsRepository().insert(
            SubmissionRecord(
                student_id="student-1",
                certificate_code="CERT-2024-001",
                title="Advanced Python",
                issuing_organization="Example Institute",
                issue_date=date(2024, 5, 1),
                file_url="file:///app/files/x.pdf",
                file_hash="a" * 64,
                validation_status="valid",
                fraud_score=12,
                fraud_indicators={"producer": "ReportLab"},
            )
        )

        assert submission_id == "5b0e3c1a-0000-4000-8000-000000000001"
        params = mock_cursor.execute.call_args[0][1]
        assert params[0] == "student-1"
        assert params[8] == "valid"
        assert params[9] == "pending"
        assert params[10].obj == {"producer": "ReportLab"}
        mock_conn.commit.assert_called_once()

    @patch(SUBMISSIONS)
    def test_get_stats_maps_counters(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {
            "total_submissions": 10,
            "pending_submissions": 4,
            "approved_submissions": 5,
            "rejected_submissions": 1,
            "valid_certificates": 7,
            "fake_certificates": 2,
            "tampered_certificates": 1,
            "recent_submissions": None,
        }

        stats = SubmissionsRepository().get_stats()

        assert stats == CertificateStats(10, 4, 5, 1, 7, 2, 1, 0)

    @patch(SUBMISSIONS)
    def test_get_stats_empty_is_zero(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert SubmissionsRepository().get_stats() == CertificateStats()


class TestValidationLogsRepository:
    @patch(LOGS)
    def test_insert_writes_analysis_payload(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        ValidationLogsRepository().insert(
            ValidationLogRecord(
                certificate_code="CERT-2024-001",
                validation_status="tampered",
                submission_id="sub-1",
                fraud_score=45,
                analysis={"fraud_score": 45},
            )
        )

        params = mock_conn.execute.call_args[0][1]
        assert params[0] == "sub-1"
        assert params[3] == "tampered"
        assert params[7].obj == {"fraud_score": 45}
        mock_conn.commit.assert_called_once()

    @patch(LOGS)
    def test_insert_without_analysis_passes_null(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        ValidationLogsRepository().insert(
            ValidationLogRecord(certificate_code="CERT-1", validation_status="fake")
        )

        assert mock_conn.execute.call_args[0][1][7] is None
