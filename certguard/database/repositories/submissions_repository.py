from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from certguard.database.connection import get_connection
from certguard.database.models import CertificateStats, SubmissionRecord


class SubmissionsRepository:
    """Database operations for the certificate_submissions table."""

    def insert(self, submission: SubmissionRecord) -> str:
        """Persist a submission with its fraud analysis and return the new id."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO certificate_submissions
                    (student_id, certificate_code, title, description,
                     issuing_organization, issue_date, file_url, file_hash,
                     validation_status, approval_status, fraud_indicators,
                     fraud_score, analysis_completed)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING id
                    """,
                    (
                        submission.student_id,
                        submission.certificate_code,
                        submission.title,
                        submission.description,
                        submission.issuing_organization,
                        submission.issue_date,
                        submission.file_url,
                        submission.file_hash,
                        submission.validation_status,
                        submission.approval_status,
                        Jsonb(submission.fraud_indicators),
                        submission.fraud_score,
                        submission.analysis_completed,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT ... RETURNING produced no row")
        return str(row[0])

    def get_stats(self) -> CertificateStats:
        """Aggregate counters computed by the database; all zeros when empty."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SELECT * FROM get_certificate_stats()")
                row = cur.fetchone()

        if row is None:
            return CertificateStats()
        return CertificateStats(
            total_submissions=int(row["total_submissions"] or 0),
            pending_submissions=int(row["pending_submissions"] or 0),
            approved_submissions=int(row["approved_submissions"] or 0),
            rejected_submissions=int(row["rejected_submissions"] or 0),
            valid_certificates=int(row["valid_certificates"] or 0),
            fake_certificates=int(row["fake_certificates"] or 0),
            tampered_certificates=int(row["tampered_certificates"] or 0),
            recent_submissions=int(row["recent_submissions"] or 0),
        )
