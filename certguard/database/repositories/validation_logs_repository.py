from psycopg.types.json import Jsonb

from certguard.database.connection import get_connection
from certguard.database.models import ValidationLogRecord


class ValidationLogsRepository:
    """Append-only writes to certificate_validation_logs."""

    def insert(self, log: ValidationLogRecord) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO certificate_validation_logs
                (submission_id, certificate_code, uploaded_file_hash,
                 validation_status, validated_by, user_agent, fraud_score, analysis)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    log.submission_id,
                    log.certificate_code,
                    log.uploaded_file_hash,
                    log.validation_status,
                    log.validated_by,
                    log.user_agent,
                    log.fraud_score,
                    Jsonb(log.analysis) if log.analysis is not None else None,
                ),
            )
            conn.commit()
