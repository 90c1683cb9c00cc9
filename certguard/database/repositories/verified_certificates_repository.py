from typing import Any

from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from certguard.database.connection import get_connection
from certguard.database.exceptions import DuplicateCertificateError
from certguard.database.models import ValidationStatus, VerifiedCertificateRecord

_COLUMNS = """
    id, certificate_code, issuing_organization, file_hash,
    metadata, added_by, created_at
"""


def _to_record(row: dict[str, Any]) -> VerifiedCertificateRecord:
    return VerifiedCertificateRecord(
        id=str(row["id"]),
        certificate_code=row["certificate_code"],
        issuing_organization=row["issuing_organization"],
        file_hash=row["file_hash"],
        metadata=row.get("metadata"),
        added_by=row.get("added_by"),
        created_at=row.get("created_at"),
    )


class VerifiedCertificatesRepository:
    """Read-mostly access to the verified_certificates registry."""

    def find_by_hash(self, file_hash: str) -> VerifiedCertificateRecord | None:
        """Exact content-hash lookup; None when no registry row carries this hash."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM verified_certificates WHERE file_hash = %s LIMIT 1",
                    (file_hash,),
                )
                row = cur.fetchone()
        return _to_record(row) if row is not None else None

    def find_by_code(self, certificate_code: str) -> VerifiedCertificateRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM verified_certificates WHERE certificate_code = %s",
                    (certificate_code,),
                )
                row = cur.fetchone()
        return _to_record(row) if row is not None else None

    def validate_submission(self, certificate_code: str, file_hash: str) -> ValidationStatus:
        """Combined code + hash check performed by the database.

        Returns:
            "fake" when the code is unknown, "tampered" when the registered
            hash differs, otherwise "valid".
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT validate_certificate_submission(%s, %s)",
                    (certificate_code, file_hash),
                )
                row = cur.fetchone()
        if row is None or row[0] not in ("valid", "fake", "tampered"):
            return "fake"
        return row[0]

    def add(self, record: VerifiedCertificateRecord) -> VerifiedCertificateRecord:
        """Register a genuine certificate.

        Raises:
            DuplicateCertificateError: if the certificate code is already registered.
        """
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO verified_certificates
                        (certificate_code, issuing_organization, file_hash, metadata, added_by)
                        VALUES (%s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            record.certificate_code,
                            record.issuing_organization,
                            record.file_hash,
                            Jsonb(record.metadata) if record.metadata is not None else None,
                            record.added_by,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except UniqueViolation as exc:
            raise DuplicateCertificateError(
                f"Certificate {record.certificate_code} is already registered"
            ) from exc

        if row is None:
            raise RuntimeError("INSERT ... RETURNING produced no row")
        return _to_record(row)
