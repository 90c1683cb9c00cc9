import re
import time
from collections.abc import Callable
from pathlib import PurePosixPath

import psycopg

from certguard.analysis.analyzer import FraudAnalyzer
from certguard.analysis.serializers import analysis_to_dict, fraud_indicators_to_dict
from certguard.database.models import SubmissionRecord, ValidationLogRecord
from certguard.database.repositories.submissions_repository import SubmissionsRepository
from certguard.database.repositories.validation_logs_repository import ValidationLogsRepository
from certguard.database.repositories.verified_certificates_repository import (
    VerifiedCertificatesRepository,
)
from certguard.documents.hashing import content_hash
from certguard.documents.models import EXTENSIONS
from certguard.documents.sniffer import classify
from certguard.logging.logger import Log
from certguard.storage.base import BaseObjectStore
from certguard.submission.exceptions import SubmissionPersistenceError
from certguard.submission.pipeline import SubmissionContext, SubmissionStep

UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9]")


def storage_key(
    student_id: str, certificate_code: str, filename: str, data: bytes, millis: int
) -> str:
    """Object key ``submissions/{student}/{millis}-{code}.{ext}``.

    The extension comes from the uploaded filename, or from the sniffed
    content when the filename has none.
    """
    suffix = PurePosixPath(filename).suffix.lstrip(".").lower()
    extension = suffix or EXTENSIONS[classify(data)]
    safe_code = UNSAFE_KEY_CHARS.sub("_", certificate_code)
    safe_student = UNSAFE_KEY_CHARS.sub("_", student_id)
    return f"submissions/{safe_student}/{millis}-{safe_code}.{extension}"


class HashStep(SubmissionStep):
    def run(self, context: SubmissionContext) -> SubmissionContext:
        context.file_hash = content_hash(context.request.document.content)
        return context


class AnalyzeStep(SubmissionStep):
    def __init__(self, analyzer: FraudAnalyzer) -> None:
        self._analyzer = analyzer

    def run(self, context: SubmissionContext) -> SubmissionContext:
        request = context.request
        context.analysis = self._analyzer.analyze(request.document, request.expected_name)
        Log.info(
            f"Fraud analysis for {request.certificate_code}: "
            f"score {context.analysis.fraud_score} ({context.analysis.risk_level})"
        )
        return context


class ResolveStatusStep(SubmissionStep):
    """Registry verdict first; unregistered codes fall back to fraud-score tiers."""

    def __init__(
        self,
        registry: VerifiedCertificatesRepository,
        fake_score: int = 60,
        tampered_score: int = 40,
    ) -> None:
        self._registry = registry
        self._fake_score = fake_score
        self._tampered_score = tampered_score

    def run(self, context: SubmissionContext) -> SubmissionContext:
        if context.analysis is None:
            raise ValueError("SubmissionContext.analysis must be set before status resolution")
        code = context.request.certificate_code
        status = self._registry.validate_submission(code, context.file_hash)
        if status == "fake":
            score = context.analysis.fraud_score
            if score >= self._fake_score:
                status = "fake"
            elif score >= self._tampered_score:
                status = "tampered"
            else:
                status = "valid"
            Log.info(f"Certificate {code} not registered, status {status} from score {score}")
        else:
            Log.info(f"Certificate {code} registered, status {status}")
        context.validation_status = status
        return context


class UploadStep(SubmissionStep):
    def __init__(
        self,
        store: BaseObjectStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

    def run(self, context: SubmissionContext) -> SubmissionContext:
        request = context.request
        key = storage_key(
            request.student_id,
            request.certificate_code,
            request.document.filename,
            request.document.content,
            int(self._clock() * 1000),
        )
        context.file_url = self._store.upload(key, request.document.content)
        context.storage_key = key
        Log.info(f"Uploaded {len(request.document.content)} bytes to {key}")
        return context


class InsertSubmissionStep(SubmissionStep):
    def __init__(self, submissions: SubmissionsRepository) -> None:
        self._submissions = submissions

    def run(self, context: SubmissionContext) -> SubmissionContext:
        if context.analysis is None:
            raise ValueError("SubmissionContext.analysis must be set before insert")
        request = context.request
        record = SubmissionRecord(
            student_id=request.student_id,
            certificate_code=request.certificate_code,
            title=request.title,
            description=request.description,
            issuing_organization=request.issuing_organization,
            issue_date=request.issue_date,
            file_url=context.file_url,
            file_hash=context.file_hash,
            validation_status=context.validation_status,
            fraud_score=context.analysis.fraud_score,
            fraud_indicators=fraud_indicators_to_dict(context.analysis),
            analysis_completed=context.analysis.analysis_completed,
        )
        try:
            context.submission_id = self._submissions.insert(record)
        except psycopg.Error as exc:
            raise SubmissionPersistenceError(
                f"Failed to submit certificate {request.certificate_code}: {exc}"
            ) from exc
        Log.info(f"Stored submission {context.submission_id}")
        return context


class WriteValidationLogStep(SubmissionStep):
    """Audit trail write; a failure here never undoes the submission."""

    def __init__(self, logs: ValidationLogsRepository) -> None:
        self._logs = logs

    def run(self, context: SubmissionContext) -> SubmissionContext:
        request = context.request
        try:
            self._logs.insert(
                ValidationLogRecord(
                    submission_id=context.submission_id,
                    certificate_code=request.certificate_code,
                    uploaded_file_hash=context.file_hash,
                    validation_status=context.validation_status,
                    validated_by=request.student_id,
                    user_agent=request.user_agent,
                    fraud_score=context.analysis.fraud_score if context.analysis else None,
                    analysis=analysis_to_dict(context.analysis) if context.analysis else None,
                )
            )
        except psycopg.Error as exc:
            Log.warning(
                f"Validation log not written for submission {context.submission_id}: {exc}"
            )
        return context


class RollbackUploadStep(SubmissionStep):
    def __init__(self, store: BaseObjectStore) -> None:
        self._store = store

    def run(self, context: SubmissionContext) -> SubmissionContext:
        if context.storage_key is None:
            return context
        self._store.delete(context.storage_key)
        Log.warning(
            f"Removed uploaded object {context.storage_key} after failure: {context.error_message}"
        )
        context.storage_key = None
        return context
