from pathlib import Path

from certguard.analysis.analyzer import FraudAnalyzer, build_fraud_analyzer
from certguard.config.settings import Settings
from certguard.database.repositories.submissions_repository import SubmissionsRepository
from certguard.database.repositories.validation_logs_repository import ValidationLogsRepository
from certguard.database.repositories.verified_certificates_repository import (
    VerifiedCertificatesRepository,
)
from certguard.logging.logger import Log
from certguard.storage.local_store import LocalObjectStore
from certguard.submission.models import SubmissionRequest, SubmissionResult
from certguard.submission.pipeline import SubmissionContext, SubmissionStep
from certguard.submission.steps import (
    AnalyzeStep,
    HashStep,
    InsertSubmissionStep,
    ResolveStatusStep,
    RollbackUploadStep,
    UploadStep,
    WriteValidationLogStep,
)


class SubmissionProcessor:
    """Orchestrates a certificate submission.

    Pipeline: hash -> analyze -> resolve status -> upload -> insert -> log.
    When any step fails the failure step runs (removing an uploaded file)
    and the original error propagates.
    """

    def __init__(self, steps: list[SubmissionStep], failure_step: SubmissionStep) -> None:
        self._steps = steps
        self._failure_step = failure_step

    def process(self, request: SubmissionRequest) -> SubmissionResult:
        Log.info(
            f"Processing submission of {request.certificate_code} by student {request.student_id}"
        )
        context = SubmissionContext(request=request)
        try:
            for step in self._steps:
                context = step.run(context)
        except Exception as exc:
            context.error_message = str(exc)
            Log.error(f"Submission of {request.certificate_code} failed: {exc}")
            self._failure_step.run(context)
            raise

        if context.analysis is None or context.submission_id is None:
            raise RuntimeError("Submission pipeline finished without analysis or id")
        return SubmissionResult(
            submission_id=context.submission_id,
            validation_status=context.validation_status,
            file_url=context.file_url,
            analysis=context.analysis,
        )


def build_submission_processor(
    settings: Settings,
    analyzer: FraudAnalyzer | None = None,
) -> SubmissionProcessor:
    """Build a SubmissionProcessor backed by the database and local object store."""
    store = LocalObjectStore(Path(settings.storage_root))
    registry = VerifiedCertificatesRepository()
    return SubmissionProcessor(
        steps=[
            HashStep(),
            AnalyzeStep(analyzer or build_fraud_analyzer(settings)),
            ResolveStatusStep(
                registry,
                fake_score=settings.submission_fake_score,
                tampered_score=settings.submission_tampered_score,
            ),
            UploadStep(store),
            InsertSubmissionStep(SubmissionsRepository()),
            WriteValidationLogStep(ValidationLogsRepository()),
        ],
        failure_step=RollbackUploadStep(store),
    )
