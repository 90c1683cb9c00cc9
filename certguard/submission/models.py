from dataclasses import dataclass
from datetime import date

from certguard.analysis.models import FraudAnalysisResult
from certguard.database.models import ValidationStatus
from certguard.documents.models import RawDocument


@dataclass(frozen=True)
class SubmissionRequest:
    """A student's certificate upload together with its claimed details."""

    student_id: str
    certificate_code: str
    title: str
    issuing_organization: str
    issue_date: date
    document: RawDocument
    description: str | None = None
    expected_name: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class SubmissionResult:
    submission_id: str
    validation_status: ValidationStatus
    file_url: str
    analysis: FraudAnalysisResult
