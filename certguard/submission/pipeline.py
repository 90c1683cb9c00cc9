from abc import ABC, abstractmethod
from dataclasses import dataclass

from certguard.analysis.models import FraudAnalysisResult
from certguard.database.models import ValidationStatus
from certguard.submission.models import SubmissionRequest


@dataclass(slots=True)
class SubmissionContext:
    request: SubmissionRequest
    file_hash: str = ""
    analysis: FraudAnalysisResult | None = None
    validation_status: ValidationStatus = "fake"
    storage_key: str | None = None
    file_url: str = ""
    submission_id: str | None = None
    error_message: str = ""


class SubmissionStep(ABC):
    @abstractmethod
    def run(self, context: SubmissionContext) -> SubmissionContext:
        raise NotImplementedError
