class SubmissionError(Exception):
    """Base exception for all submission-handling errors."""


class SubmissionPersistenceError(SubmissionError):
    """Raised when the submission row cannot be written."""
