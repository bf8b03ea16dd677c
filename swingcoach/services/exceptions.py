from typing import Optional


class AnalysisError(Exception):
    """Base exception for every failure the analysis pipeline reports to callers."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AnalysisError):
    """Raised when the incoming request cannot be processed as submitted."""

    status_code = 400


class InvalidInputError(ValidationError):
    """Raised when no usable file or payload was provided."""


class PayloadTooLargeError(ValidationError):
    """Raised when the payload exceeds the absolute upload cap."""

    status_code = 413


class ConfigurationError(AnalysisError):
    """Raised when the provider credential is missing."""


class StagingError(AnalysisError):
    """Raised when the remote file upload fails or returns no identifier."""


class ProcessingError(AnalysisError):
    """Raised when a staged file does not become usable."""

    def __init__(
        self,
        message: str,
        last_state: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.last_state = last_state
        self.detail = detail


class ProcessingTimeoutError(ProcessingError):
    """Raised when the poll budget runs out before the file is ACTIVE."""

    status_code = 504


class ProcessingFailedError(ProcessingError):
    """Raised when the remote service reports a terminal non-ACTIVE state."""


class GenerationError(AnalysisError):
    """Raised when every model tier failed to produce an analysis."""


class RequestTimeoutError(AnalysisError):
    """Raised when a request exceeds its overall deadline."""

    status_code = 504


class CleanupError(Exception):
    """Raised by cleanup helpers; never propagated past the cleanup coordinator."""
