"""Exception types raised by the auto-grading pipeline."""

from typing import Optional


class AutogradeError(Exception):
    """Base class for all auto-grading errors."""


class ConfigurationError(AutogradeError):
    """Required configuration (e.g. the model API key) is missing or invalid."""


class NoContentError(AutogradeError):
    """A submission has no text that could be graded."""


class GatewayError(AutogradeError):
    """The model endpoint returned a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ScoreExtractionError(AutogradeError):
    """The model response did not contain a recognizable score."""


class PersistenceError(AutogradeError):
    """Reading from or writing to the submission store failed."""


class NotFoundError(AutogradeError):
    """The requested submission does not exist."""


class ValidationError(AutogradeError):
    """A request was malformed."""
