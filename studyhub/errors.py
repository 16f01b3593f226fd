"""
Domain exception hierarchy for StudyHub.

All domain exceptions inherit from StudyHubError and carry:
- kind: machine-readable error kind (e.g. "GENERATION_ERROR")
- status_code: HTTP status code
- message: internal description (logged, not shown to users)
- retryable: whether resubmitting the same operation can succeed
- context: optional structured metadata dict
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Error kinds surfaced to clients."""

    FETCH_ERROR = "FETCH_ERROR"
    CREATE_ERROR = "CREATE_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    GENERATION_ERROR = "GENERATION_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHENTICATED = "UNAUTHENTICATED"


_USER_MESSAGES = {
    ErrorKind.FETCH_ERROR: "Unable to load your data. Please try again later.",
    ErrorKind.CREATE_ERROR: "Unable to create the folder. Please try again.",
    ErrorKind.UPLOAD_ERROR: "There was an error uploading your files. Please try again.",
    ErrorKind.STORAGE_ERROR: "Unable to save your changes. Please try again later.",
    ErrorKind.VALIDATION_ERROR: "The request or generated content was invalid. Please try again.",
    ErrorKind.GENERATION_ERROR: "There was an error generating your study material. Please try again.",
    ErrorKind.TIMEOUT_ERROR: "Generation timed out. Please try with fewer or smaller documents.",
    ErrorKind.NOT_FOUND: "The requested item could not be found.",
    ErrorKind.UNAUTHENTICATED: "Please sign in to continue.",
}


def user_message(kind: ErrorKind, detail: str | None = None) -> str:
    """Map an error kind to a human-readable message.

    Validation errors raised against user input carry their own message,
    which is safe to show.
    """
    if kind == ErrorKind.VALIDATION_ERROR and detail:
        return detail
    return _USER_MESSAGES.get(kind, "An unexpected error occurred. Please try again later.")


class StudyHubError(Exception):
    """Base exception for all StudyHub domain errors."""

    kind: ErrorKind = ErrorKind.GENERATION_ERROR
    status_code: int = 500
    retryable: bool = True

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
        context: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        if kind is not None:
            self.kind = kind
        if status_code is not None:
            self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or {}
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return user_message(self.kind, self.message if not self.retryable else None)


class FetchError(StudyHubError):
    kind = ErrorKind.FETCH_ERROR
    status_code = 502


class CreateError(StudyHubError):
    kind = ErrorKind.CREATE_ERROR
    status_code = 500


class UploadError(StudyHubError):
    kind = ErrorKind.UPLOAD_ERROR
    status_code = 502


class StorageError(StudyHubError):
    """Database or object storage write failures."""

    kind = ErrorKind.STORAGE_ERROR
    status_code = 500


class ValidationFailure(StudyHubError):
    """Bad input that cannot succeed on resubmission (never retried)."""

    kind = ErrorKind.VALIDATION_ERROR
    status_code = 400
    retryable = False


class InvalidGenerationOutput(StudyHubError):
    """The generation service returned JSON missing required fields or with wrong types.

    Retryable: the model may produce a valid object on the next call.
    """

    kind = ErrorKind.VALIDATION_ERROR
    status_code = 502


class GenerationError(StudyHubError):
    kind = ErrorKind.GENERATION_ERROR
    status_code = 502


class GenerationTimeout(GenerationError):
    kind = ErrorKind.TIMEOUT_ERROR
    status_code = 504


class NotFoundError(StudyHubError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    retryable = False


class AuthenticationError(StudyHubError):
    """Missing, invalid or expired credentials."""

    kind = ErrorKind.UNAUTHENTICATED
    status_code = 401
    retryable = False
