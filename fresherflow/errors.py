"""Exception taxonomy shared by the API client, offline layer and web app."""

import enum
from typing import Optional

AUTH_FAILURE_MARKERS = ("session expired", "unauthorized", "401")


class FresherFlowError(Exception):
    """Base class for all application errors."""


class ApiError(FresherFlowError):
    """A call to the FresherFlow API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class AuthExpiredError(ApiError):
    """The session is gone; retrying without a new login is pointless."""


class TransientApiError(ApiError):
    """Network failure, timeout, rate limit or 5xx. Safe to retry later."""


class NotFoundError(ApiError):
    pass


class ProfileIncompleteError(ApiError):
    def __init__(self, message: str, completion_percentage: int = 0):
        super().__init__(message, status_code=403, code="PROFILE_INCOMPLETE")
        self.completion_percentage = completion_percentage


class StorageError(FresherFlowError):
    """The local key-value store could not be read or written."""


class NetworkError(FresherFlowError):
    """A fetch issued by the offline cache layer did not produce a response."""


class FailureKind(str, enum.Enum):
    AUTH_EXPIRED = "AUTH_EXPIRED"
    TRANSIENT = "TRANSIENT"


def classify_failure(exc: BaseException) -> FailureKind:
    """Decide whether a failed replay should block the queue or be retried.

    Typed API errors decide on their own. Anything else (e.g. an injected
    callable that raises a plain exception) falls back to inspecting the
    message for the usual auth-failure wording.
    """
    if isinstance(exc, AuthExpiredError):
        return FailureKind.AUTH_EXPIRED
    if isinstance(exc, ApiError):
        return FailureKind.TRANSIENT

    message = str(exc).lower()
    if any(marker in message for marker in AUTH_FAILURE_MARKERS):
        return FailureKind.AUTH_EXPIRED
    return FailureKind.TRANSIENT
