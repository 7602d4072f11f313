"""
Centralized error types for the application.

Every error a request handler may surface derives from ``ReadTubeError`` and
carries its HTTP status and a stable ``code``. Transcript sources report
failures with ``SourceFailure`` and a ``FailureKind``; those never leave the
fallback chain.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, TypedDict


class FailureKind(str, Enum):
    """Why a transcript source or metadata lookup could not deliver."""
    NOT_CONFIGURED = "not_configured"
    NO_CAPTIONS = "no_captions"
    DISABLED = "disabled"
    EMPTY = "empty"
    TIMEOUT = "timeout"
    UPSTREAM = "upstream"
    PRIVATE = "private"
    AGE_RESTRICTED = "age_restricted"
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"


class SourceAttempt(TypedDict):
    """One failed transcript source, as reported to the client."""
    source: str
    kind: str
    reason: str


class SourceFailure(Exception):
    """Raised by a transcript source when it cannot produce text."""

    def __init__(self, kind: FailureKind, reason: str):
        super().__init__(reason)
        self.kind = kind
        self.reason = reason


class ReadTubeError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message, "code": self.code}
        body.update(self.details)
        return body


class UnauthorizedError(ReadTubeError):
    status_code = 401
    code = "UNAUTHORIZED"


class InvalidRequestError(ReadTubeError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(ReadTubeError):
    status_code = 404
    code = "NOT_FOUND"


class QuotaExceeded(ReadTubeError):
    status_code = 402
    code = "QUOTA_EXCEEDED"

    def __init__(self, remaining_minutes: int, required_minutes: int):
        if remaining_minutes == 0:
            message = "You have used all available minutes. Buy a package to continue."
        else:
            message = (
                f"This video needs {required_minutes} minutes but only "
                f"{remaining_minutes} minutes remain."
            )
        super().__init__(
            message,
            remainingMinutes=remaining_minutes,
            requiredMinutes=required_minutes,
        )
        self.remaining_minutes = remaining_minutes
        self.required_minutes = required_minutes


class UpstreamServiceError(ReadTubeError):
    status_code = 502
    code = "UPSTREAM_ERROR"


class SummarizationFailed(UpstreamServiceError):
    code = "SUMMARIZATION_FAILED"


class ServiceNotConfigured(ReadTubeError):
    status_code = 503
    code = "NOT_CONFIGURED"


class VideoTooLong(ReadTubeError):
    status_code = 422
    code = "VIDEO_TOO_LONG"

    def __init__(self, duration_minutes: int, limit_minutes: int):
        super().__init__(
            f"Video is {duration_minutes} minutes long; the limit is {limit_minutes} minutes.",
            durationMinutes=duration_minutes,
            limitMinutes=limit_minutes,
        )


_UNAVAILABLE_STATUS = {
    FailureKind.PRIVATE: (403, "VIDEO_PRIVATE", "Cannot access private videos."),
    FailureKind.AGE_RESTRICTED: (403, "VIDEO_AGE_RESTRICTED", "Age-restricted videos are not supported."),
    FailureKind.NOT_FOUND: (404, "VIDEO_NOT_FOUND", "Video not found. Please check the YouTube link."),
    FailureKind.UNAVAILABLE: (410, "VIDEO_UNAVAILABLE", "Video is unavailable or has been deleted."),
}


class VideoUnavailable(ReadTubeError):
    """The video itself cannot be processed: private, removed, age-gated."""

    def __init__(self, kind: FailureKind, message: Optional[str] = None):
        status, code, default_message = _UNAVAILABLE_STATUS.get(
            kind, _UNAVAILABLE_STATUS[FailureKind.UNAVAILABLE]
        )
        super().__init__(message or default_message)
        self.kind = kind
        self.status_code = status
        self.code = code


class NoTranscriptAvailable(ReadTubeError):
    status_code = 422
    code = "NO_TRANSCRIPT"

    def __init__(self, video_id: str, attempts: List[SourceAttempt]):
        tried = "; ".join(f"{a['source']}: {a['reason']}" for a in attempts)
        super().__init__(
            "No transcript is available for this video.",
            attempts=attempts,
        )
        self.video_id = video_id
        self.attempts = attempts
        self.summary = f"No transcript for {video_id} ({tried})"

    def __str__(self) -> str:
        return self.summary
