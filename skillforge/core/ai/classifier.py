"""
Failure classification for generation calls.

An error is transient when the backend signals overload, rate limiting,
unavailability or quota exhaustion. Signals are matched on the HTTP status
code carried by ``google.genai.errors.APIError`` and by substring on the error
text; everything else is fatal.
"""

from __future__ import annotations

from enum import Enum

from google.genai import errors as genai_errors

from skillforge.core.exceptions import FatalGenerationError, TransientGenerationError

TRANSIENT_MARKERS = (
    "503",
    "429",
    "overloaded",
    "UNAVAILABLE",
    "RESOURCE_EXHAUSTED",
)

TRANSIENT_STATUS_CODES = frozenset({429, 503})


class FailureKind(Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"


def classify_error(exc: BaseException) -> FailureKind:
    """
    Classify a failed generation attempt.

    Examples
    --------
    >>> classify_error(RuntimeError("503 UNAVAILABLE: model is overloaded"))
    <FailureKind.TRANSIENT: 'transient'>
    >>> classify_error(ValueError("API key not valid"))
    <FailureKind.FATAL: 'fatal'>
    """
    if isinstance(exc, TransientGenerationError):
        return FailureKind.TRANSIENT
    if isinstance(exc, FatalGenerationError):
        return FailureKind.FATAL

    if isinstance(exc, genai_errors.APIError):
        if exc.code in TRANSIENT_STATUS_CODES:
            return FailureKind.TRANSIENT
        if exc.status and any(marker in exc.status for marker in TRANSIENT_MARKERS):
            return FailureKind.TRANSIENT

    message = str(exc)
    if any(marker in message for marker in TRANSIENT_MARKERS):
        return FailureKind.TRANSIENT

    return FailureKind.FATAL


def is_transient(exc: BaseException) -> bool:
    return classify_error(exc) is FailureKind.TRANSIENT
