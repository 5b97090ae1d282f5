"""
Infrastructure exceptions for SkillForge.

Purpose
-------
Define the structured exception hierarchy for infrastructure-level concerns:
configuration problems, persistence failures, and failures of the remote
text-generation backend. Domain/business-rule errors live in
``skillforge.modules.shared.exceptions``.

Design Notes
------------
- All infrastructure exceptions inherit from `SkillForgeInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- Generation failures are split into transient (retried with backoff and
  model fallback) and fatal (surfaced immediately). Only terminal outcomes
  ever reach callers of the generation client.
- `user_message_for` maps any terminal failure to a single generic,
  user-presentable sentence; logs keep the full distinction.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class SkillForgeInfrastructureException(Exception):
    """
    Base exception for all SkillForge infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


# ============================================================================
# Configuration
# ============================================================================


class ConfigurationError(SkillForgeInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Components validate their settings at construction, so this surfaces at
    startup rather than on the first remote call.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        error_message = f"Configuration error for {config_key}: {message}"
        super().__init__(
            error_message,
            details={
                "config_key": config_key,
                "message": message,
            },
            error_code="CONFIG_ERROR",
        )


class MissingConfigurationError(ConfigurationError):
    """Raised when a required credential or endpoint is absent."""

    def __init__(self, config_key: str) -> None:
        super().__init__(config_key, f"{config_key} is required but not set")
        self.error_code = "MISSING_CONFIGURATION"


# ============================================================================
# Persistence
# ============================================================================


class DatabaseError(SkillForgeInfrastructureException):
    """
    Raised when database operations fail.

    Args:
        operation: Description of the database operation that failed
        original_error: The underlying database exception
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        message = f"Database error during {operation}: {str(original_error)}"
        super().__init__(
            message,
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
            is_retryable=True,
        )


class DocumentNotFoundError(SkillForgeInfrastructureException):
    """
    Raised when a partial update targets a document that does not exist.

    Args:
        collection: Collection name
        key: Document key
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = False

    def __init__(self, collection: str, key: str) -> None:
        self.collection = collection
        self.key = key
        super().__init__(
            f"Document not found: {collection}/{key}",
            details={"collection": collection, "key": key},
            error_code="DOCUMENT_NOT_FOUND",
        )


# ============================================================================
# Text generation
# ============================================================================


class GenerationError(SkillForgeInfrastructureException):
    """Base class for failures of the remote text-generation backend."""

    DEFAULT_SEVERITY = ErrorSeverity.ERROR


class TransientGenerationError(GenerationError):
    """
    Overload, rate-limit or unavailability signal from the backend.

    Retried with exponential backoff, then triggers model fallback.

    Args:
        model: Model identifier that produced the failure
        original_error: The backend exception
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        model: str,
        original_error: Optional[BaseException] = None,
        message: Optional[str] = None,
    ) -> None:
        self.model = model
        self.original_error = original_error
        reason = message or (str(original_error) if original_error else "transient failure")
        super().__init__(
            f"Transient failure from model {model}: {reason}",
            details={
                "model": model,
                "error_type": type(original_error).__name__ if original_error else None,
            },
            error_code="GENERATION_TRANSIENT",
        )


class FatalGenerationError(GenerationError):
    """
    Any non-transient backend failure: malformed request, auth failure,
    or a response that cannot be decoded into the requested shape.

    Never retried and never triggers model fallback.
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = False

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.model = model
        self.original_error = original_error
        super().__init__(
            message,
            details={
                "model": model,
                "error_type": type(original_error).__name__ if original_error else None,
            },
            error_code="GENERATION_FATAL",
        )


class AllModelsExhaustedError(GenerationError):
    """
    Raised when every model/attempt combination failed transiently.

    Args:
        models: The model identifiers that were tried, in order
        attempts: Total number of attempts made
        last_error: The last transient failure observed
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        models: list[str],
        attempts: int,
        last_error: Optional[BaseException],
    ) -> None:
        self.models = list(models)
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"All models exhausted after {attempts} attempts",
            details={
                "models": self.models,
                "attempts": attempts,
                "last_error": str(last_error) if last_error else None,
            },
            error_code="ALL_MODELS_EXHAUSTED",
        )


class GenerationDeadlineExceeded(GenerationError):
    """
    Raised when an invocation runs past its overall deadline.

    Args:
        deadline_seconds: The configured budget
        attempts: Attempts made before the deadline hit
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, deadline_seconds: float, attempts: int) -> None:
        self.deadline_seconds = deadline_seconds
        self.attempts = attempts
        super().__init__(
            f"Generation deadline of {deadline_seconds:.1f}s exceeded",
            details={"deadline_seconds": deadline_seconds, "attempts": attempts},
            error_code="GENERATION_DEADLINE",
        )


# Utility functions for exception handling patterns

GENERIC_FAILURE_MESSAGE = "Something went wrong while generating content. Please try again."


def is_transient_error(exc: BaseException) -> bool:
    """True if the exception is an infrastructure error marked retryable."""
    if isinstance(exc, SkillForgeInfrastructureException):
        return exc.is_retryable
    return False


def get_error_severity(exc: BaseException) -> ErrorSeverity:
    """Get the severity level of an exception for logging."""
    if isinstance(exc, SkillForgeInfrastructureException):
        return exc.severity
    return ErrorSeverity.ERROR


def user_message_for(exc: BaseException) -> str:
    """
    Map a terminal generation failure to user-presentable text.

    Callers present one generic message regardless of sub-kind; the
    distinction is kept in logs only.
    """
    if isinstance(exc, GenerationError):
        return GENERIC_FAILURE_MESSAGE
    if isinstance(exc, SkillForgeInfrastructureException):
        return "The service is temporarily unavailable. Please try again."
    return "An unexpected error occurred. Please try again."
