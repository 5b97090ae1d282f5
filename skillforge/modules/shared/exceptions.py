"""
Domain exceptions for SkillForge services.

Raised by services for business rule violations and learner-facing errors:
bad input, missing roadmaps or subtopics, failed sign-in. Entry points
translate these into short messages.

Each exception carries ``message``, ``details``, ``severity``,
``is_retryable`` and ``error_code``, mirroring the infrastructure hierarchy
in ``skillforge.core.exceptions``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from skillforge.core.exceptions import ErrorSeverity


class SkillForgeDomainException(Exception):
    """
    Base exception for all SkillForge domain-level errors.

    Example:
        >>> raise SkillForgeDomainException(
        ...     "Quiz already completed",
        ...     {"module_id": "mod-1"}
        ... )
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


class ValidationError(SkillForgeDomainException):
    """
    Raised when caller input fails validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class NotFoundError(SkillForgeDomainException):
    """
    Raised when a requested user, roadmap, module or subtopic does not exist.

    Args:
        resource_type: Type of resource (e.g., "Roadmap", "Subtopic")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class AuthenticationError(SkillForgeDomainException):
    """Raised on a failed sign-in. The message never says which half was wrong."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message, error_code="AUTHENTICATION_FAILED")


class EmailAlreadyRegisteredError(SkillForgeDomainException):
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(
            "An account with this email already exists",
            details={"email": email},
            error_code="EMAIL_ALREADY_REGISTERED",
        )


class InvalidOperationError(SkillForgeDomainException):
    """
    Raised when an action violates learning-flow rules.

    Args:
        action: Description of the invalid action
        reason: Explanation of why it's not allowed

    Example:
        >>> raise InvalidOperationError(
        ...     "complete_quiz",
        ...     "quiz has not been started"
        ... )
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code=f"INVALID_{action.upper()}",
        )
