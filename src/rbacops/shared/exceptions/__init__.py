"""Exception hierarchy for the RBAC operations engine.

Provides a structured taxonomy covering policy configuration, identifier
parsing, policy source files, and load retries.  Every exception carries a
machine-readable ``error_code``, a ``severity`` indicator, and an arbitrary
``context`` dict for structured logging.

The authorization kernel itself reports expected invalid input through
return values; only the construction of invalid value objects raises.
Policy sources raise :class:`SourceError` subclasses so that a retry policy
can decide whether to re-read the offending file.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rbacops.engine.assignments import AssignmentResult


# ---------------------------------------------------------------------------
# Severity levels
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    """Severity levels for engine exceptions."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class RbacOpsError(Exception):
    """Root exception for every RBAC operations failure.

    Attributes:
        message:    Human-readable description.
        error_code: Machine-readable code (e.g. ``"RBAC_SOURCE_ERROR"``).
        severity:   Impact severity.
        context:    Arbitrary key-value context for structured logging.
    """

    def __init__(
        self,
        message: str = "RBAC operations error",
        error_code: str = "RBAC_ERROR",
        severity: Severity = Severity.MEDIUM,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.context: dict[str, Any] = context or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"error_code={self.error_code!r}, "
            f"severity={self.severity.value!r}, "
            f"message={self.message!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise the exception for logs and CLI reports."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(RbacOpsError):
    """Raised when a policy element is structurally invalid."""

    def __init__(self, message: str = "Invalid policy configuration", **kwargs: Any) -> None:
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", "RBAC_CONFIGURATION_ERROR"),
            severity=kwargs.pop("severity", Severity.HIGH),
            **kwargs,
        )


class InvalidIdentifierError(ConfigurationError, ValueError):
    """Raised when a raw token cannot be parsed into an identifier."""

    def __init__(self, raw: str, kind: str = "identifier") -> None:
        super().__init__(
            f"Invalid {kind} {raw!r}: expected letters optionally followed by digits",
            error_code="RBAC_INVALID_IDENTIFIER",
            context={"raw": raw, "kind": kind},
        )
        self.raw = raw
        self.kind = kind


class ConstraintCardinalityError(ConfigurationError, ValueError):
    """Raised when an SSD constraint is built with ``n < 2``."""

    def __init__(self, n: int) -> None:
        super().__init__(
            f"SSD constraint cardinality must be greater than or equal to 2, got {n}",
            error_code="RBAC_CONSTRAINT_CARDINALITY",
            context={"n": n},
        )
        self.n = n


# ---------------------------------------------------------------------------
# Source exceptions
# ---------------------------------------------------------------------------

class SourceError(RbacOpsError):
    """Raised when a policy source file cannot be turned into policy state.

    Attributes:
        source: Path (as text) of the offending file.
        line:   1-based line number, when the problem is tied to one line.
    """

    def __init__(
        self,
        message: str = "Policy source error",
        *,
        source: str = "",
        line: int | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        context.setdefault("source", source)
        if line is not None:
            context.setdefault("line", line)
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", "RBAC_SOURCE_ERROR"),
            context=context,
            **kwargs,
        )
        self.source = source
        self.line = line


class SourceNotFoundError(SourceError):
    """Raised when a policy source file does not exist."""

    def __init__(self, source: str, description: str = "policy") -> None:
        super().__init__(
            f"The {description} file, {source}, does not exist.",
            source=source,
            error_code="RBAC_SOURCE_NOT_FOUND",
        )


class InvalidSourceLineError(SourceError):
    """Raised when a line of a policy source is malformed or refused."""

    def __init__(self, source: str, line: int, reason: str) -> None:
        super().__init__(
            f"Invalid line found in {source} on line {line}: {reason}",
            source=source,
            line=line,
            error_code="RBAC_INVALID_SOURCE_LINE",
            context={"reason": reason},
        )
        self.reason = reason


class DuplicateObjectError(SourceError):
    """Raised when a resource objects source repeats an identifier."""

    def __init__(self, source: str, line: int, object_name: str) -> None:
        super().__init__(
            f"Duplicate object found in {source} on line {line}: {object_name}",
            source=source,
            line=line,
            error_code="RBAC_DUPLICATE_OBJECT",
            context={"object": object_name},
        )
        self.object_name = object_name


class AssignmentRejectedError(SourceError):
    """Raised when a user-role source line is refused by the assignment store.

    The store has already been cleared when this is raised, so the whole
    source can be corrected and loaded again from the beginning.
    """

    def __init__(self, source: str, line: int, result: AssignmentResult) -> None:
        reason = result.describe()
        super().__init__(
            f"Invalid line found in {source} on line {line} due to {reason}.",
            source=source,
            line=line,
            error_code="RBAC_ASSIGNMENT_REJECTED",
            context={"status": result.status.value, "user": str(result.user)},
        )
        self.result = result
        self.reason = reason


# ---------------------------------------------------------------------------
# Retry exceptions
# ---------------------------------------------------------------------------

class RetryExhaustedError(RbacOpsError):
    """Raised when a retry policy gives up on a policy source."""

    def __init__(self, operation: str, attempts: int, last_error: SourceError) -> None:
        super().__init__(
            f"Gave up on {operation} after {attempts} attempt(s): {last_error.message}",
            error_code="RBAC_RETRY_EXHAUSTED",
            severity=Severity.CRITICAL,
            context={"operation": operation, "attempts": attempts, **last_error.context},
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


__all__ = [
    "AssignmentRejectedError",
    "ConfigurationError",
    "ConstraintCardinalityError",
    "DuplicateObjectError",
    "InvalidIdentifierError",
    "InvalidSourceLineError",
    "RbacOpsError",
    "RetryExhaustedError",
    "Severity",
    "SourceError",
    "SourceNotFoundError",
]
