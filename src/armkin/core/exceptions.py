"""
Custom exceptions for armkin.

All armkin exceptions inherit from ArmkinError for easy catching. Problems
found while solving kinematics (axis limits, unreachable targets) are not
raised but reported as diagnostics on the result objects, see
:class:`Diagnostic`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ArmkinError(Exception):
    """Base exception for all armkin errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(ArmkinError):
    """Raised when configuration is invalid or missing."""

    pass


class InvalidInputError(ArmkinError):
    """Raised when an entity is constructed from malformed input."""

    pass


class KinematicsError(ArmkinError):
    """Raised when a kinematics computation fails."""

    pass


class UnreachableTargetError(KinematicsError):
    """Raised when a target lies outside the reach envelope of the arm."""

    def __init__(
        self,
        message: str,
        target: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.target = target


class UnsupportedConfigurationError(KinematicsError):
    """Raised when a robot or work object combines external axes in an unsupported way."""

    pass


class DiagnosticKind(Enum):
    """Kinds of non-fatal problems recorded on computation results."""

    LIMIT_VIOLATION = "limit_violation"
    UNSUPPORTED_CONFIGURATION = "unsupported_configuration"
    UNREACHABLE = "unreachable"
    INVALID_INPUT = "invalid_input"
    SINGULARITY = "singularity"


@dataclass(frozen=True)
class Diagnostic:
    """A human-readable problem report attached to a kinematics result."""

    kind: DiagnosticKind
    message: str

    def __str__(self) -> str:
        return self.message
