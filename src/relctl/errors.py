"""
Error types for relctl.

This module defines the RelctlError base class and one subclass per failure
kind of the self-upgrade subsystem. Each kind carries a stable error code and a
default remediation hint, so the command layer can report what went wrong and
what the user can do about it without inspecting message text.

Errors propagate unchanged from the step that raised them up to the command
layer; distinct kinds are never collapsed into a generic failure.
"""

from __future__ import annotations

from typing import Any


class RelctlError(Exception):
    """
    Base exception class for relctl errors.

    Attributes:
        error_code: Internal error code string (e.g., "not_found",
            "unsupported_platform", "replace_failed").
        message: Human-readable error message.
        details: Optional structured details (e.g., paths, versions).
        hint: Remediation hint shown to the user.

    Example:
        >>> raise NotFoundError(
        ...     "No release asset for v0.2.21 on Linux",
        ...     details={"version": "v0.2.21", "platform": "Linux"},
        ... )
    """

    default_hint: str = ""

    def __init__(
        self,
        error_code: str,
        message: str,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        """
        Initialize a RelctlError.

        Args:
            error_code: Internal error code string identifying the error category.
            message: Human-readable error message.
            details: Optional dictionary with structured error details.
            hint: Optional remediation hint. Defaults to the class hint.
        """
        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.hint = hint if hint is not None else self.default_hint

    def __repr__(self) -> str:
        """Return a detailed string representation."""
        return (
            f"{self.__class__.__name__}("
            f"error_code={self.error_code!r}, "
            f"message={self.message!r}, "
            f"details={self.details!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the error to a dictionary for serialization.

        Returns:
            Dictionary with error_code, message, details, and hint.
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "hint": self.hint,
        }


class UnsupportedPlatformError(RelctlError):
    """
    Error raised when upgrade or rollback is not supported on this platform.

    Raised before any filesystem or network operation takes place.
    """

    default_hint = "Download the release archive for your platform and replace the binary manually"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize an UnsupportedPlatformError."""
        super().__init__(
            error_code="unsupported_platform",
            message=message,
            details=details,
            hint=hint,
        )


class VersionParseError(RelctlError):
    """
    Error raised when a version string is not of the form vX.Y.Z[-suffix].

    When raised for the running build this indicates a corrupted build
    identifier and is fatal.
    """

    default_hint = "Version strings must look like v1.2.3 or v1.2.3-rc.1"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize a VersionParseError."""
        super().__init__(
            error_code="invalid_version", message=message, details=details, hint=hint
        )


class UnsupportedBuildError(RelctlError):
    """Error raised when the running build is a development or snapshot build."""

    default_hint = "Development builds cannot be self-upgraded; install a release build"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize an UnsupportedBuildError."""
        super().__init__(
            error_code="unsupported_build", message=message, details=details, hint=hint
        )


class AlreadyUpToDateError(RelctlError):
    """
    Raised when there is nothing newer to upgrade to.

    This is informational: the command layer reports it and exits successfully.
    """

    default_hint = "Nothing to do"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize an AlreadyUpToDateError."""
        super().__init__(
            error_code="already_up_to_date",
            message=message,
            details=details,
            hint=hint,
        )


class NotFoundError(RelctlError):
    """Error raised when no release artifact exists for a (version, platform) pair."""

    default_hint = "Check the available releases and request a different version"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize a NotFoundError."""
        super().__init__(
            error_code="not_found", message=message, details=details, hint=hint
        )


class TransportError(RelctlError):
    """
    Error raised when the release host cannot be reached or answers with an error.

    The underlying transport exception is kept as ``__cause__``.
    """

    default_hint = "Check your network connection and run the command again"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize a TransportError."""
        super().__init__(
            error_code="unavailable", message=message, details=details, hint=hint
        )


class ReplaceError(RelctlError):
    """
    Error raised when the executable could not be replaced.

    When this is raised the current executable path still holds a valid binary.
    """

    default_hint = "The previous binary is still in place; check file permissions and retry"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize a ReplaceError."""
        super().__init__(
            error_code="replace_failed", message=message, details=details, hint=hint
        )


class NoBackupAvailableError(RelctlError):
    """Error raised when a rollback is requested but no backup binary exists."""

    default_hint = "Rollback is only possible after a successful upgrade"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize a NoBackupAvailableError."""
        super().__init__(
            error_code="no_backup", message=message, details=details, hint=hint
        )


class InvalidTransitionError(RelctlError):
    """Error raised when the upgrade state machine is driven out of order."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize an InvalidTransitionError."""
        super().__init__(error_code="internal", message=message, details=details)


class ConfigError(RelctlError):
    """Error raised when configuration cannot be loaded or is invalid."""

    default_hint = "Fix the configuration file or environment variables"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize a ConfigError."""
        super().__init__(
            error_code="invalid_config", message=message, details=details, hint=hint
        )
