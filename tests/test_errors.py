"""
Tests for the errors module.

This test module validates:
- RelctlError base class functionality
- Error subclasses, their codes and default hints
- Error serialization (to_dict)
"""

from __future__ import annotations

import pytest

from relctl.errors import (
    AlreadyUpToDateError,
    ConfigError,
    InvalidTransitionError,
    NoBackupAvailableError,
    NotFoundError,
    RelctlError,
    ReplaceError,
    TransportError,
    UnsupportedBuildError,
    UnsupportedPlatformError,
    VersionParseError,
)

# =============================================================================
# Tests for RelctlError Base Class
# =============================================================================


class TestRelctlError:
    """Tests for RelctlError base class."""

    def test_init_with_all_args(self) -> None:
        """Test RelctlError initialization with all arguments."""
        error = RelctlError(
            error_code="test_error",
            message="Test error message",
            details={"key": "value"},
            hint="Try again",
        )

        assert error.error_code == "test_error"
        assert error.message == "Test error message"
        assert error.details == {"key": "value"}
        assert error.hint == "Try again"

    def test_init_with_minimal_args(self) -> None:
        """Test RelctlError initialization with minimal arguments."""
        error = RelctlError(error_code="test_error", message="Test message")

        assert error.details == {}
        assert error.hint == ""

    def test_str_representation(self) -> None:
        """Test RelctlError string representation."""
        error = RelctlError(error_code="test_error", message="Test error message")
        assert str(error) == "Test error message"

    def test_repr_representation(self) -> None:
        """Test RelctlError repr representation."""
        error = RelctlError(
            error_code="test_error",
            message="Boom",
            details={"a": 1},
        )
        assert repr(error) == (
            "RelctlError(error_code='test_error', message='Boom', details={'a': 1})"
        )

    def test_to_dict(self) -> None:
        """Test RelctlError serialization."""
        error = NotFoundError("missing", details={"version": "v1.0.0"})
        assert error.to_dict() == {
            "error_code": "not_found",
            "message": "missing",
            "details": {"version": "v1.0.0"},
            "hint": NotFoundError.default_hint,
        }


# =============================================================================
# Tests for Error Subclasses
# =============================================================================


class TestErrorSubclasses:
    """Tests for the error kinds."""

    @pytest.mark.parametrize(
        ("error_class", "expected_code"),
        [
            (UnsupportedPlatformError, "unsupported_platform"),
            (VersionParseError, "invalid_version"),
            (UnsupportedBuildError, "unsupported_build"),
            (AlreadyUpToDateError, "already_up_to_date"),
            (NotFoundError, "not_found"),
            (TransportError, "unavailable"),
            (ReplaceError, "replace_failed"),
            (NoBackupAvailableError, "no_backup"),
            (ConfigError, "invalid_config"),
        ],
    )
    def test_error_code_and_default_hint(
        self, error_class: type[RelctlError], expected_code: str
    ) -> None:
        """Each kind carries its own code and a non-empty hint."""
        error = error_class("something happened")

        assert isinstance(error, RelctlError)
        assert error.error_code == expected_code
        assert error.hint

    def test_hint_override(self) -> None:
        """An explicit hint replaces the default."""
        error = UnsupportedPlatformError("brew", hint="Run 'brew upgrade relctl'")
        assert error.hint == "Run 'brew upgrade relctl'"

    def test_invalid_transition_is_internal(self) -> None:
        """State machine misuse reports an internal error."""
        error = InvalidTransitionError("bad transition")
        assert error.error_code == "internal"

    def test_errors_are_distinct_kinds(self) -> None:
        """No error kind is a subclass of another."""
        kinds = [
            UnsupportedPlatformError,
            VersionParseError,
            AlreadyUpToDateError,
            NotFoundError,
            TransportError,
            ReplaceError,
            NoBackupAvailableError,
        ]
        for kind in kinds:
            for other in kinds:
                if kind is not other:
                    assert not issubclass(kind, other)
