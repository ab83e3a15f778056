"""
Tests for version parsing and comparison.

Tests cover:
- parse_version on valid and malformed strings
- compare_versions ordering on (major, minor, patch)
- Upgrade eligibility, including development builds
- VersionOracle with an explicit BuildInfo
"""

from __future__ import annotations

import pytest

from relctl.errors import UnsupportedBuildError, VersionParseError
from relctl.upgrade.version import (
    BuildInfo,
    SemanticVersion,
    VersionOracle,
    compare_versions,
    is_upgrade_eligible,
    parse_version,
)

# =============================================================================
# parse_version Tests
# =============================================================================


class TestParseVersion:
    """Tests for parse_version function."""

    def test_parse_simple_version(self) -> None:
        """Test parsing a plain release version."""
        version = parse_version("v0.2.20")
        assert version.core == (0, 2, 20)
        assert version.prerelease is None
        assert version.build is None

    def test_parse_version_with_prerelease(self) -> None:
        """Test parsing a pre-release suffix."""
        version = parse_version("v1.0.0-rc.1")
        assert version.core == (1, 0, 0)
        assert version.prerelease == "rc.1"

    def test_parse_version_with_build(self) -> None:
        """Test parsing build metadata."""
        version = parse_version("v1.2.3-beta+sha.5114f85")
        assert version.prerelease == "beta"
        assert version.build == "sha.5114f85"

    def test_parse_large_numbers(self) -> None:
        """Test large components."""
        assert parse_version("v100.0.0").core == (100, 0, 0)

    def test_str_round_trip(self) -> None:
        """Test str() renders the canonical form."""
        assert str(parse_version("v1.2.3-rc.1+build.7")) == "v1.2.3-rc.1+build.7"

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "v",
            "0.2.20",
            "V0.2.20",
            "v1.2",
            "v1.2.3.4",
            "v1.x.3",
            "v01.2.3",
            "v1.2.3-",
            "v-1.2.3",
            "version1.2.3",
            " v1.2.3",
            "v1.2.3\n",
            "v1.2.3 ",
        ],
    )
    def test_malformed_versions_raise(self, raw: str) -> None:
        """Malformed strings raise instead of defaulting to zero."""
        with pytest.raises(VersionParseError) as exc_info:
            parse_version(raw)

        assert exc_info.value.error_code == "invalid_version"

    def test_missing_prefix_mentions_v(self) -> None:
        """The error for a bare version names the missing prefix."""
        with pytest.raises(VersionParseError) as exc_info:
            parse_version("1.0.0")

        assert "start with 'v'" in exc_info.value.message
        assert exc_info.value.hint == "Use 'v1.0.0' instead of '1.0.0'"


# =============================================================================
# Comparison and Eligibility Tests
# =============================================================================


class TestCompareVersions:
    """Tests for compare_versions and is_upgrade_eligible."""

    @pytest.mark.parametrize(
        ("a", "b", "expected"),
        [
            ("v0.2.20", "v0.2.21", -1),
            ("v0.2.21", "v0.2.20", 1),
            ("v0.2.20", "v0.2.20", 0),
            ("v1.0.0", "v0.99.99", 1),
            ("v0.10.0", "v0.9.0", 1),
            ("v1.0.0-rc.1", "v1.0.0", 0),
        ],
    )
    def test_compare(self, a: str, b: str, expected: int) -> None:
        """Ordering uses only the numeric core."""
        assert compare_versions(parse_version(a), parse_version(b)) == expected

    @pytest.mark.parametrize(
        ("current", "candidate", "expected"),
        [
            ("v0.2.20", "v0.2.21", True),
            ("v0.2.21", "v0.2.20", False),
            ("v0.2.20", "v0.2.20", False),
            ("v100.0.0", "v0.2.21", False),
            ("v0.2.20", "v0.3.0-rc.1", True),
        ],
    )
    def test_is_upgrade_eligible(
        self, current: str, candidate: str, expected: bool
    ) -> None:
        """Eligible iff the candidate is strictly greater."""
        assert (
            is_upgrade_eligible(parse_version(current), parse_version(candidate))
            is expected
        )

    @pytest.mark.parametrize(
        "current", ["v0.2.20-dev", "v0.2.20-snapshot.3", "v0.2.20+sha.abc"]
    )
    def test_development_builds_are_not_comparable(self, current: str) -> None:
        """Development builds are reported, not guessed about."""
        with pytest.raises(UnsupportedBuildError):
            is_upgrade_eligible(parse_version(current), parse_version("v0.2.21"))

    def test_is_development(self) -> None:
        """Only dev/snapshot tags and build metadata mark a development build."""
        assert not parse_version("v1.0.0-rc.1").is_development
        assert parse_version("v1.0.0-devel").is_development
        assert parse_version("v1.0.0+local").is_development


# =============================================================================
# VersionOracle Tests
# =============================================================================


class TestVersionOracle:
    """Tests for VersionOracle."""

    def test_current(self) -> None:
        """The running build's version is parsed."""
        oracle = VersionOracle(BuildInfo(version="v0.2.20", build="abc123"))
        assert oracle.current == SemanticVersion(major=0, minor=2, patch=20)

    def test_malformed_running_version_is_fatal(self) -> None:
        """A corrupted build identifier raises."""
        oracle = VersionOracle(BuildInfo(version="v"))
        with pytest.raises(VersionParseError):
            _ = oracle.current

    def test_is_upgrade_eligible(self) -> None:
        """Eligibility is decided against the running build."""
        oracle = VersionOracle(BuildInfo(version="v0.2.20"))
        assert oracle.is_upgrade_eligible(parse_version("v0.2.21"))
        assert not oracle.is_upgrade_eligible(parse_version("v0.2.20"))

    def test_oracles_are_independent(self) -> None:
        """Two oracles never share the running version."""
        old = VersionOracle(BuildInfo(version="v0.2.20"))
        new = VersionOracle(BuildInfo(version="v100.0.0"))
        candidate = parse_version("v0.2.21")

        assert old.is_upgrade_eligible(candidate)
        assert not new.is_upgrade_eligible(candidate)
