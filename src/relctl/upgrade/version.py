"""
Version parsing and comparison for relctl.

Release tags and the running build identify themselves with strings of the
form ``vMAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]``. Ordering considers only the
numeric core (major, minor, patch); the pre-release and build tags are kept
for display and for recognising development builds.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

from relctl.errors import UnsupportedBuildError, VersionParseError
from relctl.logging import get_logger

logger = get_logger(__name__)

# Accepts: v1.0.0, v0.2.21, v2.0.0-beta.1, v1.0.0-alpha+build.123
VERSION_PATTERN = re.compile(
    r"^v(?P<major>0|[1-9]\d*)"
    r"\.(?P<minor>0|[1-9]\d*)"
    r"\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

# Pre-release tags that mark a local or CI build rather than a release
DEVELOPMENT_MARKERS = ("dev", "snapshot")


class SemanticVersion(BaseModel):
    """
    A parsed version.

    Attributes:
        major: Major version number.
        minor: Minor version number.
        patch: Patch version number.
        prerelease: Pre-release tag (e.g., "rc.1"), if any.
        build: Build metadata (e.g., "sha.abc123"), if any.
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(..., ge=0)
    minor: int = Field(..., ge=0)
    patch: int = Field(..., ge=0)
    prerelease: str | None = None
    build: str | None = None

    @property
    def core(self) -> tuple[int, int, int]:
        """The (major, minor, patch) triple used for ordering."""
        return (self.major, self.minor, self.patch)

    @property
    def is_development(self) -> bool:
        """True for builds carrying build metadata or a dev/snapshot tag."""
        if self.build:
            return True
        if self.prerelease:
            return self.prerelease.lower().startswith(DEVELOPMENT_MARKERS)
        return False

    def __str__(self) -> str:
        text = f"v{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text


class BuildInfo(BaseModel):
    """
    Identity of the running build.

    Attributes:
        version: Version string the binary was built with.
        build: Commit or build identifier, if known.
        build_time: Build timestamp, if known.
    """

    version: str
    build: str | None = None
    build_time: str | None = None


def parse_version(raw: str) -> SemanticVersion:
    """
    Parse a version string.

    Args:
        raw: Version string (e.g., "v0.2.21", "v1.2.3-rc.1").

    Returns:
        The parsed SemanticVersion.

    Raises:
        VersionParseError: If the string is empty, lacks the leading "v",
            or has non-numeric components.
    """
    if not raw:
        raise VersionParseError(
            "Version string cannot be empty",
            details={"version": raw},
        )

    if not raw.startswith("v"):
        raise VersionParseError(
            f"Version string must start with 'v': {raw}",
            details={"version": raw},
            hint=f"Use 'v{raw}' instead of '{raw}'",
        )

    match = VERSION_PATTERN.fullmatch(raw)
    if not match:
        raise VersionParseError(
            f"Invalid version: {raw}",
            details={
                "version": raw,
                "format": "vMAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]",
            },
        )

    return SemanticVersion(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=match.group("prerelease"),
        build=match.group("build"),
    )


def compare_versions(a: SemanticVersion, b: SemanticVersion) -> int:
    """
    Compare two versions on (major, minor, patch).

    Returns:
        -1 if a < b, 0 if a == b, 1 if a > b
    """
    if a.core < b.core:
        return -1
    if a.core > b.core:
        return 1
    return 0


def is_upgrade_eligible(current: SemanticVersion, candidate: SemanticVersion) -> bool:
    """
    Decide whether moving from current to candidate is an upgrade.

    Args:
        current: Version of the running build.
        candidate: Version of the release being considered.

    Returns:
        True iff candidate is strictly greater than current.

    Raises:
        UnsupportedBuildError: If either version is a development build.
    """
    for version in (current, candidate):
        if version.is_development:
            raise UnsupportedBuildError(
                f"Cannot compare development build {version} for upgrade",
                details={"current": str(current), "candidate": str(candidate)},
            )
    return compare_versions(candidate, current) > 0


class VersionOracle:
    """
    Version decisions for the running build.

    The running build's identity is passed in explicitly so callers (and
    tests) control it.
    """

    def __init__(self, build_info: BuildInfo) -> None:
        self._build_info = build_info

    @property
    def build_info(self) -> BuildInfo:
        """Get the running build's identity."""
        return self._build_info

    @property
    def current(self) -> SemanticVersion:
        """
        The parsed version of the running build.

        Raises:
            VersionParseError: If the build identifier is malformed.
        """
        try:
            return parse_version(self._build_info.version)
        except VersionParseError:
            logger.error(
                "Running build has a malformed version",
                extra={
                    "version": self._build_info.version,
                    "build": self._build_info.build,
                },
            )
            raise

    def is_upgrade_eligible(self, candidate: SemanticVersion) -> bool:
        """Return True iff candidate is newer than the running build."""
        eligible = is_upgrade_eligible(self.current, candidate)
        logger.debug(
            "Upgrade eligibility",
            extra={
                "current": self._build_info.version,
                "candidate": str(candidate),
                "eligible": eligible,
            },
        )
        return eligible
