"""
Platform detection and the upgrade/rollback support policy.

Replacing a running executable is only reliable where a rename over the live
file leaves the running process untouched. That holds on Linux and macOS; on
Windows the loaded image locks the file. Unknown platforms are never
supported.
"""

from __future__ import annotations

import platform as _platform
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from relctl.errors import UnsupportedPlatformError
from relctl.logging import get_logger

logger = get_logger(__name__)


class Platform(str, Enum):
    """Operating systems relctl distinguishes."""

    LINUX = "linux"
    DARWIN = "darwin"
    WINDOWS = "windows"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        """Name used in release artifact names (e.g., "Linux")."""
        return self.value.capitalize()

    @classmethod
    def from_name(cls, name: str | None) -> Platform:
        """Map an OS name (as from platform.system()) to a Platform."""
        if not name:
            return cls.UNKNOWN
        try:
            return cls(name.strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def detect(cls) -> Platform:
        """Detect the host platform."""
        return cls.from_name(_platform.system())


class Architecture(str, Enum):
    """CPU architectures release artifacts are built for."""

    X86_64 = "x86_64"
    ARM64 = "arm64"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str | None) -> Architecture:
        """Map a machine name (as from platform.machine()) to an Architecture."""
        aliases = {
            "x86_64": cls.X86_64,
            "amd64": cls.X86_64,
            "arm64": cls.ARM64,
            "aarch64": cls.ARM64,
        }
        if not name:
            return cls.UNKNOWN
        return aliases.get(name.strip().lower(), cls.UNKNOWN)

    @classmethod
    def detect(cls) -> Architecture:
        """Detect the host CPU architecture."""
        return cls.from_name(_platform.machine())


DEFAULT_UPGRADE_PLATFORMS = frozenset({Platform.LINUX, Platform.DARWIN})
DEFAULT_ROLLBACK_PLATFORMS = frozenset({Platform.LINUX, Platform.DARWIN})

# Path fragments of executables installed by Homebrew
HOMEBREW_MARKERS = ("/Cellar/", "/homebrew/")


def is_homebrew_install(executable: Path) -> bool:
    """Return True if the executable lives under a Homebrew prefix."""
    try:
        resolved = str(executable.resolve())
    except OSError:
        resolved = str(executable)
    return any(marker in resolved for marker in HOMEBREW_MARKERS)


class PlatformPolicy:
    """
    Decides whether upgrade and rollback are allowed on a platform.

    Rollback support is configured independently of upgrade support: a
    platform may allow upgrades while lacking a way to keep a backup.

    Attributes:
        upgrade_platforms: Platforms on which upgrade is supported.
        rollback_platforms: Platforms on which rollback is supported.
        binary_name: Executable name used in remediation hints.
    """

    def __init__(
        self,
        upgrade_platforms: Iterable[Platform | str] | None = None,
        rollback_platforms: Iterable[Platform | str] | None = None,
        binary_name: str = "relctl",
    ) -> None:
        self.upgrade_platforms = (
            frozenset(Platform(p) for p in upgrade_platforms)
            if upgrade_platforms is not None
            else DEFAULT_UPGRADE_PLATFORMS
        )
        self.rollback_platforms = (
            frozenset(Platform(p) for p in rollback_platforms)
            if rollback_platforms is not None
            else DEFAULT_ROLLBACK_PLATFORMS
        )
        self.binary_name = binary_name

    def supports_upgrade(self, platform: Platform) -> bool:
        """Return True if self-upgrade is supported on the platform."""
        return platform is not Platform.UNKNOWN and platform in self.upgrade_platforms

    def supports_rollback(self, platform: Platform) -> bool:
        """Return True if rollback is supported on the platform."""
        return platform is not Platform.UNKNOWN and platform in self.rollback_platforms

    def ensure_upgrade_supported(
        self,
        platform: Platform,
        executable: Path | None = None,
    ) -> None:
        """
        Fail fast if an upgrade cannot run here.

        Args:
            platform: Platform the upgrade would run on.
            executable: Executable that would be replaced. Used to detect
                package-manager installs on macOS.

        Raises:
            UnsupportedPlatformError: If upgrade is not supported.
        """
        if not self.supports_upgrade(platform):
            logger.info(
                "Upgrade not supported on platform",
                extra={"platform": platform.value},
            )
            raise UnsupportedPlatformError(
                f"{self.binary_name} upgrade is not available on {platform.display_name}",
                details={"platform": platform.value, "operation": "upgrade"},
            )

        if (
            platform is Platform.DARWIN
            and executable is not None
            and is_homebrew_install(executable)
        ):
            raise UnsupportedPlatformError(
                f"{self.binary_name} was installed with Homebrew",
                details={"platform": platform.value, "executable": str(executable)},
                hint=f"Run 'brew upgrade {self.binary_name}' instead",
            )

    def ensure_rollback_supported(self, platform: Platform) -> None:
        """
        Fail fast if a rollback cannot run here.

        Raises:
            UnsupportedPlatformError: If rollback is not supported.
        """
        if not self.supports_rollback(platform):
            logger.info(
                "Rollback not supported on platform",
                extra={"platform": platform.value},
            )
            raise UnsupportedPlatformError(
                f"{self.binary_name} rollback is not available on {platform.display_name}",
                details={"platform": platform.value, "operation": "rollback"},
                hint="Roll back by reinstalling the previous release archive",
            )
