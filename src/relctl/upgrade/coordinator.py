"""
Upgrade coordinator for relctl.

This module implements the UpgradeCoordinator, the single entry point of the
self-upgrade subsystem. It drives a small state machine:

Upgrade:  idle -> platform_checked -> version_checked -> fetched -> staged -> promoted
Rollback: idle -> platform_checked -> rolled_back

Any step may instead move to failed. Every failure is raised as its own
error kind; the coordinator never folds them into a generic error.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

from relctl.errors import AlreadyUpToDateError, InvalidTransitionError
from relctl.logging import get_logger
from relctl.upgrade.archive import extract_binary
from relctl.upgrade.platform import Architecture, Platform, PlatformPolicy
from relctl.upgrade.release import LATEST, ReleaseLocator, VersionSelector
from relctl.upgrade.replacer import ExecutableReplacer
from relctl.upgrade.version import BuildInfo, SemanticVersion, VersionOracle

if TYPE_CHECKING:
    from relctl.config import UpgradeConfig
    from relctl.upgrade.release import ReleaseClient

logger = get_logger(__name__)

Extractor = Callable[[bytes, str, str], bytes]


class UpgradeState(str, Enum):
    """States of the upgrade state machine."""

    IDLE = "idle"
    PLATFORM_CHECKED = "platform_checked"
    VERSION_CHECKED = "version_checked"
    FETCHED = "fetched"
    STAGED = "staged"
    PROMOTED = "promoted"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


class Operation(str, Enum):
    """What the coordinator was asked to do."""

    UPGRADE = "upgrade"
    ROLLBACK = "rollback"


_TERMINAL_STATES = {UpgradeState.PROMOTED, UpgradeState.ROLLED_BACK, UpgradeState.FAILED}

# Valid state transitions
_VALID_TRANSITIONS: dict[UpgradeState, set[UpgradeState]] = {
    UpgradeState.IDLE: {UpgradeState.PLATFORM_CHECKED, UpgradeState.FAILED},
    UpgradeState.PLATFORM_CHECKED: {
        UpgradeState.VERSION_CHECKED,
        UpgradeState.ROLLED_BACK,
        UpgradeState.FAILED,
    },
    UpgradeState.VERSION_CHECKED: {UpgradeState.FETCHED, UpgradeState.FAILED},
    UpgradeState.FETCHED: {UpgradeState.STAGED, UpgradeState.FAILED},
    UpgradeState.STAGED: {UpgradeState.PROMOTED, UpgradeState.FAILED},
    UpgradeState.PROMOTED: set(),
    UpgradeState.ROLLED_BACK: set(),
    UpgradeState.FAILED: set(),
}


class UpgradeResult(BaseModel):
    """
    Outcome of a successful upgrade or rollback.

    Attributes:
        operation: "upgrade" or "rollback".
        state: Terminal state reached.
        message: Human-readable confirmation.
        previous_version: Version of the running build.
        version: Version now installed, when known.
    """

    operation: Operation
    state: UpgradeState
    message: str
    previous_version: str | None = None
    version: str | None = None


class UpgradeCoordinator:
    """
    Orchestrates self-upgrade and rollback.

    The platform, the running build and the executable path are all passed in,
    so a coordinator never consults process-wide state.

    Attributes:
        platform: Platform the coordinator operates on.
        architecture: CPU architecture used to pick artifacts.
        state: Current state machine state.
    """

    def __init__(
        self,
        build_info: BuildInfo,
        platform: Platform,
        locator: ReleaseLocator,
        replacer: ExecutableReplacer,
        *,
        architecture: Architecture = Architecture.X86_64,
        policy: PlatformPolicy | None = None,
        extractor: Extractor = extract_binary,
        binary_name: str = "relctl",
    ) -> None:
        """
        Initialize the UpgradeCoordinator.

        Args:
            build_info: Identity of the running build.
            platform: Platform to operate on.
            locator: Resolves and fetches release artifacts.
            replacer: Swaps the executable on disk.
            architecture: CPU architecture used to pick artifacts.
            policy: Platform support policy. Defaults to Linux and macOS.
            extractor: Pulls the executable out of a release artifact.
            binary_name: Executable name inside release artifacts.
        """
        self._oracle = VersionOracle(build_info)
        self.platform = platform
        self.architecture = architecture
        self._locator = locator
        self._replacer = replacer
        self._policy = policy or PlatformPolicy(binary_name=binary_name)
        self._extractor = extractor
        self._binary_name = binary_name
        self._state = UpgradeState.IDLE
        self._history: list[UpgradeState] = [UpgradeState.IDLE]

    @classmethod
    def from_config(
        cls,
        config: UpgradeConfig,
        build_info: BuildInfo,
        client: ReleaseClient | None = None,
    ) -> UpgradeCoordinator:
        """
        Create a coordinator from the upgrade configuration.

        Args:
            config: Upgrade configuration.
            build_info: Identity of the running build.
            client: Release client. Defaults to a GitHubReleaseClient.
        """
        if client is None:
            from relctl.upgrade.github import GitHubReleaseClient

            client = GitHubReleaseClient.from_config(config)

        platform = (
            Platform.from_name(config.platform) if config.platform else Platform.detect()
        )
        return cls(
            build_info=build_info,
            platform=platform,
            architecture=(
                Architecture.from_name(config.architecture)
                if config.architecture
                else Architecture.detect()
            ),
            locator=ReleaseLocator(client, binary_name=config.binary_name),
            replacer=ExecutableReplacer(config.override_executable),
            policy=PlatformPolicy(
                upgrade_platforms=config.upgrade_platforms,
                rollback_platforms=config.rollback_platforms,
                binary_name=config.binary_name,
            ),
            binary_name=config.binary_name,
        )

    @property
    def state(self) -> UpgradeState:
        """Get the current state."""
        return self._state

    @property
    def history(self) -> list[UpgradeState]:
        """States visited so far, oldest first."""
        return list(self._history)

    @property
    def replacer(self) -> ExecutableReplacer:
        """Get the executable replacer."""
        return self._replacer

    def _transition_to(self, new_state: UpgradeState) -> None:
        """
        Transition to a new state.

        Raises:
            InvalidTransitionError: If the transition is not valid.
        """
        current = self._state

        if new_state not in _VALID_TRANSITIONS[current]:
            raise InvalidTransitionError(
                f"Invalid state transition from {current.value} to {new_state.value}",
                details={
                    "current_state": current.value,
                    "target_state": new_state.value,
                    "valid_transitions": sorted(
                        s.value for s in _VALID_TRANSITIONS[current]
                    ),
                },
            )

        logger.info(
            f"State transition: {current.value} -> {new_state.value}",
            extra={"old_state": current.value, "new_state": new_state.value},
        )
        self._state = new_state
        self._history.append(new_state)

    def _start(self, operation: Operation) -> None:
        if self._state is not UpgradeState.IDLE:
            raise InvalidTransitionError(
                f"Cannot start {operation.value} while in {self._state.value} state",
                details={"current_state": self._state.value},
            )

    def _fail(self, error: Exception) -> None:
        logger.warning(
            f"Upgrade step failed in {self._state.value} state",
            extra={
                "state": self._state.value,
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )
        if self._state not in _TERMINAL_STATES:
            self._transition_to(UpgradeState.FAILED)

    def reset(self) -> None:
        """Return the coordinator to the idle state for another run."""
        self._state = UpgradeState.IDLE
        self._history = [UpgradeState.IDLE]

    def _check_version(self, target: VersionSelector) -> tuple[SemanticVersion, SemanticVersion]:
        """Return (current, candidate) or raise if there is nothing to do."""
        current = self._oracle.current

        if target == LATEST:
            candidate = self._locator.latest_version()
            if not self._oracle.is_upgrade_eligible(candidate):
                raise AlreadyUpToDateError(
                    f"You already have the latest version of {self._binary_name} ({current})",
                    details={"current": str(current), "latest": str(candidate)},
                )
            return current, candidate

        if not self._oracle.is_upgrade_eligible(target):
            raise AlreadyUpToDateError(
                f"{self._binary_name} {current} is already at or newer than {target}",
                details={"current": str(current), "target": str(target)},
            )
        return current, target

    def upgrade(self, target: VersionSelector = LATEST) -> UpgradeResult:
        """
        Upgrade the executable to the target release.

        Args:
            target: "latest" or an explicit version.

        Returns:
            UpgradeResult with a confirmation naming the new version.

        Raises:
            UnsupportedPlatformError: If upgrade is not supported here.
            VersionParseError: If the running version is malformed.
            UnsupportedBuildError: If the running build is a development build.
            AlreadyUpToDateError: If there is nothing to upgrade to.
            NotFoundError: If no artifact exists for the target and platform.
            TransportError: If the release host cannot be reached.
            ReplaceError: If the executable could not be replaced.
        """
        self._start(Operation.UPGRADE)
        logger.info(
            "Starting upgrade",
            extra={"platform": self.platform.value, "target": str(target)},
        )

        try:
            self._policy.ensure_upgrade_supported(
                self.platform, self._replacer.state.current_path
            )
            self._transition_to(UpgradeState.PLATFORM_CHECKED)

            current, candidate = self._check_version(target)
            self._transition_to(UpgradeState.VERSION_CHECKED)

            reference = self._locator.resolve(candidate, self.platform, self.architecture)
            artifact = self._locator.fetch(reference)
            self._transition_to(UpgradeState.FETCHED)

            binary = self._extractor(artifact, reference.asset_name, self._binary_name)
            staging_path = self._replacer.stage(binary)
            self._transition_to(UpgradeState.STAGED)

            self._replacer.promote(staging_path)
            self._transition_to(UpgradeState.PROMOTED)
        except Exception as e:
            self._fail(e)
            raise

        return UpgradeResult(
            operation=Operation.UPGRADE,
            state=self._state,
            message=f"Successfully updated to version {reference.version}",
            previous_version=str(current),
            version=str(reference.version),
        )

    def rollback(self) -> UpgradeResult:
        """
        Restore the executable that the last upgrade replaced.

        Version and release lookups are skipped entirely.

        Returns:
            UpgradeResult with a confirmation message.

        Raises:
            UnsupportedPlatformError: If rollback is not supported here.
            NoBackupAvailableError: If there is no backup to restore.
            ReplaceError: If the backup could not be moved into place.
        """
        self._start(Operation.ROLLBACK)
        logger.info("Starting rollback", extra={"platform": self.platform.value})

        try:
            self._policy.ensure_rollback_supported(self.platform)
            self._transition_to(UpgradeState.PLATFORM_CHECKED)

            self._replacer.rollback()
            self._transition_to(UpgradeState.ROLLED_BACK)
        except Exception as e:
            self._fail(e)
            raise

        return UpgradeResult(
            operation=Operation.ROLLBACK,
            state=self._state,
            message=(
                f"Successfully rolled back {self._binary_name} from "
                f"{self._oracle.build_info.version} to the previously installed binary; "
                "its version was not recorded"
            ),
            previous_version=self._oracle.build_info.version,
        )

    def run(
        self,
        *,
        rollback: bool = False,
        target: VersionSelector = LATEST,
    ) -> UpgradeResult:
        """
        Run the requested operation.

        A rollback request short-circuits to the rollback path and ignores
        the target.
        """
        if rollback:
            return self.rollback()
        return self.upgrade(target)
