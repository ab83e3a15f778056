"""
Self-upgrade and rollback for relctl.

This package implements the complete self-upgrade functionality:
- Version parsing and upgrade eligibility
- Platform support policy for upgrade and rollback
- Release lookup and artifact download
- Atomic replacement of the running executable
- The coordinator state machine tying them together
"""

from relctl.upgrade.archive import extract_binary
from relctl.upgrade.coordinator import (
    Operation,
    UpgradeCoordinator,
    UpgradeResult,
    UpgradeState,
)
from relctl.upgrade.github import GitHubReleaseClient
from relctl.upgrade.platform import Architecture, Platform, PlatformPolicy
from relctl.upgrade.release import (
    LATEST,
    Release,
    ReleaseAsset,
    ReleaseClient,
    ReleaseLocator,
    ReleaseReference,
    artifact_name,
    parse_selector,
)
from relctl.upgrade.replacer import ExecutableReplacer, ExecutableState
from relctl.upgrade.version import (
    BuildInfo,
    SemanticVersion,
    VersionOracle,
    compare_versions,
    is_upgrade_eligible,
    parse_version,
)

__all__ = [
    # Versions
    "BuildInfo",
    "SemanticVersion",
    "VersionOracle",
    "compare_versions",
    "is_upgrade_eligible",
    "parse_version",
    # Platforms
    "Architecture",
    "Platform",
    "PlatformPolicy",
    # Releases
    "LATEST",
    "Release",
    "ReleaseAsset",
    "ReleaseClient",
    "ReleaseLocator",
    "ReleaseReference",
    "GitHubReleaseClient",
    "artifact_name",
    "parse_selector",
    "extract_binary",
    # Executable replacement
    "ExecutableReplacer",
    "ExecutableState",
    # Coordinator
    "Operation",
    "UpgradeCoordinator",
    "UpgradeResult",
    "UpgradeState",
]
