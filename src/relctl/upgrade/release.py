"""
Release lookup for relctl.

ReleaseLocator maps a version selector ("latest" or an explicit version) and
the host platform to the downloadable artifact for that platform. It talks to
the release host only through the narrow ReleaseClient protocol.

Artifacts are named ``<binary>_<Platform>_<arch>.tar.gz`` (``.zip`` on
Windows), e.g. ``relctl_Linux_x86_64.tar.gz``.
"""

from __future__ import annotations

from typing import Literal, Protocol

from pydantic import BaseModel, Field

from relctl.errors import NotFoundError
from relctl.logging import get_logger
from relctl.upgrade.platform import Architecture, Platform
from relctl.upgrade.version import SemanticVersion, parse_version

logger = get_logger(__name__)

LATEST: Literal["latest"] = "latest"

VersionSelector = SemanticVersion | Literal["latest"]


class ReleaseAsset(BaseModel):
    """A downloadable file attached to a release."""

    name: str
    download_url: str
    size: int | None = None


class Release(BaseModel):
    """A published release and its assets."""

    tag: str
    assets: list[ReleaseAsset] = Field(default_factory=list)
    prerelease: bool = False


class ReleaseReference(BaseModel):
    """
    The artifact to fetch for one (version, platform, architecture).

    Attributes:
        version: Version of the release.
        platform: Platform the artifact is built for.
        architecture: CPU architecture the artifact is built for.
        asset_name: File name of the artifact.
        download_url: Where to fetch the artifact from.
    """

    version: SemanticVersion
    platform: Platform
    architecture: Architecture
    asset_name: str
    download_url: str


class ReleaseClient(Protocol):
    """What relctl needs from a release host."""

    def latest_release(self) -> Release:
        """Return the newest published release."""
        ...

    def get_release(self, tag: str) -> Release:
        """Return the release with the given tag, or raise NotFoundError."""
        ...

    def download(self, url: str) -> bytes:
        """Fetch an artifact's bytes."""
        ...


def parse_selector(raw: str | None) -> VersionSelector:
    """
    Parse a user-supplied target version.

    None, "" and "latest" select the newest release; anything else must be
    a valid version string.
    """
    if raw is None or raw == "" or raw.lower() == LATEST:
        return LATEST
    return parse_version(raw)


def artifact_name(
    binary_name: str,
    platform: Platform,
    architecture: Architecture,
) -> str:
    """Return the release asset name for a platform and architecture."""
    extension = "zip" if platform is Platform.WINDOWS else "tar.gz"
    return f"{binary_name}_{platform.display_name}_{architecture.value}.{extension}"


class ReleaseLocator:
    """Resolves version selectors to platform-specific release artifacts."""

    def __init__(self, client: ReleaseClient, binary_name: str = "relctl") -> None:
        self._client = client
        self._binary_name = binary_name

    @property
    def client(self) -> ReleaseClient:
        """Get the release client."""
        return self._client

    def latest_version(self) -> SemanticVersion:
        """
        Return the version of the newest release.

        Raises:
            NotFoundError: If no release has been published.
            VersionParseError: If the release tag is malformed.
        """
        release = self._client.latest_release()
        return parse_version(release.tag)

    def resolve(
        self,
        selector: VersionSelector,
        platform: Platform,
        architecture: Architecture,
    ) -> ReleaseReference:
        """
        Resolve a selector to the artifact for this platform.

        Args:
            selector: "latest" or an explicit version.
            platform: Platform the artifact must run on.
            architecture: CPU architecture the artifact must run on.

        Returns:
            The matching ReleaseReference.

        Raises:
            NotFoundError: If the release does not exist or has no artifact
                for the platform and architecture.
        """
        if platform is Platform.UNKNOWN or architecture is Architecture.UNKNOWN:
            raise NotFoundError(
                "No release artifacts are published for this platform",
                details={"platform": platform.value, "architecture": architecture.value},
            )

        if selector == LATEST:
            release = self._client.latest_release()
        else:
            release = self._client.get_release(str(selector))

        version = parse_version(release.tag)
        expected = artifact_name(self._binary_name, platform, architecture)

        for asset in release.assets:
            if asset.name == expected:
                logger.info(
                    "Resolved release artifact",
                    extra={"version": str(version), "asset": asset.name},
                )
                return ReleaseReference(
                    version=version,
                    platform=platform,
                    architecture=architecture,
                    asset_name=asset.name,
                    download_url=asset.download_url,
                )

        raise NotFoundError(
            f"Release {version} has no artifact for "
            f"{platform.display_name}/{architecture.value}",
            details={
                "version": str(version),
                "expected_asset": expected,
                "available_assets": [asset.name for asset in release.assets],
            },
        )

    def fetch(self, reference: ReleaseReference) -> bytes:
        """Download the artifact a reference points to."""
        logger.info(
            "Downloading release artifact",
            extra={"url": reference.download_url, "version": str(reference.version)},
        )
        return self._client.download(reference.download_url)
