"""
GitHub Releases client for relctl.

Implements the ReleaseClient protocol against the GitHub REST API. A 404 from
the API is reported as NotFoundError so callers can tell "no such release"
apart from a network failure, which is reported as TransportError with the
original httpx exception as its cause.
"""

from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING, Any

import httpx

from relctl.errors import NotFoundError, TransportError
from relctl.logging import get_logger
from relctl.upgrade.release import Release, ReleaseAsset

if TYPE_CHECKING:
    from relctl.config import UpgradeConfig

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.github.com"


class GitHubReleaseClient:
    """
    Fetches release metadata and artifacts from GitHub.

    Attributes:
        repository: Repository in "owner/name" form.
        api_url: Base URL of the GitHub API.

    Example:
        >>> with GitHubReleaseClient("relctl/relctl") as client:
        ...     release = client.latest_release()
    """

    def __init__(
        self,
        repository: str,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = 30.0,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            repository: Repository in "owner/name" form.
            api_url: Base URL of the GitHub API.
            timeout_seconds: Timeout applied to every request.
            token: Optional token for authenticated requests.
            transport: Optional httpx transport (used by tests).
        """
        self.repository = repository
        self.api_url = api_url.rstrip("/")
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "relctl",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            timeout=timeout_seconds,
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: UpgradeConfig) -> GitHubReleaseClient:
        """Create a client from the upgrade configuration."""
        return cls(
            repository=config.repository,
            api_url=config.api_url,
            timeout_seconds=config.timeout_seconds,
            token=config.github_token,
        )

    def __enter__(self) -> GitHubReleaseClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def _get(self, url: str) -> httpx.Response:
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFoundError(
                    f"Not found: {url}",
                    details={"url": url, "repository": self.repository},
                ) from e
            logger.error(
                "Release host returned an error",
                extra={"url": url, "status_code": e.response.status_code},
            )
            raise TransportError(
                f"Release host returned HTTP {e.response.status_code}",
                details={"url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error("Failed to reach release host", extra={"url": url, "error": str(e)})
            raise TransportError(
                f"Failed to reach release host: {e}",
                details={"url": url},
            ) from e
        return response

    def _get_release(self, url: str) -> Release:
        response = self._get(url)
        try:
            return self._parse_release(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise TransportError(
                f"Invalid release data from {url}: {e}",
                details={"url": url},
            ) from e

    def _parse_release(self, data: dict[str, Any]) -> Release:
        return Release(
            tag=data["tag_name"],
            prerelease=bool(data.get("prerelease", False)),
            assets=[
                ReleaseAsset(
                    name=asset["name"],
                    download_url=asset["browser_download_url"],
                    size=asset.get("size"),
                )
                for asset in data.get("assets", [])
            ],
        )

    def latest_release(self) -> Release:
        """Return the newest non-prerelease release."""
        return self._get_release(
            f"{self.api_url}/repos/{self.repository}/releases/latest"
        )

    def get_release(self, tag: str) -> Release:
        """Return the release with the given tag."""
        return self._get_release(
            f"{self.api_url}/repos/{self.repository}/releases/tags/{tag}"
        )

    def download(self, url: str) -> bytes:
        """Download an artifact."""
        response = self._get(url)
        logger.debug(
            "Downloaded artifact",
            extra={"url": url, "bytes": len(response.content)},
        )
        return response.content
