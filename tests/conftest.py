"""
Pytest configuration and shared fixtures for the relctl tests.
"""

from __future__ import annotations

import io
import logging
import os
import tarfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from relctl.errors import NotFoundError
from relctl.upgrade.release import Release, ReleaseAsset


def make_tar_gz(members: dict[str, bytes]) -> bytes:
    """Build a .tar.gz archive in memory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, content in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o755
            archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


class FakeReleaseClient:
    """In-memory release host recording every call it receives."""

    def __init__(
        self,
        releases: list[Release] | None = None,
        artifacts: dict[str, bytes] | None = None,
    ) -> None:
        self.releases = releases or []
        self.artifacts = artifacts or {}
        self.calls: list[tuple[str, str | None]] = []

    def latest_release(self) -> Release:
        self.calls.append(("latest_release", None))
        if not self.releases:
            raise NotFoundError("No releases published")
        return self.releases[0]

    def get_release(self, tag: str) -> Release:
        self.calls.append(("get_release", tag))
        for release in self.releases:
            if release.tag == tag:
                return release
        raise NotFoundError(f"Release {tag} not found")

    def download(self, url: str) -> bytes:
        self.calls.append(("download", url))
        if url not in self.artifacts:
            raise NotFoundError(f"Not found: {url}")
        return self.artifacts[url]


def make_release(tag: str, binary: bytes, binary_name: str = "relctl") -> tuple[Release, dict[str, bytes]]:
    """Build a release with Linux and Darwin x86_64 artifacts containing binary."""
    release = Release(tag=tag)
    artifacts: dict[str, bytes] = {}
    for platform_name in ("Linux", "Darwin"):
        name = f"{binary_name}_{platform_name}_x86_64.tar.gz"
        url = f"https://example.invalid/{tag}/{name}"
        release.assets.append(ReleaseAsset(name=name, download_url=url))
        artifacts[url] = make_tar_gz({f"{binary_name}_{tag}/{binary_name}": binary})
    return release, artifacts


@pytest.fixture
def fake_client() -> FakeReleaseClient:
    """Release host publishing v0.2.21 (latest) and v0.2.19."""
    latest, latest_artifacts = make_release("v0.2.21", b"binary v0.2.21")
    older, older_artifacts = make_release("v0.2.19", b"binary v0.2.19")
    return FakeReleaseClient(
        releases=[latest, older],
        artifacts={**latest_artifacts, **older_artifacts},
    )


@pytest.fixture
def executable(tmp_path: Path) -> Path:
    """An executable standing in for the running binary (v0.2.20)."""
    path = tmp_path / "bin" / "relctl"
    path.parent.mkdir()
    path.write_bytes(b"binary v0.2.20")
    os.chmod(path, 0o755)
    return path


@pytest.fixture(autouse=True)
def _cleanup_loggers() -> Iterator[None]:
    """Remove handlers installed on the relctl logger by a test."""
    yield
    logger = logging.getLogger("relctl")
    logger.handlers.clear()
    logger.propagate = True
