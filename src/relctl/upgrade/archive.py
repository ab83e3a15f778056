"""
Extraction of the executable from a release artifact.

Release artifacts are .tar.gz archives (.zip on Windows) that contain the
binary somewhere in their tree. Artifacts without an archive suffix are taken
to be the binary itself.
"""

from __future__ import annotations

import io
import tarfile
import zipfile
from pathlib import PurePosixPath

from relctl.errors import NotFoundError, ReplaceError
from relctl.logging import get_logger

logger = get_logger(__name__)


def _is_binary_member(name: str, binary_name: str) -> bool:
    base = PurePosixPath(name).name
    return base in (binary_name, f"{binary_name}.exe")


def extract_binary(data: bytes, asset_name: str, binary_name: str) -> bytes:
    """
    Return the executable's bytes from a release artifact.

    Args:
        data: Raw artifact bytes.
        asset_name: Artifact file name, used to pick the archive format.
        binary_name: Name of the executable inside the archive.

    Returns:
        The executable's contents.

    Raises:
        NotFoundError: If the archive does not contain the executable.
        ReplaceError: If the archive is corrupt.
    """
    try:
        if asset_name.endswith((".tar.gz", ".tgz")):
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as archive:
                for member in archive.getmembers():
                    if member.isfile() and _is_binary_member(member.name, binary_name):
                        extracted = archive.extractfile(member)
                        if extracted is not None:
                            logger.debug(
                                "Extracted binary from archive",
                                extra={"asset": asset_name, "member": member.name},
                            )
                            return extracted.read()
        elif asset_name.endswith(".zip"):
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                for info in archive.infolist():
                    if not info.is_dir() and _is_binary_member(info.filename, binary_name):
                        logger.debug(
                            "Extracted binary from archive",
                            extra={"asset": asset_name, "member": info.filename},
                        )
                        return archive.read(info)
        else:
            return data
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as e:
        raise ReplaceError(
            f"Release artifact {asset_name} is corrupt: {e}",
            details={"asset": asset_name},
            hint="Run the command again; if it keeps failing, pick a different version",
        ) from e

    raise NotFoundError(
        f"Release artifact {asset_name} does not contain {binary_name}",
        details={"asset": asset_name, "binary_name": binary_name},
    )
