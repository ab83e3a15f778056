"""
Atomic replacement of the running executable.

The running process keeps its image mapped while the file behind it is
swapped, so the live path is only ever changed with rename-style moves:

1. The candidate is written to ``<exe>.new`` via a temp file and made executable.
2. An existing ``<exe>.old`` is set aside as ``<exe>.old.prev``; ``<exe>`` is
   hard-linked (or copied) to a temp name and renamed to ``<exe>.old``. The
   live path is not touched.
3. ``<exe>.new`` is renamed over ``<exe>``.
   On failure ``<exe>.old.prev`` is moved back; on success it is removed.

A crash at any point leaves a valid executable at ``<exe>``. Only one backup
is kept; each successful promote overwrites it.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import stat
import sys
from pathlib import Path

from pydantic import BaseModel

from relctl.errors import NoBackupAvailableError, ReplaceError
from relctl.logging import get_logger

logger = get_logger(__name__)

BACKUP_SUFFIX = ".old"
STAGING_SUFFIX = ".new"
TEMP_SUFFIX = ".tmp"
PREVIOUS_SUFFIX = ".prev"
EXECUTABLE_MODE = 0o755


class ExecutableState(BaseModel):
    """
    The on-disk paths involved in a replacement.

    Attributes:
        current_path: The live executable.
        backup_path: Where the previous executable is kept after a promote.
        staging_path: Where a downloaded candidate waits for promotion.
    """

    current_path: Path
    backup_path: Path
    staging_path: Path

    @classmethod
    def for_executable(cls, executable: Path) -> ExecutableState:
        """Derive backup and staging paths from the executable's path."""
        return cls(
            current_path=executable,
            backup_path=executable.with_name(executable.name + BACKUP_SUFFIX),
            staging_path=executable.with_name(executable.name + STAGING_SUFFIX),
        )


def default_executable() -> Path:
    """Return the resolved path of the running executable."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve()
    found = shutil.which(sys.argv[0]) or sys.argv[0]
    return Path(found).resolve()


def is_executable_file(path: Path) -> bool:
    """Return True if path is a non-empty regular file with an execute bit."""
    try:
        st = path.stat()
    except OSError:
        return False
    return (
        stat.S_ISREG(st.st_mode)
        and st.st_size > 0
        and bool(st.st_mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))
    )


def _remove_quietly(path: Path) -> None:
    with contextlib.suppress(FileNotFoundError):
        path.unlink()


class ExecutableReplacer:
    """
    Stages, promotes and rolls back the executable.

    Attributes:
        state: Paths of the live, backup and staging files.
    """

    def __init__(self, executable: Path | str | None = None) -> None:
        """
        Initialize the replacer.

        Args:
            executable: Path of the executable to manage. Defaults to the
                running executable.
        """
        current = Path(executable) if executable else default_executable()
        self._state = ExecutableState.for_executable(current)

    @property
    def state(self) -> ExecutableState:
        """Get the managed paths."""
        return self._state

    def has_backup(self) -> bool:
        """Return True if a backup executable is available for rollback."""
        return self._state.backup_path.is_file()

    def discard_staging(self, staging_path: Path | None = None) -> None:
        """Remove a staged candidate, if any."""
        path = staging_path or self._state.staging_path
        _remove_quietly(path)
        _remove_quietly(path.with_name(path.name + TEMP_SUFFIX))

    def stage(self, artifact: bytes) -> Path:
        """
        Write a candidate executable to the staging path.

        Args:
            artifact: The executable's contents.

        Returns:
            The staging path.

        Raises:
            ReplaceError: If the candidate cannot be written.
        """
        staging = self._state.staging_path
        temp_path = staging.with_name(staging.name + TEMP_SUFFIX)

        try:
            with open(temp_path, "wb") as f:
                f.write(artifact)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_path, EXECUTABLE_MODE)
            os.replace(temp_path, staging)
        except OSError as e:
            self.discard_staging(staging)
            raise ReplaceError(
                f"Failed to stage new executable: {e}",
                details={"staging_path": str(staging)},
            ) from e

        logger.info(
            "Staged new executable",
            extra={"staging_path": str(staging), "bytes": len(artifact)},
        )
        return staging

    def _backup_current(self) -> None:
        """Point the backup path at the current executable without moving it."""
        current = self._state.current_path
        backup = self._state.backup_path
        temp_path = backup.with_name(backup.name + TEMP_SUFFIX)

        _remove_quietly(temp_path)
        try:
            os.link(current, temp_path)
        except OSError:
            shutil.copy2(current, temp_path)
        os.replace(temp_path, backup)

    def _restore_backup(self, previous: Path, had_backup: bool) -> None:
        """Put the backup that existed before a failed promote back in place."""
        backup = self._state.backup_path
        try:
            if had_backup:
                if previous.exists():
                    os.replace(previous, backup)
            else:
                _remove_quietly(backup)
        except OSError as e:
            logger.error(
                "Failed to restore previous backup",
                extra={"backup_path": str(backup), "error": str(e)},
            )

    def promote(self, staging_path: Path | None = None) -> Path:
        """
        Make the staged candidate the live executable.

        The staged file is verified before anything else is touched. The
        current executable is then retained as the backup and the candidate
        renamed over it.

        Args:
            staging_path: The staged candidate. Defaults to the staging path.

        Returns:
            The live executable path.

        Raises:
            ReplaceError: If the candidate is not executable or the swap
                fails. The live path still holds the pre-upgrade executable.
        """
        staging = staging_path or self._state.staging_path
        current = self._state.current_path
        backup = self._state.backup_path

        if not is_executable_file(staging):
            self.discard_staging(staging)
            raise ReplaceError(
                f"Staged file is not an executable: {staging}",
                details={"staging_path": str(staging)},
            )

        if not current.is_file():
            self.discard_staging(staging)
            raise ReplaceError(
                f"Current executable not found: {current}",
                details={"current_path": str(current)},
            )

        previous = backup.with_name(backup.name + PREVIOUS_SUFFIX)
        had_backup = self.has_backup()

        try:
            if had_backup:
                os.replace(backup, previous)
            self._backup_current()
        except OSError as e:
            _remove_quietly(backup.with_name(backup.name + TEMP_SUFFIX))
            self._restore_backup(previous, had_backup)
            self.discard_staging(staging)
            raise ReplaceError(
                f"Failed to back up current executable: {e}",
                details={"current_path": str(current), "backup_path": str(backup)},
            ) from e

        logger.debug("Backed up current executable", extra={"backup_path": str(backup)})

        try:
            os.replace(staging, current)
        except OSError as e:
            # The rename is atomic, so current still holds the old executable
            self._restore_backup(previous, had_backup)
            self.discard_staging(staging)
            logger.error(
                "Failed to promote staged executable",
                extra={"current_path": str(current), "error": str(e)},
            )
            raise ReplaceError(
                f"Failed to replace executable: {e}",
                details={"current_path": str(current), "staging_path": str(staging)},
            ) from e

        _remove_quietly(previous)
        logger.info(
            "Promoted new executable",
            extra={"current_path": str(current), "backup_path": str(backup)},
        )
        return current

    def rollback(self) -> Path:
        """
        Restore the backup as the live executable.

        The backup is consumed: a second rollback without an intervening
        promote raises NoBackupAvailableError.

        Returns:
            The live executable path.

        Raises:
            NoBackupAvailableError: If there is no backup.
            ReplaceError: If the backup cannot be moved into place.
        """
        current = self._state.current_path
        backup = self._state.backup_path

        if not self.has_backup():
            raise NoBackupAvailableError(
                f"No backup executable at {backup}",
                details={"backup_path": str(backup)},
            )

        try:
            os.replace(backup, current)
        except OSError as e:
            raise ReplaceError(
                f"Failed to restore backup executable: {e}",
                details={"current_path": str(current), "backup_path": str(backup)},
            ) from e

        logger.info(
            "Rolled back executable",
            extra={"current_path": str(current), "backup_path": str(backup)},
        )
        return current
