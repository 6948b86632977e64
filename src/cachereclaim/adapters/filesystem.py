"""Local filesystem adapter implementing FilesystemPort."""

from __future__ import annotations

import contextlib
import os
import shutil
import stat
from pathlib import Path
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable


def _clear_readonly(func: Callable[..., object], path: str, _exc: BaseException) -> None:
    """rmtree error handler: clear the read-only bit and retry once."""
    os.chmod(path, stat.S_IWRITE)
    func(path)


class LocalFilesystem:
    """Filesystem adapter for the cache directory.

    Implements FilesystemPort with pathlib and shutil.
    """

    def directory_size(self, path: Path) -> int:
        """Calculate total size of all files under path in bytes.

        Files that vanish or cannot be read while scanning are skipped.

        Args:
            path: Folder to measure.

        Returns:
            Total size in bytes. 0 if the folder does not exist.
        """
        if not path.is_dir():
            return 0

        total_size = 0
        for file_path in path.rglob("*"):
            with contextlib.suppress(OSError):
                if file_path.is_file():
                    total_size += file_path.stat().st_size
        return total_size

    def list_folders(self, root: Path) -> list[Path]:
        """List folders directly under root.

        Args:
            root: The cache directory.

        Returns:
            Folders sorted by name. Empty if root does not exist.
        """
        if not root.is_dir():
            return []
        return sorted((p for p in root.iterdir() if p.is_dir()), key=lambda p: p.name)

    def remove_tree(self, path: Path) -> None:
        """Remove a folder recursively, forcing removal of read-only files.

        Args:
            path: Folder to remove.

        Raises:
            OSError: If the folder cannot be removed.
        """
        shutil.rmtree(path, onexc=_clear_readonly)
