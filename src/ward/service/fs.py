"""Filesystem primitives used to materialize service files."""

import os
import shutil
from pathlib import Path


class FileSystem:
    """Local filesystem access for the service controller.

    Tests substitute a subclass to inject failures; every method raises
    OSError on failure.
    """

    def mkdir_all(self, path: Path) -> None:
        path.mkdir(mode=0o755, parents=True, exist_ok=True)

    def create_file(self, path: Path, data: bytes, mode: int) -> None:
        """Write a file, replacing any existing one, with the given mode."""
        path.write_bytes(data)
        os.chmod(path, mode)

    def read_file(self, path: Path) -> bytes | None:
        """Read a file, returning None if it doesn't exist."""
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def remove_all(self, path: Path) -> None:
        """Recursively remove a directory. Missing paths are not an error."""
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
