"""
LocalFilesystem — the five filesystem operations the core needs

exists / read / write / list / rename, on the local disk. No shell.

Writes go to a temp file in the target directory and are moved into place
with os.replace, so a reader never sees a half-written mirror. Renames
refuse to overwrite an existing file.

Errors surface as OSError; callers translate them into grainmirror errors.
"""

import os
import tempfile
from pathlib import Path
from typing import List


class LocalFilesystem:
    """Filesystem collaborator backed by the local disk."""

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def read(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def write(self, path: str, data: bytes) -> None:
        """Write data to path, creating parent directories as needed."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            prefix=f".{target.name}.",
            suffix=".tmp",
            dir=target.parent,
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(temp_path, 0o666 & ~_current_umask())
            os.replace(temp_path, target)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def list(self, directory: str) -> List[str]:
        """Names of regular files in directory, sorted."""
        with os.scandir(directory) as entries:
            return sorted(entry.name for entry in entries if entry.is_file())

    def rename(self, old: str, new: str) -> None:
        if os.path.lexists(new):
            raise FileExistsError(17, "Rename target already exists", new)
        os.rename(old, new)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask
