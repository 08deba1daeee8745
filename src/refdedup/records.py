"""File records shared by the index builder, the matcher and the executor."""

import os
import stat
from dataclasses import dataclass
from pathlib import Path


class NotMatchable(Exception):
    """The entry is not a regular file under the current symlink policy."""


def file_identity(st: os.stat_result) -> tuple[int, int, int, int]:
    """Fields used to notice that a path now refers to a different or modified file."""
    return st.st_dev, st.st_ino, st.st_size, st.st_mtime_ns


@dataclass
class FileRecord:
    """A regular file taking part in a run.

    Attributes:
        path: Absolute path of the file (for a followed symlink, the path of the link)
        size: Size in bytes of the file content
        fingerprint: Content digest, filled in only when some comparison needs it
        identity: (device, inode, size, mtime_ns) observed when the record was created
    """
    path: Path
    size: int
    fingerprint: bytes | None = None
    identity: tuple[int, int, int, int] | None = None

    @classmethod
    def from_stat(cls, path: Path, st: os.stat_result) -> "FileRecord":
        return cls(path, st.st_size, identity=file_identity(st))

    @classmethod
    def load(cls, path: Path, st: os.stat_result | None = None, follow_symlinks: bool = False) -> "FileRecord":
        """Create a record for path, honouring the symlink policy.

        Args:
            path: File to describe
            st: lstat() result already obtained for path, if any
            follow_symlinks: Whether a symlink to a regular file stands for that file's content

        Raises:
            NotMatchable: path is a symlink that is not followed, or is not a regular file
            OSError: path cannot be stat'ed
        """
        if st is None:
            st = path.lstat()

        if stat.S_ISLNK(st.st_mode):
            if not follow_symlinks:
                raise NotMatchable("symbolic link")
            st = path.stat()

        if not stat.S_ISREG(st.st_mode):
            raise NotMatchable("not a regular file")

        return cls.from_stat(path, st)
