import os
import stat
from pathlib import Path
from typing import Callable, Iterator, NamedTuple


class WalkEntry(NamedTuple):
    """A regular file or symlink found during traversal.

    Attributes:
        path: Absolute path of the entry
        size: Size from lstat(); for symlinks this is the length of the link, not of its target
        is_symlink: Whether the entry itself is a symbolic link
        stat: The lstat() result the entry was built from
    """
    path: Path
    size: int
    is_symlink: bool
    stat: os.stat_result


class WalkPolicy(NamedTuple):
    """Policy controlling filesystem traversal behavior.

    Attributes:
        excluded_paths: Set of absolute paths whose subtrees are not visited
        on_error: Called with (path, exception) for entries that cannot be listed or stat'ed.
                  If None, the exception propagates and ends the walk.
    """
    excluded_paths: frozenset[Path] = frozenset()
    on_error: Callable[[Path, OSError], None] | None = None


def walk(path: Path, policy: WalkPolicy) -> Iterator[WalkEntry]:
    """Recursively yield regular files and symlinks below path.

    Directories are entered only when they are real directories, so symlinked directories are
    never followed and the walk is finite. Children are visited in sorted order, which makes
    the walk order reproducible between runs. Special files (FIFOs, sockets, devices) are
    never yielded.
    """
    if path in policy.excluded_paths:
        return

    try:
        children = sorted(path.iterdir())
    except OSError as e:
        if policy.on_error is None:
            raise
        policy.on_error(path, e)
        return

    child: Path
    for child in children:
        if child in policy.excluded_paths:
            continue

        try:
            st = child.lstat()
        except OSError as e:
            if policy.on_error is None:
                raise
            policy.on_error(child, e)
            continue

        if stat.S_ISDIR(st.st_mode):
            yield from walk(child, policy)
        elif stat.S_ISREG(st.st_mode):
            yield WalkEntry(child, st.st_size, False, st)
        elif stat.S_ISLNK(st.st_mode):
            yield WalkEntry(child, st.st_size, True, st)


def is_within(path: Path, root: Path) -> bool:
    """Whether path is root itself or lies below it. Both paths must be absolute and normalized."""
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
