"""Content-addressed index of the reference tree."""

import logging
from asyncio import TaskGroup
from pathlib import Path
from types import MappingProxyType
from typing import Awaitable, Callable, Collection, Iterator, Mapping, NamedTuple

from ..records import FileRecord, NotMatchable
from ..utils.throttler import Throttler
from ..utils.walker import WalkPolicy, walk

logger = logging.getLogger(__name__)

_EMPTY_BUCKET: Mapping[bytes, Path] = MappingProxyType({})


class FileFailure(NamedTuple):
    """A reference file or directory that could not be indexed."""
    path: Path
    reason: str


class ReferenceIndex:
    """Read-only mapping from file size to fingerprint to canonical reference path.

    Instances are produced by ReferenceIndexBuilder once the whole reference tree has been
    processed; nothing mutates them afterwards, so they can be shared by any number of
    concurrent matchers without locking.
    """

    def __init__(self, hash_algorithm: str, buckets: dict[int, dict[bytes, Path]], files_seen: int = 0,
                 failures: Collection[FileFailure] = ()):
        self._hash_algorithm = hash_algorithm
        self._buckets: Mapping[int, Mapping[bytes, Path]] = MappingProxyType({
            size: MappingProxyType(dict(bucket)) for size, bucket in buckets.items() if bucket
        })
        self._files_seen = files_seen
        self._failures = tuple(failures)

    @property
    def hash_algorithm(self) -> str:
        return self._hash_algorithm

    @property
    def files_seen(self) -> int:
        """Number of reference files visited, fingerprinted or not."""
        return self._files_seen

    @property
    def failures(self) -> tuple[FileFailure, ...]:
        return self._failures

    def has_size(self, size: int) -> bool:
        return size in self._buckets

    def bucket(self, size: int) -> Mapping[bytes, Path]:
        """Fingerprint to canonical path mapping for one size; empty when no reference file has that size."""
        return self._buckets.get(size, _EMPTY_BUCKET)

    def lookup(self, size: int, fingerprint: bytes) -> Path | None:
        return self.bucket(size).get(fingerprint)

    def sizes(self) -> Iterator[int]:
        return iter(self._buckets)

    def __len__(self):
        """Number of canonical reference paths."""
        return sum(len(bucket) for bucket in self._buckets.values())


class ReferenceIndexBuilder:
    """Builds a ReferenceIndex in two passes: group by size, then fingerprint what can match.

    The first pass walks the reference tree and groups files by size without reading any
    content. The second pass fingerprints, concurrently, only the buckets that can still
    produce a match: buckets whose size is in candidate_sizes, or every bucket when
    candidate_sizes is None.
    """

    def __init__(
            self,
            reference_path: Path,
            hash_algorithm: tuple[str, Callable[[Path], Awaitable[bytes]]],
            concurrency: int,
            candidate_sizes: Collection[int] | None = None,
            follow_symlinks: bool = False,
            excluded_paths: Collection[Path] = ()):
        self._reference_path = reference_path
        self._hash_algorithm_name, self._calculate_digest = hash_algorithm
        self._concurrency = concurrency
        self._candidate_sizes = None if candidate_sizes is None else frozenset(candidate_sizes)
        self._follow_symlinks = follow_symlinks
        self._excluded_paths = frozenset(excluded_paths)

        self._failures: list[FileFailure] = []
        # size -> fingerprint -> (walk sequence number, path)
        self._hashed: dict[int, dict[bytes, tuple[int, Path]]] = {}

    async def build(self) -> ReferenceIndex:
        buckets, files_seen = self._group_by_size()

        async with TaskGroup() as tg:
            throttler = Throttler(tg, self._concurrency)
            for size, members in buckets.items():
                self._hashed.setdefault(size, {})
                for seq, path in members:
                    await throttler.schedule(self._fingerprint(size, seq, path))

        logger.info(f"Indexed {self._reference_path}: {files_seen} files, "
                    f"{sum(len(m) for m in buckets.values())} fingerprinted, {len(self._failures)} failures")

        return ReferenceIndex(
            self._hash_algorithm_name,
            {size: {fingerprint: path for fingerprint, (_, path) in bucket.items()}
             for size, bucket in self._hashed.items()},
            files_seen,
            sorted(self._failures))

    def _group_by_size(self) -> tuple[dict[int, list[tuple[int, Path]]], int]:
        buckets: dict[int, list[tuple[int, Path]]] = {}
        files_seen = 0
        policy = WalkPolicy(self._excluded_paths, self._record_walk_failure)

        for seq, entry in enumerate(walk(self._reference_path, policy)):
            try:
                record = FileRecord.load(entry.path, entry.stat, self._follow_symlinks)
            except NotMatchable as e:
                logger.debug(f"Not indexing {entry.path}: {e}")
                continue
            except OSError as e:
                self._record_walk_failure(entry.path, e)
                continue

            files_seen += 1
            if self._candidate_sizes is not None and record.size not in self._candidate_sizes:
                continue
            buckets.setdefault(record.size, []).append((seq, record.path))

        return buckets, files_seen

    async def _fingerprint(self, size: int, seq: int, path: Path):
        try:
            fingerprint = await self._calculate_digest(path)
        except OSError as e:
            logger.warning(f"Cannot fingerprint reference file {path}: {e}")
            self._failures.append(FileFailure(path, str(e)))
            return

        bucket = self._hashed[size]
        current = bucket.get(fingerprint)
        # Earliest file in walk order is canonical, whatever order the digests complete in.
        if current is None or seq < current[0]:
            bucket[fingerprint] = (seq, path)

    def _record_walk_failure(self, path: Path, e: OSError):
        logger.warning(f"Cannot read reference entry {path}: {e}")
        self._failures.append(FileFailure(path, str(e)))
