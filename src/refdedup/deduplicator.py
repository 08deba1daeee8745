import asyncio
import os
from pathlib import Path
from typing import Awaitable, Callable, NamedTuple

from .commands.dedup import DedupArgs, do_dedup, overlap_exclusions
from .commands.execute import ActionExecutor
from .commands.match import DuplicateMatcher, MatchError, Unique, Verdict
from .errors import SetupError
from .index.reference_index import ReferenceIndex, ReferenceIndexBuilder
from .records import FileRecord, NotMatchable
from .report.action import ActionReport
from .report.summary import DedupSummary, ReportCollector
from .settings import DedupPolicy
from .utils.processor import Processor


class MatchResult(NamedTuple):
    """A verdict together with the record of the target file it was reached for."""
    record: FileRecord
    verdict: Verdict


class DedupResult(NamedTuple):
    """Outcome of a complete run."""
    reports: list[ActionReport]  # Sorted by target path
    summary: DedupSummary
    index: ReferenceIndex


class Deduplicator:
    """Workflow orchestration for removing reference-tree duplicates from a target tree.

    - build_index(): index the reference tree
    - match(): decide whether one target file duplicates a reference file
    - apply(): act on the result of match()
    - run(): the whole pipeline over the target tree

    Both roots are validated on construction, so a SetupError is raised before any work is
    done. Each run is stateless: nothing is written anywhere except the deletions themselves.
    """

    def __init__(
            self,
            processor: Processor,
            reference_path: str | os.PathLike,
            target_path: str | os.PathLike,
            policy: DedupPolicy | None = None,
            hash_algorithm: str = 'sha256'):
        """Initialize a deduplicator.

        Args:
            processor: File processing backend for hashing and comparison
            reference_path: Root of the tree whose files are kept
            target_path: Root of the tree to remove duplicates from
            policy: Symlink, hard link and verification policy; defaults to DedupPolicy()
            hash_algorithm: Name of the fingerprint algorithm

        Raises:
            SetupError: A root is missing or not a directory, or the algorithm is unknown
        """
        self._processor = processor
        self._reference_path = self._validate_root('reference', reference_path)
        self._target_path = self._validate_root('target', target_path)
        self._policy = policy if policy is not None else DedupPolicy()

        self._hash_algorithms: dict[str, Callable[[Path], Awaitable[bytes]]] = {
            'sha256': self._processor.sha256,
            'blake2b': self._processor.blake2b,
        }
        if hash_algorithm not in self._hash_algorithms:
            raise SetupError(f"Unknown hash algorithm: {hash_algorithm}")
        self._default_hash_algorithm = hash_algorithm

    @staticmethod
    def _validate_root(role: str, path: str | os.PathLike) -> Path:
        root = Path(path)
        if not root.exists():
            raise SetupError(f"The {role} directory does not exist: {root}")
        if not root.is_dir():
            raise SetupError(f"The {role} path is not a directory: {root}")
        return root.resolve()

    @property
    def reference_path(self) -> Path:
        return self._reference_path

    @property
    def target_path(self) -> Path:
        return self._target_path

    @property
    def hash_algorithm(self) -> str:
        return self._default_hash_algorithm

    def build_index(self) -> ReferenceIndex:
        """Index every reference file, fingerprinting all of them.

        run() builds a narrower index that only fingerprints sizes present in the target tree.
        """
        reference_excluded, _ = overlap_exclusions(self._reference_path, self._target_path)
        return asyncio.run(ReferenceIndexBuilder(
            self._reference_path,
            self._get_hash_algorithm(),
            self._processor.concurrency * 2,
            follow_symlinks=self._policy.follow_symlinks,
            excluded_paths=reference_excluded,
        ).build())

    def match(self, path: str | os.PathLike, index: ReferenceIndex) -> MatchResult:
        """Match a single target file against an index built by build_index().

        The returned record carries the identity the file had when it was matched; apply()
        refuses to delete it if the file has changed since.
        """
        _, calculate_digest = self._get_hash_algorithm(index.hash_algorithm)
        matcher = DuplicateMatcher(
            index,
            calculate_digest,
            processor=self._processor,
            verify_content=self._policy.verify_content,
            follow_symlinks=self._policy.follow_symlinks)

        path = Path(path).absolute()
        try:
            record = FileRecord.load(path, follow_symlinks=self._policy.follow_symlinks)
        except NotMatchable as e:
            return MatchResult(FileRecord(path, 0), Unique(str(e)))
        except OSError as e:
            return MatchResult(FileRecord(path, 0), MatchError(f"cannot stat: {e}"))

        return MatchResult(record, asyncio.run(matcher.match_record(record)))

    def apply(self, match: MatchResult, dry_run: bool) -> ActionReport:
        """Act on the result of match()."""
        executor = ActionExecutor(self._policy.delete_hard_links, self._policy.follow_symlinks)
        return executor.apply(match.record, match.verdict, dry_run)

    def run(self, dry_run: bool, collector: ReportCollector | None = None) -> DedupResult:
        """Remove (or, with dry_run, report) every target file whose content exists in the reference tree.

        Reports are appended to collector as they are produced. If the run is interrupted, the
        reports collected so far stay in collector and the deletions already made stand.
        """
        if collector is None:
            collector = ReportCollector()

        index = asyncio.run(do_dedup(
            DedupArgs(
                self._processor,
                self._reference_path,
                self._target_path,
                self._get_hash_algorithm(),
                self._policy,
                dry_run),
            collector))

        return DedupResult(collector.reports, collector.summary(), index)

    def _get_hash_algorithm(self, hash_algorithm: str | None = None) -> tuple[str, Callable[[Path], Awaitable[bytes]]]:
        """Get hash algorithm configuration.

        Args:
            hash_algorithm: Hash algorithm name, or None to use the default one

        Returns:
            Tuple of (name, calculator_function)

        Raises:
            SetupError: If an unknown hash algorithm is specified
        """
        if hash_algorithm is None:
            hash_algorithm = self._default_hash_algorithm

        if hash_algorithm not in self._hash_algorithms:
            raise SetupError(f"Unknown hash algorithm: {hash_algorithm}")

        return hash_algorithm, self._hash_algorithms[hash_algorithm]
