import logging
from asyncio import TaskGroup
from pathlib import Path
from typing import Awaitable, Callable, NamedTuple

from ..index.reference_index import ReferenceIndex, ReferenceIndexBuilder
from ..records import FileRecord, NotMatchable
from ..report.action import Action, ActionReport
from ..report.summary import ReportCollector
from ..settings import DedupPolicy
from ..utils.processor import Processor
from ..utils.throttler import Throttler
from ..utils.walker import WalkPolicy, is_within, walk
from .execute import ActionExecutor
from .match import DuplicateMatcher, MatchError, Unique

logger = logging.getLogger(__name__)


class DedupArgs(NamedTuple):
    """Arguments for a deduplication run."""
    processor: Processor  # File processing backend for hashing and comparison
    reference_path: Path  # Absolute, resolved reference root
    target_path: Path  # Absolute, resolved target root
    # Hash algorithm configuration (name, calculator)
    hash_algorithm: tuple[str, Callable[[Path], Awaitable[bytes]]]
    policy: DedupPolicy
    dry_run: bool


def overlap_exclusions(reference_path: Path, target_path: Path) -> tuple[set[Path], set[Path]]:
    """Subtrees to leave out of the reference walk and of the target walk when the roots overlap.

    A target nested in the reference tree is not indexed, and a reference nested in (or equal
    to) the target tree is never walked as target, so reference files are never deleted.
    """
    reference_excluded: set[Path] = set()
    target_excluded: set[Path] = set()
    if is_within(reference_path, target_path):
        target_excluded.add(reference_path)
    elif is_within(target_path, reference_path):
        reference_excluded.add(target_path)
    return reference_excluded, target_excluded


class DedupProcessor:
    """Processor for a deduplication run that encapsulates state and logic."""

    def __init__(self, args: DedupArgs, collector: ReportCollector):
        self._args = args
        self._collector = collector
        self._policy = args.policy
        self._reference_excluded, self._target_excluded = overlap_exclusions(args.reference_path, args.target_path)
        if self._target_excluded:
            logger.warning(f"Reference {args.reference_path} lies within target {args.target_path}; "
                           f"it will not be deduplicated")

    async def run(self) -> ReferenceIndex:
        """Execute the run and return the index it matched against."""
        candidate_sizes = self._collect_target_sizes()

        # The index must be complete before the first target file is matched.
        index = await ReferenceIndexBuilder(
            self._args.reference_path,
            self._args.hash_algorithm,
            self._args.processor.concurrency * 2,
            candidate_sizes=candidate_sizes,
            follow_symlinks=self._policy.follow_symlinks,
            excluded_paths=self._reference_excluded,
        ).build()
        self._collector.set_index_failures(index.failures)

        _, calculate_digest = self._args.hash_algorithm
        matcher = DuplicateMatcher(
            index,
            calculate_digest,
            processor=self._args.processor,
            verify_content=self._policy.verify_content,
            follow_symlinks=self._policy.follow_symlinks)
        executor = ActionExecutor(self._policy.delete_hard_links, self._policy.follow_symlinks)

        async with TaskGroup() as tg:
            throttler = Throttler(tg, self._args.processor.concurrency * 2)
            policy = WalkPolicy(frozenset(self._target_excluded), self._report_walk_failure)
            for entry in walk(self._args.target_path, policy):
                await throttler.schedule(self._handle_file(matcher, executor, entry.path, entry.stat))

        return index

    def _collect_target_sizes(self) -> set[int]:
        """Sizes of all matchable target files, used to skip hashing reference files that cannot match."""
        sizes = set()
        policy = WalkPolicy(frozenset(self._target_excluded), lambda path, e: None)
        for entry in walk(self._args.target_path, policy):
            try:
                sizes.add(FileRecord.load(entry.path, entry.stat, self._policy.follow_symlinks).size)
            except (NotMatchable, OSError):
                continue
        return sizes

    async def _handle_file(self, matcher: DuplicateMatcher, executor: ActionExecutor, path: Path, st):
        try:
            record = FileRecord.load(path, st, self._policy.follow_symlinks)
        except NotMatchable as e:
            record = FileRecord.from_stat(path, st)
            verdict = Unique(str(e))
        except OSError as e:
            record = FileRecord.from_stat(path, st)
            verdict = MatchError(f"cannot stat: {e}")
        else:
            verdict = await matcher.match_record(record)

        self._collector.append(executor.apply(record, verdict, self._args.dry_run))

    def _report_walk_failure(self, path: Path, e: OSError):
        logger.warning(f"Cannot read target entry {path}: {e}")
        verdict = MatchError(f"cannot read: {e}")
        self._collector.append(ActionReport(path, verdict, Action.FAILED, verdict.reason))


async def do_dedup(args: DedupArgs, collector: ReportCollector) -> ReferenceIndex:
    """Async implementation of a deduplication run."""
    return await DedupProcessor(args, collector).run()
