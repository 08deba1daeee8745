import logging
from pathlib import Path

from ..records import FileRecord, file_identity
from ..report.action import Action, ActionReport
from .match import DuplicateOf, MatchError, Verdict

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Turns matcher verdicts into deletions (or, in a dry run, into reports of deletions).

    Only DuplicateOf verdicts can lead to a deletion, and only after these checks pass:
    - the target is not the reference file itself (same resolved location)
    - the reference file still exists
    - the target is still the file that was matched (same device, inode, size and mtime)
    - the target is not a hard link to the reference, unless delete_hard_links is set
    Deletion failures are reported, never raised.
    """

    def __init__(self, delete_hard_links: bool = False, follow_symlinks: bool = False):
        self._delete_hard_links = delete_hard_links
        self._follow_symlinks = follow_symlinks

    def apply(self, record: FileRecord, verdict: Verdict, dry_run: bool) -> ActionReport:
        if isinstance(verdict, MatchError):
            return ActionReport(record.path, verdict, Action.FAILED, verdict.reason)
        if not isinstance(verdict, DuplicateOf):
            return ActionReport(record.path, verdict, Action.SKIPPED, verdict.detail)

        target = record.path
        reference = verdict.reference

        if target.resolve() == reference.resolve():
            return ActionReport(target, verdict, Action.SKIPPED, "target is the reference file")

        try:
            reference_stat = reference.stat()
        except OSError as e:
            logger.warning(f"Reference {reference} of {target} is no longer available: {e}")
            return ActionReport(target, verdict, Action.FAILED, f"reference unavailable: {e}")

        try:
            target_stat = target.stat() if self._follow_symlinks else target.lstat()
        except OSError as e:
            return ActionReport(target, verdict, Action.FAILED, f"target unavailable: {e}")

        if record.identity is None:
            return ActionReport(target, verdict, Action.FAILED, "no identity recorded when matched")

        if file_identity(target_stat) != record.identity:
            logger.warning(f"Target {target} changed after it was matched, not deleting")
            return ActionReport(target, verdict, Action.FAILED, "modified since matched")

        if (target_stat.st_dev, target_stat.st_ino) == (reference_stat.st_dev, reference_stat.st_ino) \
                and not self._delete_hard_links:
            return ActionReport(target, verdict, Action.SKIPPED, "hard link to the reference file")

        if dry_run:
            return ActionReport(target, verdict, Action.WOULD_DELETE)

        try:
            target.unlink()
        except OSError as e:
            logger.warning(f"Cannot delete {target}: {e}")
            return ActionReport(target, verdict, Action.FAILED, f"cannot delete: {e}")

        logger.info(f"Deleted {target} (duplicate of {reference})")
        return ActionReport(target, verdict, Action.DELETED)
