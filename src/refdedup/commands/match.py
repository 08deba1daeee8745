import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Awaitable, Callable, ClassVar

from ..index.reference_index import ReferenceIndex
from ..records import FileRecord, NotMatchable, file_identity
from ..utils.processor import Processor

logger = logging.getLogger(__name__)


class VerdictKind(StrEnum):
    UNIQUE = 'unique'
    DUPLICATE = 'duplicate'
    ERROR = 'error'


@dataclass(frozen=True)
class Unique:
    """No reference file has the same content. detail says why the file was not compared, if it wasn't."""
    detail: str | None = None

    kind: ClassVar[VerdictKind] = VerdictKind.UNIQUE


@dataclass(frozen=True)
class DuplicateOf:
    reference: Path

    kind: ClassVar[VerdictKind] = VerdictKind.DUPLICATE


@dataclass(frozen=True)
class MatchError:
    """The file could not be compared; it must never be treated as a duplicate."""
    reason: str

    kind: ClassVar[VerdictKind] = VerdictKind.ERROR


Verdict = Unique | DuplicateOf | MatchError


class DuplicateMatcher:
    """Decides, for one target file at a time, whether the reference tree already holds its content.

    The comparison is staged from cheap to expensive: the file size is checked against the index
    first, and the fingerprint is only computed when a reference file of the same size exists.
    Matching reads files but never modifies the filesystem.
    """

    def __init__(
            self,
            index: ReferenceIndex,
            calculate_digest: Callable[[Path], Awaitable[bytes]],
            processor: Processor | None = None,
            verify_content: bool = False,
            follow_symlinks: bool = False):
        if verify_content and processor is None:
            raise ValueError("verify_content requires a processor")

        self._index = index
        self._calculate_digest = calculate_digest
        self._processor = processor
        self._verify_content = verify_content
        self._follow_symlinks = follow_symlinks

    async def match(self, path: Path) -> Verdict:
        """Match the file at path against the index."""
        try:
            record = FileRecord.load(path, follow_symlinks=self._follow_symlinks)
        except NotMatchable as e:
            return Unique(str(e))
        except OSError as e:
            return MatchError(f"cannot stat: {e}")

        return await self.match_record(record)

    async def match_record(self, record: FileRecord) -> Verdict:
        bucket = self._index.bucket(record.size)
        if not bucket:
            return Unique()

        try:
            record.fingerprint = await self._calculate_digest(record.path)
        except OSError as e:
            logger.warning(f"Cannot fingerprint target file {record.path}: {e}")
            return MatchError(f"cannot fingerprint: {e}")

        if record.identity is not None:
            try:
                st = record.path.stat() if self._follow_symlinks else record.path.lstat()
            except OSError as e:
                return MatchError(f"vanished while matching: {e}")
            if file_identity(st) != record.identity:
                logger.warning(f"Target file changed while being fingerprinted: {record.path}")
                return MatchError("modified while matching")

        reference = bucket.get(record.fingerprint)
        if reference is None:
            return Unique()

        if self._verify_content:
            assert self._processor is not None
            try:
                equal = await self._processor.compare_content(record.path, reference)
            except OSError as e:
                logger.warning(f"Cannot verify {record.path} against {reference}: {e}")
                return MatchError(f"cannot verify content: {e}")

            if not equal:
                logger.warning(f"Fingerprint collision between {record.path} and {reference}")
                return Unique("fingerprint collision")

        return DuplicateOf(reference)
