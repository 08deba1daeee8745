from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

import msgpack

from ..commands.match import DuplicateOf, MatchError, Unique, Verdict, VerdictKind


class Action(StrEnum):
    DELETED = 'deleted'
    WOULD_DELETE = 'would-delete'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass(frozen=True)
class ActionReport:
    """Outcome for one target file.

    Attributes:
        target: Absolute path of the target file
        verdict: What the matcher decided about the file
        action: What was done (or, in a dry run, would have been done)
        reason: Why the file was skipped or why the action failed
    """
    target: Path
    verdict: Verdict
    action: Action
    reason: str | None = None

    def to_msgpack(self) -> bytes:
        """Serialize to msgpack format.

        Returns:
            Msgpack-encoded bytes containing [target, verdict_kind, verdict_argument, action, reason]
            where verdict_argument is the reference path for duplicates, the reason for errors and
            the optional detail for unique files
        """
        if isinstance(self.verdict, DuplicateOf):
            argument = str(self.verdict.reference)
        elif isinstance(self.verdict, MatchError):
            argument = self.verdict.reason
        else:
            argument = self.verdict.detail

        result = msgpack.dumps(
            [str(self.target), str(self.verdict.kind), argument, str(self.action), self.reason])
        assert isinstance(result, bytes)
        return result

    @classmethod
    def from_msgpack(cls, data: bytes) -> "ActionReport":
        return cls.from_fields(msgpack.loads(data))

    @classmethod
    def from_fields(cls, fields: list) -> "ActionReport":
        target, kind, argument, action, reason = fields

        kind = VerdictKind(kind)
        verdict: Verdict
        if kind is VerdictKind.DUPLICATE:
            verdict = DuplicateOf(Path(argument))
        elif kind is VerdictKind.ERROR:
            verdict = MatchError(argument)
        else:
            verdict = Unique(argument)

        return cls(Path(target), verdict, Action(action), reason)
