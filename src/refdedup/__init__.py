from .deduplicator import Deduplicator, DedupResult, MatchResult
from .errors import DedupError, SetupError
from .index.reference_index import FileFailure, ReferenceIndex
from .commands.match import DuplicateOf, MatchError, Unique, Verdict, VerdictKind
from .records import FileRecord
from .report.action import Action, ActionReport
from .report.summary import DedupSummary, ReportCollector
from .settings import DedupPolicy, DedupSettings
from .utils.processor import Processor
