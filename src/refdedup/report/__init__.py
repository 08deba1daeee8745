from .action import Action, ActionReport
from .summary import DedupSummary, ReportCollector
from .store import ReportManifest, ReportWriter, read_report_file
