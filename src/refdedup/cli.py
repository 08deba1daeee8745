import argparse
import logging
import sys
import textwrap
from pathlib import Path

from . import Deduplicator, Processor, SetupError
from .commands.match import DuplicateOf, VerdictKind
from .report.action import Action, ActionReport
from .report.store import ReportManifest, ReportWriter
from .report.summary import DedupSummary, ReportCollector
from .settings import (
    DedupPolicy, DedupSettings, SETTING_CHUNK_SIZE, SETTING_CONCURRENCY, SETTING_HASH_ALGORITHM,
    SETTING_LOGGING_LEVEL, SETTING_LOGGING_PATH,
)
from .utils.processor import DEFAULT_CHUNK_SIZE

EXIT_SUCCESS = 0
EXIT_SETUP_ERROR = 1
EXIT_INTERRUPTED = 130

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='refdedup',
        description='Remove files from a target directory whose content already exists in a reference directory.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              refdedup --dry-run /backup/photos /home/user/Pictures
              refdedup /backup/photos /home/user/Pictures

            Files in REFERENCE are never modified. A file in TARGET is removed only when a file
            with identical content exists in REFERENCE.
            ''').strip()
    )
    parser.add_argument(
        'reference',
        metavar='REFERENCE',
        help='Path to the reference directory whose files are kept')
    parser.add_argument(
        'target',
        metavar='TARGET',
        help='Path to the target directory to be deduplicated')
    parser.add_argument(
        '-n', '--dry-run',
        action='store_true',
        help='Perform a trial run with no changes made')
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Print a line for every target file, not only for duplicates and failures')
    parser.add_argument(
        '--config',
        metavar='PATH',
        help='Path to a TOML settings file. If not provided, uses the REFDEDUP_CONFIG environment variable or '
             'built-in defaults.')
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Path to log file for operation logging. If not provided, uses logging.path from the settings file or no '
             'logging.')
    parser.add_argument(
        '--log-level',
        metavar='LEVEL',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to INFO when --log-file is provided.')
    parser.add_argument(
        '--follow-symlinks',
        action='store_true',
        default=None,
        help='Treat symlinks to regular files as the files they point to (default: symlinks never match)')
    parser.add_argument(
        '--delete-hard-links',
        action='store_true',
        default=None,
        help='Also delete target files that are hard links to their reference file (default: keep them)')
    parser.add_argument(
        '--verify',
        action='store_true',
        default=None,
        dest='verify_content',
        help='Compare file contents byte by byte after a fingerprint match before treating files as duplicates')
    parser.add_argument(
        '--hash-algorithm',
        choices=['sha256', 'blake2b'],
        help='Fingerprint algorithm (default: hash.algorithm from the settings file, or sha256)')
    parser.add_argument(
        '--jobs',
        type=int,
        metavar='N',
        help='Number of worker processes for hashing (default: number of CPUs)')
    parser.add_argument(
        '--report-file',
        metavar='PATH',
        help='Write every result to PATH in msgpack format')
    return parser


def configure_logging(args, settings: DedupSettings) -> bool:
    """Configure logging from CLI arguments, falling back to the settings file.

    Returns:
        True if logging was configured, False otherwise

    Raises:
        SetupError: The logging level is unknown or the log file cannot be opened
    """
    log_path = args.log_file or settings.get(SETTING_LOGGING_PATH)
    if not log_path:
        return False

    log_level = args.log_level or settings.get(SETTING_LOGGING_LEVEL, 'INFO')
    level = logging.getLevelNamesMapping().get(str(log_level).upper())
    if level is None:
        raise SetupError(f"Unknown logging level: {log_level}")

    try:
        logging.basicConfig(
            filename=str(log_path),
            level=level,
            format=LOG_FORMAT
        )
    except OSError as e:
        raise SetupError(f"Cannot open log file: {e}") from e
    return True


def positive_int(name: str, value, default=None):
    """Validate a count taken from the command line or the settings file."""
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise SetupError(f"{name} must be a positive integer, got {value!r}")
    return value


def format_report(report: ActionReport) -> str:
    verdict = report.verdict
    if report.action is Action.DELETED:
        line = f"Deleted: {report.target}"
    elif report.action is Action.WOULD_DELETE:
        line = f"Would delete: {report.target}"
    elif report.action is Action.FAILED:
        return f"Failed: {report.target}: {report.reason}"
    elif verdict.kind is VerdictKind.DUPLICATE:
        line = f"Kept: {report.target}"
    else:
        return f"Unique: {report.target}" + (f" ({report.reason})" if report.reason else "")

    if isinstance(verdict, DuplicateOf):
        line += f" -> {verdict.reference}"
    if report.reason:
        line += f" ({report.reason})"
    return line


def format_summary(summary: DedupSummary, dry_run: bool) -> str:
    lines = [
        "Summary:",
        f"  Unique:           {summary.unique}",
        f"  Duplicates:       {summary.duplicates}",
    ]
    if dry_run:
        lines.append(f"  Would delete:     {summary.would_delete}")
    else:
        lines.append(f"  Deleted:          {summary.deleted}")
    lines += [
        f"  Kept duplicates:  {summary.skipped}",
        f"  Failed:           {summary.failed}",
        f"  Index errors:     {summary.index_errors}",
    ]
    if not summary.succeeded:
        lines.append("Some files could not be processed; see the failures above.")
    return "\n".join(lines)


def print_index_failures(failures):
    for failure in failures:
        print(f"Not indexed: {failure.path}: {failure.reason}")


def refdedup_main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = DedupSettings.locate(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: cannot load settings: {e}", file=sys.stderr)
        return EXIT_SETUP_ERROR

    try:
        configure_logging(args, settings)
        concurrency = positive_int('--jobs' if args.jobs is not None else SETTING_CONCURRENCY,
                                   args.jobs if args.jobs is not None else settings.get(SETTING_CONCURRENCY))
        chunk_size = positive_int(SETTING_CHUNK_SIZE, settings.get(SETTING_CHUNK_SIZE), DEFAULT_CHUNK_SIZE)
    except SetupError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_SETUP_ERROR

    policy = DedupPolicy.from_settings(
        settings,
        follow_symlinks=args.follow_symlinks,
        delete_hard_links=args.delete_hard_links,
        verify_content=args.verify_content)
    hash_algorithm = args.hash_algorithm or settings.get(SETTING_HASH_ALGORITHM, 'sha256')

    def print_report(report: ActionReport):
        if args.verbose or report.verdict.kind is not VerdictKind.UNIQUE:
            print(format_report(report), flush=True)

    with Processor(concurrency, chunk_size) as processor:
        try:
            deduplicator = Deduplicator(processor, args.reference, args.target, policy, hash_algorithm)
        except SetupError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_SETUP_ERROR

        report_writer = None
        if args.report_file:
            report_writer = ReportWriter(
                Path(args.report_file),
                ReportManifest.create(deduplicator.reference_path, deduplicator.target_path, args.dry_run,
                                      deduplicator.hash_algorithm))

        def on_report(report: ActionReport):
            print_report(report)
            if report_writer is not None:
                report_writer.write(report)

        collector = ReportCollector(on_report)
        try:
            result = deduplicator.run(args.dry_run, collector)
        except KeyboardInterrupt:
            processor.terminate()
            print("Interrupted; deletions already made are kept.", file=sys.stderr)
            print_index_failures(collector.index_failures)
            print(format_summary(collector.summary(), args.dry_run))
            return EXIT_INTERRUPTED
        finally:
            if report_writer is not None:
                report_writer.close()

    print_index_failures(result.index.failures)
    print(format_summary(result.summary, args.dry_run))
    return EXIT_SUCCESS


def main():
    sys.exit(refdedup_main())


if __name__ == '__main__':
    main()
