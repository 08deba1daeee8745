"""Report file for the results of a run.

A report file is a msgpack stream: one map holding the manifest, followed by one array per
ActionReport in the layout of ActionReport.to_msgpack(). Records are appended as they are
produced, so a file written by an interrupted run still holds every report made before the
interruption.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator

import msgpack

from .action import ActionReport


@dataclass
class ReportManifest:
    """Describes the run a report file belongs to."""
    reference_path: str
    target_path: str
    dry_run: bool
    hash_algorithm: str
    timestamp: str

    @classmethod
    def create(cls, reference_path: Path, target_path: Path, dry_run: bool, hash_algorithm: str) -> "ReportManifest":
        return cls(str(reference_path), str(target_path), dry_run, hash_algorithm,
                   datetime.now(timezone.utc).isoformat())


class ReportWriter:
    """Appends ActionReports to a report file."""

    def __init__(self, path: Path, manifest: ReportManifest):
        self._path = path
        self._file: BinaryIO | None = open(path, 'wb')
        self._file.write(msgpack.dumps(asdict(manifest)))
        self._file.flush()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def write(self, report: ActionReport):
        if self._file is None:
            raise RuntimeError(f"Report file {self._path} is closed")
        self._file.write(report.to_msgpack())
        self._file.flush()

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None


def read_report_file(path: Path) -> tuple[ReportManifest, Iterator[ActionReport]]:
    """Read a report file written by ReportWriter.

    Returns:
        The manifest and a lazy iterator over the reports; the file is closed once the
        iterator is exhausted.

    Raises:
        ValueError: The file does not start with a manifest
    """
    f = open(path, 'rb')
    unpacker = msgpack.Unpacker(f, raw=False)
    try:
        header = next(unpacker)
    except StopIteration:
        f.close()
        raise ValueError(f"Empty report file: {path}")
    if not isinstance(header, dict):
        f.close()
        raise ValueError(f"Not a report file: {path}")

    manifest = ReportManifest(**header)

    def reports():
        with f:
            for fields in unpacker:
                yield ActionReport.from_fields(fields)

    return manifest, reports()
