class DedupError(Exception):
    """Base class for errors that abort a deduplication run."""


class SetupError(DedupError):
    """The run cannot start, e.g. a root directory is missing or not a directory."""
