import os
import tomllib
from pathlib import Path
from typing import NamedTuple

# Environment variable naming a settings file when --config is not given
SETTINGS_ENVIRONMENT_VARIABLE = 'REFDEDUP_CONFIG'

SETTING_HASH_ALGORITHM = 'hash.algorithm'
SETTING_CHUNK_SIZE = 'hash.chunk_size'
SETTING_FOLLOW_SYMLINKS = 'policy.follow_symlinks'
SETTING_DELETE_HARD_LINKS = 'policy.delete_hard_links'
SETTING_VERIFY_CONTENT = 'policy.verify_content'
SETTING_CONCURRENCY = 'processing.concurrency'
SETTING_LOGGING_PATH = 'logging.path'
SETTING_LOGGING_LEVEL = 'logging.level'


class DedupSettings:
    """Settings manager for deduplication runs.

    Provides a read-only key-value interface to a TOML settings file. This class is agnostic
    to the schema - it loads the file and hands out the raw values. DedupPolicy interprets
    the policy keys.

    Example:
        settings = DedupSettings(Path('refdedup.toml'))
        algorithm = settings.get(SETTING_HASH_ALGORITHM, 'sha256')
    """

    def __init__(self, settings_file: Path | None = None):
        """Initialize settings from a TOML file.

        If settings_file is None, an empty settings dictionary is used and all get() calls
        return their defaults.

        Raises:
            FileNotFoundError: settings_file does not exist
            tomllib.TOMLDecodeError: settings_file is not valid TOML
        """
        self._settings_file = settings_file
        self._settings = {}

        if settings_file is not None:
            with open(settings_file, 'rb') as f:
                self._settings = tomllib.load(f)

    @classmethod
    def locate(cls, settings_file: str | os.PathLike | None = None) -> "DedupSettings":
        """Load settings from settings_file, falling back to $REFDEDUP_CONFIG, then to no file."""
        if settings_file is None:
            settings_file = os.environ.get(SETTINGS_ENVIRONMENT_VARIABLE) or None
        return cls(None if settings_file is None else Path(settings_file))

    @property
    def settings_file(self) -> Path | None:
        return self._settings_file

    def get(self, key: str, default=None):
        """Get a setting value by key with optional default.

        Supports dot notation for nested keys ('policy.follow_symlinks' accesses
        settings['policy']['follow_symlinks']). Returns the default if the key path does not
        exist or if any intermediate value is not a table.

        Examples:
            >>> settings.get(SETTING_HASH_ALGORITHM, 'sha256')
            'blake2b'
            >>> settings.get('nonexistent.key', 'fallback')
            'fallback'
        """
        keys = key.split('.')
        value = self._settings

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value


class DedupPolicy(NamedTuple):
    """How a run treats links and how strictly it confirms duplicates.

    Attributes:
        follow_symlinks: Symlinks to regular files stand for their target's content. When False,
                         symlinks are never indexed and never matched.
        delete_hard_links: Delete target files that are hard links to their matching reference
        verify_content: Compare bytes with the reference after a fingerprint match
    """
    follow_symlinks: bool = False
    delete_hard_links: bool = False
    verify_content: bool = False

    @classmethod
    def from_settings(cls, settings: DedupSettings, **overrides) -> "DedupPolicy":
        """Build a policy from settings; overrides that are not None take precedence."""
        policy = cls(
            follow_symlinks=bool(settings.get(SETTING_FOLLOW_SYMLINKS, False)),
            delete_hard_links=bool(settings.get(SETTING_DELETE_HARD_LINKS, False)),
            verify_content=bool(settings.get(SETTING_VERIFY_CONTENT, False)))
        return policy._replace(**{k: v for k, v in overrides.items() if v is not None})
