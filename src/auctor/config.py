"""Configuration for an auctor run."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from auctor._version import __version__
from auctor.utils import DEFAULT_JUNK_VOCABULARY, JunkVocabulary

DEFAULT_USER_AGENT = f"auctor/{__version__}"

LIST_KEYS = frozenset({"extensions", "junk_terms", "junk_patterns", "required_tools"})


class ConfigError(Exception):
    """Raised when a configuration file cannot be loaded or is invalid."""


@dataclass
class RenamerConfig:
    """Configuration for renaming documents.

    Attributes:
        dry_run: Preview renames without touching the filesystem
        confirm: Ask before each rename
        verbose: Enable debug logging
        log_file: Append one line per successful rename to this file
        extensions: Document suffixes picked up during discovery
        connect_timeout: Lookup connection timeout in seconds
        timeout: Overall lookup timeout in seconds
        tool_timeout: Timeout for exiftool / pdftotext invocations in seconds
        user_agent: User-Agent sent to the lookup service
        mailto: Contact address for the CrossRef polite pool
        cache_path: On-disk JSON cache for lookup responses
        offline: Never contact the lookup service
        rate_limit: Lookup requests per minute
        junk_terms: Extra terms added to the junk vocabulary
        junk_patterns: Extra regular expressions added to the junk vocabulary
        required_tools: External binaries that must be on PATH
    """

    dry_run: bool = False
    confirm: bool = True
    verbose: bool = False
    log_file: str | None = None
    extensions: tuple[str, ...] = (".pdf",)
    connect_timeout: float = 7.0
    timeout: float = 15.0
    tool_timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    mailto: str | None = None
    cache_path: str | None = None
    offline: bool = False
    rate_limit: int = 50
    junk_terms: tuple[str, ...] = ()
    junk_patterns: tuple[str, ...] = ()
    required_tools: tuple[str, ...] = field(default=("exiftool", "pdftotext"))

    def __post_init__(self) -> None:
        self.extensions = tuple(e.lower() if e.startswith(".") else f".{e.lower()}" for e in self.extensions)
        self.junk_terms = tuple(self.junk_terms)
        self.junk_patterns = tuple(self.junk_patterns)
        self.required_tools = tuple(self.required_tools)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RenamerConfig:
        """Create config from a dictionary (e.g., loaded from YAML)."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")
        for key in LIST_KEYS & set(data):
            value = data[key]
            if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"'{key}' must be a list of strings, got {value!r}")
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary for serialization."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def vocabulary(self) -> JunkVocabulary:
        """Junk vocabulary including any configured extensions."""
        return DEFAULT_JUNK_VOCABULARY.extend(self.junk_terms, self.junk_patterns)

    def effective_user_agent(self) -> str:
        if self.mailto:
            return f"{self.user_agent} mailto:{self.mailto}"
        return self.user_agent


def load_config(path: str | Path) -> RenamerConfig:
    """Load a RenamerConfig from a YAML file.

    Example file::

        confirm: false
        mailto: me@example.org
        extensions: [.pdf, .djvu]
        junk_terms: [scanner, hewlett]

    Raises:
        ConfigError: If the file is missing, unparsable, or has unknown keys.
    """
    try:
        import yaml
    except ImportError as err:
        raise ImportError("PyYAML required for config file support. Install with: pip install pyyaml") from err

    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return RenamerConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return RenamerConfig.from_dict(data)
