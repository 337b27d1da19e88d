"""
Configuration — Centralized settings management

Config hierarchy (highest to lowest priority):
  1. Project config (.grainmirror/config.yaml)
  2. User config (~/.grainmirror/config.yaml)
  3. Environment variables
  4. Defaults

The registry file itself is not configuration; only its location is.
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

from .core.grainorder import ARCHIVE_CODE, LAST_CODE, is_valid
from .core.hasher import ALGORITHMS, DEFAULT_ALGORITHM
from .core.locking import DEFAULT_LOCK_TIMEOUT
from .presentation.symbols import get_symbols

logger = logging.getLogger(__name__)


DEFAULT_REGISTRY_PATH = "~/.grainmirror/registry.json"
DEFAULT_HEADROOM = 1000
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Environment variable -> (section, setting)
ENV_OVERRIDES = {
    "GRAINMIRROR_REGISTRY": ("registry", "path"),
    "GRAINMIRROR_HASH": ("hashing", "algorithm"),
    "GRAINMIRROR_LOG_LEVEL": ("logging", "level"),
    "GRAINMIRROR_SYMBOLS": ("display", "symbols"),
}


@dataclass
class RegistryConfig:
    """Where the registry lives and how long to wait for its lock."""
    path: str = DEFAULT_REGISTRY_PATH
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT

    @property
    def resolved_path(self) -> Path:
        return Path(self.path).expanduser()

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if not self.path:
            return "Registry path must not be empty"
        if self.lock_timeout < 0:
            return f"Lock timeout must be >= 0, got {self.lock_timeout}"
        return None


@dataclass
class HashingConfig:
    """Digest used for newly synced entries."""
    algorithm: str = DEFAULT_ALGORITHM

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if self.algorithm not in ALGORITHMS:
            valid = ", ".join(ALGORITHMS)
            return f"Unknown hash algorithm '{self.algorithm}'. Valid: {valid}"
        return None


@dataclass
class GrainorderConfig:
    """
    Allocation settings.

    start is the code a new file gets in an empty directory. It defaults to
    the largest usable code: allocation moves toward smaller codes, so
    starting at the top leaves the whole space below it.

    headroom is how many codes rebalance keeps free in front of the newest
    file, so tagging can continue after a rebalance.
    """
    start: str = LAST_CODE
    headroom: int = DEFAULT_HEADROOM

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if not is_valid(self.start):
            return f"Invalid start grainorder '{self.start}'"
        if self.start == ARCHIVE_CODE:
            return f"'{self.start}' is the reserved archive code"
        if self.headroom < 0:
            return f"Headroom must be >= 0, got {self.headroom}"
        return None


@dataclass
class DisplayConfig:
    """Display preferences."""
    symbols: str = "auto"  # "unicode" | "ascii" | "auto"
    format: str = "text"   # "text" | "json"

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        valid_symbols = ("unicode", "ascii", "auto")
        if self.symbols not in valid_symbols:
            return f"Unknown symbols setting '{self.symbols}'. Valid: {', '.join(valid_symbols)}"

        valid_formats = ("text", "json")
        if self.format not in valid_formats:
            return f"Unknown format '{self.format}'. Valid: {', '.join(valid_formats)}"
        return None


@dataclass
class LoggingConfig:
    level: str = "WARNING"

    def validate(self) -> Optional[str]:
        if self.level.upper() not in LOG_LEVELS:
            return f"Unknown log level '{self.level}'. Valid: {', '.join(LOG_LEVELS)}"
        return None


# section -> setting -> converter from a file, environment or command-line value
CONVERTERS: Dict[str, Dict[str, Callable[[Any], Any]]] = {
    "registry": {"path": str, "lock_timeout": float},
    "hashing": {"algorithm": str},
    "grainorder": {"start": str, "headroom": int},
    "display": {"symbols": str, "format": str},
    "logging": {"level": lambda value: str(value).upper()},
}


@dataclass
class Config:
    """Application configuration."""
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    hashing: HashingConfig = field(default_factory=HashingConfig)
    grainorder: GrainorderConfig = field(default_factory=GrainorderConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """
        Build from nested mappings; unknown keys are ignored.

        Raises:
            TypeError, ValueError: If a section is not a mapping or a value
                cannot be converted
        """
        sections = {}
        for section, converters in CONVERTERS.items():
            values = data.get(section) or {}
            if not isinstance(values, dict):
                raise TypeError(f"'{section}' must be a mapping, got {type(values).__name__}")
            section_cls = type(getattr(cls(), section))
            sections[section] = section_cls(**{
                setting: converters[setting](value)
                for setting, value in values.items()
                if setting in converters
            })
        return cls(**sections)

    def validate(self) -> Optional[str]:
        """First error across all sections, or None."""
        for section in CONVERTERS:
            error = getattr(self, section).validate()
            if error:
                return error
        return None


class ConfigManager:
    """
    Loads layered configuration and writes single settings back.

    Hierarchy:
      1. Project config (.grainmirror/config.yaml)
      2. User config (~/.grainmirror/config.yaml)
      3. Environment variables
      4. Defaults
    """

    USER_CONFIG_DIR = Path.home() / ".grainmirror"
    PROJECT_CONFIG_DIR = ".grainmirror"
    CONFIG_FILENAME = "config.yaml"

    SETTINGS = CONVERTERS

    def __init__(self, project_dir: Optional[Path] = None, user_config_dir: Optional[Path] = None):
        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self.user_config_dir = Path(user_config_dir) if user_config_dir else self.USER_CONFIG_DIR
        self._config: Optional[Config] = None

    @property
    def project_config_path(self) -> Path:
        return self.project_dir / self.PROJECT_CONFIG_DIR / self.CONFIG_FILENAME

    @property
    def user_config_path(self) -> Path:
        return self.user_config_dir / self.CONFIG_FILENAME

    def load(self) -> Config:
        """Effective configuration, read once and cached."""
        if self._config is not None:
            return self._config

        # Environment first, so both files can override it
        layered: Dict[str, Any] = {}
        for env_var, (section, setting) in ENV_OVERRIDES.items():
            if os.environ.get(env_var):
                layered.setdefault(section, {})[setting] = os.environ[env_var]

        for path in (self.user_config_path, self.project_config_path):
            layered = self._merge(layered, self._read_file(path))

        try:
            config = Config.from_dict(layered)
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring configuration with bad value types: %s", e)
            config = Config()

        error = config.validate()
        if error:
            logger.warning("Invalid configuration, using defaults: %s", error)
            config = Config()

        self._config = config
        return config

    def _read_file(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring malformed config %s: %s", path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: top level is not a mapping", path)
            return {}
        return data

    def _save(self, path: Path, config: Config) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=True)
        self._config = config
        logger.debug("Wrote config %s", path)

    def save_project(self, config: Config) -> None:
        self._save(self.project_config_path, config)

    def save_user(self, config: Config) -> None:
        self._save(self.user_config_path, config)

    def set(self, key: str, value: str, scope: str = "project") -> Optional[str]:
        """
        Change one setting and save it.

        Args:
            key: "section.setting" (e.g., "hashing.algorithm")
            value: New value as typed on the command line
            scope: "project" or "user"

        Returns:
            Error message, or None once the value is saved
        """
        config = self.load()

        section, _, setting = key.partition(".")
        if not setting or "." in setting:
            return f"Invalid key format: {key}. Use 'section.setting' (e.g., 'hashing.algorithm')"
        if section not in self.SETTINGS:
            return f"Unknown section: {section}. Valid: {', '.join(self.SETTINGS)}"
        if setting not in self.SETTINGS[section]:
            valid = ", ".join(self.SETTINGS[section])
            return f"Unknown {section} setting: {setting}. Valid: {valid}"

        try:
            converted = self.SETTINGS[section][setting](value)
        except ValueError:
            return f"Invalid value for {key}: {value!r}"

        section_config = getattr(config, section)
        previous = getattr(section_config, setting)
        setattr(section_config, setting, converted)

        error = section_config.validate()
        if error:
            setattr(section_config, setting, previous)
            return error

        if scope == "project":
            self.save_project(config)
        else:
            self.save_user(config)

        logger.info("Set %s = %r (%s config)", key, converted, scope)
        return None

    def get(self, key: str) -> Optional[str]:
        """Current value of "section.setting" as a string, None if unknown."""
        section, _, setting = key.partition(".")
        if setting not in self.SETTINGS.get(section, {}):
            return None
        return str(getattr(getattr(self.load(), section), setting))

    def _merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dicts, override wins."""
        merged = dict(base)
        for key, value in override.items():
            if isinstance(merged.get(key), dict) and isinstance(value, dict):
                merged[key] = self._merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def display(self) -> str:
        """Every setting as "section.setting = value", then file locations."""
        config = self.load()
        symbols = get_symbols(config.display.symbols)

        lines = []
        for section, settings in self.SETTINGS.items():
            for setting in settings:
                lines.append(f"  {section}.{setting} = {getattr(getattr(config, section), setting)}")

        registry_state = (
            f"{symbols.check_pass} exists" if config.registry.resolved_path.exists()
            else f"{symbols.info} not created yet"
        )
        lines += [
            "",
            f"Registry file: {config.registry.resolved_path} ({registry_state})",
            f"User config: {self.user_config_path}",
            f"Project config: {self.project_config_path}",
        ]
        return "\n".join(lines)


def get_config(project_dir: Optional[Path] = None) -> Config:
    """Load configuration for a project."""
    return ConfigManager(project_dir).load()
