"""YAML configuration for devstrap.

The configuration file lives at ``<config_dir>/config.yaml`` (see
:mod:`devstrap.core.directory`) and is created with defaults on first run.

Example file::

    root_dir: /home/user/devstrap
    java:
      version: "21"
    go:
      version: latest
    versions:
      gradle: 8.12.1
    mirrors:
      go: https://golang.google.cn/dl
    probe_timeout: 10
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from devstrap.core.directory import (
    ensure_install_structure,
    get_config_dir,
    get_default_root_dir,
)
from devstrap.core.exceptions import ConfigError
from devstrap.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
STATE_FILENAME = "state.json"

DEFAULT_JAVA_VERSION = "21"
DEFAULT_GO_VERSION = "latest"
DEFAULT_PROBE_TIMEOUT = 10.0

SCALAR_KEYS = ("root_dir", "java.version", "go.version", "probe_timeout")
MAPPING_KEYS = ("versions", "mirrors")


def get_config_path() -> Path:
    """Default location of the configuration file."""
    return get_config_dir() / CONFIG_FILENAME


@dataclass
class DevstrapConfig:
    """Resolved devstrap configuration."""

    root_dir: Path = field(default_factory=get_default_root_dir)
    java_version: str = DEFAULT_JAVA_VERSION
    go_version: str = DEFAULT_GO_VERSION
    versions: Dict[str, str] = field(default_factory=dict)
    mirrors: Dict[str, str] = field(default_factory=dict)
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    path: Optional[Path] = None  # Where this config was loaded from

    # ------------------------------------------------------------------
    # Derived locations
    # ------------------------------------------------------------------

    @property
    def tools_dir(self) -> Path:
        return self.root_dir / "tools"

    @property
    def lang_dir(self) -> Path:
        return self.root_dir / "lang"

    @property
    def ide_dir(self) -> Path:
        return self.root_dir / "ide"

    @property
    def cache_dir(self) -> Path:
        return self.root_dir / "cache"

    @property
    def state_path(self) -> Path:
        """Location of the install ledger."""
        return self.root_dir / STATE_FILENAME

    def version_for(self, tool_id: str, default: Optional[str] = None) -> Optional[str]:
        """Pinned version for a tool, or ``default``."""
        return self.versions.get(tool_id) or default

    def mirror_for(self, tool_id: str, default: str) -> str:
        """Download base URL for a tool, honouring ``mirrors.<tool>``."""
        return self.mirrors.get(tool_id, default).rstrip("/")

    # ------------------------------------------------------------------
    # Dotted key access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any:
        """
        Look up a value by dotted key.

        Args:
            key: e.g. ``java.version`` or ``versions.gradle``

        Raises:
            ConfigError: If the key is unknown
        """
        if key == "root_dir":
            return str(self.root_dir)
        if key == "java.version":
            return self.java_version
        if key == "go.version":
            return self.go_version
        if key == "probe_timeout":
            return self.probe_timeout
        section, _, name = key.partition(".")
        if section in MAPPING_KEYS:
            mapping = getattr(self, section)
            return mapping if not name else mapping.get(name)
        raise ConfigError(_unknown_key_message(key))

    def set(self, key: str, value: str) -> None:
        """
        Set a value by dotted key.

        Raises:
            ConfigError: If the key is unknown or the value is invalid
        """
        if key == "root_dir":
            self.root_dir = Path(value).expanduser()
        elif key == "java.version":
            self.java_version = str(value)
        elif key == "go.version":
            self.go_version = str(value)
        elif key == "probe_timeout":
            self.probe_timeout = _parse_timeout(value)
        else:
            section, _, name = key.partition(".")
            if section not in MAPPING_KEYS or not name:
                raise ConfigError(_unknown_key_message(key))
            getattr(self, section)[name] = str(value)

    def to_dict(self) -> dict:
        """Convert to the on-disk YAML structure."""
        return {
            "root_dir": str(self.root_dir),
            "java": {"version": self.java_version},
            "go": {"version": self.go_version},
            "versions": dict(self.versions),
            "mirrors": dict(self.mirrors),
            "probe_timeout": self.probe_timeout,
        }

    @classmethod
    def from_dict(cls, data: dict, path: Optional[Path] = None) -> "DevstrapConfig":
        """Build a config from parsed YAML, filling defaults for missing keys."""
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping")

        config = cls(path=path)
        if data.get("root_dir"):
            config.root_dir = Path(str(data["root_dir"])).expanduser()

        java = data.get("java") or {}
        go = data.get("go") or {}
        if not isinstance(java, dict) or not isinstance(go, dict):
            raise ConfigError("'java' and 'go' must be mappings")
        config.java_version = str(java.get("version", DEFAULT_JAVA_VERSION))
        config.go_version = str(go.get("version", DEFAULT_GO_VERSION))

        for section in MAPPING_KEYS:
            value = data.get(section) or {}
            if not isinstance(value, dict):
                raise ConfigError(f"'{section}' must be a mapping of tool -> value")
            setattr(config, section, {str(k): str(v) for k, v in value.items()})

        if "probe_timeout" in data:
            config.probe_timeout = _parse_timeout(data["probe_timeout"])
        return config


def _parse_timeout(value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"probe_timeout must be a number, got {value!r}")
    if timeout <= 0:
        raise ConfigError("probe_timeout must be positive")
    return timeout


def _unknown_key_message(key: str) -> str:
    valid = list(SCALAR_KEYS) + [f"{section}.<tool>" for section in MAPPING_KEYS]
    return f"Unknown config key '{key}'. Valid keys: {', '.join(valid)}"


def load_config(config_path: Optional[Path] = None, create: bool = True) -> DevstrapConfig:
    """
    Load configuration from disk.

    A missing file yields defaults; with ``create`` the defaults are written
    and the install directories created so later runs see the same values.

    Args:
        config_path: Path to config.yaml (defaults to the user config dir)
        create: Persist defaults when the file does not exist

    Returns:
        Loaded configuration

    Raises:
        ConfigError: If the file exists but is not valid YAML
    """
    config_path = Path(config_path) if config_path else get_config_path()

    if not config_path.exists():
        config = DevstrapConfig(path=config_path)
        if create:
            logger.debug(f"Creating default configuration at {config_path}")
            save_config(config)
            ensure_install_structure(config.root_dir)
        return config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    return DevstrapConfig.from_dict(data or {}, path=config_path)


def save_config(config: DevstrapConfig, config_path: Optional[Path] = None) -> Path:
    """Write configuration atomically and return the path written."""
    config_path = Path(config_path or config.path or get_config_path())
    content = yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False)
    try:
        atomic_write(config_path, content)
    except OSError as e:
        raise ConfigError(f"Failed to write {config_path}: {e}") from e
    config.path = config_path
    logger.debug(f"Saved configuration to {config_path}")
    return config_path


def reset_config(config_path: Optional[Path] = None) -> bool:
    """
    Delete the configuration file so defaults apply on next load.

    Returns:
        True if a file was removed
    """
    config_path = Path(config_path) if config_path else get_config_path()
    if not config_path.exists():
        return False
    try:
        config_path.unlink()
    except OSError as e:
        raise ConfigError(f"Failed to remove {config_path}: {e}") from e
    logger.info(f"Configuration reset: removed {config_path}")
    return True


__all__ = [
    "DevstrapConfig",
    "get_config_path",
    "load_config",
    "save_config",
    "reset_config",
]
