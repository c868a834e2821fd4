"""
Environment profiles: a portable YAML snapshot of a devstrap setup.

Profile format::

    devstrap:
      version: 0.1.0
      exported_at: '2026-01-31 12:00:00'
    settings:
      java_version: '21'
      go_version: latest
      mirrors: {}
      versions: {}
    tools:
      git: 2.47.1
      go: 1.24.0
    tool_config:
      git:
        user_name: Jane Doe
        user_email: jane@example.com

``tools`` records what was installed on the exporting machine (managed or
external). Versions there are informational; pins travel in
``settings.versions``.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from devstrap import __version__
from devstrap.core.config import save_config
from devstrap.core.exceptions import ConfigError, DevstrapError
from devstrap.core.filesystem import atomic_write
from devstrap.core.ledger import TIMESTAMP_FORMAT
from devstrap.installers.base import extract_version
from devstrap.provision.orchestrator import BatchReport, Orchestrator

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_NAME = "devstrap-profile.yaml"


def build_profile(orchestrator: Orchestrator) -> Dict[str, Any]:
    """Snapshot of settings, installed tools and tool settings."""
    config = orchestrator.config
    ctx = orchestrator.context()

    tools: Dict[str, str] = {}
    tool_config: Dict[str, Dict[str, str]] = {}
    for installer, state in orchestrator.detect_all():
        if not state.is_installed:
            continue
        tools[installer.id] = extract_version(state.version)
        try:
            entries = installer.export_config(ctx)
        except DevstrapError as e:
            logger.warning(f"Could not export {installer.id} settings: {e}")
            continue
        if entries:
            tool_config[installer.id] = entries

    return {
        "devstrap": {
            "version": __version__,
            "exported_at": datetime.now().strftime(TIMESTAMP_FORMAT),
        },
        "settings": {
            "java_version": config.java_version,
            "go_version": config.go_version,
            "mirrors": dict(config.mirrors),
            "versions": dict(config.versions),
        },
        "tools": tools,
        "tool_config": tool_config,
    }


def export_profile(orchestrator: Orchestrator, path: Union[str, Path]) -> Path:
    """
    Write the current profile to ``path``.

    Raises:
        ConfigError: If the file cannot be written
    """
    path = Path(path)
    profile = build_profile(orchestrator)
    content = yaml.safe_dump(profile, default_flow_style=False, sort_keys=False)
    try:
        atomic_write(path, content)
    except OSError as e:
        raise ConfigError(f"Failed to write profile {path}: {e}") from e
    logger.info(f"Exported {len(profile['tools'])} tools to {path}")
    return path


def load_profile(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read and validate a profile file.

    Raises:
        ConfigError: If the file is missing, not YAML, or malformed
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Profile not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read profile {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Profile {path} must be a mapping")
    for section in ("settings", "tools", "tool_config"):
        value = data.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(f"Profile section '{section}' must be a mapping")
    return data


def apply_settings(orchestrator: Orchestrator, settings: Dict[str, Any]) -> None:
    """Copy profile settings into the configuration and save it."""
    config = orchestrator.config
    if settings.get("java_version"):
        config.java_version = str(settings["java_version"])
    if settings.get("go_version"):
        config.go_version = str(settings["go_version"])
    for section in ("mirrors", "versions"):
        values = settings.get(section) or {}
        if not isinstance(values, dict):
            raise ConfigError(f"Profile setting '{section}' must be a mapping")
        getattr(config, section).update({str(k): str(v) for k, v in values.items()})
    save_config(config)


def import_profile(orchestrator: Orchestrator, path: Union[str, Path]) -> BatchReport:
    """
    Apply a profile: settings first, then missing tools, then tool settings.

    Tools the profile lists that are already installed (managed or external)
    are left alone. Unknown tool ids are skipped with a warning.

    Returns:
        Report of the batch install of missing tools
    """
    profile = load_profile(path)
    apply_settings(orchestrator, profile.get("settings") or {})

    missing = []
    for tool_id in profile.get("tools") or {}:
        try:
            state = orchestrator.detect(tool_id)
        except DevstrapError as e:
            logger.warning(f"Skipping {tool_id}: {e}")
            continue
        if not state.is_installed:
            missing.append(tool_id)

    if missing:
        logger.info(f"Installing {len(missing)} tools: {', '.join(missing)}")
    report = orchestrator.install_many(missing)

    ctx = orchestrator.context()
    for tool_id, entries in (profile.get("tool_config") or {}).items():
        if not isinstance(entries, dict):
            logger.warning(f"Ignoring malformed settings for {tool_id}")
            continue
        try:
            orchestrator.get(tool_id).import_config(ctx, {str(k): str(v) for k, v in entries.items()})
        except DevstrapError as e:
            logger.warning(f"Could not apply {tool_id} settings: {e}")

    return report


__all__ = [
    "DEFAULT_PROFILE_NAME",
    "build_profile",
    "export_profile",
    "load_profile",
    "apply_settings",
    "import_profile",
]
