"""
Config command implementation.

Shows, reads, changes, edits and resets ``config.yaml``.
"""

import logging
import os
import shlex
import subprocess

import yaml

from devstrap.cli.utils import load_cli_config, safe_print
from devstrap.core.config import get_config_path, load_config, reset_config, save_config
from devstrap.core.exceptions import ConfigError
from devstrap.core.platform import detect_platform

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the config command.

    Args:
        args: Parsed command-line arguments with ``config_command``

    Returns:
        Exit code (0 for success)
    """
    action = args.config_command or "show"
    handlers = {
        "show": _show,
        "get": _get,
        "set": _set,
        "edit": _edit,
        "reset": _reset,
    }
    return handlers[action](args)


def _show(args) -> int:
    config = load_cli_config(args)
    safe_print(f"# {config.path}")
    safe_print(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False).rstrip())
    return 0


def _get(args) -> int:
    config = load_cli_config(args)
    value = config.get(args.key)
    if isinstance(value, dict):
        safe_print(yaml.safe_dump(value, default_flow_style=False).rstrip())
    else:
        safe_print("" if value is None else str(value))
    return 0


def _set(args) -> int:
    config = load_cli_config(args)
    config.set(args.key, args.value)
    save_config(config)
    safe_print(f"✓ {args.key} = {args.value}")
    return 0


def get_editor() -> str:
    """``$VISUAL``/``$EDITOR``, else notepad on Windows and vi elsewhere."""
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR")
    if editor:
        return editor
    return "notepad" if detect_platform().is_windows else "vi"


def _edit(args) -> int:
    config = load_cli_config(args)
    editor = get_editor()
    command = shlex.split(editor, posix=not detect_platform().is_windows) + [str(config.path)]

    try:
        subprocess.run(command, check=False)
    except OSError as e:
        raise ConfigError(f"Cannot start editor '{editor}': {e}") from e

    # Surface syntax errors now rather than on the next command
    load_config(config.path, create=False)
    return 0


def _reset(args) -> int:
    path = args.config or get_config_path()
    if reset_config(path):
        safe_print(f"✓ Removed {path}; defaults will be used")
    else:
        safe_print("Configuration already at defaults")
    return 0
