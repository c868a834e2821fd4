"""
Directory structure management for devstrap.

This module resolves the per-user configuration directory and the
install root layout. It provides cross-platform path resolution so every
component agrees on where configuration, cache and state live.

Directory Structure:
    Config Directory (~/.devstrap/ or %USERPROFILE%\\.devstrap\\):
        - config.yaml   : User configuration
        - env.sh        : Managed shell environment (POSIX only)

    Install Root (<root_dir>/, configurable):
        - tools/        : Command line tools (git, gh, uv, ...)
        - lang/         : Language runtimes (go, java, cargo, ...)
        - ide/          : Editors and IDEs
        - cache/        : Downloaded artifacts
        - state.json    : Install ledger
"""

import os
from pathlib import Path

from devstrap.core.exceptions import DevstrapError


class DirectoryError(DevstrapError):
    """Base exception for directory-related errors."""

    pass


INSTALL_SUBDIRS = ("tools", "lang", "ide", "cache")


def get_home_dir() -> Path:
    """
    Get the current user's home directory.

    Returns:
        Path: %USERPROFILE% on Windows, ~ elsewhere.
    """
    if os.name == "nt":
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise DirectoryError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine home directory."
            )
        return Path(user_profile)
    return Path.home()


def get_config_dir() -> Path:
    """
    Get the devstrap configuration directory.

    ``DEVSTRAP_HOME`` overrides the default location.

    Returns:
        Path: The configuration directory path.

    Example:
        >>> get_config_dir()
        PosixPath('/home/user/.devstrap')
    """
    override = os.environ.get("DEVSTRAP_HOME")
    if override:
        return Path(override)
    return get_home_dir() / ".devstrap"


def get_default_root_dir() -> Path:
    """Default install root used when the config does not name one."""
    return get_home_dir() / "devstrap"


def ensure_install_structure(root_dir: Path) -> Path:
    """
    Create the standard subdirectories under the install root.

    Args:
        root_dir: Install root directory

    Returns:
        Path: The install root

    Raises:
        DirectoryError: If a directory cannot be created
    """
    root_dir = Path(root_dir)
    for name in INSTALL_SUBDIRS:
        path = root_dir / name
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryError(f"Failed to create directory {path}: {e}") from e
    return root_dir
