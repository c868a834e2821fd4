"""
Persistent user environment store.

Tools installed by devstrap need environment variables (``JAVA_HOME``,
``GOROOT``...) and PATH entries that survive the current process. This module
defines the narrow store interface used by the orchestrator and two backends:

- ``WindowsRegistryStore``: ``HKCU\\Environment`` values written as
  ``REG_EXPAND_SZ`` with a ``WM_SETTINGCHANGE`` broadcast
- ``ShellProfileStore``: a devstrap-owned ``env.sh`` sourced from the user's
  shell profile through a marker-guarded hook

Environment changes are described declaratively by :class:`SetVar` and
:class:`AppendPath` actions; the same actions recomputed from an install path
are applied at install time and reverted at uninstall time.

An :class:`EnvironmentOverlay` carries the environment of freshly installed
dependencies into subprocesses of the current run without touching
``os.environ``.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from devstrap.core.directory import get_config_dir, get_home_dir
from devstrap.core.exceptions import EnvironmentStoreError
from devstrap.core.filesystem import atomic_write

logger = logging.getLogger(__name__)


# ============================================================================
# Environment Actions
# ============================================================================


@dataclass(frozen=True)
class SetVar:
    """Set a persistent variable to ``value``."""

    name: str
    value: str


@dataclass(frozen=True)
class AppendPath:
    """Append ``path`` to the persistent PATH."""

    path: str


EnvAction = Union[SetVar, AppendPath]


# ============================================================================
# PATH helpers
# ============================================================================


def split_path(value: str, sep: str = os.pathsep) -> List[str]:
    """Split a PATH value, ignoring empty segments."""
    return [part for part in value.split(sep) if part]


def path_contains(value: str, entry: str, sep: str = os.pathsep) -> bool:
    """Case-insensitive membership test for a PATH value."""
    target = entry.lower()
    return any(part.lower() == target for part in split_path(value, sep))


def append_path_entry(current: str, new_path: str, sep: str = os.pathsep) -> str:
    """
    Append ``new_path`` to a PATH value.

    Returns ``current`` unchanged when an equal entry (case-insensitive)
    is already present. A trailing separator on ``current`` is reused rather
    than doubled.

    Example:
        >>> append_path_entry("/usr/bin:", "/opt/go/bin", ":")
        '/usr/bin:/opt/go/bin'
    """
    if path_contains(current, new_path, sep):
        return current
    if not current:
        return new_path
    if current.endswith(sep):
        return f"{current}{new_path}"
    return f"{current}{sep}{new_path}"


def remove_path_entry(current: str, target: str, sep: str = os.pathsep) -> str:
    """
    Remove every segment equal to ``target`` (case-insensitive).

    Other segments keep their order and separators.
    """
    lowered = target.lower()
    parts = current.split(sep)
    kept = [part for part in parts if not (part and part.lower() == lowered)]
    if len(kept) == len(parts):
        return current
    return sep.join(kept)


# ============================================================================
# Store interface
# ============================================================================


class PersistentEnvironmentStore(ABC):
    """
    User-scoped persistent environment.

    Every mutation is persisted immediately. Implementations only need the
    four primitive operations; PATH handling and action application are
    shared.
    """

    path_var = "PATH"
    path_sep = os.pathsep

    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        """Return the stored value or None."""

    @abstractmethod
    def set(self, name: str, value: str) -> None:
        """Store ``value`` (references to other variables stay unexpanded)."""

    @abstractmethod
    def delete(self, name: str) -> None:
        """Remove ``name``; deleting a missing variable is not an error."""

    @abstractmethod
    def broadcast_change(self) -> None:
        """Best-effort notification that the environment changed. Never raises."""

    def append_to_path(self, path: str) -> bool:
        """
        Append ``path`` to PATH unless already present.

        Returns:
            True if PATH was modified
        """
        current = self.get(self.path_var) or ""
        updated = append_path_entry(current, path, self.path_sep)
        if updated == current:
            logger.debug(f"PATH already contains {path}")
            return False
        self.set(self.path_var, updated)
        logger.debug(f"Added {path} to PATH")
        return True

    def remove_from_path(self, path: str) -> bool:
        """
        Remove every occurrence of ``path`` from PATH.

        Returns:
            True if PATH was modified
        """
        current = self.get(self.path_var)
        if not current:
            return False
        updated = remove_path_entry(current, path, self.path_sep)
        if updated == current:
            return False
        self.set(self.path_var, updated)
        logger.debug(f"Removed {path} from PATH")
        return True

    def apply_actions(self, actions: Iterable[EnvAction]) -> None:
        """Apply install-time environment actions in order."""
        for action in actions:
            if isinstance(action, SetVar):
                self.set(action.name, action.value)
                logger.info(f"Set {action.name}={action.value}")
            elif isinstance(action, AppendPath):
                if self.append_to_path(action.path):
                    logger.info(f"Added to PATH: {action.path}")
            else:
                raise TypeError(f"Unknown environment action: {action!r}")

    def revert_actions(self, actions: Iterable[EnvAction]) -> None:
        """Undo environment actions: delete variables that are set, strip PATH entries."""
        for action in actions:
            if isinstance(action, SetVar):
                if self.get(action.name) is not None:
                    self.delete(action.name)
                    logger.info(f"Removed variable {action.name}")
            elif isinstance(action, AppendPath):
                if self.remove_from_path(action.path):
                    logger.info(f"Removed from PATH: {action.path}")
            else:
                raise TypeError(f"Unknown environment action: {action!r}")


# ============================================================================
# Windows backend
# ============================================================================


class WindowsRegistryStore(PersistentEnvironmentStore):
    """``HKEY_CURRENT_USER\\Environment`` backed store."""

    path_var = "Path"
    path_sep = ";"

    ENV_KEY = "Environment"

    def get(self, name: str) -> Optional[str]:
        import winreg

        try:
            with winreg.OpenKey(winreg.HKEY_CURRENT_USER, self.ENV_KEY) as key:
                value, _ = winreg.QueryValueEx(key, name)
                return str(value)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise EnvironmentStoreError(f"Failed to read {name} from registry: {e}") from e

    def set(self, name: str, value: str) -> None:
        import winreg

        try:
            with winreg.OpenKey(
                winreg.HKEY_CURRENT_USER, self.ENV_KEY, 0, winreg.KEY_SET_VALUE
            ) as key:
                winreg.SetValueEx(key, name, 0, winreg.REG_EXPAND_SZ, value)
        except OSError as e:
            raise EnvironmentStoreError(f"Failed to set {name} in registry: {e}") from e

    def delete(self, name: str) -> None:
        import winreg

        try:
            with winreg.OpenKey(
                winreg.HKEY_CURRENT_USER, self.ENV_KEY, 0, winreg.KEY_SET_VALUE
            ) as key:
                winreg.DeleteValue(key, name)
        except FileNotFoundError:
            return
        except OSError as e:
            raise EnvironmentStoreError(f"Failed to delete {name} from registry: {e}") from e

    def broadcast_change(self) -> None:
        import ctypes
        from ctypes import wintypes

        HWND_BROADCAST = 0xFFFF
        WM_SETTINGCHANGE = 0x001A
        SMTO_ABORTIFHUNG = 0x0002

        try:
            result = wintypes.DWORD()
            ctypes.windll.user32.SendMessageTimeoutW(
                HWND_BROADCAST,
                WM_SETTINGCHANGE,
                0,
                "Environment",
                SMTO_ABORTIFHUNG,
                5000,
                ctypes.byref(result),
            )
        except (OSError, AttributeError) as e:
            logger.debug(f"Environment change broadcast failed: {e}")


# ============================================================================
# POSIX backend
# ============================================================================

HOOK_BEGIN = "# >>> devstrap >>>"
HOOK_END = "# <<< devstrap <<<"
ENV_FILE_HEADER = "# Managed by devstrap. Changes are overwritten."

_EXPORT_RE = re.compile(r'^export ([A-Za-z_][A-Za-z0-9_]*)="(.*)"$')
_PATH_PREFIX = "$PATH:"


def _quote(value: str) -> str:
    # '$' stays live so references expand when the file is sourced
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("`", "\\`")


def _unquote(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


class ShellProfileStore(PersistentEnvironmentStore):
    """
    Store backed by a devstrap-owned shell script.

    Variables are written to ``env_file`` as ``export NAME="value"`` lines.
    The managed PATH entries are kept as ``export PATH="$PATH:<entries>"`` so
    :meth:`get` of PATH returns only entries devstrap added. Each profile file
    gets a marker-guarded block sourcing ``env_file``, added once.

    Args:
        env_file: Script holding the managed variables
        profile_files: Shell start-up files to hook ``env_file`` into
    """

    path_var = "PATH"
    path_sep = ":"

    def __init__(self, env_file: Path, profile_files: Sequence[Path]):
        self.env_file = Path(env_file)
        self.profile_files = [Path(p) for p in profile_files]

    def _read(self) -> Dict[str, str]:
        if not self.env_file.exists():
            return {}
        try:
            lines = self.env_file.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise EnvironmentStoreError(f"Failed to read {self.env_file}: {e}") from e

        values: Dict[str, str] = {}
        for line in lines:
            match = _EXPORT_RE.match(line.strip())
            if not match:
                continue
            name, raw = match.group(1), _unquote(match.group(2))
            if name == self.path_var:
                raw = raw[len(_PATH_PREFIX):] if raw.startswith(_PATH_PREFIX) else raw
            values[name] = raw
        return values

    def _write(self, values: Mapping[str, str]) -> None:
        lines = [ENV_FILE_HEADER]
        for name, value in values.items():
            if name == self.path_var:
                continue
            lines.append(f'export {name}="{_quote(value)}"')
        managed_path = values.get(self.path_var)
        if managed_path:
            lines.append(f'export {self.path_var}="{_PATH_PREFIX}{_quote(managed_path)}"')

        try:
            atomic_write(self.env_file, "\n".join(lines) + "\n")
        except OSError as e:
            raise EnvironmentStoreError(f"Failed to write {self.env_file}: {e}") from e
        self.install_hook()

    def get(self, name: str) -> Optional[str]:
        return self._read().get(name)

    def set(self, name: str, value: str) -> None:
        values = self._read()
        if name == self.path_var and not value:
            values.pop(name, None)
        else:
            values[name] = value
        self._write(values)

    def delete(self, name: str) -> None:
        values = self._read()
        if name not in values:
            return
        del values[name]
        self._write(values)

    def broadcast_change(self) -> None:
        logger.debug(
            f"Environment written to {self.env_file}; open a new shell to pick it up"
        )

    def hook_block(self) -> str:
        env = str(self.env_file)
        return f'{HOOK_BEGIN}\n[ -f "{env}" ] && . "{env}"\n{HOOK_END}\n'

    def install_hook(self) -> List[Path]:
        """
        Add the sourcing block to every profile file lacking it.

        Returns:
            Profile files that were modified
        """
        modified = []
        for profile in self.profile_files:
            try:
                content = profile.read_text(encoding="utf-8") if profile.exists() else ""
            except OSError as e:
                raise EnvironmentStoreError(f"Failed to read {profile}: {e}") from e
            if HOOK_BEGIN in content:
                continue

            if content and not content.endswith("\n"):
                content += "\n"
            try:
                atomic_write(profile, content + "\n" + self.hook_block())
            except OSError as e:
                raise EnvironmentStoreError(f"Failed to update {profile}: {e}") from e
            logger.info(f"Hooked devstrap environment into {profile}")
            modified.append(profile)
        return modified


def default_profile_files(home: Optional[Path] = None) -> List[Path]:
    """Shell start-up files to hook: existing bash/zsh rc files, else ``~/.profile``."""
    home = home or get_home_dir()
    candidates = [home / ".profile", home / ".bashrc", home / ".zshrc"]
    existing = [p for p in candidates if p.exists()]
    return existing or [home / ".profile"]


def get_default_store() -> PersistentEnvironmentStore:
    """Store for the current OS."""
    if os.name == "nt":
        return WindowsRegistryStore()
    return ShellProfileStore(get_config_dir() / "env.sh", default_profile_files())


# ============================================================================
# Process overlay
# ============================================================================


@dataclass
class EnvironmentOverlay:
    """
    Environment additions for subprocesses started during this run.

    Attributes:
        vars: Variables to set
        path_prepend: Directories placed in front of PATH, in order
    """

    vars: Dict[str, str] = field(default_factory=dict)
    path_prepend: List[str] = field(default_factory=list)

    @classmethod
    def from_actions(cls, actions: Iterable[EnvAction]) -> "EnvironmentOverlay":
        overlay = cls()
        for action in actions:
            if isinstance(action, SetVar):
                overlay.vars[action.name] = action.value
            elif isinstance(action, AppendPath) and action.path not in overlay.path_prepend:
                overlay.path_prepend.append(action.path)
        return overlay

    def merge(self, other: "EnvironmentOverlay") -> "EnvironmentOverlay":
        """Combine two overlays; ``other`` wins on variable conflicts."""
        merged_vars = dict(self.vars)
        merged_vars.update(other.vars)
        merged_path = list(self.path_prepend)
        for entry in other.path_prepend:
            if entry not in merged_path:
                merged_path.append(entry)
        return EnvironmentOverlay(vars=merged_vars, path_prepend=merged_path)

    def is_empty(self) -> bool:
        return not self.vars and not self.path_prepend

    def apply(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Build a full environment for ``subprocess``.

        Args:
            base: Starting environment (defaults to ``os.environ``)
        """
        env = dict(os.environ if base is None else base)
        env.update(self.vars)
        if self.path_prepend:
            path_key = next((k for k in env if k.upper() == "PATH"), "PATH")
            existing = env.get(path_key, "")
            parts = list(self.path_prepend)
            if existing:
                parts.append(existing)
            env[path_key] = os.pathsep.join(parts)
        return env


__all__ = [
    "SetVar",
    "AppendPath",
    "EnvAction",
    "split_path",
    "path_contains",
    "append_path_entry",
    "remove_path_entry",
    "PersistentEnvironmentStore",
    "WindowsRegistryStore",
    "ShellProfileStore",
    "default_profile_files",
    "get_default_store",
    "EnvironmentOverlay",
]
