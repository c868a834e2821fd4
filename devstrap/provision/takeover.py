"""
Takeover of external installations.

When the user lets devstrap take over a tool that is already installed
elsewhere, the existing copy is removed first:

1. A vendor strategy when the tool declares one: the Windows registry
   uninstaller (Inno Setup or MSI), the tool's own self-uninstall command or
   an uninstaller shipped inside the external install.
2. The generic fallback otherwise (or when the strategy fails): every
   directory on PATH holding one of the tool's executables is stripped from
   the persistent PATH and the tool's known variables are deleted.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional

from devstrap.core.environment import PersistentEnvironmentStore
from devstrap.core.exceptions import CommandError, InstallError
from devstrap.core.filesystem import find_all_executables, find_executable
from devstrap.core.process import run_command, run_elevated
from devstrap.installers.base import InstallContext, Installer

logger = logging.getLogger(__name__)

UNINSTALL_ROOT = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"
INNO_SILENT_ARGS = ("/VERYSILENT", "/NORESTART")

_MSI_PRODUCT_CODE = re.compile(r"\{[0-9A-Fa-f-]{36}\}")


# =============================================================================
# Windows registry uninstallers
# =============================================================================


def _read_uninstall_value(subkey: str, value_name: str) -> Optional[str]:
    import winreg

    for hive in (winreg.HKEY_LOCAL_MACHINE, winreg.HKEY_CURRENT_USER):
        try:
            with winreg.OpenKey(hive, f"{UNINSTALL_ROOT}\\{subkey}") as key:
                value, _ = winreg.QueryValueEx(key, value_name)
                return str(value)
        except OSError:
            continue
    return None


def find_uninstall_string(key_name: str) -> Optional[str]:
    """``UninstallString`` of an ``Uninstall\\<key_name>`` entry (HKLM, then HKCU)."""
    return _read_uninstall_value(key_name, "UninstallString")


def find_uninstall_by_display_name(display_text: str) -> Optional[str]:
    """``UninstallString`` of the first entry whose DisplayName contains ``display_text``."""
    import winreg

    for hive in (winreg.HKEY_LOCAL_MACHINE, winreg.HKEY_CURRENT_USER):
        try:
            root = winreg.OpenKey(hive, UNINSTALL_ROOT)
        except OSError:
            continue
        with root:
            index = 0
            while True:
                try:
                    name = winreg.EnumKey(root, index)
                except OSError:
                    break
                index += 1
                try:
                    with winreg.OpenKey(root, name) as sub:
                        display, _ = winreg.QueryValueEx(sub, "DisplayName")
                        if display_text in str(display):
                            command, _ = winreg.QueryValueEx(sub, "UninstallString")
                            return str(command)
                except OSError:
                    continue
    return None


def uninstall_command(uninstall_string: str) -> List[str]:
    """
    Silent command line for a registry ``UninstallString``.

    MSI entries become ``msiexec /x {product-code} /qn /norestart``; Inno
    Setup uninstallers get ``/VERYSILENT /NORESTART``.

    Example:
        >>> uninstall_command('MsiExec.exe /I{12345678-1234-1234-1234-123456789012}')
        ['msiexec', '/x', '{12345678-1234-1234-1234-123456789012}', '/qn', '/norestart']
    """
    if "msiexec" in uninstall_string.lower():
        match = _MSI_PRODUCT_CODE.search(uninstall_string)
        if match:
            return ["msiexec", "/x", match.group(0), "/qn", "/norestart"]
    return [uninstall_string.strip().strip('"'), *INNO_SILENT_ARGS]


def uninstall_via_registry(installer: Installer) -> bool:
    """
    Run the vendor uninstaller registered for ``installer``.

    Returns:
        False if no uninstaller is registered

    Raises:
        CommandError: If the uninstaller fails or elevation is refused
    """
    uninstall_string = None
    if installer.registry_uninstall_key:
        uninstall_string = find_uninstall_string(installer.registry_uninstall_key)
    if uninstall_string is None and installer.registry_display_name:
        uninstall_string = find_uninstall_by_display_name(installer.registry_display_name)
    if uninstall_string is None:
        return False

    logger.info(f"Running the system uninstaller for {installer.info().name}...")
    run_elevated(uninstall_command(uninstall_string))
    return True


# =============================================================================
# Generic fallback
# =============================================================================


def uninstall_green(
    store: PersistentEnvironmentStore,
    binaries: Iterable[str],
    env_vars: Iterable[str],
    search_paths: Optional[List[Path]] = None,
) -> List[str]:
    """
    Detach a portable ("green") install from the persistent environment.

    Every PATH directory containing one of ``binaries`` is removed from the
    stored PATH, and every variable in ``env_vars`` that is set is deleted.
    Files are left in place.

    Returns:
        PATH directories that were removed
    """
    removed = []
    for binary in binaries:
        for executable in find_all_executables(binary, search_paths):
            directory = str(executable.parent)
            if store.remove_from_path(directory):
                logger.info(f"Removed from PATH: {directory}")
                removed.append(directory)

    for name in env_vars:
        if store.get(name) is not None:
            store.delete(name)
            logger.info(f"Removed variable {name}")

    store.broadcast_change()
    return removed


# =============================================================================
# Entry point
# =============================================================================


def take_over(
    installer: Installer, ctx: InstallContext, store: PersistentEnvironmentStore
) -> None:
    """
    Remove an external installation of ``installer``'s tool.

    Raises:
        InstallError: If the vendor uninstaller exists but fails
    """
    tool_id = installer.id

    if ctx.platform.is_windows and (
        installer.registry_uninstall_key or installer.registry_display_name
    ):
        try:
            if uninstall_via_registry(installer):
                for name in installer.external_env_vars:
                    if store.get(name) is not None:
                        store.delete(name)
                store.broadcast_change()
                return
        except CommandError as e:
            if installer.registry_uninstall_key:
                raise InstallError(tool_id, f"system uninstaller failed: {e}") from e
            logger.warning(f"{tool_id}: system uninstaller failed, cleaning up PATH instead: {e}")

    if installer.self_uninstall_command:
        executable = find_executable(installer.self_uninstall_command[0])
        if executable is not None:
            logger.info(f"Running {' '.join(installer.self_uninstall_command)}...")
            try:
                run_command(
                    [executable, *installer.self_uninstall_command[1:]],
                    capture=False,
                )
            except CommandError as e:
                logger.warning(f"{tool_id}: self-uninstall failed, cleaning up PATH instead: {e}")

    bundled = installer.external_uninstaller()
    if bundled:
        logger.info(f"Running {Path(str(bundled[0])).name}...")
        try:
            run_command(bundled, capture=False)
        except CommandError as e:
            logger.warning(f"{tool_id}: bundled uninstaller failed, cleaning up PATH instead: {e}")

    uninstall_green(store, installer.external_binaries, installer.external_env_vars)
    logger.info(f"Previous {installer.info().name} installation detached")


__all__ = [
    "find_uninstall_string",
    "find_uninstall_by_display_name",
    "uninstall_command",
    "uninstall_via_registry",
    "uninstall_green",
    "take_over",
]
