"""
Self-update and self-uninstall.

A standalone (frozen) build replaces its own executable:

1. Download the new binary next to the current one as ``<exe>.new``.
2. Rename the running executable to ``<exe>.old``.
3. Rename ``<exe>.new`` to ``<exe>``; if that fails, ``<exe>.old`` is renamed
   back before the error is raised, so a runnable binary always remains.
4. Delete ``<exe>.old`` from a detached process once this one has exited.

When devstrap runs from a Python environment it is upgraded with pip instead.

Self-uninstall removes the binary's directory from the persistent PATH and
deletes the binary (and optionally the configuration file and download
cache) the same detached way. Installed tools are left alone.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from devstrap import __version__
from devstrap.core.config import DevstrapConfig
from devstrap.core.download import download, invalidate
from devstrap.core.environment import PersistentEnvironmentStore
from devstrap.core.exceptions import CommandError, DownloadError, UpdateError
from devstrap.core.filesystem import make_executable
from devstrap.core.platform import PlatformInfo, detect_platform
from devstrap.core.process import run_command
from devstrap.provision.versions import DEVSTRAP_REPO, devstrap_latest

logger = logging.getLogger(__name__)

RELEASE_DOWNLOAD_URL = "https://github.com/{repo}/releases/download/v{version}/{asset}"
PACKAGE_NAME = "devstrap"

# Windows: DETACHED_PROCESS | CREATE_NEW_PROCESS_GROUP
_DETACHED_FLAGS = 0x00000008 | 0x00000200


def release_asset(platform: PlatformInfo) -> str:
    """
    Release asset name of the standalone binary.

    Example:
        >>> release_asset(PlatformInfo("windows", "x64"))
        'devstrap-windows-x64.exe'
    """
    return f"devstrap-{platform.platform_string()}{platform.exe_suffix}"


class SelfUpdater:
    """
    Updates the running devstrap installation.

    Args:
        current_version: Installed version (defaults to this package's)
        executable: Path of the standalone binary (defaults to sys.executable)
        standalone: Whether this is a frozen build; detected when None
        latest_version: Callable returning the newest published version
        platform: Target platform
    """

    def __init__(
        self,
        current_version: str = __version__,
        executable: Optional[Union[str, Path]] = None,
        standalone: Optional[bool] = None,
        latest_version: Callable[[], Optional[str]] = devstrap_latest,
        platform: Optional[PlatformInfo] = None,
    ):
        self.current_version = current_version
        self.executable = Path(executable or sys.executable)
        self.standalone = getattr(sys, "frozen", False) if standalone is None else standalone
        self._latest_version = latest_version
        self.platform = platform or detect_platform()

    @property
    def new_path(self) -> Path:
        return self.executable.with_name(self.executable.name + ".new")

    @property
    def old_path(self) -> Path:
        return self.executable.with_name(self.executable.name + ".old")

    def latest(self) -> str:
        """
        Newest published version.

        Raises:
            UpdateError: If the release query fails
        """
        latest = self._latest_version()
        if not latest:
            raise UpdateError("Could not determine the latest devstrap version")
        return latest

    def update(self) -> bool:
        """
        Update to the latest version.

        Returns:
            True if an update was installed, False if already current

        Raises:
            UpdateError: If the download or the replacement fails
        """
        latest = self.latest()
        if latest == self.current_version:
            logger.info(f"devstrap {self.current_version} is up to date")
            return False

        logger.info(f"Updating devstrap {self.current_version} -> {latest}")
        if not self.standalone:
            self._pip_upgrade()
            return True

        new_binary = self.download(latest)
        self.replace_executable(new_binary)
        self.schedule_cleanup()
        logger.info(f"devstrap updated to {latest}")
        return True

    def download(self, version: str) -> Path:
        """Fetch the release binary to ``<exe>.new``."""
        url = RELEASE_DOWNLOAD_URL.format(
            repo=DEVSTRAP_REPO, version=version, asset=release_asset(self.platform)
        )
        directory = self.executable.parent
        # A leftover from an earlier attempt is not trusted
        invalidate(directory, self.new_path.name)
        try:
            path = download(url, directory, self.new_path.name)
        except DownloadError as e:
            raise UpdateError(f"Failed to download devstrap {version}: {e}") from e
        make_executable(path)
        return path

    def replace_executable(self, new_binary: Path) -> None:
        """
        Swap ``new_binary`` into the executable path, rolling back on failure.

        Raises:
            UpdateError: If either rename fails (the original is back in place)
        """
        if self.old_path.exists():
            try:
                self.old_path.unlink()
            except OSError as e:
                raise UpdateError(
                    f"Cannot remove the previous backup {self.old_path}: {e}"
                ) from e

        try:
            os.replace(self.executable, self.old_path)
        except OSError as e:
            raise UpdateError(f"Cannot move {self.executable} aside: {e}") from e

        try:
            os.replace(new_binary, self.executable)
        except OSError as e:
            try:
                os.replace(self.old_path, self.executable)
            except OSError as restore_error:
                raise UpdateError(
                    f"Update failed ({e}) and the previous binary could not be "
                    f"restored; it is at {self.old_path}: {restore_error}"
                ) from e
            raise UpdateError(f"Cannot install the new binary: {e}") from e

    def schedule_cleanup(self) -> None:
        """Delete ``<exe>.old`` from a detached process after a short delay."""
        schedule_removal([self.old_path], self.platform)

    def _pip_upgrade(self) -> None:
        cmd = [sys.executable, "-m", "pip", "install", "--upgrade", PACKAGE_NAME]
        try:
            run_command(cmd, capture=False)
        except CommandError as e:
            raise UpdateError(f"pip upgrade failed: {e}") from e


def schedule_removal(paths: Sequence[Path], platform: PlatformInfo) -> None:
    """
    Delete ``paths`` (files or directories) from a detached process.

    The process waits a second so the running binary can exit and release
    its own file. Failure to spawn is logged, not raised.
    """
    targets = [str(path) for path in paths]
    try:
        if platform.is_windows:
            removals = "; ".join(
                "Remove-Item -LiteralPath '{}' -Recurse -Force -ErrorAction SilentlyContinue".format(
                    target.replace("'", "''")
                )
                for target in targets
            )
            subprocess.Popen(
                [
                    "powershell", "-NoProfile", "-WindowStyle", "Hidden",
                    "-Command", f"Start-Sleep -Seconds 1; {removals}",
                ],
                creationflags=_DETACHED_FLAGS,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        else:
            subprocess.Popen(
                ["sh", "-c", 'sleep 1; rm -rf "$@"', "sh", *targets],
                start_new_session=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
    except OSError as e:
        logger.warning(f"Could not schedule removal of {', '.join(targets)}: {e}")


class SelfUninstaller:
    """
    Removes a standalone devstrap binary from this machine.

    Args:
        store: Persistent environment holding the binary's PATH entry
        config: Configuration whose file and cache may also be removed
        executable: Path of the standalone binary (defaults to sys.executable)
        standalone: Whether this is a frozen build; detected when None
        platform: Target platform
    """

    def __init__(
        self,
        store: PersistentEnvironmentStore,
        config: DevstrapConfig,
        executable: Optional[Union[str, Path]] = None,
        standalone: Optional[bool] = None,
        platform: Optional[PlatformInfo] = None,
    ):
        self.store = store
        self.config = config
        self.executable = Path(executable or sys.executable)
        self.standalone = getattr(sys, "frozen", False) if standalone is None else standalone
        self.platform = platform or detect_platform()

    @property
    def bin_dir(self) -> Path:
        return self.executable.parent

    def uninstall(self, remove_data: bool = False) -> List[Path]:
        """
        Detach the binary from PATH and schedule its deletion.

        Args:
            remove_data: Also delete the configuration file and the
                download cache

        Returns:
            Paths scheduled for deletion

        Raises:
            UpdateError: If devstrap runs from a Python environment
        """
        if not self.standalone:
            raise UpdateError(
                f"devstrap runs from a Python environment; remove it with: "
                f"pip uninstall {PACKAGE_NAME}"
            )

        if self.store.remove_from_path(str(self.bin_dir)):
            logger.info(f"Removed from PATH: {self.bin_dir}")
        self.store.broadcast_change()

        targets = [self.executable]
        if remove_data:
            if self.config.path is not None and self.config.path.exists():
                targets.append(self.config.path)
            if self.config.cache_dir.exists():
                targets.append(self.config.cache_dir)

        schedule_removal(targets, self.platform)
        return targets


__all__ = [
    "SelfUpdater",
    "SelfUninstaller",
    "schedule_removal",
    "release_asset",
    "RELEASE_DOWNLOAD_URL",
]
