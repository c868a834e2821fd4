"""Google Chrome installer (enterprise MSI).

Chrome cannot be installed into a chosen directory: the MSI installs under
``%ProgramFiles%`` and the consumer installer under ``%LOCALAPPDATA%``. The
ledger records whichever location Chrome ended up in, and uninstall runs
Chrome's own ``setup.exe`` instead of deleting that directory.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.exceptions import (
    CommandError,
    ElevationError,
    InstallError,
    UnsupportedPlatformError,
)
from devstrap.core.filesystem import is_relative_to
from devstrap.core.process import run_as_admin
from devstrap.installers.base import (
    DetectionResult,
    EnvAction,
    ExternalInstalled,
    InstallContext,
    Installer,
    InstallResult,
    NotInstalled,
    ToolInfo,
)

logger = logging.getLogger(__name__)

MSI_URL = "https://dl.google.com/dl/chrome/install/googlechromestandaloneenterprise64.msi"
MSI_FILENAME = "chrome-enterprise-64.msi"

# 3010: success, reboot required
MSI_SUCCESS_CODES = (0, 3010)
# 19: UNINSTALL_SUCCESSFUL
SETUP_UNINSTALL_SUCCESS_CODES = (0, 19)


def _version_key(name: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in name.split("."))


def application_dirs() -> List[Path]:
    """Candidate ``Google\\Chrome\\Application`` directories, system-wide first."""
    dirs = []
    for var in ("ProgramFiles", "LOCALAPPDATA"):
        base = os.environ.get(var)
        if base:
            dirs.append(Path(base) / "Google" / "Chrome" / "Application")
    return dirs


def find_application_dir() -> Optional[Path]:
    for candidate in application_dirs():
        if (candidate / "chrome.exe").is_file():
            return candidate
    return None


def versioned_dirs(app_dir: Path) -> List[Path]:
    """Per-version subdirectories (``131.0.6778.86``), newest first."""
    found = []
    for entry in app_dir.iterdir():
        if entry.is_dir() and all(part.isdigit() for part in entry.name.split(".")):
            found.append(entry)
    return sorted(found, key=lambda p: _version_key(p.name), reverse=True)


def chrome_version(app_dir: Path) -> Optional[str]:
    """
    Installed version, read from the newest versioned subdirectory.

    Example:
        >>> chrome_version(Path(r"C:\\Program Files\\Google\\Chrome\\Application"))
        '131.0.6778.86'
    """
    dirs = versioned_dirs(app_dir)
    return dirs[0].name if dirs else None


class ChromeInstaller(Installer):
    always_latest = True
    vendor_located = True
    takeover_supported = False

    def info(self) -> ToolInfo:
        return ToolInfo("chrome", "Google Chrome", "Google Chrome browser")

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        return config.mirror_for("chrome", MSI_URL), MSI_FILENAME

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        return None

    def detect_installed(self, ctx: InstallContext) -> DetectionResult:
        if not ctx.platform.is_windows:
            return NotInstalled()
        app_dir = find_application_dir()
        if app_dir is None:
            return NotInstalled()
        return ExternalInstalled(chrome_version(app_dir) or "installed")

    def install(self, ctx: InstallContext) -> InstallResult:
        if not ctx.platform.is_windows:
            raise UnsupportedPlatformError(
                "chrome", "install Chrome with the system package manager on this platform"
            )
        msi = self.fetch(ctx)
        logger.info("Installing Google Chrome (administrator rights required)...")
        self._msiexec(ctx, ["msiexec", "/i", msi, "/quiet", "/norestart"])

        app_dir = find_application_dir()
        if app_dir is None:
            raise InstallError(
                "chrome", "Chrome was not found after installation; open a new terminal and retry"
            )
        return InstallResult(app_dir, chrome_version(app_dir) or "unknown")

    def _msiexec(self, ctx: InstallContext, cmd: List) -> None:
        # A per-machine MSI fails with a policy error, not access denied, without admin rights
        try:
            ctx.run(cmd)
            return
        except CommandError as e:
            if e.returncode in MSI_SUCCESS_CODES:
                return
            logger.debug(f"Unprivileged msiexec failed: {e}")
        try:
            run_as_admin(cmd, overlay=ctx.overlay)
        except ElevationError as e:
            if e.returncode not in MSI_SUCCESS_CODES:
                raise

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return []

    def pre_uninstall(self, ctx: InstallContext) -> None:
        """Run Chrome's bundled ``setup.exe --uninstall``."""
        app_dir = find_application_dir()
        setup = None
        if app_dir is not None:
            for versioned in versioned_dirs(app_dir):
                candidate = versioned / "Installer" / "setup.exe"
                if candidate.is_file():
                    setup = candidate
                    break
        if setup is None:
            logger.warning("Chrome's uninstaller was not found; remove Chrome from Settings > Apps")
            return

        cmd = [setup, "--uninstall", "--force-uninstall"]
        program_files = os.environ.get("ProgramFiles")
        system_level = program_files is not None and is_relative_to(app_dir, Path(program_files))
        logger.info("Running the Chrome uninstaller...")
        try:
            if system_level:
                run_as_admin([*cmd, "--system-level"], overlay=ctx.overlay)
            else:
                ctx.run(cmd, capture=False)
        except CommandError as e:
            if e.returncode not in SETUP_UNINSTALL_SUCCESS_CODES:
                raise
