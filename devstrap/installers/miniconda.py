"""Miniconda installer (silent run of the official installer)."""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.exceptions import CommandError
from devstrap.core.filesystem import find_executable
from devstrap.core.platform import PlatformInfo, detect_platform
from devstrap.installers.base import (
    AppendPath,
    EnvAction,
    InstallContext,
    Installer,
    InstallResult,
    ToolInfo,
    extract_version,
)

logger = logging.getLogger(__name__)

DOWNLOAD_BASE = "https://repo.anaconda.com/miniconda"
WINDOWS_UNINSTALLER = "Uninstall-Miniconda3.exe"


def installer_name(platform: PlatformInfo) -> str:
    """
    Filename of the latest Miniconda installer for a platform.

    Example:
        >>> installer_name(PlatformInfo("linux", "arm64"))
        'Miniconda3-latest-Linux-aarch64.sh'
    """
    if platform.is_windows:
        return "Miniconda3-latest-Windows-x86_64.exe"
    if platform.os == "macos":
        arch = {"x64": "x86_64", "arm64": "arm64"}[platform.arch]
        return f"Miniconda3-latest-MacOSX-{arch}.sh"
    arch = {"x64": "x86_64", "arm64": "aarch64"}[platform.arch]
    return f"Miniconda3-latest-Linux-{arch}.sh"


class MinicondaInstaller(Installer):
    always_latest = True
    version_command = ("conda", "--version")
    external_binaries = ("conda",)

    def info(self) -> ToolInfo:
        return ToolInfo("miniconda", "Miniconda", "Minimal conda package manager")

    def install_dir(self, config: DevstrapConfig) -> Path:
        return config.tools_dir / "miniconda"

    def parse_version(self, output: str) -> str:
        return extract_version(output)

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        return None

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        filename = installer_name(detect_platform())
        base = config.mirror_for("miniconda", DOWNLOAD_BASE)
        return f"{base}/{filename}", filename

    def install(self, ctx: InstallContext) -> InstallResult:
        installer = self.fetch(ctx)
        install_dir = self.install_dir(ctx.config)

        logger.info("Installing Miniconda (silent mode)...")
        if ctx.platform.is_windows:
            cmd = [
                installer,
                "/InstallationType=JustMe",
                "/RegisterPython=0",
                "/AddToPath=0",
                "/S",
                f"/D={install_dir}",  # must be last
            ]
        else:
            cmd = ["bash", installer, "-b", "-u", "-p", install_dir]
        ctx.run(cmd, capture=False)

        return InstallResult(install_dir, self._installed_version(ctx, install_dir))

    def _installed_version(self, ctx: InstallContext, install_dir: Path) -> str:
        if ctx.platform.is_windows:
            conda = install_dir / "Scripts" / "conda.exe"
        else:
            conda = install_dir / "bin" / "conda"
        try:
            return self.parse_version(ctx.run([conda, "--version"]).stdout)
        except CommandError:
            return "latest"

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        if detect_platform().is_windows:
            return [
                AppendPath(str(install_path)),
                AppendPath(str(install_path / "Scripts")),
                AppendPath(str(install_path / "Library" / "bin")),
            ]
        return [AppendPath(str(install_path / "bin"))]

    def external_uninstaller(self) -> Optional[List]:
        """The uninstaller at the root of an external Windows install, if present."""
        conda = find_executable("conda")
        if conda is None:
            return None
        # <root>/Scripts/conda.exe or <root>/condabin/conda.bat
        uninstaller = conda.parent.parent / WINDOWS_UNINSTALLER
        if not uninstaller.is_file():
            return None
        return [uninstaller, "/S"]
