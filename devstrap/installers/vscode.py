"""Visual Studio Code installer (portable archive).

The archive is installed in portable mode: a ``data/`` directory next to the
executable holds settings and extensions, and it is carried over when VS Code
is reinstalled.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.exceptions import CommandError, UnsupportedPlatformError
from devstrap.core.filesystem import move_into_place
from devstrap.core.platform import PlatformInfo, detect_platform
from devstrap.installers.base import (
    AppendPath,
    ArchiveInstaller,
    EnvAction,
    InstallContext,
    InstallResult,
    ToolInfo,
    first_line,
)

logger = logging.getLogger(__name__)

UPDATE_BASE = "https://update.code.visualstudio.com"


def build_key(platform: PlatformInfo) -> str:
    """
    Update-server build name for a platform.

    Example:
        >>> build_key(PlatformInfo("windows", "x64"))
        'win32-x64-archive'
    """
    if platform.is_windows:
        return f"win32-{platform.arch}-archive"
    if platform.os == "linux":
        return f"linux-{platform.arch}"
    raise UnsupportedPlatformError(
        "vscode", "the macOS build is an app bundle; install it from code.visualstudio.com"
    )


class VscodeInstaller(ArchiveInstaller):
    category = "ide"
    dir_name = "vscode"
    always_latest = True
    version_command = ("code", "--version")
    external_binaries = ("code",)
    registry_display_name = "Visual Studio Code"

    def info(self) -> ToolInfo:
        return ToolInfo("vscode", "VS Code", "Visual Studio Code editor")

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        return None

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        platform = detect_platform()
        key = build_key(platform)
        base = config.mirror_for("vscode", UPDATE_BASE)
        return f"{base}/latest/{key}/stable", f"vscode-{key}.{platform.archive_ext}"

    def install(self, ctx: InstallContext) -> InstallResult:
        """
        Install the latest build, keeping the portable ``data/`` directory.

        The data directory waits in the cache while the old build is
        replaced; if the install fails it is restored by the next attempt.
        """
        backup = ctx.config.cache_dir / "vscode-data-backup"
        data_dir = self.install_dir(ctx.config) / "data"
        if data_dir.is_dir():
            move_into_place(data_dir, backup)

        result = super().install(ctx)

        target = result.install_path / "data"
        if backup.is_dir():
            move_into_place(backup, target)
            logger.info("Kept existing VS Code settings and extensions")
        else:
            target.mkdir(exist_ok=True)
        return result

    def installed_version(self, ctx: InstallContext, install_path: Path) -> str:
        cli = install_path / "bin" / ("code.cmd" if ctx.platform.is_windows else "code")
        try:
            return first_line(ctx.run([cli, "--version"]).stdout) or "latest"
        except CommandError:
            return "latest"

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [AppendPath(str(install_path)), AppendPath(str(install_path / "bin"))]
