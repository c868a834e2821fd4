"""Bun JavaScript runtime installer."""

from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.exceptions import CommandError
from devstrap.core.platform import detect_platform
from devstrap.installers.base import (
    AppendPath,
    ArchiveInstaller,
    EnvAction,
    InstallContext,
    ToolInfo,
)

DOWNLOAD_BASE = "https://github.com/oven-sh/bun/releases/latest/download"


class BunInstaller(ArchiveInstaller):
    category = "tools"
    always_latest = True
    version_command = ("bun", "--version")
    external_binaries = ("bun",)

    def info(self) -> ToolInfo:
        return ToolInfo("bun", "Bun", "All-in-one JavaScript runtime and toolkit")

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        return None

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        platform = detect_platform()
        os_name = "darwin" if platform.os == "macos" else platform.os
        arch = "aarch64" if platform.arch == "arm64" else "x64"
        filename = f"bun-{os_name}-{arch}.zip"
        base = config.mirror_for("bun", DOWNLOAD_BASE)
        return f"{base}/{filename}", filename

    def installed_version(self, ctx: InstallContext, install_path: Path) -> str:
        bun = install_path / f"bun{ctx.platform.exe_suffix}"
        try:
            return ctx.run([bun, "--version"]).stdout.strip() or "unknown"
        except CommandError:
            return "unknown"

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [AppendPath(str(install_path))]
