"""Node.js installer (through the fnm version manager)."""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.environment import EnvironmentOverlay
from devstrap.core.exceptions import CommandError
from devstrap.core.filesystem import make_executable
from devstrap.core.platform import detect_platform
from devstrap.core.process import run_command
from devstrap.installers.base import (
    AppendPath,
    ArchiveInstaller,
    DetectionResult,
    EnvAction,
    ExternalInstalled,
    InstallContext,
    InstallResult,
    NotInstalled,
    SetVar,
    ToolInfo,
)

logger = logging.getLogger(__name__)

FNM_VERSION = "1.38.1"
RELEASES_BASE = "https://github.com/Schniz/fnm/releases/download"


def fnm_asset() -> str:
    platform = detect_platform()
    if platform.os == "windows":
        return "fnm-windows.zip"
    if platform.os == "macos":
        return "fnm-macos.zip"
    return "fnm-arm64.zip" if platform.arch == "arm64" else "fnm-linux.zip"


class NodejsInstaller(ArchiveInstaller):
    category = "tools"
    dir_name = "fnm"
    default_version = FNM_VERSION
    version_command = ("fnm", "--version")
    external_binaries = ("fnm", "node")
    external_env_vars = ("FNM_DIR",)

    def info(self) -> ToolInfo:
        return ToolInfo("nodejs", "Node.js", "Node.js runtime (via fnm)")

    def node_dir(self, config: DevstrapConfig) -> Path:
        return config.lang_dir / "node"

    def detect_installed(self, ctx: InstallContext) -> DetectionResult:
        result = super().detect_installed(ctx)
        if result.is_installed:
            return result
        # No fnm: a plain node on PATH still counts as an external install
        try:
            node = ctx.run(["node", "--version"], timeout=ctx.probe_timeout, check=False)
        except CommandError:
            return NotInstalled()
        if node.returncode != 0 or not node.stdout.strip():
            return NotInstalled()
        return ExternalInstalled(f"node {node.stdout.strip()}")

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        return ctx.config.version_for("fnm", FNM_VERSION)

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        version = version or FNM_VERSION
        asset = fnm_asset()
        base = config.mirror_for("fnm", f"{RELEASES_BASE}/v{version}")
        return f"{base}/{asset}", asset

    def install(self, ctx: InstallContext) -> InstallResult:
        result = super().install(ctx)
        fnm = result.install_path / f"fnm{ctx.platform.exe_suffix}"
        if not ctx.platform.is_windows:
            make_executable(fnm)

        node_dir = self.node_dir(ctx.config)
        node_dir.mkdir(parents=True, exist_ok=True)
        overlay = ctx.overlay.merge(EnvironmentOverlay(vars={"FNM_DIR": str(node_dir)}))

        logger.info("Installing the latest Node.js LTS through fnm...")
        run_command([fnm, "install", "--lts"], overlay=overlay, capture=False)
        try:
            run_command([fnm, "default", "lts-latest"], overlay=overlay)
        except CommandError as e:
            logger.warning(f"Could not set the default Node.js version: {e}")

        try:
            version = run_command([fnm, "--version"]).stdout.strip()
        except CommandError:
            version = result.version
        return InstallResult(result.install_path, version or result.version)

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [
            SetVar("FNM_DIR", str(self.node_dir(config))),
            AppendPath(str(install_path)),
        ]
