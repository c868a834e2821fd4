"""uv (Python package and project manager) installer.

uv is installed by its official installer script, which is re-fetched on
every install so the newest uv is picked up.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.environment import EnvironmentOverlay
from devstrap.core.exceptions import CommandError
from devstrap.core.platform import detect_platform
from devstrap.core.process import run_command
from devstrap.installers.base import (
    AppendPath,
    EnvAction,
    InstallContext,
    Installer,
    InstallResult,
    SetVar,
    ToolInfo,
    extract_version,
)

logger = logging.getLogger(__name__)

INSTALLER_BASE = "https://astral.sh/uv"


class UvInstaller(Installer):
    always_latest = True
    version_command = ("uv", "--version")
    external_binaries = ("uv", "uvx")

    def info(self) -> ToolInfo:
        return ToolInfo("uv", "uv", "Fast Python package and project manager")

    def install_dir(self, config: DevstrapConfig) -> Path:
        return config.tools_dir / "uv"

    def parse_version(self, output: str) -> str:
        return extract_version(output)

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        return None

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        script = "install.ps1" if detect_platform().is_windows else "install.sh"
        base = config.mirror_for("uv", INSTALLER_BASE)
        return f"{base}/{script}", f"uv-installer.{script.rsplit('.', 1)[1]}"

    def install(self, ctx: InstallContext) -> InstallResult:
        script = self.fetch(ctx)
        install_dir = self.install_dir(ctx.config)

        overlay = ctx.overlay.merge(
            EnvironmentOverlay(
                vars={"UV_INSTALL_DIR": str(install_dir), "UV_NO_MODIFY_PATH": "1"}
            )
        )
        if ctx.platform.is_windows:
            cmd = ["powershell", "-ExecutionPolicy", "ByPass", "-File", script]
        else:
            cmd = ["sh", script]

        logger.info("Running the uv installer script...")
        run_command(cmd, overlay=overlay, capture=False)

        return InstallResult(install_dir, self._installed_version(ctx, install_dir))

    def _installed_version(self, ctx: InstallContext, install_dir: Path) -> str:
        uv = install_dir / f"uv{ctx.platform.exe_suffix}"
        try:
            result = ctx.run([uv, "--version"])
        except CommandError:
            return "unknown"
        return self.parse_version(result.stdout)

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [
            AppendPath(str(install_path)),
            SetVar("UV_PYTHON_INSTALL_DIR", str(install_path / "python")),
            SetVar("UV_TOOL_DIR", str(install_path / "tools")),
            SetVar("UV_CACHE_DIR", str(install_path / "cache")),
        ]
