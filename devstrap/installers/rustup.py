"""Rust toolchain installer (through rustup-init)."""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.environment import EnvironmentOverlay
from devstrap.core.exceptions import CommandError
from devstrap.core.filesystem import make_executable
from devstrap.core.platform import PlatformInfo, detect_platform
from devstrap.core.process import run_command
from devstrap.installers.base import (
    AppendPath,
    EnvAction,
    InstallContext,
    Installer,
    InstallResult,
    SetVar,
    ToolInfo,
)

logger = logging.getLogger(__name__)

RUSTUP_DIST = "https://static.rust-lang.org/rustup/dist"


def host_triple(platform: PlatformInfo) -> str:
    arch = "aarch64" if platform.arch == "arm64" else "x86_64"
    if platform.os == "windows":
        return f"{arch}-pc-windows-msvc"
    if platform.os == "macos":
        return f"{arch}-apple-darwin"
    return f"{arch}-unknown-linux-gnu"


class RustupInstaller(Installer):
    always_latest = True
    version_command = ("rustc", "--version")
    external_binaries = ("rustc", "cargo", "rustup")
    external_env_vars = ("RUSTUP_HOME", "CARGO_HOME")
    self_uninstall_command = ("rustup", "self", "uninstall", "-y")

    def info(self) -> ToolInfo:
        return ToolInfo("rust", "Rust", "Rust programming language (via rustup)")

    def rustup_home(self, config: DevstrapConfig) -> Path:
        return config.tools_dir / "rustup"

    def cargo_home(self, config: DevstrapConfig) -> Path:
        return config.lang_dir / "cargo"

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        return ctx.config.version_for("rust", "stable")

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        platform = detect_platform()
        filename = f"rustup-init{platform.exe_suffix}"
        base = config.mirror_for("rust", RUSTUP_DIST)
        return f"{base}/{host_triple(platform)}/{filename}", filename

    def install(self, ctx: InstallContext) -> InstallResult:
        config = ctx.config
        toolchain = self.resolve_version(ctx)
        rustup_home = self.rustup_home(config)
        cargo_home = self.cargo_home(config)
        rustup_home.mkdir(parents=True, exist_ok=True)
        cargo_home.mkdir(parents=True, exist_ok=True)

        rustup_init = self.fetch(ctx)
        if not ctx.platform.is_windows:
            make_executable(rustup_init)

        overlay = ctx.overlay.merge(
            EnvironmentOverlay(
                vars={"RUSTUP_HOME": str(rustup_home), "CARGO_HOME": str(cargo_home)}
            )
        )
        logger.info(f"Installing Rust ({toolchain} toolchain)...")
        run_command(
            [rustup_init, "-y", "--no-modify-path", "--default-toolchain", toolchain],
            overlay=overlay,
            capture=False,
        )

        rustc = cargo_home / "bin" / f"rustc{ctx.platform.exe_suffix}"
        try:
            version = run_command([rustc, "--version"], overlay=overlay).stdout.strip()
        except CommandError:
            version = toolchain
        return InstallResult(cargo_home, version or toolchain)

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [
            SetVar("RUSTUP_HOME", str(self.rustup_home(config))),
            SetVar("CARGO_HOME", str(self.cargo_home(config))),
            AppendPath(str(self.cargo_home(config) / "bin")),
        ]

    def cleanup_paths(self, install_path: Path, config: DevstrapConfig) -> List[Path]:
        return [self.rustup_home(config)]
