"""Go toolchain installer."""

from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.platform import detect_platform
from devstrap.installers.base import (
    AppendPath,
    ArchiveInstaller,
    EnvAction,
    InstallContext,
    SetVar,
    ToolInfo,
    first_line,
)
from devstrap.provision.versions import go_latest

GO_VERSION_DEFAULT = "1.24.0"
DOWNLOAD_BASE = "https://go.dev/dl"


class GoInstaller(ArchiveInstaller):
    category = "lang"
    dir_name = "go"
    default_version = GO_VERSION_DEFAULT
    version_command = ("go", "version")
    external_binaries = ("go",)
    external_env_vars = ("GOROOT", "GOPATH")
    registry_display_name = "Go Programming Language"

    def info(self) -> ToolInfo:
        return ToolInfo("go", "Go", "Go programming language")

    def gopath(self, config: DevstrapConfig) -> Path:
        return config.lang_dir / "gopath"

    def parse_version(self, output: str) -> str:
        # "go version go1.24.0 linux/amd64"
        for token in output.split():
            if token.startswith("go") and token[2:3].isdigit():
                return token[2:]
        return first_line(output)

    def latest_version(self) -> Optional[str]:
        return go_latest()

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        pinned = ctx.config.version_for("go")
        if pinned:
            return pinned
        if ctx.config.go_version and ctx.config.go_version != "latest":
            return ctx.config.go_version
        return self.latest_version() or GO_VERSION_DEFAULT

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        if version is None:
            configured = config.version_for("go") or config.go_version
            version = configured if configured != "latest" else GO_VERSION_DEFAULT
        platform = detect_platform()
        filename = f"go{version}.{platform.go_os}-{platform.go_arch}.{platform.archive_ext}"
        base = config.mirror_for("go", DOWNLOAD_BASE)
        return f"{base}/{filename}", filename

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        gopath = self.gopath(config)
        return [
            SetVar("GOROOT", str(install_path)),
            SetVar("GOPATH", str(gopath)),
            AppendPath(str(install_path / "bin")),
            AppendPath(str(gopath / "bin")),
        ]
