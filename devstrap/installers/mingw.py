"""MinGW-w64 GCC toolchain installer (winlibs standalone build)."""

from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.exceptions import InstallError, UnsupportedPlatformError
from devstrap.installers.base import (
    AppendPath,
    ArchiveInstaller,
    EnvAction,
    InstallContext,
    InstallResult,
    ToolInfo,
    first_line,
)

GCC_VERSION_DEFAULT = "14.2.0"
# LLVM, MinGW-w64 runtime and build revision of the winlibs release
WINLIBS_BUILD = "19.1.7-12.0.0-ucrt-r2"
RELEASES_BASE = "https://github.com/brechtsanders/winlibs_mingw/releases/download"


def parse_gcc_version(output: str) -> str:
    """
    GCC version from the first line of ``gcc --version``.

    Example:
        >>> parse_gcc_version("gcc.exe (MinGW-W64 x86_64-ucrt-posix-seh, built by Brecht Sanders, r2) 14.2.0")
        '14.2.0'
    """
    line = first_line(output)
    tokens = line.split()
    if tokens and tokens[-1][0].isdigit():
        return tokens[-1]
    return line


class MingwInstaller(ArchiveInstaller):
    category = "tools"
    dir_name = "mingw64"
    default_version = GCC_VERSION_DEFAULT
    version_command = ("gcc", "--version")
    external_binaries = ("gcc",)

    def info(self) -> ToolInfo:
        return ToolInfo("mingw", "C/C++", "GCC compiler (MinGW-w64)")

    def parse_version(self, output: str) -> str:
        return parse_gcc_version(output)

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        version = version or config.version_for("mingw", GCC_VERSION_DEFAULT)
        release = f"{version}-{WINLIBS_BUILD}"
        filename = f"winlibs-x86_64-posix-seh-gcc-{release}-mingw-w64ucrt.zip"
        base = config.mirror_for("mingw", RELEASES_BASE)
        return f"{base}/{version}-posix-seh-ucrt-r2/{filename}", filename

    def install(self, ctx: InstallContext) -> InstallResult:
        if not ctx.platform.is_windows:
            raise UnsupportedPlatformError(
                "mingw", "use the system GCC or Clang on this platform"
            )
        result = super().install(ctx)
        gcc = result.install_path / "bin" / "gcc.exe"
        if not gcc.exists():
            raise InstallError("mingw", f"gcc.exe missing from {result.install_path}")
        return result

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [AppendPath(str(install_path / "bin"))]
