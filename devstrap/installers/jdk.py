"""Eclipse Temurin JDK installer (Adoptium API).

The Adoptium "latest" endpoint serves the newest build of a major version
under a stable filename, so the cached archive is invalidated before each
download.
"""

import re
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
    InstallResult,
    SetVar,
    ToolInfo,
)

ADOPTIUM_LATEST = "https://api.adoptium.net/v3/binary/latest"

_QUOTED_VERSION = re.compile(r'"([^"]+)"')


def parse_java_version(output: str) -> str:
    """
    Version from ``java -version`` output.

    Example:
        >>> parse_java_version('openjdk version "21.0.6" 2025-01-21')
        '21.0.6'
    """
    first = output.strip().splitlines()[0] if output.strip() else ""
    match = _QUOTED_VERSION.search(first)
    return match.group(1) if match else first


class JdkInstaller(ArchiveInstaller):
    category = "lang"
    dir_name = "java"
    always_latest = True
    version_command = ("java", "-version")
    external_binaries = ("java",)
    external_env_vars = ("JAVA_HOME",)

    def info(self) -> ToolInfo:
        return ToolInfo("jdk", "Java (JDK)", "Eclipse Temurin OpenJDK")

    def parse_version(self, output: str) -> str:
        return parse_java_version(output)

    def major_version(self, config: DevstrapConfig) -> str:
        return config.version_for("jdk", config.java_version)

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        return self.major_version(ctx.config)

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        major = version or self.major_version(config)
        platform = detect_platform()
        base = config.mirror_for("jdk", ADOPTIUM_LATEST)
        url = (
            f"{base}/{major}/ga/{platform.adoptium_os}/{platform.adoptium_arch}"
            "/jdk/hotspot/normal/eclipse"
        )
        return url, f"adoptium-jdk{major}-latest.{platform.archive_ext}"

    def java_home(self, install_path: Path) -> Path:
        if detect_platform().os == "macos":
            return install_path / "Contents" / "Home"
        return install_path

    def install(self, ctx: InstallContext) -> InstallResult:
        result = super().install(ctx)
        java = self.java_home(result.install_path) / "bin" / f"java{ctx.platform.exe_suffix}"
        try:
            probe = ctx.run([java, "-version"])
            version = parse_java_version(probe.stderr or probe.stdout)
        except CommandError:
            version = result.version
        return InstallResult(result.install_path, version or result.version)

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        home = self.java_home(install_path)
        return [
            SetVar("JAVA_HOME", str(home)),
            AppendPath(str(home / "bin")),
        ]
