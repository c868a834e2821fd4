"""Gradle build tool installer."""

from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.installers.base import (
    AppendPath,
    ArchiveInstaller,
    EnvAction,
    SetVar,
    ToolInfo,
)
from devstrap.provision.versions import gradle_latest

GRADLE_VERSION_DEFAULT = "8.12.1"
DOWNLOAD_BASE = "https://services.gradle.org/distributions"


class GradleInstaller(ArchiveInstaller):
    category = "tools"
    dir_name = "gradle"
    default_version = GRADLE_VERSION_DEFAULT
    requires = ("jdk",)
    version_command = ("gradle", "--version")
    external_binaries = ("gradle",)
    external_env_vars = ("GRADLE_HOME",)

    def info(self) -> ToolInfo:
        return ToolInfo("gradle", "Gradle", "Build automation for the JVM and Android")

    def parse_version(self, output: str) -> str:
        for line in output.splitlines():
            if line.startswith("Gradle "):
                return line[len("Gradle "):].strip()
        return output.strip()

    def latest_version(self) -> Optional[str]:
        return gradle_latest()

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        version = version or config.version_for("gradle", GRADLE_VERSION_DEFAULT)
        filename = f"gradle-{version}-bin.zip"
        base = config.mirror_for("gradle", DOWNLOAD_BASE)
        return f"{base}/{filename}", filename

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [
            SetVar("GRADLE_HOME", str(install_path)),
            AppendPath(str(install_path / "bin")),
        ]
