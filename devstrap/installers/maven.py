"""Apache Maven installer."""

from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.platform import detect_platform
from devstrap.installers.base import (
    AppendPath,
    ArchiveInstaller,
    EnvAction,
    SetVar,
    ToolInfo,
    extract_version,
)
from devstrap.provision.versions import maven_latest

MAVEN_VERSION_DEFAULT = "3.9.9"
DOWNLOAD_BASE = "https://downloads.apache.org/maven/maven-3"


class MavenInstaller(ArchiveInstaller):
    category = "tools"
    dir_name = "maven"
    default_version = MAVEN_VERSION_DEFAULT
    requires = ("jdk",)
    version_command = ("mvn", "--version")
    external_binaries = ("mvn",)
    external_env_vars = ("MAVEN_HOME",)

    def info(self) -> ToolInfo:
        return ToolInfo("maven", "Maven", "Java build and dependency management")

    def parse_version(self, output: str) -> str:
        return extract_version(output.splitlines()[0])

    def latest_version(self) -> Optional[str]:
        return maven_latest()

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        version = version or config.version_for("maven", MAVEN_VERSION_DEFAULT)
        filename = f"apache-maven-{version}-bin.{detect_platform().archive_ext}"
        base = config.mirror_for("maven", DOWNLOAD_BASE)
        return f"{base}/{version}/binaries/{filename}", filename

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [
            SetVar("MAVEN_HOME", str(install_path)),
            AppendPath(str(install_path / "bin")),
        ]
