"""GitHub CLI installer."""

from typing import Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.platform import detect_platform
from devstrap.installers.base import ArchiveInstaller, ToolInfo, extract_version
from devstrap.provision.versions import gh_latest

GH_VERSION_DEFAULT = "2.87.3"
RELEASES_BASE = "https://github.com/cli/cli/releases/download"


class GhInstaller(ArchiveInstaller):
    category = "tools"
    default_version = GH_VERSION_DEFAULT
    version_command = ("gh", "--version")
    external_binaries = ("gh",)

    def info(self) -> ToolInfo:
        return ToolInfo("gh", "GitHub CLI", "GitHub on the command line")

    def parse_version(self, output: str) -> str:
        return extract_version(output.splitlines()[0])

    def latest_version(self) -> Optional[str]:
        return gh_latest()

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        version = version or config.version_for("gh", GH_VERSION_DEFAULT)
        platform = detect_platform()
        os_name = "macOS" if platform.os == "macos" else platform.go_os
        ext = "tar.gz" if platform.os == "linux" else "zip"
        filename = f"gh_{version}_{os_name}_{platform.go_arch}.{ext}"
        base = config.mirror_for("gh", RELEASES_BASE)
        return f"{base}/v{version}/{filename}", filename
