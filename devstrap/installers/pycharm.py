"""PyCharm Community installer.

PyCharm has no ``--version`` switch; versions come from the
``product-info.json`` shipped at the root of every distribution.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.exceptions import UnsupportedPlatformError
from devstrap.core.filesystem import find_executable
from devstrap.core.platform import PlatformInfo, detect_platform
from devstrap.installers.base import (
    AppendPath,
    ArchiveInstaller,
    DetectionResult,
    EnvAction,
    ExternalInstalled,
    InstallContext,
    NotInstalled,
    ToolInfo,
)
from devstrap.provision.versions import pycharm_latest

logger = logging.getLogger(__name__)

PYCHARM_VERSION_DEFAULT = "2024.3.5"
DOWNLOAD_BASE = "https://download.jetbrains.com"


def read_product_version(root: Path) -> Optional[str]:
    """``version`` from ``<root>/product-info.json``, or None."""
    try:
        with open(root / "product-info.json", encoding="utf-8") as f:
            version = json.load(f).get("version")
    except (OSError, ValueError, AttributeError) as e:
        logger.debug(f"No product info under {root}: {e}")
        return None
    return str(version) if version else None


def archive_name(version: str, platform: PlatformInfo) -> str:
    """
    Distribution filename for a platform.

    Example:
        >>> archive_name("2024.3.5", PlatformInfo("linux", "arm64"))
        'pycharm-community-2024.3.5-aarch64.tar.gz'
    """
    if platform.is_windows:
        return f"pycharm-community-{version}.win.zip"
    if platform.os == "linux":
        suffix = "-aarch64" if platform.arch == "arm64" else ""
        return f"pycharm-community-{version}{suffix}.tar.gz"
    raise UnsupportedPlatformError(
        "pycharm", "the macOS build is a disk image; install it with the JetBrains Toolbox"
    )


class PycharmInstaller(ArchiveInstaller):
    category = "ide"
    dir_name = "pycharm"
    default_version = PYCHARM_VERSION_DEFAULT
    external_binaries = ("pycharm64", "pycharm.sh", "pycharm")

    def info(self) -> ToolInfo:
        return ToolInfo("pycharm", "PyCharm", "PyCharm Community IDE")

    def latest_version(self) -> Optional[str]:
        return pycharm_latest()

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        version = version or config.version_for("pycharm", PYCHARM_VERSION_DEFAULT)
        filename = archive_name(version, detect_platform())
        base = config.mirror_for("pycharm", DOWNLOAD_BASE)
        return f"{base}/python/{filename}", filename

    def detect_installed(self, ctx: InstallContext) -> DetectionResult:
        for name in self.external_binaries:
            launcher = find_executable(name)
            if launcher is not None:
                version = read_product_version(launcher.parent.parent)
                return ExternalInstalled(version or "installed")
        return NotInstalled()

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [AppendPath(str(install_path / "bin"))]
