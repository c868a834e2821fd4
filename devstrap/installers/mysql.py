"""MySQL Community Server installer (Windows ZIP archive)."""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.filesystem import atomic_write
from devstrap.installers.base import InstallContext, ToolInfo, extract_version
from devstrap.installers.database import ServiceInstaller

logger = logging.getLogger(__name__)

MYSQL_VERSION_DEFAULT = "8.4.4"
DOWNLOAD_BASE = "https://dev.mysql.com/get/Downloads"
SERVICE_NAME = "MySQL"
OPTION_FILE = "my.ini"


def release_series(version: str) -> str:
    """
    Download directory of a release ('8.4.4' -> 'MySQL-8.4').
    """
    return "MySQL-" + ".".join(version.split(".")[:2])


class MysqlInstaller(ServiceInstaller):
    category = "tools"
    dir_name = "mysql"
    default_version = MYSQL_VERSION_DEFAULT
    service_name = SERVICE_NAME
    server_binary = "mysqld"
    version_command = ("mysql", "--version")
    external_binaries = ("mysql", "mysqld")

    def info(self) -> ToolInfo:
        return ToolInfo("mysql", "MySQL", "MySQL Community Server")

    def parse_version(self, output: str) -> str:
        # "mysql  Ver 8.4.4 for Win64 on x86_64 (MySQL Community Server - GPL)"
        return extract_version(output)

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        version = version or config.version_for("mysql", MYSQL_VERSION_DEFAULT)
        filename = f"mysql-{version}-winx64.zip"
        base = config.mirror_for("mysql", DOWNLOAD_BASE)
        return f"{base}/{release_series(version)}/{filename}", filename

    def option_file(self, install_path: Path) -> Path:
        return install_path / OPTION_FILE

    def write_option_file(self, install_path: Path) -> Path:
        """Point the server at its base and data directories (kept if present)."""
        path = self.option_file(install_path)
        if not path.exists():
            content = (
                "[mysqld]\n"
                f"basedir={install_path.as_posix()}\n"
                f"datadir={self.data_dir(install_path).as_posix()}\n"
            )
            atomic_write(path, content)
            logger.debug(f"Wrote {path}")
        return path

    def init_command(self, install_path: Path, ctx: InstallContext) -> List:
        option_file = self.write_option_file(install_path)
        return [
            self.server_path(install_path, ctx),
            f"--defaults-file={option_file}",
            "--initialize-insecure",
        ]

    def register_command(self, install_path: Path, ctx: InstallContext) -> List:
        option_file = self.write_option_file(install_path)
        # --defaults-file must follow the service name
        return [
            self.server_path(install_path, ctx),
            "--install",
            SERVICE_NAME,
            f"--defaults-file={option_file}",
        ]

    def unregister_command(self, install_path: Path, ctx: InstallContext) -> List:
        return [self.server_path(install_path, ctx), "--remove", SERVICE_NAME]
