"""PostgreSQL server installer (EnterpriseDB Windows binaries)."""

from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.installers.base import InstallContext, ToolInfo
from devstrap.installers.database import ServiceInstaller
from devstrap.provision.versions import pgsql_latest

PGSQL_VERSION_DEFAULT = "17.8"
DOWNLOAD_BASE = "https://get.enterprisedb.com/postgresql"
SERVICE_NAME = "PostgreSQL"


def parse_psql_version(output: str) -> str:
    """
    Version from ``psql --version`` output.

    Example:
        >>> parse_psql_version("psql (PostgreSQL) 17.8")
        '17.8'
    """
    _, _, rest = output.partition(")")
    tokens = rest.split()
    return tokens[0] if tokens else output.strip()


class PgsqlInstaller(ServiceInstaller):
    category = "tools"
    dir_name = "pgsql"
    default_version = PGSQL_VERSION_DEFAULT
    service_name = SERVICE_NAME
    server_binary = "pg_ctl"
    version_command = ("psql", "--version")
    external_binaries = ("psql",)

    def info(self) -> ToolInfo:
        return ToolInfo("pgsql", "PostgreSQL", "PostgreSQL database server")

    def parse_version(self, output: str) -> str:
        return parse_psql_version(output)

    def latest_version(self) -> Optional[str]:
        return pgsql_latest()

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        version = version or config.version_for("pgsql", PGSQL_VERSION_DEFAULT)
        filename = f"postgresql-{version}-1-windows-x64-binaries.zip"
        base = config.mirror_for("pgsql", DOWNLOAD_BASE)
        return f"{base}/{filename}", filename

    def _bin(self, install_path: Path, name: str, ctx: InstallContext) -> Path:
        return install_path / "bin" / f"{name}{ctx.platform.exe_suffix}"

    def init_command(self, install_path: Path, ctx: InstallContext) -> List:
        return [
            self._bin(install_path, "initdb", ctx),
            "-D", self.data_dir(install_path),
            "-U", "postgres",
            "-E", "UTF8",
            "--no-locale",
        ]

    def register_command(self, install_path: Path, ctx: InstallContext) -> List:
        return [
            self._bin(install_path, "pg_ctl", ctx),
            "register",
            "-N", SERVICE_NAME,
            "-D", self.data_dir(install_path),
        ]

    def unregister_command(self, install_path: Path, ctx: InstallContext) -> List:
        return [self._bin(install_path, "pg_ctl", ctx), "unregister", "-N", SERVICE_NAME]
