"""
Database servers distributed as Windows binary archives.

A server is extracted like any other archive; :meth:`configure` then
initializes its data directory, registers a Windows service and starts it,
and :meth:`pre_uninstall` stops and unregisters the service so the install
directory can be deleted.
"""

import logging
from abc import abstractmethod
from pathlib import Path
from typing import List

from devstrap.core.exceptions import CommandError, InstallError, UnsupportedPlatformError
from devstrap.core.process import run_as_admin, run_elevated
from devstrap.core.services import service_exists, start_service, stop_service
from devstrap.installers.base import ArchiveInstaller, InstallContext, InstallResult

logger = logging.getLogger(__name__)


class ServiceInstaller(ArchiveInstaller):
    """
    Archive installer for a server that runs as a Windows service.

    Attributes:
        service_name: Name the service is registered under
        server_binary: Executable under ``bin/`` whose presence marks a
            devstrap-managed install
    """

    service_name = ""
    server_binary = ""

    def data_dir(self, install_path: Path) -> Path:
        return install_path / "data"

    def server_path(self, install_path: Path, ctx: InstallContext) -> Path:
        return install_path / "bin" / f"{self.server_binary}{ctx.platform.exe_suffix}"

    @abstractmethod
    def init_command(self, install_path: Path, ctx: InstallContext) -> List:
        """Command that creates an empty database cluster in the data directory."""

    @abstractmethod
    def register_command(self, install_path: Path, ctx: InstallContext) -> List:
        """Command that registers the Windows service."""

    @abstractmethod
    def unregister_command(self, install_path: Path, ctx: InstallContext) -> List:
        """Command that deletes the Windows service."""

    def install(self, ctx: InstallContext) -> InstallResult:
        if not ctx.platform.is_windows:
            raise UnsupportedPlatformError(
                self.id,
                f"install {self.info().name} with the system package manager on this platform",
            )
        return super().install(ctx)

    # -- configure -------------------------------------------------------------

    def configure(self, ctx: InstallContext) -> None:
        """
        Initialize data, register the service and start it (idempotent).

        External installs (no managed server binary) are left alone.

        Raises:
            InstallError: If the service cannot be registered
        """
        install_path = self.install_dir(ctx.config)
        if not ctx.platform.is_windows or not self.server_path(install_path, ctx).exists():
            return

        if not self.initialize_data(install_path, ctx):
            return
        self.register_service(install_path, ctx)

        try:
            start_service(self.service_name)
        except CommandError as e:
            logger.warning(
                f"{self.service_name} service did not start: {e}. "
                f"Start it as administrator with: net start {self.service_name}"
            )

    def initialize_data(self, install_path: Path, ctx: InstallContext) -> bool:
        """
        Create the database cluster if the data directory is empty.

        Returns:
            False if initialization failed (logged, not raised)
        """
        data_dir = self.data_dir(install_path)
        if data_dir.is_dir() and any(data_dir.iterdir()):
            return True

        logger.info(f"Initializing the {self.info().name} data directory...")
        try:
            ctx.run(self.init_command(install_path, ctx), capture=False)
        except CommandError as e:
            logger.warning(f"{self.info().name} data directory initialization failed: {e}")
            return False
        return True

    def register_service(self, install_path: Path, ctx: InstallContext) -> None:
        if service_exists(self.service_name):
            logger.info(f"{self.service_name} service already registered")
            return

        logger.info(f"Registering the {self.service_name} Windows service...")
        command = self.register_command(install_path, ctx)
        run_elevated(command, overlay=ctx.overlay)
        # Registration can exit 0 without privileges; sc query is authoritative
        if not service_exists(self.service_name):
            run_as_admin(command, overlay=ctx.overlay)
        if not service_exists(self.service_name):
            raise InstallError(
                self.id,
                f"could not register the {self.service_name} service; "
                "run devstrap as administrator and retry",
            )
        logger.info(f"{self.service_name} service registered")

    # -- uninstall -------------------------------------------------------------

    def pre_uninstall(self, ctx: InstallContext) -> None:
        """
        Stop and unregister the service before the files are deleted.

        Raises:
            CommandError: If the service cannot be unregistered
        """
        if not ctx.platform.is_windows or not service_exists(self.service_name):
            return

        try:
            stop_service(self.service_name)
        except CommandError as e:
            logger.warning(f"Could not stop the {self.service_name} service: {e}")

        install_path = self.install_dir(ctx.config)
        logger.info(f"Unregistering the {self.service_name} service...")
        run_elevated(self.unregister_command(install_path, ctx), overlay=ctx.overlay)


__all__ = ["ServiceInstaller"]
