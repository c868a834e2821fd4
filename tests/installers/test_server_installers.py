"""
Unit tests for the database server installers and their Windows services.
"""

import subprocess
from unittest.mock import patch

import pytest

from devstrap.core.exceptions import CommandError, InstallError, UnsupportedPlatformError
from devstrap.core.platform import PlatformInfo
from devstrap.installers.base import InstallContext
from devstrap.installers.mysql import MysqlInstaller, release_series
from devstrap.installers.pgsql import PgsqlInstaller, parse_psql_version

WINDOWS = PlatformInfo("windows", "x64")
LINUX = PlatformInfo("linux", "x64")


@pytest.fixture
def ctx(config):
    return InstallContext(config, platform=WINDOWS)


def make_server(installer, config):
    """Lay out a managed install holding the server binary."""
    install = installer.install_dir(config)
    (install / "bin").mkdir(parents=True)
    (install / "bin" / f"{installer.server_binary}.exe").write_text("binary")
    return install


def completed():
    return subprocess.CompletedProcess(["cmd"], 0, "", "")


class TestPgsql:
    """Tests for PostgreSQL downloads and commands."""

    def test_download(self, config):
        url, name = PgsqlInstaller().resolve_download(config, "17.8")
        assert name == "postgresql-17.8-1-windows-x64-binaries.zip"
        assert url == f"https://get.enterprisedb.com/postgresql/{name}"

    def test_latest_version_used(self, monkeypatch, ctx):
        monkeypatch.setattr("devstrap.installers.pgsql.pgsql_latest", lambda: "18.1")
        assert PgsqlInstaller().resolve_version(ctx) == "18.1"

    @pytest.mark.parametrize(
        "output,expected",
        [("psql (PostgreSQL) 17.8\n", "17.8"), ("psql (PostgreSQL) 16.4 (Debian)", "16.4")],
    )
    def test_parse_version(self, output, expected):
        assert parse_psql_version(output) == expected

    def test_service_commands(self, config, ctx):
        installer = PgsqlInstaller()
        install = installer.install_dir(config)
        pg_ctl = install / "bin" / "pg_ctl.exe"

        assert installer.init_command(install, ctx) == [
            install / "bin" / "initdb.exe",
            "-D", install / "data",
            "-U", "postgres",
            "-E", "UTF8",
            "--no-locale",
        ]
        assert installer.register_command(install, ctx) == [
            pg_ctl, "register", "-N", "PostgreSQL", "-D", install / "data",
        ]
        assert installer.unregister_command(install, ctx) == [
            pg_ctl, "unregister", "-N", "PostgreSQL",
        ]

    def test_install_unsupported_off_windows(self, config):
        with pytest.raises(UnsupportedPlatformError):
            PgsqlInstaller().install(InstallContext(config, platform=LINUX))


class TestMysql:
    """Tests for MySQL downloads, option file and commands."""

    def test_release_series(self):
        assert release_series("8.4.4") == "MySQL-8.4"
        assert release_series("9.2.0") == "MySQL-9.2"

    def test_download(self, config):
        url, name = MysqlInstaller().resolve_download(config, "8.4.4")
        assert name == "mysql-8.4.4-winx64.zip"
        assert url == "https://dev.mysql.com/get/Downloads/MySQL-8.4/mysql-8.4.4-winx64.zip"

    def test_parse_version(self):
        output = "mysql  Ver 8.4.4 for Win64 on x86_64 (MySQL Community Server - GPL)"
        assert MysqlInstaller().parse_version(output) == "8.4.4"

    def test_register_command_writes_option_file(self, config, ctx):
        installer = MysqlInstaller()
        install = make_server(installer, config)

        command = installer.register_command(install, ctx)

        option_file = install / "my.ini"
        assert command == [
            install / "bin" / "mysqld.exe",
            "--install",
            "MySQL",
            f"--defaults-file={option_file}",
        ]
        content = option_file.read_text()
        assert content.startswith("[mysqld]\n")
        assert f"datadir={(install / 'data').as_posix()}" in content

    def test_existing_option_file_kept(self, config, ctx):
        installer = MysqlInstaller()
        install = make_server(installer, config)
        (install / "my.ini").write_text("[mysqld]\nport=3307\n")

        installer.init_command(install, ctx)

        assert (install / "my.ini").read_text() == "[mysqld]\nport=3307\n"


class TestServiceConfigure:
    """Tests for data initialization and service registration."""

    def test_initializes_registers_and_starts(self, config, ctx):
        installer = PgsqlInstaller()
        install = make_server(installer, config)

        with patch(
            "devstrap.installers.base.run_command", return_value=completed()
        ) as mock_run, patch(
            "devstrap.installers.database.service_exists", side_effect=[False, True]
        ), patch("devstrap.installers.database.run_elevated") as mock_elevated, patch(
            "devstrap.installers.database.start_service"
        ) as mock_start:
            installer.configure(ctx)

        assert mock_run.call_args[0][0][0] == install / "bin" / "initdb.exe"
        assert mock_elevated.call_args[0][0] == installer.register_command(install, ctx)
        mock_start.assert_called_once_with("PostgreSQL")

    def test_existing_cluster_and_service_reused(self, config, ctx):
        installer = PgsqlInstaller()
        install = make_server(installer, config)
        (install / "data").mkdir()
        (install / "data" / "PG_VERSION").write_text("17\n")

        with patch("devstrap.installers.base.run_command") as mock_run, patch(
            "devstrap.installers.database.service_exists", return_value=True
        ), patch("devstrap.installers.database.run_elevated") as mock_elevated, patch(
            "devstrap.installers.database.start_service"
        ):
            installer.configure(ctx)

        mock_run.assert_not_called()
        mock_elevated.assert_not_called()

    def test_silent_registration_failure_retried_as_admin(self, config, ctx):
        """Test a register command that exits 0 without creating the service."""
        installer = PgsqlInstaller()
        install = make_server(installer, config)

        with patch("devstrap.installers.base.run_command", return_value=completed()), patch(
            "devstrap.installers.database.service_exists", side_effect=[False, False, True]
        ), patch("devstrap.installers.database.run_elevated"), patch(
            "devstrap.installers.database.run_as_admin"
        ) as mock_admin, patch("devstrap.installers.database.start_service"):
            installer.configure(ctx)

        assert mock_admin.call_args[0][0] == installer.register_command(install, ctx)

    def test_unregistered_service_raises(self, config, ctx):
        installer = MysqlInstaller()
        make_server(installer, config)

        with patch("devstrap.installers.base.run_command", return_value=completed()), patch(
            "devstrap.installers.database.service_exists", return_value=False
        ), patch("devstrap.installers.database.run_elevated"), patch(
            "devstrap.installers.database.run_as_admin"
        ):
            with pytest.raises(InstallError, match="could not register the MySQL service"):
                installer.configure(ctx)

    def test_failed_initialization_skips_registration(self, config, ctx):
        installer = MysqlInstaller()
        make_server(installer, config)

        with patch(
            "devstrap.installers.base.run_command",
            side_effect=CommandError("mysqld exited", 1),
        ), patch("devstrap.installers.database.run_elevated") as mock_elevated:
            installer.configure(ctx)

        mock_elevated.assert_not_called()

    def test_start_failure_is_not_fatal(self, config, ctx):
        installer = PgsqlInstaller()
        make_server(installer, config)

        with patch("devstrap.installers.base.run_command", return_value=completed()), patch(
            "devstrap.installers.database.service_exists", return_value=True
        ), patch(
            "devstrap.installers.database.start_service",
            side_effect=CommandError("System error 1069", 2),
        ):
            installer.configure(ctx)

    def test_external_install_left_alone(self, ctx):
        with patch("devstrap.installers.base.run_command") as mock_run, patch(
            "devstrap.installers.database.service_exists"
        ) as mock_exists:
            PgsqlInstaller().configure(ctx)

        mock_run.assert_not_called()
        mock_exists.assert_not_called()


class TestServicePreUninstall:
    """Tests for stopping and deleting the service before removal."""

    def test_stops_then_unregisters(self, config, ctx):
        installer = MysqlInstaller()
        install = make_server(installer, config)

        with patch(
            "devstrap.installers.database.service_exists", return_value=True
        ), patch("devstrap.installers.database.stop_service") as mock_stop, patch(
            "devstrap.installers.database.run_elevated"
        ) as mock_elevated:
            installer.pre_uninstall(ctx)

        mock_stop.assert_called_once_with("MySQL")
        assert mock_elevated.call_args[0][0] == [
            install / "bin" / "mysqld.exe",
            "--remove",
            "MySQL",
        ]

    def test_stop_failure_still_unregisters(self, config, ctx):
        installer = PgsqlInstaller()
        make_server(installer, config)

        with patch(
            "devstrap.installers.database.service_exists", return_value=True
        ), patch(
            "devstrap.installers.database.stop_service",
            side_effect=CommandError("System error 1051", 2),
        ), patch("devstrap.installers.database.run_elevated") as mock_elevated:
            installer.pre_uninstall(ctx)

        assert mock_elevated.call_args[0][0][1:] == ["unregister", "-N", "PostgreSQL"]

    def test_unregister_failure_propagates(self, config, ctx):
        installer = PgsqlInstaller()
        make_server(installer, config)

        with patch(
            "devstrap.installers.database.service_exists", return_value=True
        ), patch("devstrap.installers.database.stop_service"), patch(
            "devstrap.installers.database.run_elevated",
            side_effect=CommandError("denied", 1223),
        ):
            with pytest.raises(CommandError):
                installer.pre_uninstall(ctx)

    def test_no_service_is_noop(self, ctx):
        with patch(
            "devstrap.installers.database.service_exists", return_value=False
        ), patch("devstrap.installers.database.run_elevated") as mock_elevated:
            PgsqlInstaller().pre_uninstall(ctx)

        mock_elevated.assert_not_called()
