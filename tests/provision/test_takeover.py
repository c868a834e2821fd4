"""
Unit tests for external install takeover.
"""

import os
import stat
from unittest.mock import patch

import pytest

from devstrap.core.exceptions import CommandError, InstallError
from devstrap.installers.base import InstallContext
from devstrap.provision import takeover
from devstrap.provision.takeover import take_over, uninstall_command, uninstall_green
from tests.fixtures.fakes import FakeInstaller, InMemoryStore


def make_executable_file(directory, name):
    directory.mkdir(parents=True, exist_ok=True)
    filename = f"{name}.exe" if os.name == "nt" else name
    target = directory / filename
    target.write_text("#!/bin/sh\n")
    target.chmod(target.stat().st_mode | stat.S_IEXEC)
    return target


class TestUninstallCommand:
    """Tests for turning registry UninstallStrings into silent commands."""

    def test_msi(self):
        code = "{23170F69-40C1-2702-2201-000001000000}"
        assert uninstall_command(f"MsiExec.exe /I{code}") == [
            "msiexec",
            "/x",
            code,
            "/qn",
            "/norestart",
        ]

    def test_inno_quoted(self):
        command = uninstall_command('"C:\\Program Files\\Git\\unins000.exe"')
        assert command == ["C:\\Program Files\\Git\\unins000.exe", "/VERYSILENT", "/NORESTART"]


class TestUninstallGreen:
    """Tests for the PATH-stripping fallback."""

    def test_strips_matching_directories(self, tmp_path):
        first = tmp_path / "a" / "bin"
        second = tmp_path / "b" / "bin"
        other = tmp_path / "c" / "bin"
        make_executable_file(first, "go")
        make_executable_file(second, "go")
        other.mkdir(parents=True)
        store = InMemoryStore(
            {"Path": f"{first};{other};{second}", "GOROOT": str(tmp_path / "a")}
        )

        removed = uninstall_green(
            store, ["go"], ["GOROOT", "GOPATH"], search_paths=[first, other, second]
        )

        assert removed == [str(first), str(second)]
        assert store.path_entries == [str(other)]
        assert "GOROOT" not in store.values
        assert store.broadcasts == 1

    def test_unstored_directory_not_reported(self, tmp_path):
        bin_dir = tmp_path / "bin"
        make_executable_file(bin_dir, "go")
        store = InMemoryStore({"Path": r"C:\Windows"})

        assert uninstall_green(store, ["go"], [], search_paths=[bin_dir]) == []
        assert store.values["Path"] == r"C:\Windows"


class RegistryTool(FakeInstaller):
    registry_uninstall_key = "Tool_is1"
    external_env_vars = ("TOOL_HOME",)


class SelfUninstallingTool(FakeInstaller):
    self_uninstall_command = ("tool", "self", "uninstall", "-y")
    external_binaries = ("tool",)


class TestTakeOver:
    """Tests for take_over strategy selection."""

    def test_registry_uninstaller(self, config, windows_x64):
        store = InMemoryStore({"TOOL_HOME": "C:\\Tool"})
        ctx = InstallContext(config, platform=windows_x64)

        with patch.object(takeover, "uninstall_via_registry", return_value=True), patch.object(
            takeover, "uninstall_green"
        ) as mock_green:
            take_over(RegistryTool("tool"), ctx, store)

        mock_green.assert_not_called()
        assert "TOOL_HOME" not in store.values
        assert store.broadcasts == 1

    def test_registry_failure_is_fatal_for_keyed_tools(self, config, windows_x64):
        ctx = InstallContext(config, platform=windows_x64)
        with patch.object(
            takeover, "uninstall_via_registry", side_effect=CommandError("denied", 1223)
        ):
            with pytest.raises(InstallError):
                take_over(RegistryTool("tool"), ctx, InMemoryStore())

    def test_display_name_failure_falls_back(self, config, windows_x64):
        class DisplayNameTool(FakeInstaller):
            registry_display_name = "Tool Language"

        ctx = InstallContext(config, platform=windows_x64)
        with patch.object(
            takeover, "uninstall_via_registry", side_effect=CommandError("failed", 1603)
        ), patch.object(takeover, "uninstall_green") as mock_green:
            take_over(DisplayNameTool("tool"), ctx, InMemoryStore())

        mock_green.assert_called_once()

    def test_registry_skipped_off_windows(self, config, linux_x64):
        ctx = InstallContext(config, platform=linux_x64)
        with patch.object(takeover, "uninstall_via_registry") as mock_registry, patch.object(
            takeover, "uninstall_green"
        ) as mock_green:
            take_over(RegistryTool("tool"), ctx, InMemoryStore())

        mock_registry.assert_not_called()
        mock_green.assert_called_once()

    def test_self_uninstall_then_green(self, config, linux_x64):
        ctx = InstallContext(config, platform=linux_x64)
        with patch.object(
            takeover, "find_executable", return_value="/usr/local/bin/tool"
        ), patch.object(takeover, "run_command") as mock_run, patch.object(
            takeover, "uninstall_green"
        ) as mock_green:
            take_over(SelfUninstallingTool("tool"), ctx, InMemoryStore())

        assert mock_run.call_args[0][0] == ["/usr/local/bin/tool", "self", "uninstall", "-y"]
        mock_green.assert_called_once()

    def test_self_uninstall_failure_still_cleans_path(self, config, linux_x64):
        ctx = InstallContext(config, platform=linux_x64)
        with patch.object(
            takeover, "find_executable", return_value="/usr/local/bin/tool"
        ), patch.object(
            takeover, "run_command", side_effect=CommandError("exit 1", 1)
        ), patch.object(takeover, "uninstall_green") as mock_green:
            take_over(SelfUninstallingTool("tool"), ctx, InMemoryStore())

        mock_green.assert_called_once()

    def test_bundled_uninstaller_then_green(self, config, windows_x64):
        class BundledTool(FakeInstaller):
            def external_uninstaller(self):
                return ["C:\\tool\\Uninstall-Tool.exe", "/S"]

        ctx = InstallContext(config, platform=windows_x64)
        with patch.object(takeover, "run_command") as mock_run, patch.object(
            takeover, "uninstall_green"
        ) as mock_green:
            take_over(BundledTool("tool"), ctx, InMemoryStore())

        assert mock_run.call_args[0][0] == ["C:\\tool\\Uninstall-Tool.exe", "/S"]
        mock_green.assert_called_once()

    def test_bundled_uninstaller_failure_still_cleans_path(self, config, windows_x64):
        class BundledTool(FakeInstaller):
            def external_uninstaller(self):
                return ["C:\\tool\\Uninstall-Tool.exe", "/S"]

        ctx = InstallContext(config, platform=windows_x64)
        with patch.object(
            takeover, "run_command", side_effect=CommandError("exit 2", 2)
        ), patch.object(takeover, "uninstall_green") as mock_green:
            take_over(BundledTool("tool"), ctx, InMemoryStore())

        mock_green.assert_called_once()
