"""
Unit tests for subprocess execution and elevation.
"""

import subprocess
import sys
from unittest.mock import patch

import pytest

from devstrap.core import process
from devstrap.core.environment import EnvironmentOverlay
from devstrap.core.exceptions import CommandError, CommandTimeoutError, ElevationError
from devstrap.core.process import (
    build_elevated_command,
    needs_elevation,
    run_as_admin,
    run_command,
    run_elevated,
)


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(["cmd"], returncode, stdout, stderr)


class TestRunCommand:
    """Tests for run_command."""

    def test_success(self):
        """Test a real command runs and its output is captured."""
        result = run_command([sys.executable, "-c", "print('hi')"])
        assert result.stdout.strip() == "hi"

    def test_overlay_reaches_child(self):
        """Test overlay variables are visible to the child process."""
        overlay = EnvironmentOverlay({"DEVSTRAP_TEST_VAR": "from-overlay"})
        result = run_command(
            [sys.executable, "-c", "import os; print(os.environ['DEVSTRAP_TEST_VAR'])"],
            overlay=overlay,
        )
        assert result.stdout.strip() == "from-overlay"

    def test_nonzero_exit_raises_with_code(self):
        """Test non-zero exit carries the exit code and last stderr line."""
        with pytest.raises(CommandError) as exc_info:
            run_command(
                [sys.executable, "-c", "import sys; sys.stderr.write('bad thing\\n'); sys.exit(3)"]
            )
        assert exc_info.value.returncode == 3
        assert "bad thing" in str(exc_info.value)

    def test_nonzero_exit_without_check(self):
        result = run_command([sys.executable, "-c", "import sys; sys.exit(2)"], check=False)
        assert result.returncode == 2

    def test_missing_program(self):
        """Test a spawn failure becomes CommandError without an exit code."""
        with pytest.raises(CommandError, match="Failed to start") as exc_info:
            run_command(["devstrap-no-such-program-xyz"])
        assert exc_info.value.returncode is None

    def test_timeout(self):
        """Test a hung command raises CommandTimeoutError."""
        with patch(
            "devstrap.core.process.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["slow"], 1),
        ):
            with pytest.raises(CommandTimeoutError, match="timed out"):
                run_command(["slow"], timeout=1)


class TestElevation:
    """Tests for privilege escalation."""

    def test_needs_elevation_on_permission_error(self):
        error = CommandError("Failed to start")
        error.__cause__ = PermissionError("denied")
        assert needs_elevation(error)

    def test_needs_elevation_posix_message(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", False)
        assert needs_elevation(CommandError("rm: Permission denied", 1))
        assert not needs_elevation(CommandError("file not found", 1))

    def test_needs_elevation_windows_codes(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", True)
        assert needs_elevation(CommandError("failed", 740))
        assert not needs_elevation(CommandError("failed", 1))

    def test_needs_elevation_windows_message(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", True)
        assert needs_elevation(CommandError("System error 5 has occurred. Access is denied.", 2))

    def test_build_posix_command(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", False)
        assert build_elevated_command(["rm", "-rf", "/opt/x"]) == ["sudo", "rm", "-rf", "/opt/x"]

    def test_build_windows_command(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", True)
        cmd = build_elevated_command([r"C:\Git\unins000.exe", "/VERYSILENT"])
        assert cmd[0] == "powershell"
        assert "-Verb RunAs" in cmd[-1]
        assert r"'C:\Git\unins000.exe'" in cmd[-1]
        assert "exit 1223" in cmd[-1]

    def test_unprivileged_success_does_not_escalate(self):
        with patch.object(process, "run_command", return_value=completed()) as mock_run:
            run_elevated(["tool"])
        assert mock_run.call_count == 1

    def test_escalates_on_permission_failure(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", False)
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(list(cmd))
            if len(calls) == 1:
                raise CommandError("Permission denied", 1)
            return completed()

        with patch.object(process, "run_command", side_effect=fake_run):
            run_elevated(["rm", "/opt/x"])

        assert calls == [["rm", "/opt/x"], ["sudo", "rm", "/opt/x"]]

    def test_refused_escalation_raises(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", False)
        with patch.object(
            process, "run_command", side_effect=CommandError("Permission denied", 1)
        ):
            with pytest.raises(ElevationError, match="refused"):
                run_elevated(["rm", "/opt/x"])

    def test_other_failures_are_not_escalated(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", False)
        with patch.object(
            process, "run_command", side_effect=CommandError("no such file", 2)
        ) as mock_run:
            with pytest.raises(CommandError) as exc_info:
                run_elevated(["tool"])
        assert not isinstance(exc_info.value, ElevationError)
        assert mock_run.call_count == 1

    def test_escalates_when_windows_refuses_to_start(self, monkeypatch):
        """Test ERROR_ELEVATION_REQUIRED raised at spawn time triggers RunAs."""
        monkeypatch.setattr(process, "IS_WINDOWS", True)
        refused = OSError(22, "The requested operation requires elevation")
        refused.winerror = 740
        calls = []

        def fake_subprocess_run(args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise refused
            return completed()

        with patch("devstrap.core.process.subprocess.run", side_effect=fake_subprocess_run):
            run_elevated([r"C:\Git\unins000.exe", "/VERYSILENT"])

        assert len(calls) == 2
        assert calls[1][0] == "powershell"
        assert "-Verb RunAs" in calls[1][-1]

    def test_spawn_failure_without_elevation_code_is_not_escalated(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", True)
        missing = OSError(2, "The system cannot find the file specified")
        missing.winerror = 2

        with patch("devstrap.core.process.subprocess.run", side_effect=missing) as mock_run:
            with pytest.raises(CommandError, match="Failed to start"):
                run_elevated([r"C:\missing.exe"])
        assert mock_run.call_count == 1

    def test_run_as_admin_escalates_immediately(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", False)
        with patch.object(process, "run_command", return_value=completed()) as mock_run:
            run_as_admin(["sc", "create", "svc"])

        assert mock_run.call_count == 1
        assert mock_run.call_args[0][0] == ["sudo", "sc", "create", "svc"]
        assert mock_run.call_args.kwargs["capture"] is False

    def test_run_as_admin_failure_keeps_exit_code(self, monkeypatch):
        monkeypatch.setattr(process, "IS_WINDOWS", True)
        with patch.object(process, "run_command", side_effect=CommandError("failed", 3010)):
            with pytest.raises(ElevationError) as exc_info:
                run_as_admin(["msiexec", "/i", "chrome.msi"])
        assert exc_info.value.returncode == 3010
