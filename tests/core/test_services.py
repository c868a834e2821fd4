"""
Unit tests for Windows service control.
"""

import subprocess
from unittest.mock import patch

import pytest

from devstrap.core import services
from devstrap.core.exceptions import CommandError
from devstrap.core.services import (
    ServiceState,
    query_service,
    service_exists,
    start_service,
    stop_service,
)

RUNNING_OUTPUT = """
SERVICE_NAME: PostgreSQL
        TYPE               : 10  WIN32_OWN_PROCESS
        STATE              : 4  RUNNING
"""

STOPPED_OUTPUT = """
SERVICE_NAME: PostgreSQL
        TYPE               : 10  WIN32_OWN_PROCESS
        STATE              : 1  STOPPED
"""


def sc_result(returncode=0, stdout=""):
    return subprocess.CompletedProcess(["sc"], returncode, stdout, "")


class TestQueryService:
    """Tests for reading service state from sc query."""

    def test_running(self):
        with patch.object(services, "run_command", return_value=sc_result(stdout=RUNNING_OUTPUT)):
            assert query_service("PostgreSQL") is ServiceState.RUNNING

    def test_stopped(self):
        with patch.object(services, "run_command", return_value=sc_result(stdout=STOPPED_OUTPUT)):
            assert query_service("PostgreSQL") is ServiceState.STOPPED

    def test_missing_service(self):
        """Test sc exits 1060 for an unknown service."""
        with patch.object(services, "run_command", return_value=sc_result(1060)):
            assert query_service("PostgreSQL") is ServiceState.NOT_FOUND
            assert not service_exists("PostgreSQL")

    def test_sc_unavailable(self):
        with patch.object(services, "run_command", side_effect=CommandError("Failed to start sc")):
            assert query_service("MySQL") is ServiceState.NOT_FOUND


class TestStartStop:
    """Tests for starting and stopping services."""

    def test_start_stopped_service(self):
        with patch.object(
            services, "query_service", return_value=ServiceState.STOPPED
        ), patch.object(services, "run_elevated") as mock_elevated:
            start_service("MySQL")
        mock_elevated.assert_called_once_with(["net", "start", "MySQL"])

    def test_start_running_service_is_noop(self):
        with patch.object(
            services, "query_service", return_value=ServiceState.RUNNING
        ), patch.object(services, "run_elevated") as mock_elevated:
            start_service("MySQL")
        mock_elevated.assert_not_called()

    def test_start_unregistered_service(self):
        with patch.object(services, "query_service", return_value=ServiceState.NOT_FOUND):
            with pytest.raises(CommandError, match="not registered"):
                start_service("MySQL")

    def test_stop_running_service(self):
        with patch.object(
            services, "query_service", return_value=ServiceState.RUNNING
        ), patch.object(services, "run_elevated") as mock_elevated:
            assert stop_service("PostgreSQL") is True
        mock_elevated.assert_called_once_with(["net", "stop", "PostgreSQL"])

    def test_stop_idle_service(self):
        with patch.object(
            services, "query_service", return_value=ServiceState.STOPPED
        ), patch.object(services, "run_elevated") as mock_elevated:
            assert stop_service("PostgreSQL") is False
        mock_elevated.assert_not_called()
