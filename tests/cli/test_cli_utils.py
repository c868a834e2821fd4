"""
Tests for shared CLI output helpers and orchestrator construction.
"""

from argparse import Namespace

import pytest

from devstrap.cli import utils
from devstrap.cli.prompts import AutoPrompter, ConsolePrompter
from devstrap.cli.utils import build_orchestrator, print_download_progress, safe_print
from devstrap.core.download import DownloadProgress


class TestSafePrint:
    def test_plain(self, capsys):
        safe_print("✓ go installed")
        assert capsys.readouterr().out == "✓ go installed\n"

    def test_custom_end(self, capsys):
        safe_print("partial", end="")
        assert capsys.readouterr().out == "partial"


class TestDownloadProgress:
    """Tests for the console progress line."""

    def test_redraws_same_line(self, capsys):
        print_download_progress(DownloadProgress(1048576, 4194304, 25.0, 1048576, 3))
        out = capsys.readouterr().out
        assert out == "\r  1.0/4.0 MB (25.0%) at 1.0 MB/s ETA: 3s"

    def test_completion_ends_line(self, capsys):
        print_download_progress(DownloadProgress(4194304, 4194304, 100.0, 1048576, 0))
        assert capsys.readouterr().out.endswith("ETA: 0s\n")

    def test_unknown_size_keeps_line_open(self, capsys):
        print_download_progress(DownloadProgress(2097152, 0, 0, 1048576, 0))
        assert capsys.readouterr().out == "\r  2.0 MB at 1.0 MB/s"


class TestBuildOrchestrator:
    """Tests for the CLI-configured orchestrator."""

    @pytest.fixture(autouse=True)
    def in_memory_store(self, monkeypatch, store):
        monkeypatch.setattr(utils, "get_default_store", lambda: store)

    def test_interactive_with_progress(self, config):
        orchestrator = build_orchestrator(Namespace(yes=False, quiet=False), config)
        assert isinstance(orchestrator.prompter, ConsolePrompter)
        assert orchestrator.context().progress is print_download_progress

    def test_yes_and_quiet(self, config):
        orchestrator = build_orchestrator(Namespace(yes=True, quiet=True), config)
        assert isinstance(orchestrator.prompter, AutoPrompter)
        assert orchestrator.context().progress is None
