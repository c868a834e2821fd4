"""
Unit tests for the install ledger.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest
from filelock import Timeout

from devstrap.core.exceptions import LedgerError
from devstrap.core.ledger import InstallRecord, Ledger


class TestLedgerLoad:
    """Tests for loading the ledger."""

    def test_missing_file_is_empty(self, tmp_path):
        """Test a missing ledger loads empty."""
        ledger = Ledger.load(tmp_path / "state.json")
        assert len(ledger) == 0

    @pytest.mark.parametrize(
        "content",
        [
            b"{not json",
            b"\xff\xfe\x00garbage",
            b"[]",
            b'{"tools": {"go": {"install_path": "/x"}}}',
            b'{"tools": 42}',
        ],
    )
    def test_corrupted_file_is_empty(self, tmp_path, caplog, content):
        """Test malformed ledgers load empty with a warning instead of raising."""
        path = tmp_path / "state.json"
        path.write_bytes(content)

        with caplog.at_level(logging.WARNING):
            ledger = Ledger.load(path)

        assert len(ledger) == 0
        assert "Invalid ledger file" in caplog.text

    def test_load_records(self, tmp_path):
        """Test loading the documented document shape."""
        path = tmp_path / "state.json"
        path.write_text(
            json.dumps(
                {
                    "tools": {
                        "go": {
                            "version": "1.24.0",
                            "install_path": "/opt/devstrap/lang/go",
                            "installed_at": "2026-03-01 12:00:00",
                        }
                    }
                }
            )
        )

        record = Ledger.load(path).get("go")

        assert record == InstallRecord(
            "go", "1.24.0", Path("/opt/devstrap/lang/go"), "2026-03-01 12:00:00"
        )


class TestLedgerSave:
    """Tests for saving and updating the ledger."""

    def test_save_creates_parents(self, tmp_path):
        """Test save creates missing directories."""
        path = tmp_path / "nested" / "dir" / "state.json"
        ledger = Ledger(path)
        ledger.mark_installed("gh", "2.87.3", tmp_path / "tools" / "gh")
        ledger.save()
        assert path.exists()

    def test_document_format(self, tmp_path):
        """Test the on-disk JSON layout."""
        path = tmp_path / "state.json"
        ledger = Ledger(path)
        ledger.mark_installed(
            "gh", "2.87.3", Path("/r/tools/gh"), installed_at=datetime(2026, 1, 2, 3, 4, 5)
        )
        ledger.save()

        data = json.loads(path.read_text())
        assert data == {
            "tools": {
                "gh": {
                    "version": "2.87.3",
                    "install_path": str(Path("/r/tools/gh")),
                    "installed_at": "2026-01-02 03:04:05",
                }
            }
        }

    def test_round_trip(self, tmp_path):
        """Test save followed by load returns the same records."""
        path = tmp_path / "state.json"
        ledger = Ledger(path)
        ledger.mark_installed("go", "1.24.0", tmp_path / "go")
        ledger.mark_installed("jdk", "21.0.5", tmp_path / "java")
        ledger.save()

        reloaded = Ledger.load(path)

        assert sorted(r.tool_id for r in reloaded) == ["go", "jdk"]
        assert reloaded.get("jdk").install_path == tmp_path / "java"

    def test_mark_installed_overwrites(self, tmp_path):
        """Test at most one record per tool."""
        ledger = Ledger(tmp_path / "state.json")
        ledger.mark_installed("go", "1.23.0", tmp_path / "go")
        ledger.mark_installed("go", "1.24.0", tmp_path / "go")

        assert len(ledger) == 1
        assert ledger.get("go").version == "1.24.0"

    def test_remove(self, tmp_path):
        """Test removing a record."""
        ledger = Ledger(tmp_path / "state.json")
        ledger.mark_installed("go", "1.24.0", tmp_path / "go")

        removed = ledger.remove("go")

        assert removed.tool_id == "go"
        assert "go" not in ledger
        assert ledger.remove("go") is None

    def test_lock_timeout_raises(self, tmp_path):
        """Test a held lock surfaces as LedgerError."""
        ledger = Ledger(tmp_path / "state.json")
        with patch("devstrap.core.ledger.FileLock") as mock_lock:
            mock_lock.return_value.__enter__.side_effect = Timeout(str(ledger.lock_path))
            with pytest.raises(LedgerError, match="lock"):
                ledger.save()
