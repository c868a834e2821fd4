"""
Install ledger for devstrap.

The ledger records every tool devstrap installed: which version, where, and
when. It is persisted to ``<root_dir>/state.json``::

    {
      "tools": {
        "go": {
          "version": "1.24.0",
          "install_path": "/home/user/devstrap/lang/go",
          "installed_at": "2026-03-01 12:00:00"
        }
      }
    }

A tool is *managed* exactly when it has a record here. Loading is
corruption-tolerant: an unreadable ledger is treated as empty (with a warning)
because managed installs can always be re-detected.

Example:
    >>> ledger = Ledger.load(config.state_path)
    >>> ledger.mark_installed('go', '1.24.0', config.lang_dir / 'go')
    >>> ledger.save()
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from filelock import FileLock, Timeout

from devstrap.core.exceptions import LedgerError
from devstrap.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class InstallRecord:
    """One managed tool installation."""

    tool_id: str
    version: str
    install_path: Path
    installed_at: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": self.version,
            "install_path": str(self.install_path),
            "installed_at": self.installed_at,
        }

    @classmethod
    def from_dict(cls, tool_id: str, data: dict) -> "InstallRecord":
        return cls(
            tool_id=tool_id,
            version=str(data["version"]),
            install_path=Path(data["install_path"]),
            installed_at=str(data.get("installed_at", "")),
        )


class Ledger:
    """
    Mapping of tool id to :class:`InstallRecord`, persisted as one JSON document.

    Attributes:
        path: Ledger file location
    """

    def __init__(self, path: Union[str, Path], records: Optional[Dict[str, InstallRecord]] = None):
        self.path = Path(path)
        self._records: Dict[str, InstallRecord] = dict(records or {})
        self.lock_timeout = 10.0

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Ledger":
        """
        Load the ledger from disk.

        A missing file yields an empty ledger. A file that cannot be parsed
        also yields an empty ledger and logs a warning; this never raises.
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"Ledger not found, starting empty: {path}")
            return cls(path)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            tools = data["tools"]
            records = {
                tool_id: InstallRecord.from_dict(tool_id, entry)
                for tool_id, entry in tools.items()
            }
        except (OSError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Invalid ledger file {path}, starting with empty state: {e}")
            return cls(path)

        logger.debug(f"Loaded {len(records)} ledger record(s) from {path}")
        return cls(path, records)

    def save(self) -> None:
        """
        Write the whole ledger atomically, creating parent directories.

        Raises:
            LedgerError: If the file cannot be written or locked
        """
        content = json.dumps(
            {"tools": {tool_id: r.to_dict() for tool_id, r in self._records.items()}},
            indent=2,
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with FileLock(self.lock_path, timeout=self.lock_timeout):
                atomic_write(self.path, content + "\n")
        except Timeout as e:
            raise LedgerError(
                f"Could not acquire ledger lock {self.lock_path} within {self.lock_timeout} seconds"
            ) from e
        except OSError as e:
            raise LedgerError(f"Failed to save ledger {self.path}: {e}") from e
        logger.debug(f"Saved ledger to {self.path}")

    def mark_installed(
        self,
        tool_id: str,
        version: str,
        install_path: Union[str, Path],
        installed_at: Optional[datetime] = None,
    ) -> InstallRecord:
        """Create or overwrite the record for ``tool_id`` (in memory)."""
        timestamp = (installed_at or datetime.now()).strftime(TIMESTAMP_FORMAT)
        record = InstallRecord(tool_id, version, Path(install_path), timestamp)
        self._records[tool_id] = record
        return record

    def remove(self, tool_id: str) -> Optional[InstallRecord]:
        """Drop the record for ``tool_id`` (in memory) and return it."""
        return self._records.pop(tool_id, None)

    def get(self, tool_id: str) -> Optional[InstallRecord]:
        return self._records.get(tool_id)

    def __contains__(self, tool_id: str) -> bool:
        return tool_id in self._records

    def __iter__(self) -> Iterator[InstallRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["InstallRecord", "Ledger", "TIMESTAMP_FORMAT"]
