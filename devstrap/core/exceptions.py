"""
Centralized exception hierarchy for devstrap.

This module defines all custom exceptions used across the codebase
to eliminate duplication and provide clear exception semantics.
"""

from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class DevstrapError(Exception):
    """Base exception for all devstrap errors."""

    pass


# ============================================================================
# Configuration and State Exceptions
# ============================================================================


class ConfigError(DevstrapError):
    """Raised when the configuration file is invalid or a key is unknown."""

    pass


class LedgerError(DevstrapError):
    """Raised when the install ledger cannot be written."""

    pass


class EnvironmentStoreError(DevstrapError):
    """Raised when the persistent environment cannot be read or written."""

    pass


# ============================================================================
# Download Exceptions
# ============================================================================


class DownloadError(DevstrapError):
    """Exception raised when download fails."""

    pass


class ChecksumError(DevstrapError):
    """Exception raised when checksum verification fails."""

    def __init__(self, path, expected: str, actual: str):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for {path}: expected {expected}, got {actual}. "
            f"The corrupted file has been deleted, please retry."
        )


# ============================================================================
# Subprocess Exceptions
# ============================================================================


class CommandError(DevstrapError):
    """Raised when an external command cannot be started or exits non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        if returncode is not None:
            message = f"{message} (exit code {returncode})"
        super().__init__(message)


class CommandTimeoutError(CommandError):
    """Raised when an external command exceeds its timeout."""

    pass


class ElevationError(CommandError):
    """Raised when an elevated operation is refused or fails."""

    pass


# ============================================================================
# Tool Lifecycle Exceptions
# ============================================================================


class UnknownToolError(DevstrapError):
    """Raised when a tool id is not in the catalog."""

    def __init__(self, tool_id: str, available: list[str]):
        self.tool_id = tool_id
        self.available = available
        super().__init__(
            f"Unknown tool '{tool_id}'. Available: {', '.join(available)}"
        )


class DependencyError(DevstrapError):
    """Raised when a runtime dependency is declined or cyclic."""

    pass


class InstallError(DevstrapError):
    """Raised when a step of a tool's install or uninstall fails."""

    def __init__(self, tool_id: str, message: str):
        self.tool_id = tool_id
        super().__init__(f"{tool_id}: {message}")


class UnsupportedPlatformError(InstallError):
    """Raised when a tool has no distribution for the current platform."""

    pass


class UpdateError(DevstrapError):
    """Raised when self-update fails."""

    pass
