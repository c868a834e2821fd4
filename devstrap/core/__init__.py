"""
Core functionality for devstrap.

This package contains the foundational modules the installers and the
provisioning layer depend on: configuration, the persistent environment
store, the download pipeline, the install ledger and subprocess helpers.
"""

from .config import DevstrapConfig, load_config, save_config

from .directory import (
    get_config_dir,
    get_default_root_dir,
    ensure_install_structure,
    DirectoryError,
)

from .environment import (
    AppendPath,
    EnvironmentOverlay,
    PersistentEnvironmentStore,
    SetVar,
    get_default_store,
)

from .ledger import InstallRecord, Ledger

from .platform import PlatformInfo, detect_platform

from .exceptions import (
    DevstrapError,
    ConfigError,
    LedgerError,
    EnvironmentStoreError,
    DownloadError,
    ChecksumError,
    CommandError,
    CommandTimeoutError,
    ElevationError,
    UnknownToolError,
    DependencyError,
    InstallError,
    UnsupportedPlatformError,
    UpdateError,
)

__all__ = [
    # Config
    "DevstrapConfig",
    "load_config",
    "save_config",
    # Directory
    "get_config_dir",
    "get_default_root_dir",
    "ensure_install_structure",
    "DirectoryError",
    # Environment
    "AppendPath",
    "EnvironmentOverlay",
    "PersistentEnvironmentStore",
    "SetVar",
    "get_default_store",
    # Ledger
    "InstallRecord",
    "Ledger",
    # Platform
    "PlatformInfo",
    "detect_platform",
    # Exceptions
    "DevstrapError",
    "ConfigError",
    "LedgerError",
    "EnvironmentStoreError",
    "DownloadError",
    "ChecksumError",
    "CommandError",
    "CommandTimeoutError",
    "ElevationError",
    "UnknownToolError",
    "DependencyError",
    "InstallError",
    "UnsupportedPlatformError",
    "UpdateError",
]
