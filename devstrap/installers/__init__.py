"""
Tool catalog for devstrap.

The catalog is an ordered list of installer instances; the order is the one
used for listings, detection results and profile exports.

Example:
    >>> from devstrap.installers import all_installers, get_installer
    >>> [i.id for i in all_installers()][:3]
    ['git', 'gh', 'claude-code']
    >>> get_installer('go').info().name
    'Go'
"""

from typing import List, Optional, Sequence

from devstrap.core.exceptions import UnknownToolError

from .base import (
    ArchiveInstaller,
    DetectionResult,
    ExternalInstalled,
    InstallContext,
    Installer,
    InstallResult,
    ManagedInstalled,
    NotInstalled,
    ToolInfo,
)
from .bun import BunInstaller
from .chrome import ChromeInstaller
from .claude_code import ClaudeCodeInstaller
from .gh import GhInstaller
from .git import GitInstaller
from .go import GoInstaller
from .gradle import GradleInstaller
from .jdk import JdkInstaller
from .maven import MavenInstaller
from .miniconda import MinicondaInstaller
from .mingw import MingwInstaller
from .mysql import MysqlInstaller
from .nodejs import NodejsInstaller
from .pgsql import PgsqlInstaller
from .pycharm import PycharmInstaller
from .rustup import RustupInstaller
from .uv import UvInstaller
from .vscode import VscodeInstaller


def all_installers() -> List[Installer]:
    """Every installer, in catalog order."""
    return [
        # Tools
        GitInstaller(),
        GhInstaller(),
        ClaudeCodeInstaller(),
        # Languages, grouped by ecosystem
        UvInstaller(),  # Python
        MinicondaInstaller(),  # Python
        NodejsInstaller(),  # JavaScript
        BunInstaller(),  # JavaScript
        MingwInstaller(),  # C/C++
        RustupInstaller(),  # Rust
        GoInstaller(),  # Go
        JdkInstaller(),  # Java
        MavenInstaller(),  # Java build
        GradleInstaller(),  # Java/Android build
        # Databases
        MysqlInstaller(),
        PgsqlInstaller(),
        # Editors and apps
        VscodeInstaller(),
        PycharmInstaller(),
        ChromeInstaller(),
    ]


def find_installer(
    tool_id: str, installers: Optional[Sequence[Installer]] = None
) -> Optional[Installer]:
    for installer in installers if installers is not None else all_installers():
        if installer.id == tool_id:
            return installer
    return None


def get_installer(
    tool_id: str, installers: Optional[Sequence[Installer]] = None
) -> Installer:
    """
    Look up an installer by tool id.

    Raises:
        UnknownToolError: If no installer has this id
    """
    installers = list(installers) if installers is not None else all_installers()
    installer = find_installer(tool_id, installers)
    if installer is None:
        raise UnknownToolError(tool_id, [i.id for i in installers])
    return installer


__all__ = [
    "all_installers",
    "find_installer",
    "get_installer",
    "ArchiveInstaller",
    "DetectionResult",
    "ExternalInstalled",
    "InstallContext",
    "Installer",
    "InstallResult",
    "ManagedInstalled",
    "NotInstalled",
    "ToolInfo",
]
