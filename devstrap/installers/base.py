"""
Installer contract for devstrap.

Every tool in the catalog is an :class:`Installer` subclass. Installers are
mostly data (download URL templates, archive layout, environment actions);
the lifecycle decisions (detect, take over, install, configure, uninstall)
belong to :mod:`devstrap.provision.orchestrator`.

Classes:
    ToolInfo: Immutable tool descriptor
    NotInstalled, ManagedInstalled, ExternalInstalled: Detection results
    InstallResult: What an install produced
    InstallContext: Configuration, environment overlay and prompter for one run
    Installer: Abstract base class for tool installers
    ArchiveInstaller: Installer for tools shipped as a single archive
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.download import DownloadProgress, download, invalidate
from devstrap.core.environment import AppendPath, EnvAction, EnvironmentOverlay, SetVar
from devstrap.core.exceptions import CommandError, CommandTimeoutError
from devstrap.core.filesystem import (
    extract_install_root,
    find_executable,
    move_into_place,
    safe_rmtree,
)
from devstrap.core.platform import PlatformInfo, detect_platform
from devstrap.core.process import run_command
from devstrap.core.verification import verify_checksum

logger = logging.getLogger(__name__)


# =============================================================================
# Descriptors and results
# =============================================================================


@dataclass(frozen=True)
class ToolInfo:
    """
    Static tool descriptor.

    Attributes:
        id: Identifier used on the command line and in the ledger ('go')
        name: Display name ('Go')
        description: One-line description
    """

    id: str
    name: str
    description: str


@dataclass(frozen=True)
class DetectionResult:
    """Base class of the detection outcomes."""

    @property
    def is_installed(self) -> bool:
        return False

    @property
    def is_managed(self) -> bool:
        return False

    @property
    def is_external(self) -> bool:
        return False


@dataclass(frozen=True)
class NotInstalled(DetectionResult):
    """No usable installation found."""


@dataclass(frozen=True)
class ManagedInstalled(DetectionResult):
    """Installed and tracked by devstrap."""

    version: str

    @property
    def is_installed(self) -> bool:
        return True

    @property
    def is_managed(self) -> bool:
        return True


@dataclass(frozen=True)
class ExternalInstalled(DetectionResult):
    """Reachable on PATH but not owned by devstrap."""

    version: str

    @property
    def is_installed(self) -> bool:
        return True

    @property
    def is_external(self) -> bool:
        return True


@dataclass
class InstallResult:
    """Outcome of :meth:`Installer.install`."""

    install_path: Path
    version: str


# =============================================================================
# Install context
# =============================================================================


class Prompter(Protocol):
    """Interactive decisions requested during provisioning."""

    def confirm(self, message: str, default: bool = False) -> bool:
        ...

    def ask(self, message: str, default: Optional[str] = None) -> Optional[str]:
        ...


@dataclass
class InstallContext:
    """
    Everything an installer needs for one run.

    Attributes:
        config: Loaded configuration
        overlay: Environment of dependencies installed earlier in this run
        prompter: Interactive prompter; without one every question takes its default
        platform: Target platform
        progress: Receives download progress; None downloads silently
    """

    config: DevstrapConfig
    overlay: EnvironmentOverlay = field(default_factory=EnvironmentOverlay)
    prompter: Optional[Prompter] = None
    platform: PlatformInfo = field(default_factory=detect_platform)
    progress: Optional[Callable[[DownloadProgress], None]] = None

    @property
    def probe_timeout(self) -> float:
        return self.config.probe_timeout

    def confirm(self, message: str, default: bool = False) -> bool:
        if self.prompter is None:
            return default
        return self.prompter.confirm(message, default)

    def ask(self, message: str, default: Optional[str] = None) -> Optional[str]:
        if self.prompter is None:
            return default
        return self.prompter.ask(message, default)

    def run(self, cmd: Sequence, **kwargs):
        """Run a command with this context's environment overlay."""
        return run_command(cmd, overlay=self.overlay, **kwargs)


# =============================================================================
# Installer
# =============================================================================


def first_line(output: str) -> str:
    lines = output.strip().splitlines()
    return lines[0].strip() if lines else ""


def extract_version(text: str) -> str:
    """
    First whitespace-separated token starting with a digit.

    Falls back to the stripped input when no token qualifies.

    Example:
        >>> extract_version("git version 2.47.1")
        '2.47.1'
    """
    trimmed = text.strip()
    for token in trimmed.split():
        if token[0].isdigit():
            return token
    return trimmed


class Installer(ABC):
    """
    Abstract base class for tool installers.

    Class attributes describe the tool to the generic machinery:

    Attributes:
        requires: Tool ids that must be installed first (e.g. ('jdk',))
        version_command: Probe run to detect an external install
        external_binaries: Executables whose PATH directories are stripped
            when an external install is taken over
        external_env_vars: Variables deleted when an external install is
            taken over
        registry_uninstall_key: Windows ``Uninstall`` subkey of the vendor
            installer (takeover only)
        registry_display_name: Text contained in the ``DisplayName`` of the
            vendor uninstaller entry (takeover only)
        self_uninstall_command: Command that removes an external install
            (takeover only)
        always_latest: The download filename is stable but its content is not,
            so the cache entry is invalidated before every download
        vendor_located: The vendor installer chooses the install location;
            uninstall leaves the files to :meth:`pre_uninstall` instead of
            deleting the recorded path
        takeover_supported: False when an external install cannot be replaced
            (it is always kept)
    """

    requires: Tuple[str, ...] = ()
    version_command: Tuple[str, ...] = ()
    external_binaries: Tuple[str, ...] = ()
    external_env_vars: Tuple[str, ...] = ()
    registry_uninstall_key: Optional[str] = None
    registry_display_name: Optional[str] = None
    self_uninstall_command: Tuple[str, ...] = ()
    always_latest: bool = False
    vendor_located: bool = False
    takeover_supported: bool = True

    @abstractmethod
    def info(self) -> ToolInfo:
        """Static descriptor."""

    @property
    def id(self) -> str:
        return self.info().id

    @abstractmethod
    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        """
        Download location for ``version`` (or the configured/default version).

        Returns:
            Tuple of (url, cache filename)
        """

    @abstractmethod
    def install(self, ctx: InstallContext) -> InstallResult:
        """Fetch and install the tool into its devstrap directory."""

    @abstractmethod
    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        """
        Environment changes for an install at ``install_path``.

        Must be a pure function of its arguments: uninstall recomputes the
        same list to revert it.
        """

    # -- detection -------------------------------------------------------------

    def parse_version(self, output: str) -> str:
        """Extract a display version from probe output."""
        return first_line(output)

    def detect_installed(self, ctx: InstallContext) -> DetectionResult:
        """
        Probe for an installation on PATH.

        Never reports :class:`ManagedInstalled`; ownership comes from the
        ledger. Missing executables and failing probes are NotInstalled.

        Raises:
            CommandTimeoutError: If the probe hangs past ``ctx.probe_timeout``
        """
        if not self.version_command:
            return NotInstalled()
        executable = find_executable(self.version_command[0])
        if executable is None:
            return NotInstalled()
        try:
            result = ctx.run(
                [executable, *self.version_command[1:]],
                timeout=ctx.probe_timeout,
                check=False,
            )
        except CommandTimeoutError:
            raise
        except CommandError as e:
            logger.debug(f"{self.id}: probe failed: {e}")
            return NotInstalled()

        output = (result.stdout or "").strip() or (result.stderr or "").strip()
        if result.returncode != 0 or not output:
            return NotInstalled()
        return ExternalInstalled(self.parse_version(output))

    # -- download --------------------------------------------------------------

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        """Version to install; None lets :meth:`resolve_download` choose."""
        return ctx.config.version_for(self.id)

    def checksum_for(self, ctx: InstallContext, version: Optional[str]) -> Optional[str]:
        """Expected SHA256 of the artifact, for tools that publish one."""
        return None

    def fetch(self, ctx: InstallContext, version: Optional[str] = None) -> Path:
        """
        Download the artifact for ``version`` through the cache.

        Always-latest artifacts are invalidated first; artifacts with a
        published checksum are verified (and deleted on mismatch).
        """
        url, filename = self.resolve_download(ctx.config, version)
        if self.always_latest:
            invalidate(ctx.config.cache_dir, filename)
        artifact = download(url, ctx.config.cache_dir, filename, progress_callback=ctx.progress)

        expected = self.checksum_for(ctx, version)
        if expected:
            verify_checksum(artifact, expected)
        return artifact

    # -- lifecycle hooks -------------------------------------------------------

    def configure(self, ctx: InstallContext) -> None:
        """Post-install configuration (idempotent, default no-op)."""

    def pre_uninstall(self, ctx: InstallContext) -> None:
        """Called before the install directory is deleted (default no-op)."""

    def external_uninstaller(self) -> Optional[List]:
        """Uninstaller shipped inside an external install found on PATH (takeover only)."""
        return None

    def cleanup_paths(self, install_path: Path, config: DevstrapConfig) -> List[Path]:
        """Additional directories deleted at uninstall."""
        return []

    def export_config(self, ctx: InstallContext) -> Dict[str, str]:
        """Tool settings carried in an exported profile."""
        return {}

    def import_config(self, ctx: InstallContext, entries: Dict[str, str]) -> None:
        """Apply settings from an imported profile (default no-op)."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class ArchiveInstaller(Installer):
    """
    Installer for tools distributed as one archive.

    The archive is extracted into ``cache/<id>-extract``; if that yields a
    single top-level directory it becomes the install root. The root is then
    moved to ``<root_dir>/<category>/<dir_name>``.

    Attributes:
        category: 'tools', 'lang' or 'ide'
        dir_name: Directory name under the category (defaults to the tool id)
        default_version: Version used when nothing is configured or queried
    """

    category = "tools"
    dir_name: Optional[str] = None
    default_version: Optional[str] = None

    def install_dir(self, config: DevstrapConfig) -> Path:
        return config.root_dir / self.category / (self.dir_name or self.id)

    def latest_version(self) -> Optional[str]:
        """Latest published version, or None when unknown."""
        return None

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        pinned = ctx.config.version_for(self.id)
        if pinned:
            return pinned
        latest = self.latest_version()
        if latest:
            return latest
        return self.default_version

    def install(self, ctx: InstallContext) -> InstallResult:
        version = self.resolve_version(ctx)
        artifact = self.fetch(ctx, version)

        logger.info(f"Extracting {artifact.name}...")
        work_dir = ctx.config.cache_dir / f"{self.id}-extract"
        root = extract_install_root(artifact, work_dir)
        destination = move_into_place(root, self.install_dir(ctx.config))
        if work_dir.exists():
            safe_rmtree(work_dir, require_prefix=ctx.config.cache_dir)

        return InstallResult(destination, version or self.installed_version(ctx, destination))

    def installed_version(self, ctx: InstallContext, install_path: Path) -> str:
        """Version reported for unversioned downloads."""
        return "latest"

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [AppendPath(str(install_path / "bin"))]


__all__ = [
    "ToolInfo",
    "DetectionResult",
    "NotInstalled",
    "ManagedInstalled",
    "ExternalInstalled",
    "InstallResult",
    "Prompter",
    "InstallContext",
    "Installer",
    "ArchiveInstaller",
    "EnvAction",
    "SetVar",
    "AppendPath",
    "first_line",
    "extract_version",
]
