"""Git for Windows installer and global identity configuration."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.exceptions import CommandError, UnsupportedPlatformError
from devstrap.installers.base import (
    AppendPath,
    EnvAction,
    InstallContext,
    Installer,
    InstallResult,
    ToolInfo,
)
from devstrap.provision.versions import git_for_windows_latest

logger = logging.getLogger(__name__)

GIT_VERSION_DEFAULT = "2.47.1.2"
RELEASES_BASE = "https://github.com/git-for-windows/git/releases/download"

# Profile key -> git config key
IDENTITY_KEYS = {"user_name": "user.name", "user_email": "user.email"}


def release_tag(version: str) -> str:
    """
    Inverse of the tag parsing done for version queries.

    Example:
        >>> release_tag("2.47.1.2")
        'v2.47.1.windows.2'
        >>> release_tag("2.53.0")
        'v2.53.0.windows.1'
    """
    parts = version.split(".")
    if len(parts) > 3:
        return f"v{'.'.join(parts[:3])}.windows.{parts[3]}"
    return f"v{version}.windows.1"


class GitInstaller(Installer):
    version_command = ("git", "--version")
    external_binaries = ("git",)
    registry_uninstall_key = "Git_is1"

    def info(self) -> ToolInfo:
        return ToolInfo("git", "Git", "Distributed version control")

    def install_dir(self, config: DevstrapConfig) -> Path:
        return config.tools_dir / "git"

    def parse_version(self, output: str) -> str:
        return output.strip().splitlines()[0].replace("git version ", "").strip()

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        return ctx.config.version_for("git") or git_for_windows_latest() or GIT_VERSION_DEFAULT

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        version = version or config.version_for("git", GIT_VERSION_DEFAULT)
        filename = f"Git-{version}-64-bit.exe"
        base = config.mirror_for("git", RELEASES_BASE)
        return f"{base}/{release_tag(version)}/{filename}", filename

    def install(self, ctx: InstallContext) -> InstallResult:
        if not ctx.platform.is_windows:
            raise UnsupportedPlatformError(
                "git", "install Git with the system package manager on this platform"
            )
        version = self.resolve_version(ctx)
        installer = self.fetch(ctx, version)
        install_dir = self.install_dir(ctx.config)

        logger.info("Installing Git (silent mode)...")
        ctx.run(
            [
                installer,
                "/VERYSILENT",
                "/NORESTART",
                f"/DIR={install_dir}",
                "/NOICONS",
                "/COMPONENTS=ext,ext\\shellhere,ext\\guihere,gitlfs,assoc,assoc_sh,scalar",
            ]
        )
        return InstallResult(install_dir, version)

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [AppendPath(str(install_path / "cmd"))]

    # -- identity --------------------------------------------------------------

    def _git(self, ctx: InstallContext) -> str:
        managed = self.install_dir(ctx.config) / "cmd" / f"git{ctx.platform.exe_suffix}"
        return str(managed) if managed.exists() else "git"

    def _get(self, ctx: InstallContext, key: str) -> Optional[str]:
        try:
            result = ctx.run([self._git(ctx), "config", "--global", key], check=False)
        except CommandError:
            return None
        value = (result.stdout or "").strip()
        return value if result.returncode == 0 and value else None

    def _set(self, ctx: InstallContext, key: str, value: str) -> None:
        ctx.run([self._git(ctx), "config", "--global", key, value])

    def configure(self, ctx: InstallContext) -> None:
        """Ask for user.name / user.email, defaulting to the current values."""
        for git_key in IDENTITY_KEYS.values():
            current = self._get(ctx, git_key)
            value = ctx.ask(f"Git {git_key}", current)
            if value and value != current:
                self._set(ctx, git_key, value)
                logger.info(f"Set git {git_key}")

    def export_config(self, ctx: InstallContext) -> Dict[str, str]:
        entries = {}
        for profile_key, git_key in IDENTITY_KEYS.items():
            value = self._get(ctx, git_key)
            if value:
                entries[profile_key] = value
        return entries

    def import_config(self, ctx: InstallContext, entries: Dict[str, str]) -> None:
        for profile_key, value in entries.items():
            git_key = IDENTITY_KEYS.get(profile_key)
            if git_key is None:
                logger.debug(f"Ignoring unknown git setting '{profile_key}'")
                continue
            self._set(ctx, git_key, value)
