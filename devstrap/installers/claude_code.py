"""Claude Code CLI installer.

Releases are published to a GCS bucket together with a per-version
``manifest.json`` of SHA256 digests; this is the one installer whose
downloads are checksum-verified.
"""

import logging
import shutil
from pathlib import Path
from typing import List, Optional, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.exceptions import InstallError
from devstrap.core.filesystem import make_executable
from devstrap.core.platform import PlatformInfo, detect_platform
from devstrap.core.verification import fetch_manifest_checksum
from devstrap.installers.base import (
    AppendPath,
    EnvAction,
    InstallContext,
    Installer,
    InstallResult,
    ToolInfo,
)
from devstrap.provision.versions import text_latest

logger = logging.getLogger(__name__)

GCS_BUCKET = (
    "https://storage.googleapis.com/"
    "claude-code-dist-86c565f3-f756-42ad-8dfa-d59b1c096819/claude-code-releases"
)
DEFAULT_VERSION = "1.0.0"


def platform_key(platform: PlatformInfo) -> str:
    """Bucket platform directory ('win32-x64', 'darwin-arm64', ...)."""
    return f"{platform.node_os}-{platform.arch}"


def parse_claude_version(output: str) -> str:
    """
    Example:
        >>> parse_claude_version("1.0.44 (Claude Code)")
        '1.0.44'
    """
    line = output.strip().splitlines()[0].strip() if output.strip() else ""
    for prefix in ("claude ", "Claude Code "):
        if line.startswith(prefix):
            line = line[len(prefix):]
    return line.split(" ")[0].lstrip("v")


class ClaudeCodeInstaller(Installer):
    version_command = ("claude", "--version")
    external_binaries = ("claude",)

    def info(self) -> ToolInfo:
        return ToolInfo("claude-code", "Claude Code", "Anthropic's agentic coding CLI")

    def install_dir(self, config: DevstrapConfig) -> Path:
        return config.tools_dir / "claude-code"

    def bucket(self, config: DevstrapConfig) -> str:
        return config.mirror_for("claude-code", GCS_BUCKET)

    def parse_version(self, output: str) -> str:
        return parse_claude_version(output)

    def resolve_version(self, ctx: InstallContext) -> Optional[str]:
        return (
            ctx.config.version_for("claude-code")
            or text_latest(f"{self.bucket(ctx.config)}/latest")
            or DEFAULT_VERSION
        )

    def resolve_download(
        self, config: DevstrapConfig, version: Optional[str] = None
    ) -> Tuple[str, str]:
        version = version or config.version_for("claude-code", DEFAULT_VERSION)
        platform = detect_platform()
        key = platform_key(platform)
        url = f"{self.bucket(config)}/{version}/{key}/claude{platform.exe_suffix}"
        return url, f"claude-{version}-{key}{platform.exe_suffix}"

    def checksum_for(self, ctx: InstallContext, version: Optional[str]) -> Optional[str]:
        version = version or ctx.config.version_for("claude-code", DEFAULT_VERSION)
        manifest_url = f"{self.bucket(ctx.config)}/{version}/manifest.json"
        return fetch_manifest_checksum(manifest_url, platform_key(ctx.platform))

    def install(self, ctx: InstallContext) -> InstallResult:
        version = self.resolve_version(ctx)
        binary = self.fetch(ctx, version)

        install_dir = self.install_dir(ctx.config)
        destination = install_dir / f"claude{ctx.platform.exe_suffix}"
        try:
            install_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(binary, destination)
        except OSError as e:
            raise InstallError("claude-code", f"Failed to copy to {destination}: {e}") from e
        if not ctx.platform.is_windows:
            make_executable(destination)
        return InstallResult(install_dir, version)

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        return [AppendPath(str(install_path))]

    def configure(self, ctx: InstallContext) -> None:
        logger.info("Run 'claude' and log in, or set ANTHROPIC_API_KEY")
