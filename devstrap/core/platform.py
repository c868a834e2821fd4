"""
Platform detection for devstrap.

Download URL tables differ in how they spell the same platform
(``windows-x64``, ``windows_amd64``, ``win32-x64``, ``darwin-arm64``). This
module detects the current OS and CPU architecture once and exposes the
spellings used by the distribution servers devstrap talks to.

Usage:
    from devstrap.core.platform import detect_platform

    info = detect_platform()
    print(info.platform_string())   # 'linux-x64'
    print(info.go_os, info.go_arch)  # 'linux amd64'
"""

import functools
import platform
from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformInfo:
    """
    Current platform.

    Attributes:
        os: Operating system ('windows', 'linux', 'macos')
        arch: CPU architecture ('x64', 'arm64')
    """

    os: str
    arch: str

    def platform_string(self) -> str:
        """
        Canonical platform string.

        Example:
            >>> PlatformInfo('linux', 'x64').platform_string()
            'linux-x64'
        """
        return f"{self.os}-{self.arch}"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self.is_windows else ""

    @property
    def archive_ext(self) -> str:
        """Preferred archive extension for upstream binary distributions."""
        return "zip" if self.is_windows else "tar.gz"

    @property
    def go_os(self) -> str:
        """GOOS-style name, also used by gh release assets."""
        return {"windows": "windows", "linux": "linux", "macos": "darwin"}[self.os]

    @property
    def go_arch(self) -> str:
        return {"x64": "amd64", "arm64": "arm64"}[self.arch]

    @property
    def adoptium_os(self) -> str:
        return {"windows": "windows", "linux": "linux", "macos": "mac"}[self.os]

    @property
    def adoptium_arch(self) -> str:
        return {"x64": "x64", "arm64": "aarch64"}[self.arch]

    @property
    def node_os(self) -> str:
        """Node/Electron style OS name ('win32', 'linux', 'darwin')."""
        return {"windows": "win32", "linux": "linux", "macos": "darwin"}[self.os]

    def __str__(self) -> str:
        return self.platform_string()


def _detect_os() -> str:
    system = platform.system().lower()
    if system == "windows":
        return "windows"
    if system == "darwin":
        return "macos"
    if system == "linux":
        return "linux"
    raise RuntimeError(f"Unsupported operating system: {platform.system()}")


def _detect_architecture() -> str:
    machine = platform.machine().lower()
    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    if machine in ("aarch64", "arm64", "armv8", "armv8l"):
        return "arm64"
    raise RuntimeError(f"Unsupported CPU architecture: {platform.machine()}")


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.

    Raises:
        RuntimeError: If the OS or architecture has no upstream builds
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


__all__ = ["PlatformInfo", "detect_platform"]
