"""
Cross-platform file system utilities for devstrap.

This module provides platform-aware file operations including:
- Archive extraction (zip, tar.gz, tar.xz, tar.bz2) with traversal protection
- Single top-level directory unwrapping of extracted distributions
- Safe file operations (atomic writes, safe deletion, moves into place)
- Executable lookup across PATH
"""

import os
import shutil
import stat
import sys
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Optional, Union

from devstrap.core.exceptions import DevstrapError

IS_WINDOWS = os.name == "nt"


# ============================================================================
# Errors
# ============================================================================


class FilesystemError(DevstrapError):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/home/user/project/file.txt"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def _executable_names(name: str) -> list[str]:
    if not IS_WINDOWS:
        return [name]
    return [name] + [f"{name}{ext}" for ext in (".exe", ".cmd", ".bat")]


def find_all_executables(
    name: str, search_paths: Optional[list[Path]] = None
) -> list[Path]:
    """
    Find every occurrence of an executable on PATH, in PATH order.

    Args:
        name: Executable name without extension (e.g., 'java')
        search_paths: Optional list of directories to search

    Returns:
        List of matching executable paths (possibly empty)

    Example:
        >>> find_all_executables('python')
        [PosixPath('/usr/local/bin/python'), PosixPath('/usr/bin/python')]
    """
    if search_paths is None:
        path_env = os.environ.get("PATH", "")
        search_paths = [Path(p) for p in path_env.split(os.pathsep) if p]

    found = []
    for directory in search_paths:
        for candidate in _executable_names(name):
            exe_path = directory / candidate
            if exe_path.is_file() and (IS_WINDOWS or os.access(exe_path, os.X_OK)):
                if exe_path not in found:
                    found.append(exe_path)
                break
    return found


def find_executable(
    name: str, search_paths: Optional[list[Path]] = None
) -> Optional[Path]:
    """
    Find an executable in the system PATH or provided search paths.

    Returns:
        Path to the first match, or None if not found
    """
    matches = find_all_executables(name, search_paths)
    return matches[0] if matches else None


def make_executable(path: Union[str, Path]) -> None:
    """Add execute permission bits on POSIX (no-op on Windows)."""
    if IS_WINDOWS:
        return
    path = Path(path)
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()
    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_archive(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Extract an archive to a destination directory.

    Supported formats: .zip, .tar.gz/.tgz, .tar.xz, .tar.bz2

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        ArchiveExtractionError: If extraction fails
        InsecureArchiveError: If archive contains malicious paths
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)
    archive_name = archive_path.name.lower()

    try:
        if archive_name.endswith(".zip"):
            _extract_zip(archive_path, destination)
        elif archive_name.endswith((".tar.gz", ".tgz")):
            _extract_tar(archive_path, destination, "r:gz")
        elif archive_name.endswith(".tar.xz"):
            _extract_tar(archive_path, destination, "r:xz")
        elif archive_name.endswith((".tar.bz2", ".tbz2")):
            _extract_tar(archive_path, destination, "r:bz2")
        else:
            raise UnsupportedArchiveFormat(
                f"Unsupported archive format: {archive_path.name}. "
                "Supported: .zip, .tar.gz, .tar.xz, .tar.bz2"
            )
    except (InsecureArchiveError, UnsupportedArchiveFormat):
        raise
    except Exception as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(archive_path: Path, destination: Path) -> None:
    """Extract a ZIP archive, restoring POSIX permission bits when present."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.infolist()

        for member in members:
            _validate_archive_path(member.filename, destination)

        for member in members:
            extracted = Path(zf.extract(member, destination))
            mode = (member.external_attr >> 16) & 0o777
            if mode and not IS_WINDOWS and not member.is_dir():
                extracted.chmod(mode)


def _extract_tar(archive_path: Path, destination: Path, mode: str) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()

        for member in members:
            _validate_archive_path(member.name, destination)

        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="data")
        else:
            tar.extractall(destination)


def find_single_subdir(directory: Union[str, Path]) -> Optional[Path]:
    """
    Return the only subdirectory of ``directory``, if there is exactly one.

    Only directory entries at depth 1 are counted; loose files beside the
    directory do not prevent unwrapping.

    Example:
        >>> find_single_subdir(Path('extract'))  # extract/gradle-8.12.1/...
        PosixPath('extract/gradle-8.12.1')
    """
    directory = Path(directory)
    try:
        subdirs = [entry for entry in directory.iterdir() if entry.is_dir()]
    except OSError:
        return None
    if len(subdirs) == 1:
        return subdirs[0]
    return None


def extract_install_root(
    archive_path: Union[str, Path], work_dir: Union[str, Path]
) -> Path:
    """
    Extract an archive into a clean working directory and locate its root.

    Many distributions wrap their content in a single named folder
    (``go/``, ``jdk-21.0.6+7/``); when extraction yields exactly one
    top-level directory that directory is the install root, otherwise the
    extraction directory itself is.

    Args:
        archive_path: Downloaded archive
        work_dir: Scratch extraction directory (recreated)

    Returns:
        Path to the install root inside ``work_dir``
    """
    work_dir = Path(work_dir)
    if work_dir.exists():
        safe_rmtree(work_dir)
    extract_archive(archive_path, work_dir)
    return find_single_subdir(work_dir) or work_dir


def move_into_place(source: Union[str, Path], destination: Union[str, Path]) -> Path:
    """
    Replace ``destination`` with ``source`` (directory move).

    Any existing destination is removed first. Falls back to copy+delete
    when source and destination are on different filesystems.
    """
    source = Path(source)
    destination = Path(destination)

    if destination.exists():
        safe_rmtree(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    try:
        shutil.move(str(source), str(destination))
    except OSError as e:
        raise FilesystemError(
            f"Failed to move {source} to {destination}: {e}"
        ) from e
    return destination


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    This ensures the file is never in a partially-written state.
    If the write fails, the original file (if any) remains unchanged.

    Example:
        >>> atomic_write('state.json', '{"tools": {}}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/opt/devstrap/tools/gh', require_prefix='/opt/devstrap')
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    def handle_remove_readonly(func, failed_path, exc_info):
        """Error handler for read-only files."""
        if not os.access(failed_path, os.W_OK):
            os.chmod(failed_path, stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
            func(failed_path)
        else:
            raise exc_info[1]

    try:
        shutil.rmtree(path, onerror=handle_remove_readonly)
    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


__all__ = [
    "FilesystemError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "is_relative_to",
    "find_all_executables",
    "find_executable",
    "make_executable",
    "extract_archive",
    "find_single_subdir",
    "extract_install_root",
    "move_into_place",
    "atomic_write",
    "safe_rmtree",
]
