"""
Artifact integrity verification.

Checksum verification is a per-tool opt-in: installers whose upstream
publishes a manifest of digests return the expected value from
``Installer.checksum_for`` and the orchestrator verifies the cached artifact
with :func:`verify_checksum` before it is installed.
"""

import hashlib
import logging
import secrets
from pathlib import Path
from typing import Union

from devstrap.core.download import fetch_json
from devstrap.core.exceptions import ChecksumError, DownloadError

logger = logging.getLogger(__name__)


def compute_file_hash(file_path: Union[str, Path], algorithm: str = "sha256") -> str:
    """
    Compute cryptographic hash of file.

    Args:
        file_path: Path to file
        algorithm: Hash algorithm ('sha256', 'sha512')

    Returns:
        Lowercase hex digest

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If algorithm is not supported
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    algorithm = algorithm.lower()
    if algorithm == "sha256":
        hasher = hashlib.sha256()
    elif algorithm == "sha512":
        hasher = hashlib.sha512()
    else:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    with open(file_path, "rb") as f:
        while chunk := f.read(8192):
            hasher.update(chunk)

    return hasher.hexdigest()


def verify_checksum(
    file_path: Union[str, Path], expected: str, algorithm: str = "sha256"
) -> None:
    """
    Verify a downloaded artifact, deleting it on mismatch.

    Args:
        file_path: Artifact to check
        expected: Expected hex digest
        algorithm: Hash algorithm

    Raises:
        ChecksumError: If the digest does not match (the file is removed)
    """
    file_path = Path(file_path)
    expected = expected.strip().lower()
    actual = compute_file_hash(file_path, algorithm)

    if not secrets.compare_digest(actual, expected):
        try:
            file_path.unlink()
        except OSError as e:
            logger.warning(f"Could not delete corrupted file {file_path}: {e}")
        raise ChecksumError(file_path, expected, actual)

    logger.info(f"Checksum verified: {file_path.name}")


def fetch_manifest_checksum(manifest_url: str, platform_key: str) -> str:
    """
    Read the SHA256 for one platform from a release manifest.

    The manifest is a JSON object of the form
    ``{"<platform>": {"sha256": "<hex>"}, ...}`` (optionally nested under a
    top-level ``"platforms"`` key).

    Raises:
        DownloadError: If the manifest cannot be fetched or has no entry
    """
    manifest = fetch_json(manifest_url)
    if isinstance(manifest, dict) and isinstance(manifest.get("platforms"), dict):
        manifest = manifest["platforms"]

    entry = manifest.get(platform_key) if isinstance(manifest, dict) else None
    checksum = None
    if isinstance(entry, dict):
        checksum = entry.get("checksum") or entry.get("sha256")
    if not checksum:
        raise DownloadError(
            f"Manifest {manifest_url} has no SHA256 for platform '{platform_key}'"
        )
    return str(checksum)


__all__ = ["compute_file_hash", "verify_checksum", "fetch_manifest_checksum"]
