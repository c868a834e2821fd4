"""
Latest-version queries for upstream release channels.

Every query is best effort: network failures, HTTP errors and unexpected
payloads return None (logged at debug level) so callers fall back to a
pinned or default version.
"""

import logging
from typing import Optional

from devstrap.core.download import fetch_json, fetch_text
from devstrap.core.exceptions import DownloadError

logger = logging.getLogger(__name__)

QUERY_TIMEOUT = 5

GITHUB_API = "https://api.github.com/repos"
GO_RELEASES_URL = "https://go.dev/dl/?mode=json"
GRADLE_CURRENT_URL = "https://services.gradle.org/versions/current"
PGSQL_VERSIONS_URL = "https://www.postgresql.org/versions.json"
PYCHARM_RELEASES_URL = (
    "https://data.services.jetbrains.com/products/releases?code=PCC&latest=true&type=release"
)
DEVSTRAP_REPO = "devstrap/devstrap"


def github_latest_tag(repo: str) -> Optional[str]:
    """``tag_name`` of the latest GitHub release of ``owner/repo``."""
    try:
        release = fetch_json(f"{GITHUB_API}/{repo}/releases/latest", timeout=QUERY_TIMEOUT)
        tag = release["tag_name"]
    except (DownloadError, KeyError, TypeError) as e:
        logger.debug(f"Latest release query for {repo} failed: {e}")
        return None
    return str(tag) if tag else None


def github_latest(repo: str) -> Optional[str]:
    """
    Latest release version of ``owner/repo`` with any ``v`` prefix removed.

    Example:
        >>> github_latest("cli/cli")
        '2.87.3'
    """
    tag = github_latest_tag(repo)
    return tag.lstrip("v") if tag else None


def gh_latest() -> Optional[str]:
    return github_latest("cli/cli")


def devstrap_latest() -> Optional[str]:
    return github_latest(DEVSTRAP_REPO)


def parse_git_for_windows_tag(tag: str) -> Optional[str]:
    """
    Convert a Git for Windows tag to its installer version.

    The ``.windows.N`` suffix becomes a fourth component, except for the
    first Windows build of a release which carries none.

    Example:
        >>> parse_git_for_windows_tag("v2.47.1.windows.2")
        '2.47.1.2'
        >>> parse_git_for_windows_tag("v2.53.0.windows.1")
        '2.53.0'
    """
    if not tag.startswith("v"):
        return None
    parts = tag[1:].split(".")
    if "windows" not in parts:
        return None
    idx = parts.index("windows")
    if idx == 0 or idx + 1 >= len(parts):
        return None
    base = ".".join(parts[:idx])
    win_patch = parts[idx + 1]
    if win_patch == "1":
        return base
    return f"{base}.{win_patch}"


def git_for_windows_latest() -> Optional[str]:
    tag = github_latest_tag("git-for-windows/git")
    return parse_git_for_windows_tag(tag) if tag else None


def go_latest() -> Optional[str]:
    """Newest stable Go release ('1.24.0')."""
    try:
        releases = fetch_json(GO_RELEASES_URL, timeout=QUERY_TIMEOUT)
        version = releases[0]["version"]
    except (DownloadError, KeyError, IndexError, TypeError) as e:
        logger.debug(f"Go version query failed: {e}")
        return None
    if not isinstance(version, str) or not version.startswith("go"):
        return None
    return version[2:]


def maven_latest() -> Optional[str]:
    """Latest Maven release; tags look like ``maven-3.9.9``."""
    tag = github_latest_tag("apache/maven")
    if not tag or not tag.startswith("maven-"):
        return None
    return tag[len("maven-"):]


def gradle_latest() -> Optional[str]:
    try:
        current = fetch_json(GRADLE_CURRENT_URL, timeout=QUERY_TIMEOUT)
        version = current["version"]
    except (DownloadError, KeyError, TypeError) as e:
        logger.debug(f"Gradle version query failed: {e}")
        return None
    return str(version) if version else None


def pgsql_latest() -> Optional[str]:
    """Latest minor release of the current PostgreSQL major ('17.8')."""
    try:
        releases = fetch_json(PGSQL_VERSIONS_URL, timeout=QUERY_TIMEOUT)
        for release in releases:
            if release.get("current") is True:
                return f"{release['major']}.{release['latestMinor']}"
    except (DownloadError, KeyError, TypeError, AttributeError) as e:
        logger.debug(f"PostgreSQL version query failed: {e}")
    return None


def pycharm_latest() -> Optional[str]:
    try:
        releases = fetch_json(PYCHARM_RELEASES_URL, timeout=QUERY_TIMEOUT)
        version = releases["PCC"][0]["version"]
    except (DownloadError, KeyError, IndexError, TypeError) as e:
        logger.debug(f"PyCharm version query failed: {e}")
        return None
    return str(version) if version else None


def text_latest(url: str) -> Optional[str]:
    """Version published as a plain text file (e.g. a release bucket's ``latest``)."""
    try:
        value = fetch_text(url, timeout=QUERY_TIMEOUT)
    except DownloadError as e:
        logger.debug(f"Version query {url} failed: {e}")
        return None
    return value or None


__all__ = [
    "github_latest_tag",
    "github_latest",
    "gh_latest",
    "devstrap_latest",
    "parse_git_for_windows_tag",
    "git_for_windows_latest",
    "go_latest",
    "maven_latest",
    "gradle_latest",
    "pgsql_latest",
    "pycharm_latest",
    "text_latest",
]
