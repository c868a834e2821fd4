"""
Pytest configuration and shared fixtures for devstrap tests.
"""

import pytest
from pathlib import Path

from devstrap.core.config import DevstrapConfig
from devstrap.core.ledger import Ledger
from devstrap.core.platform import PlatformInfo
from tests.fixtures.fakes import InMemoryStore


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Isolated home and devstrap config directory."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))
    monkeypatch.setenv("DEVSTRAP_HOME", str(fake_home / ".devstrap"))

    return fake_home


@pytest.fixture
def config(tmp_path: Path) -> DevstrapConfig:
    """Configuration rooted in a temporary directory."""
    root = tmp_path / "devstrap"
    for sub in ("tools", "lang", "ide", "cache"):
        (root / sub).mkdir(parents=True)
    return DevstrapConfig(root_dir=root, path=tmp_path / "config.yaml")


@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory persistent environment."""
    return InMemoryStore()


@pytest.fixture
def ledger(config: DevstrapConfig) -> Ledger:
    """Empty ledger at the config's state path."""
    return Ledger.load(config.state_path)


@pytest.fixture
def linux_x64() -> PlatformInfo:
    return PlatformInfo("linux", "x64")


@pytest.fixture
def windows_x64() -> PlatformInfo:
    return PlatformInfo("windows", "x64")


@pytest.fixture
def macos_arm64() -> PlatformInfo:
    return PlatformInfo("macos", "arm64")
