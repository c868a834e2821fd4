"""
Unit tests for the detection engine.
"""

import logging
import threading

from devstrap.core.exceptions import CommandTimeoutError
from devstrap.installers.base import (
    ExternalInstalled,
    InstallContext,
    ManagedInstalled,
    NotInstalled,
)
from devstrap.provision.detector import detect_all, detect_one, fast_detect, probe
from tests.fixtures.fakes import FakeInstaller


class HangingInstaller(FakeInstaller):
    def detect_installed(self, ctx):
        raise CommandTimeoutError(f"'{self.tool_id} --version' timed out after 10s")


class ClaimingInstaller(FakeInstaller):
    def detect_installed(self, ctx):
        return ManagedInstalled("9.9")


class TestFastPath:
    """Tests for ledger-based detection."""

    def test_existing_record(self, config, ledger):
        path = config.tools_dir / "foo"
        path.mkdir()
        ledger.mark_installed("foo", "1.2.3", path)

        assert fast_detect(FakeInstaller("foo"), ledger) == ManagedInstalled("1.2.3")

    def test_missing_path_falls_through(self, config, ledger):
        ledger.mark_installed("foo", "1.2.3", config.tools_dir / "gone")
        assert fast_detect(FakeInstaller("foo"), ledger) is None

    def test_fast_path_skips_probe(self, config, ledger):
        path = config.tools_dir / "foo"
        path.mkdir()
        ledger.mark_installed("foo", "1.2.3", path)

        result = detect_one(HangingInstaller("foo"), InstallContext(config), ledger)

        assert result == ManagedInstalled("1.2.3")


class TestProbe:
    """Tests for probing tools without a ledger record."""

    def test_external(self, config):
        result = probe(FakeInstaller("foo", external_version="2.0"), InstallContext(config))
        assert result == ExternalInstalled("2.0")

    def test_timeout_is_not_installed(self, config, caplog):
        with caplog.at_level(logging.WARNING):
            result = probe(HangingInstaller("foo"), InstallContext(config))

        assert result == NotInstalled()
        assert "timed out" in caplog.text

    def test_unexpected_error_is_not_installed(self, config):
        class Broken(FakeInstaller):
            def detect_installed(self, ctx):
                raise RuntimeError("boom")

        assert probe(Broken("foo"), InstallContext(config)) == NotInstalled()

    def test_probe_never_claims_ownership(self, config):
        assert probe(ClaimingInstaller("foo"), InstallContext(config)) == NotInstalled()


class TestDetectAll:
    """Tests for catalog-wide detection."""

    def test_order_preserved(self, config, ledger):
        managed_path = config.tools_dir / "b"
        managed_path.mkdir()
        ledger.mark_installed("b", "3.0", managed_path)
        installers = [
            FakeInstaller("a", external_version="1.0"),
            FakeInstaller("b"),
            HangingInstaller("c"),
            FakeInstaller("d"),
        ]

        results = detect_all(installers, InstallContext(config), ledger)

        assert results == [
            ExternalInstalled("1.0"),
            ManagedInstalled("3.0"),
            NotInstalled(),
            NotInstalled(),
        ]

    def test_probes_run_concurrently(self, config, ledger):
        barrier = threading.Barrier(3, timeout=5)

        class Rendezvous(FakeInstaller):
            def detect_installed(self, ctx):
                # Deadlocks (and times out) unless all three probes overlap
                barrier.wait()
                return ExternalInstalled(self.tool_id)

        installers = [Rendezvous(tool_id) for tool_id in ("x", "y", "z")]

        results = detect_all(installers, InstallContext(config), ledger)

        assert results == [ExternalInstalled("x"), ExternalInstalled("y"), ExternalInstalled("z")]

    def test_empty_catalog(self, config, ledger):
        assert detect_all([], InstallContext(config), ledger) == []
