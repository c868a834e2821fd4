"""
Install orchestrator.

Drives one tool through its lifecycle with :meth:`Orchestrator.ensure`:

- Managed installs are only (re)configured.
- External installs are either kept (and configured) or taken over and
  reinstalled under the devstrap root, as the user chooses.
- Missing tools have their declared dependencies ensured first; the
  dependencies' environment is merged into an overlay that every later
  subprocess of this run inherits. The tool is then downloaded and
  installed, its environment actions are persisted, the ledger is updated
  and the tool is configured.

Uninstall reverses the same environment actions, recomputed from the
recorded install path.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from devstrap.core.config import DevstrapConfig
from devstrap.core.download import DownloadProgress
from devstrap.core.environment import EnvironmentOverlay, PersistentEnvironmentStore
from devstrap.core.exceptions import (
    DependencyError,
    DevstrapError,
    InstallError,
    UnknownToolError,
)
from devstrap.core.filesystem import safe_rmtree
from devstrap.core.ledger import Ledger
from devstrap.installers import all_installers
from devstrap.installers.base import (
    DetectionResult,
    InstallContext,
    Installer,
    Prompter,
)
from devstrap.provision.detector import detect_all, detect_one
from devstrap.provision.takeover import take_over

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """What :meth:`Orchestrator.ensure` did."""

    CONFIGURED = "configured"  # already managed
    KEPT_EXTERNAL = "kept_external"  # takeover declined
    INSTALLED = "installed"


@dataclass
class BatchReport:
    """
    Result of :meth:`Orchestrator.install_many`.

    Attributes:
        succeeded: Tool ids whose ensure completed
        failed: (tool id, error message) pairs
        aborted: Tool ids skipped after the user stopped the batch
    """

    succeeded: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    aborted: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.aborted


class Orchestrator:
    """
    Lifecycle driver for catalog tools.

    Args:
        config: Loaded configuration
        store: Persistent environment store
        ledger: Loaded ledger (saved after every change)
        installers: Tool catalog (defaults to :func:`all_installers`)
        prompter: Interactive prompter; None takes every default
        progress: Download progress callback handed to installers

    Example:
        >>> orchestrator = Orchestrator(config, get_default_store(), Ledger.load(config.state_path))
        >>> orchestrator.ensure("maven")
        <Outcome.INSTALLED: 'installed'>
    """

    def __init__(
        self,
        config: DevstrapConfig,
        store: PersistentEnvironmentStore,
        ledger: Ledger,
        installers: Optional[Sequence[Installer]] = None,
        prompter: Optional[Prompter] = None,
        progress: Optional[Callable[[DownloadProgress], None]] = None,
    ):
        self.config = config
        self.store = store
        self.ledger = ledger
        self.installers = list(installers) if installers is not None else all_installers()
        self.prompter = prompter
        self.progress = progress
        self.overlay = EnvironmentOverlay()
        self._by_id: Dict[str, Installer] = {i.id: i for i in self.installers}

    # -- lookup ----------------------------------------------------------------

    def context(self) -> InstallContext:
        """Install context carrying the overlay accumulated so far."""
        return InstallContext(
            self.config, overlay=self.overlay, prompter=self.prompter, progress=self.progress
        )

    def get(self, tool_id: str) -> Installer:
        try:
            return self._by_id[tool_id]
        except KeyError:
            raise UnknownToolError(tool_id, list(self._by_id)) from None

    def detect(self, tool_id: str) -> DetectionResult:
        return detect_one(self.get(tool_id), self.context(), self.ledger)

    def detect_all(self) -> List[Tuple[Installer, DetectionResult]]:
        results = detect_all(self.installers, self.context(), self.ledger)
        return list(zip(self.installers, results))

    def dependency_order(self, tool_id: str) -> List[str]:
        """
        Declared dependencies of ``tool_id`` in install order, the tool last.

        Raises:
            DependencyError: If the declarations form a cycle
            UnknownToolError: If a declared dependency is not in the catalog
        """
        order: List[str] = []

        def visit(current: str, stack: List[str]) -> None:
            if current in stack:
                cycle = " -> ".join(stack[stack.index(current):] + [current])
                raise DependencyError(f"Dependency cycle: {cycle}")
            if current in order:
                return
            for dep_id in self.get(current).requires:
                visit(dep_id, stack + [current])
            order.append(current)

        visit(tool_id, [])
        return order

    # -- ensure ----------------------------------------------------------------

    def ensure(self, tool_id: str) -> Outcome:
        """
        Bring ``tool_id`` to a configured state.

        Raises:
            UnknownToolError: If the tool is not in the catalog
            DependencyError: If a dependency is cyclic or declined
            InstallError: If any step fails
        """
        self.dependency_order(tool_id)
        return self._ensure(self.get(tool_id))

    def _ensure(self, installer: Installer) -> Outcome:
        tool_id = installer.id
        name = installer.info().name
        state = detect_one(installer, self.context(), self.ledger)

        try:
            if state.is_managed:
                logger.info(f"{name} {state.version} is already installed")
                installer.configure(self.context())
                return Outcome.CONFIGURED

            if state.is_external and not installer.takeover_supported:
                logger.info(
                    f"{name} {state.version} is managed by its vendor installer; keeping it"
                )
                installer.configure(self.context())
                return Outcome.KEPT_EXTERNAL

            if state.is_external:
                question = (
                    f"{name} {state.version} is already installed outside devstrap. "
                    "Replace it with a devstrap-managed install?"
                )
                if not self.context().confirm(question, default=False):
                    logger.info(f"Keeping the existing {name} installation")
                    installer.configure(self.context())
                    return Outcome.KEPT_EXTERNAL
                take_over(installer, self.context(), self.store)

            self._resolve_dependencies(installer)
            self._install(installer)
            return Outcome.INSTALLED
        except (InstallError, DependencyError, UnknownToolError):
            raise
        except (DevstrapError, OSError, ValueError) as e:
            raise InstallError(tool_id, str(e)) from e

    def _resolve_dependencies(self, installer: Installer) -> None:
        for dep_id in installer.requires:
            dependency = self.get(dep_id)
            state = detect_one(dependency, self.context(), self.ledger)

            if not state.is_installed:
                question = (
                    f"{installer.info().name} requires {dependency.info().name}. "
                    "Install it now?"
                )
                if not self.context().confirm(question, default=True):
                    raise DependencyError(
                        f"{installer.id} requires {dep_id}, which is not installed"
                    )
                self._ensure(dependency)

            record = self.ledger.get(dep_id)
            if record is not None:
                actions = dependency.env_actions(record.install_path, self.config)
                self.overlay = self.overlay.merge(EnvironmentOverlay.from_actions(actions))
                logger.debug(f"Using {dep_id} from {record.install_path}")

    def _install(self, installer: Installer) -> None:
        name = installer.info().name
        logger.info(f"Installing {name}...")

        result = installer.install(self.context())

        actions = installer.env_actions(result.install_path, self.config)
        self.store.apply_actions(actions)
        self.store.broadcast_change()
        self.overlay = self.overlay.merge(EnvironmentOverlay.from_actions(actions))

        self.ledger.mark_installed(installer.id, result.version, result.install_path)
        self.ledger.save()

        installer.configure(self.context())
        logger.info(f"{name} {result.version} installed to {result.install_path}")

    # -- batch -----------------------------------------------------------------

    def install_many(self, tool_ids: Iterable[str]) -> BatchReport:
        """
        Ensure several tools in order.

        A failure is recorded and the user is asked whether to continue with
        the remaining tools; nothing already completed is rolled back.
        """
        tool_ids = list(tool_ids)
        report = BatchReport()

        for idx, tool_id in enumerate(tool_ids):
            try:
                self.ensure(tool_id)
            except DevstrapError as e:
                logger.error(f"Failed to install {tool_id}: {e}")
                report.failed.append((tool_id, str(e)))
                remaining = tool_ids[idx + 1:]
                if remaining and not self.context().confirm(
                    "Continue with the remaining tools?", default=True
                ):
                    report.aborted.extend(remaining)
                    break
            else:
                report.succeeded.append(tool_id)

        return report

    # -- uninstall -------------------------------------------------------------

    def uninstall(self, tool_id: str) -> bool:
        """
        Remove a managed install.

        Returns:
            False (with a warning) if the tool is not managed by devstrap

        Raises:
            InstallError: If a removal step fails
        """
        installer = self.get(tool_id)
        record = self.ledger.get(tool_id)
        if record is None or not record.install_path.exists():
            logger.warning(f"{installer.info().name} is not installed by devstrap")
            return False

        logger.info(f"Uninstalling {installer.info().name}...")
        try:
            installer.pre_uninstall(self.context())
            self.store.revert_actions(installer.env_actions(record.install_path, self.config))
            for extra in installer.cleanup_paths(record.install_path, self.config):
                safe_rmtree(extra, require_prefix=self.config.root_dir)
            if not installer.vendor_located:
                safe_rmtree(record.install_path, require_prefix=self.config.root_dir)
        except (DevstrapError, OSError, ValueError) as e:
            raise InstallError(tool_id, f"uninstall failed: {e}") from e

        self.ledger.remove(tool_id)
        self.ledger.save()
        self.store.broadcast_change()
        logger.info(f"{installer.info().name} uninstalled")
        return True


__all__ = ["Outcome", "BatchReport", "Orchestrator"]
