"""
In-memory stand-ins for the environment store and for tool installers.

``FakeInstaller`` installs by creating ``<tools_dir>/<id>/bin/tool.exe`` so
lifecycle tests never touch the network or spawn processes.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence

from devstrap.core.config import DevstrapConfig
from devstrap.core.environment import PersistentEnvironmentStore
from devstrap.core.exceptions import CommandError
from devstrap.installers.base import (
    AppendPath,
    DetectionResult,
    EnvAction,
    ExternalInstalled,
    InstallContext,
    Installer,
    InstallResult,
    NotInstalled,
    SetVar,
    ToolInfo,
)


class InMemoryStore(PersistentEnvironmentStore):
    """Persistent environment kept in a dict, with a Windows-style PATH."""

    path_var = "Path"
    path_sep = ";"

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})
        self.broadcasts = 0

    def get(self, name: str) -> Optional[str]:
        return self.values.get(name)

    def set(self, name: str, value: str) -> None:
        self.values[name] = value

    def delete(self, name: str) -> None:
        self.values.pop(name, None)

    def broadcast_change(self) -> None:
        self.broadcasts += 1

    @property
    def path_entries(self) -> List[str]:
        return [p for p in self.values.get(self.path_var, "").split(";") if p]


class FakeInstaller(Installer):
    """Installer that records calls and installs an empty tool tree."""

    def __init__(
        self,
        tool_id: str,
        requires: Sequence[str] = (),
        external_version: Optional[str] = None,
        home_var: Optional[str] = None,
        fail_install: bool = False,
        version: str = "1.0.0",
    ):
        self.tool_id = tool_id
        self.requires = tuple(requires)
        self.external_version = external_version
        self.home_var = home_var
        self.fail_install = fail_install
        self.version = version
        self.install_calls = 0
        self.configure_calls = 0
        self.pre_uninstall_calls = 0
        self.seen_overlays = []
        self.exported: Dict[str, str] = {}
        self.imported: List[Dict[str, str]] = []

    def info(self) -> ToolInfo:
        return ToolInfo(self.tool_id, self.tool_id.title(), f"Fake {self.tool_id}")

    def detect_installed(self, ctx: InstallContext) -> DetectionResult:
        if self.external_version:
            return ExternalInstalled(self.external_version)
        return NotInstalled()

    def resolve_download(self, config: DevstrapConfig, version: Optional[str] = None):
        return f"https://downloads.example.com/{self.tool_id}.zip", f"{self.tool_id}.zip"

    def install(self, ctx: InstallContext) -> InstallResult:
        self.install_calls += 1
        self.seen_overlays.append(ctx.overlay)
        if self.fail_install:
            raise CommandError(f"{self.tool_id} installer exited with code 1", 1)
        install_path = ctx.config.tools_dir / self.tool_id
        (install_path / "bin").mkdir(parents=True, exist_ok=True)
        (install_path / "bin" / "tool.exe").write_text("binary")
        # A reinstall after takeover no longer sees the external copy
        self.external_version = None
        return InstallResult(install_path, self.version)

    def env_actions(self, install_path: Path, config: DevstrapConfig) -> List[EnvAction]:
        actions: List[EnvAction] = [AppendPath(str(install_path / "bin"))]
        if self.home_var:
            actions.append(SetVar(self.home_var, str(install_path)))
        return actions

    def configure(self, ctx: InstallContext) -> None:
        self.configure_calls += 1

    def pre_uninstall(self, ctx: InstallContext) -> None:
        self.pre_uninstall_calls += 1

    def export_config(self, ctx: InstallContext) -> Dict[str, str]:
        return dict(self.exported)

    def import_config(self, ctx: InstallContext, entries: Dict[str, str]) -> None:
        self.imported.append(dict(entries))


class ScriptedPrompter:
    """Prompter answering confirmations from a list, recording the questions."""

    def __init__(self, answers: Sequence[bool] = (), default_answer: Optional[bool] = None):
        self.answers = list(answers)
        self.default_answer = default_answer
        self.questions: List[str] = []

    def confirm(self, message: str, default: bool = False) -> bool:
        self.questions.append(message)
        if self.answers:
            return self.answers.pop(0)
        return default if self.default_answer is None else self.default_answer

    def ask(self, message: str, default: Optional[str] = None) -> Optional[str]:
        self.questions.append(message)
        return default
