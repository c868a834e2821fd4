"""
Shared utilities for CLI commands.
"""

import logging
from pathlib import Path
from typing import Optional

from devstrap.cli.prompts import AutoPrompter, ConsolePrompter
from devstrap.core.config import DevstrapConfig, load_config
from devstrap.core.download import DownloadProgress
from devstrap.core.environment import get_default_store
from devstrap.core.ledger import Ledger
from devstrap.provision.orchestrator import BatchReport, Orchestrator

logger = logging.getLogger(__name__)


# ============================================================================
# Output
# ============================================================================


def safe_print(message: str, file=None, end: str = "\n"):
    """
    Print message with safe encoding handling for Windows console.

    Falls back to ASCII markers if the symbols can't be encoded.

    Args:
        message: Message to print
        file: Output file (default: stdout)
        end: Line terminator
    """
    try:
        print(message, file=file, end=end, flush=True)
    except UnicodeEncodeError:
        safe_message = (
            message.replace("✓", "[OK]")
            .replace("✗", "[FAILED]")
            .replace("⚠", "WARNING:")
            .replace("→", "->")
            .replace("•", "*")
        )
        print(safe_message.encode("ascii", "replace").decode("ascii"), file=file, end=end)


def print_download_progress(progress: DownloadProgress) -> None:
    """Redraw the current console line with download progress."""
    safe_print(f"\r  {progress}", end="")
    if progress.total_bytes and progress.bytes_downloaded >= progress.total_bytes:
        safe_print("")


def print_batch_report(report: BatchReport) -> None:
    """Summarize a multi-tool install."""
    total = len(report.succeeded) + len(report.failed) + len(report.aborted)
    safe_print(f"\n{len(report.succeeded)}/{total} tools ready")
    for tool_id, error in report.failed:
        safe_print(f"  ✗ {tool_id}: {error}")
    if report.aborted:
        safe_print(f"  Skipped: {', '.join(report.aborted)}")


# ============================================================================
# Orchestrator construction
# ============================================================================


def load_cli_config(args) -> DevstrapConfig:
    """Configuration from ``--config`` or the default location."""
    return load_config(getattr(args, "config", None))


def build_prompter(args):
    """``--yes`` selects the non-interactive prompter; otherwise the console is used."""
    return AutoPrompter() if getattr(args, "yes", False) else ConsolePrompter()


def build_orchestrator(args, config: Optional[DevstrapConfig] = None) -> Orchestrator:
    """
    Orchestrator for a CLI invocation.

    Download progress is drawn unless ``--quiet`` is given.
    """
    config = config or load_cli_config(args)
    return Orchestrator(
        config,
        get_default_store(),
        Ledger.load(config.state_path),
        prompter=build_prompter(args),
        progress=None if getattr(args, "quiet", False) else print_download_progress,
    )


def resolve_output_path(path: Optional[Path], default_name: str) -> Path:
    return Path(path) if path else Path.cwd() / default_name
