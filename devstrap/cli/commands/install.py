"""
Install command implementation.

Installs one tool, or several as a batch that can continue past failures.
"""

import logging

from devstrap.cli.utils import build_orchestrator, print_batch_report, safe_print
from devstrap.provision.orchestrator import Outcome

logger = logging.getLogger(__name__)

_OUTCOME_MESSAGES = {
    Outcome.INSTALLED: "installed",
    Outcome.CONFIGURED: "already installed",
    Outcome.KEPT_EXTERNAL: "kept existing installation",
}


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments with ``tools``

    Returns:
        Exit code (0 when every tool succeeded)
    """
    orchestrator = build_orchestrator(args)

    if len(args.tools) == 1:
        tool_id = args.tools[0]
        outcome = orchestrator.ensure(tool_id)
        safe_print(f"✓ {tool_id}: {_OUTCOME_MESSAGES[outcome]}")
        return 0

    report = orchestrator.install_many(args.tools)
    print_batch_report(report)
    return 0 if report.ok else 1
