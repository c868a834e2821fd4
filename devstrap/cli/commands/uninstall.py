"""
Uninstall command implementation.
"""

from devstrap.cli.utils import build_orchestrator, safe_print


def run(args) -> int:
    """
    Run the uninstall command.

    Returns:
        Exit code (1 if the tool is not managed by devstrap)
    """
    orchestrator = build_orchestrator(args)
    if not orchestrator.uninstall(args.tool):
        return 1
    safe_print(f"✓ {args.tool} uninstalled")
    return 0
