"""
List command implementation.

Shows managed and external tools; ``--all`` shows the whole catalog.
"""

import logging

from devstrap.cli.utils import build_orchestrator, safe_print

logger = logging.getLogger(__name__)


def format_row(tool_id: str, name: str, status: str, version: str, detail: str = "") -> str:
    row = f"  {tool_id:<12} {name:<16} {status:<10} {version:<14}"
    return f"{row} {detail}".rstrip()


def run(args) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments with ``all``

    Returns:
        Exit code (0 for success)
    """
    orchestrator = build_orchestrator(args)
    results = orchestrator.detect_all()

    managed = 0
    external = 0
    rows = []
    for installer, state in results:
        info = installer.info()
        if state.is_managed:
            managed += 1
            record = orchestrator.ledger.get(info.id)
            installed_at = f"installed {record.installed_at}" if record else ""
            rows.append(format_row(info.id, info.name, "managed", state.version, installed_at))
        elif state.is_external:
            external += 1
            rows.append(format_row(info.id, info.name, "external", state.version))
        elif args.all:
            rows.append(format_row(info.id, info.name, "-", "-", info.description))

    if not rows:
        safe_print("No tools installed. Use 'devstrap list --all' to see the catalog.")
        return 0

    safe_print(format_row("TOOL", "NAME", "STATUS", "VERSION"))
    for row in rows:
        safe_print(row)
    safe_print(f"\n{managed} managed, {external} external")
    return 0
