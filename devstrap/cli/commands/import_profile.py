"""
Import command implementation.

Named ``import_profile`` because ``import`` is a keyword.
"""

from devstrap.cli.utils import build_orchestrator, print_batch_report, safe_print
from devstrap.provision.profile import import_profile


def run(args) -> int:
    """
    Run the import command.

    Returns:
        Exit code (1 if any tool failed to install)
    """
    orchestrator = build_orchestrator(args)
    report = import_profile(orchestrator, args.file)
    if report.succeeded or report.failed or report.aborted:
        print_batch_report(report)
    else:
        safe_print("✓ Profile applied, nothing to install")
    return 0 if report.ok else 1
