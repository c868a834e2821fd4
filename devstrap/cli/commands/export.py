"""
Export command implementation.
"""

from devstrap.cli.utils import build_orchestrator, resolve_output_path, safe_print
from devstrap.provision.profile import DEFAULT_PROFILE_NAME, export_profile


def run(args) -> int:
    """
    Run the export command.

    Returns:
        Exit code (0 for success)
    """
    orchestrator = build_orchestrator(args)
    path = export_profile(orchestrator, resolve_output_path(args.file, DEFAULT_PROFILE_NAME))
    safe_print(f"✓ Profile written to {path}")
    return 0
