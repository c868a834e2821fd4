"""
Update command implementation.

Updates devstrap itself.
"""

from devstrap import __version__
from devstrap.cli.utils import safe_print
from devstrap.provision.updater import SelfUpdater


def run(args) -> int:
    """
    Run the update command.

    Returns:
        Exit code (0 for success, including when already up to date)
    """
    updater = SelfUpdater()
    if updater.update():
        safe_print("✓ devstrap updated, restart it to use the new version")
    else:
        safe_print(f"✓ devstrap {__version__} is up to date")
    return 0
