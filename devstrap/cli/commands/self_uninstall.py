"""
Self-uninstall command implementation.

Removes the devstrap binary; tools it installed stay in place.
"""

from devstrap.cli.utils import build_prompter, load_cli_config, safe_print
from devstrap.core.environment import get_default_store
from devstrap.provision.updater import SelfUninstaller


def run(args) -> int:
    """
    Run the self-uninstall command.

    Returns:
        Exit code (0 for success, including when cancelled)
    """
    prompter = build_prompter(args)
    if not prompter.confirm("Uninstall devstrap from this machine?", default=False):
        safe_print("Cancelled")
        return 0

    remove_data = getattr(args, "purge", False)
    if not remove_data and not getattr(args, "yes", False):
        remove_data = prompter.confirm(
            "Also delete the configuration file and download cache?", default=False
        )

    uninstaller = SelfUninstaller(get_default_store(), load_cli_config(args))
    uninstaller.uninstall(remove_data=remove_data)
    safe_print("✓ devstrap uninstalled, open a new terminal for the PATH change to apply")
    return 0
