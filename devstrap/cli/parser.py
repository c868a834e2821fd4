"""
devstrap CLI argument parser.

This module implements the command-line interface for devstrap using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from devstrap import __version__
from devstrap.core.exceptions import DevstrapError

logger = logging.getLogger(__name__)


class CLI:
    """devstrap command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="devstrap",
            description="devstrap - developer workstation bootstrapper",
            epilog='Use "devstrap COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"devstrap {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--yes",
            "-y",
            action="store_true",
            help="Answer yes to every confirmation",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ~/.devstrap/config.yaml)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)
        self._add_uninstall_command(subparsers)
        self._add_list_command(subparsers)
        self._add_update_command(subparsers)
        self._add_self_uninstall_command(subparsers)
        self._add_config_command(subparsers)
        self._add_export_command(subparsers)
        self._add_import_command(subparsers)

        return parser

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Install tools",
            description="Install one or more tools (with their dependencies)",
        )
        parser.add_argument("tools", nargs="+", metavar="TOOL", help="Tool ids")

    def _add_uninstall_command(self, subparsers):
        """Add 'uninstall' subcommand."""
        parser = subparsers.add_parser(
            "uninstall",
            help="Uninstall a tool",
            description="Remove a devstrap-managed tool and its environment changes",
        )
        parser.add_argument("tool", metavar="TOOL", help="Tool id")

    def _add_list_command(self, subparsers):
        """Add 'list' subcommand."""
        parser = subparsers.add_parser(
            "list",
            help="List installed tools",
            description="Show installed tools (managed and external)",
        )
        parser.add_argument(
            "--all", action="store_true", help="Show the entire catalog"
        )

    def _add_update_command(self, subparsers):
        """Add 'update' subcommand."""
        subparsers.add_parser(
            "update",
            help="Update devstrap itself",
            description="Update devstrap to the latest release",
        )

    def _add_self_uninstall_command(self, subparsers):
        """Add 'self-uninstall' subcommand."""
        parser = subparsers.add_parser(
            "self-uninstall",
            help="Remove devstrap itself",
            description="Remove the devstrap binary and its PATH entry (installed tools are kept)",
        )
        parser.add_argument(
            "--purge",
            action="store_true",
            help="Also delete the configuration file and download cache",
        )

    def _add_config_command(self, subparsers):
        """Add 'config' subcommand."""
        parser = subparsers.add_parser(
            "config",
            help="View or change configuration",
            description="View or change devstrap configuration",
        )
        config_subparsers = parser.add_subparsers(
            dest="config_command", metavar="ACTION"
        )
        config_subparsers.add_parser("show", help="Print the configuration")
        get_parser = config_subparsers.add_parser("get", help="Print one value")
        get_parser.add_argument("key", help="Key (e.g. java.version, mirrors.go)")
        set_parser = config_subparsers.add_parser("set", help="Change one value")
        set_parser.add_argument("key", help="Key (e.g. java.version, mirrors.go)")
        set_parser.add_argument("value", help="New value")
        config_subparsers.add_parser("edit", help="Open the file in an editor")
        config_subparsers.add_parser("reset", help="Restore the defaults")

    def _add_export_command(self, subparsers):
        """Add 'export' subcommand."""
        parser = subparsers.add_parser(
            "export",
            help="Export an environment profile",
            description="Write installed tools and settings to a YAML profile",
        )
        parser.add_argument(
            "file",
            nargs="?",
            type=Path,
            help="Output file (default: devstrap-profile.yaml)",
        )

    def _add_import_command(self, subparsers):
        """Add 'import' subcommand."""
        parser = subparsers.add_parser(
            "import",
            help="Import an environment profile",
            description="Apply settings and install the tools listed in a profile",
        )
        parser.add_argument("file", type=Path, help="Profile file")

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except DevstrapError as e:
            logger.error(f"Error: {e}")
            return 1
        except Exception as e:
            logger.error(f"Unexpected error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(level=level, format=format_str, force=True)

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "install": "devstrap.cli.commands.install",
            "uninstall": "devstrap.cli.commands.uninstall",
            "list": "devstrap.cli.commands.list",
            "update": "devstrap.cli.commands.update",
            "self-uninstall": "devstrap.cli.commands.self_uninstall",
            "config": "devstrap.cli.commands.config",
            "export": "devstrap.cli.commands.export",
            "import": "devstrap.cli.commands.import_profile",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
