"""
Prompters answering the orchestrator's questions.

Classes:
    ConsolePrompter: Asks on the terminal
    AutoPrompter: Answers without asking (``--yes``)
"""

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ConsolePrompter:
    """
    Interactive prompter reading from stdin.

    End of input (or Ctrl-D) answers with the default.
    """

    def __init__(self, input_func: Callable[[str], str] = input):
        self._input = input_func

    def confirm(self, message: str, default: bool = False) -> bool:
        suffix = "[Y/n]" if default else "[y/N]"
        while True:
            try:
                response = self._input(f"{message} {suffix} ").strip().lower()
            except EOFError:
                print()
                return default
            if not response:
                return default
            if response in ("y", "yes"):
                return True
            if response in ("n", "no"):
                return False
            print("Please answer 'y' or 'n'.")

    def ask(self, message: str, default: Optional[str] = None) -> Optional[str]:
        prompt = f"{message} [{default}] " if default else f"{message} "
        try:
            response = self._input(prompt).strip()
        except EOFError:
            print()
            return default
        return response or default


class AutoPrompter:
    """Non-interactive prompter: accepts every confirmation, keeps every default."""

    def confirm(self, message: str, default: bool = False) -> bool:
        logger.info(f"{message} yes")
        return True

    def ask(self, message: str, default: Optional[str] = None) -> Optional[str]:
        return default


__all__ = ["ConsolePrompter", "AutoPrompter"]
