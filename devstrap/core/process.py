"""
Subprocess execution for installers.

All external commands go through :func:`run_command` so that

- the environment overlay of freshly installed dependencies is applied,
- spawn failures, timeouts and non-zero exits become :class:`CommandError`
  carrying the exit code when there is one.

:func:`run_elevated` tries a command unprivileged first and escalates
(``Start-Process -Verb RunAs`` on Windows, ``sudo`` elsewhere) only when the
first attempt fails for lack of privilege.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional, Sequence, Union

from devstrap.core.environment import EnvironmentOverlay
from devstrap.core.exceptions import CommandError, CommandTimeoutError, ElevationError

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

# ERROR_ACCESS_DENIED, ERROR_ELEVATION_REQUIRED
_WINDOWS_ELEVATION_CODES = (5, 740)
_WINDOWS_PERMISSION_MARKERS = ("access is denied",)
_POSIX_PERMISSION_MARKERS = ("permission denied", "operation not permitted", "must be root")

Command = Sequence[Union[str, Path]]


def _describe(cmd: Command) -> str:
    return " ".join(str(part) for part in cmd)


def run_command(
    cmd: Command,
    overlay: Optional[EnvironmentOverlay] = None,
    timeout: Optional[float] = None,
    cwd: Optional[Path] = None,
    check: bool = True,
    capture: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run an external command.

    Args:
        cmd: Program and arguments
        overlay: Extra environment merged over ``os.environ``
        timeout: Seconds before the command is killed
        cwd: Working directory
        check: Raise on non-zero exit
        capture: Capture stdout/stderr as text (otherwise inherit the console)

    Returns:
        The completed process

    Raises:
        CommandError: If the command cannot be started, times out, or
            (with ``check``) exits non-zero
    """
    args = [str(part) for part in cmd]
    env = overlay.apply() if overlay is not None and not overlay.is_empty() else None
    logger.debug(f"Running: {_describe(args)}")

    try:
        result = subprocess.run(
            args,
            capture_output=capture,
            text=True,
            timeout=timeout,
            cwd=str(cwd) if cwd else None,
            env=env,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandTimeoutError(f"'{_describe(args)}' timed out after {timeout}s") from e
    except OSError as e:
        raise CommandError(f"Failed to start '{args[0]}': {e}") from e

    if check and result.returncode != 0:
        detail = (result.stderr or "").strip() if capture else ""
        message = f"'{_describe(args)}' failed"
        if detail:
            message = f"{message}: {detail.splitlines()[-1]}"
        raise CommandError(message, result.returncode)
    return result


def needs_elevation(error: CommandError) -> bool:
    """Whether a failed command looks like it lacked privileges."""
    if isinstance(error.__cause__, PermissionError):
        return True
    if IS_WINDOWS:
        # CreateProcess refuses manifests requiring admin before anything runs
        if getattr(error.__cause__, "winerror", None) in _WINDOWS_ELEVATION_CODES:
            return True
        if error.returncode in _WINDOWS_ELEVATION_CODES:
            return True
        markers = _WINDOWS_PERMISSION_MARKERS
    else:
        markers = _POSIX_PERMISSION_MARKERS
    text = str(error).lower()
    return any(marker in text for marker in markers)


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_elevated_command(cmd: Command) -> list:
    """Wrap ``cmd`` so it runs with administrator/root privileges."""
    args = [str(part) for part in cmd]
    if IS_WINDOWS:
        arg_list = ", ".join(_ps_quote(a) for a in args[1:])
        script = (
            "try { "
            f"$p = Start-Process -FilePath {_ps_quote(args[0])} "
            f"-ArgumentList @({arg_list}) -Verb RunAs -Wait -PassThru -WindowStyle Hidden; "
            "if ($p) { exit $p.ExitCode } else { exit 1 } "
            "} catch { exit 1223 }"
        )
        return ["powershell", "-NoProfile", "-Command", script]
    return ["sudo", *args]


def run_elevated(
    cmd: Command,
    overlay: Optional[EnvironmentOverlay] = None,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """
    Run ``cmd``, escalating privileges only if the plain attempt is denied.

    Raises:
        ElevationError: If escalation is refused or the elevated command fails
        CommandError: If the unprivileged attempt fails for another reason
    """
    try:
        return run_command(cmd, overlay=overlay, timeout=timeout)
    except CommandError as e:
        if not needs_elevation(e):
            raise
        logger.debug(f"'{_describe(cmd)}' needs elevated privileges: {e}")
    return run_as_admin(cmd, overlay=overlay, timeout=timeout)


def run_as_admin(
    cmd: Command,
    overlay: Optional[EnvironmentOverlay] = None,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """
    Run ``cmd`` with administrator/root privileges straight away.

    For commands that report success without doing anything when they lack
    privileges, where :func:`run_elevated` cannot tell that escalation is needed.

    Raises:
        ElevationError: If escalation is refused or the elevated command fails
    """
    logger.info(f"Requesting elevated privileges for {Path(str(cmd[0])).name}...")
    elevated = build_elevated_command(cmd)
    try:
        # Inherit the console so sudo can prompt for a password
        return run_command(elevated, overlay=overlay, timeout=timeout, capture=False)
    except CommandError as e:
        raise ElevationError(
            f"Elevated execution of '{_describe(cmd)}' was refused or failed",
            e.returncode,
        ) from e


__all__ = [
    "run_command",
    "run_elevated",
    "run_as_admin",
    "needs_elevation",
    "build_elevated_command",
]
