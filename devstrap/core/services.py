"""
Windows service control for tools that run as a background server.

Services are queried with ``sc query`` and started or stopped with
``net start`` / ``net stop``. Starting and stopping go through
:func:`devstrap.core.process.run_elevated`, so a UAC prompt is shown only
when the plain attempt is denied.
"""

import logging
from enum import Enum

from devstrap.core.exceptions import CommandError
from devstrap.core.process import run_command, run_elevated

logger = logging.getLogger(__name__)

QUERY_TIMEOUT = 10


class ServiceState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    NOT_FOUND = "not_found"


def query_service(name: str) -> ServiceState:
    """
    Current state of the service ``name``.

    Example:
        >>> query_service("PostgreSQL")
        <ServiceState.RUNNING: 'running'>
    """
    try:
        result = run_command(["sc", "query", name], timeout=QUERY_TIMEOUT, check=False)
    except CommandError as e:
        logger.debug(f"sc query {name} failed: {e}")
        return ServiceState.NOT_FOUND
    if result.returncode != 0:
        return ServiceState.NOT_FOUND
    if "RUNNING" in (result.stdout or ""):
        return ServiceState.RUNNING
    return ServiceState.STOPPED


def service_exists(name: str) -> bool:
    return query_service(name) is not ServiceState.NOT_FOUND


def start_service(name: str) -> None:
    """
    Start ``name`` unless it is already running.

    Raises:
        CommandError: If the service cannot be started
    """
    state = query_service(name)
    if state is ServiceState.RUNNING:
        logger.info(f"Service {name} is already running")
        return
    if state is ServiceState.NOT_FOUND:
        raise CommandError(f"Service {name} is not registered")
    logger.info(f"Starting service {name}...")
    run_elevated(["net", "start", name])


def stop_service(name: str) -> bool:
    """
    Stop ``name`` if it is running.

    Returns:
        True if a running service was stopped

    Raises:
        CommandError: If the service is running and cannot be stopped
    """
    if query_service(name) is not ServiceState.RUNNING:
        return False
    logger.info(f"Stopping service {name}...")
    run_elevated(["net", "stop", name])
    return True


__all__ = [
    "ServiceState",
    "query_service",
    "service_exists",
    "start_service",
    "stop_service",
]
