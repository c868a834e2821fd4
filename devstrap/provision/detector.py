"""
Detection engine: current installation state of every catalog tool.

Resolution per tool:

1. Ledger fast path: a ledger record whose install path still exists is
   :class:`ManagedInstalled` with the recorded version; nothing is spawned.
2. Probe: every remaining tool runs its version probe concurrently, one
   worker per pending tool. Any probe failure, including a timeout, is
   folded into :class:`NotInstalled`.

Results are returned in catalog order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from devstrap.core.exceptions import CommandTimeoutError
from devstrap.core.ledger import Ledger
from devstrap.installers.base import (
    DetectionResult,
    InstallContext,
    Installer,
    ManagedInstalled,
    NotInstalled,
)

logger = logging.getLogger(__name__)


def fast_detect(installer: Installer, ledger: Ledger) -> Optional[DetectionResult]:
    """Ledger-only detection; None when the tool must be probed."""
    record = ledger.get(installer.id)
    if record is not None and record.install_path.exists():
        return ManagedInstalled(record.version)
    return None


def probe(installer: Installer, ctx: InstallContext) -> DetectionResult:
    """Run one tool's probe, never raising."""
    try:
        result = installer.detect_installed(ctx)
    except CommandTimeoutError as e:
        logger.warning(f"{installer.id}: detection timed out, treating as not installed ({e})")
        return NotInstalled()
    except Exception as e:
        logger.debug(f"{installer.id}: detection failed: {e}")
        return NotInstalled()
    # Ownership is only ever established by the ledger
    if result.is_managed:
        return NotInstalled()
    return result


def detect_one(installer: Installer, ctx: InstallContext, ledger: Ledger) -> DetectionResult:
    return fast_detect(installer, ledger) or probe(installer, ctx)


def detect_all(
    installers: Sequence[Installer], ctx: InstallContext, ledger: Ledger
) -> List[DetectionResult]:
    """
    Detect every tool, probing the ones without a usable ledger record in parallel.

    Args:
        installers: Catalog (order is preserved in the result)
        ctx: Install context (probe timeout, overlay)
        ledger: Loaded ledger

    Returns:
        One result per installer, in the same order
    """
    results: List[Optional[DetectionResult]] = [None] * len(installers)
    pending: Dict[int, Installer] = {}

    for idx, installer in enumerate(installers):
        fast = fast_detect(installer, ledger)
        if fast is not None:
            results[idx] = fast
        else:
            pending[idx] = installer

    if pending:
        logger.debug(f"Probing {len(pending)} tool(s) in parallel")
        with ThreadPoolExecutor(max_workers=len(pending)) as executor:
            futures = {
                idx: executor.submit(probe, installer, ctx)
                for idx, installer in pending.items()
            }
            for idx, future in futures.items():
                results[idx] = future.result()

    return [result if result is not None else NotInstalled() for result in results]


__all__ = ["fast_detect", "probe", "detect_one", "detect_all"]
