"""
Printer registry: the single source of truth for printer state.

The registry asks the print subsystem for its printers and keeps the result
as an immutable PrinterSnapshot.

Thread Safety:
    - refresh() builds a NEW snapshot and swaps the reference atomically
    - Readers (routes, target resolution, the watcher) read the current
      reference without locks and always see one complete snapshot
    - Concurrent refresh() calls are serialized by a lock so an older
      enumeration can never overwrite a newer one

Failure Policy:
    A failed refresh KEEPS the previous snapshot. Clearing it would tell
    clients there are no printers when CUPS merely hiccupped.

Usage:
    registry = PrinterRegistry(CupsPrintSystem())
    registry.refresh()

    for printer in registry.list():
        ...
    printer = registry.get("HP_LaserJet")  # raises PrinterNotFound
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import List, Tuple

from core.exceptions import PrinterNotFound, RegistryRefreshFailed
from core.print_system import PrintSystem
from models.printer import Printer, PrinterSnapshot
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class PrinterRegistry:
    """
    Holds the current printer snapshot and refreshes it on demand.

    The registry never refreshes on its own; the QueueWatcher drives
    periodic refreshes and routes may force one.

    Attributes:
        consecutive_failures: Failed refreshes since the last success
    """

    def __init__(self, print_system: PrintSystem):
        self._print_system = print_system

        # Current snapshot (atomic reference)
        # Start with empty snapshot so list() never returns None
        self._snapshot: PrinterSnapshot = PrinterSnapshot.create_empty()
        self._refresh_lock = threading.Lock()
        self._consecutive_failures = 0

    @property
    def print_system(self) -> PrintSystem:
        return self._print_system

    @property
    def snapshot(self) -> PrinterSnapshot:
        """Current snapshot (never None, possibly empty or stale)."""
        return self._snapshot

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def refresh(self) -> PrinterSnapshot:
        """
        Enumerate printers and replace the snapshot.

        Returns:
            The new snapshot

        Raises:
            RegistryRefreshFailed: If enumeration failed. The previous
                snapshot is still current.
        """
        with self._refresh_lock:
            try:
                printers = self._print_system.enumerate()
            except Exception as e:
                self._consecutive_failures += 1
                raise RegistryRefreshFailed(str(e), self._consecutive_failures) from e

            new_snapshot = PrinterSnapshot.from_printers(_single_default(printers))
            self._snapshot = new_snapshot

            if self._consecutive_failures > 0:
                logger.info(
                    f"Printer refresh recovered after {self._consecutive_failures} failures"
                )
            self._consecutive_failures = 0

        logger.debug(f"Printers refreshed: {len(new_snapshot)} printers")
        return new_snapshot

    def list(self) -> Tuple[Printer, ...]:
        """All printers in the current snapshot."""
        return self._snapshot.printers

    def get(self, name: str) -> Printer:
        """
        Look up a printer by name in the current snapshot.

        Raises:
            PrinterNotFound: If no printer has that name
        """
        printer = self._snapshot.get(name)
        if printer is None:
            raise PrinterNotFound(name)
        return printer


def _single_default(printers: List[Printer]) -> List[Printer]:
    """Keep at most one default printer, the first one reported."""
    seen_default = False
    result = []
    for printer in printers:
        if printer.is_default:
            if seen_default:
                logger.warning(f"Host reported more than one default printer; ignoring {printer.name}")
                printer = replace(printer, is_default=False)
            seen_default = True
        result.append(printer)
    return result
