"""
Queue watcher with background polling thread.

Keeps spooler queues usable without anyone at the keyboard. CUPS disables
(pauses) a queue when a job fails, and a paused queue silently holds every
later job. The watcher notices and resumes it.

Per printer, on every tick:
    IDLE / PRINTING / UNKNOWN  -> nothing
    PAUSED                     -> one resume call; on failure, log and retry next tick
    ERROR / OFFLINE            -> nothing (needs a physical fix, visible via the API)

Thread Model:
    - One daemon thread named "QueueWatcher", started by start()
    - stop() sets the stop event and joins; an in-flight tick finishes first
    - tick() is public so tests can single-step without the thread
    - A tick lock prevents overlapping ticks, so a printer never gets two
      concurrent resume calls

The watcher and job submission never talk to each other. Both only go
through the PrinterRegistry.

Usage:
    watcher = QueueWatcher(registry, poll_interval_seconds=5.0)
    watcher.start()
    ...
    watcher.stop()
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Optional

from core.exceptions import RegistryRefreshFailed, ResumeFailed
from models.printer import PrinterStatus
from services.printer_registry import PrinterRegistry
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)


@dataclass
class TickReport:
    """What one watcher tick did."""

    refreshed: bool = True
    resumed: List[str] = field(default_factory=list)
    resume_failures: List[str] = field(default_factory=list)
    error: Optional[str] = None


class QueueWatcher:
    """
    Background service that polls printers and resumes paused queues.

    Attributes:
        poll_interval_seconds: Time between ticks (default 5)
        is_running: Whether the background thread is active
        tick_count: Number of completed ticks
    """

    def __init__(
        self,
        registry: PrinterRegistry,
        poll_interval_seconds: float = 5.0
    ):
        self._registry = registry
        self._poll_interval = poll_interval_seconds

        # Thread control
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._tick_lock = threading.Lock()
        self._is_running = False

        self._tick_count = 0
        self._last_report: Optional[TickReport] = None

        logger.info(f"QueueWatcher initialized (poll interval: {poll_interval_seconds}s)")

    @property
    def is_running(self) -> bool:
        """Whether the background polling thread is active."""
        return self._is_running

    @property
    def poll_interval_seconds(self) -> float:
        return self._poll_interval

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def last_report(self) -> Optional[TickReport]:
        return self._last_report

    def start(self) -> None:
        """
        Start the background polling thread.

        The thread ticks immediately, then every poll_interval_seconds until
        stop() is called. Safe to call multiple times.
        """
        if self._is_running:
            logger.warning("QueueWatcher already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            name="QueueWatcher",
            daemon=True  # Thread will exit when main process exits
        )
        self._is_running = True
        self._thread.start()

        logger.info("Queue watcher thread started")

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the background thread.

        No new tick starts after this is called; a tick already running is
        allowed to finish. Safe to call multiple times.
        """
        if not self._is_running:
            return

        logger.info("Stopping queue watcher thread...")
        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Queue watcher thread did not stop cleanly")

        self._is_running = False
        self._thread = None
        logger.info("Queue watcher thread stopped")

    def tick(self) -> TickReport:
        """
        Run one poll: refresh the registry, then resume paused printers.

        Refresh failures are logged and the previous snapshot is used.
        Resume failures are logged and retried on the next tick. Nothing
        here raises to the caller.

        Returns:
            TickReport describing the tick
        """
        with self._tick_lock:
            report = TickReport()

            try:
                self._registry.refresh()
            except RegistryRefreshFailed as e:
                report.refreshed = False
                report.error = e.message
                self._log_refresh_failure(e)

            for printer in self._registry.list():
                if printer.status is not PrinterStatus.PAUSED:
                    continue

                try:
                    self._resume(printer.name)
                except ResumeFailed as e:
                    report.resume_failures.append(printer.name)
                    logger.warning(f"{e.message}; will retry in {self._poll_interval}s")
                else:
                    report.resumed.append(printer.name)

            self._tick_count += 1
            self._last_report = report
            return report

    def _resume(self, printer_name: str) -> None:
        logger.info(f"Printer {printer_name} is paused, resuming queue")
        try:
            self._registry.print_system.resume(printer_name)
        except Exception as e:
            raise ResumeFailed(printer_name, str(e)) from e

    def _log_refresh_failure(self, error: RegistryRefreshFailed) -> None:
        failures = error.consecutive_failures

        # Log with increasing severity based on consecutive failures
        if failures == 1:
            logger.warning(f"Printer refresh failed: {error.reason}")
        elif failures <= 3:
            logger.error(f"Printer refresh failed ({failures} consecutive): {error.reason}")
        elif failures % 5 == 0:
            # Only log every 5th failure after that to avoid spam
            logger.error(f"Printer refresh still failing ({failures} consecutive): {error.reason}")

    def _poll_loop(self) -> None:
        set_thread_name("QueueWatcher")
        logger.info("Queue watcher loop starting")

        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                # A crashed tick never ends the loop
                logger.error(f"Queue watcher tick crashed: {e}", exc_info=True)

            if self._stop_event.wait(timeout=self._poll_interval):
                break

        logger.info("Queue watcher loop exiting")
