"""
Capability interfaces for the host print subsystem and raw USB transport.

The registry, watcher and submitter only talk to the operating system
through these interfaces, so tests can run against in-memory fakes instead
of real CUPS queues and printers.

    PrintSystem   - enumerate(), resume(name), enqueue(name, image, options)
    UsbTransport  - open(printer), write(handle, data), close(handle)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from models.printer import Printer
from models.print_job import PrintOptions


class PrintSystem(ABC):
    """Host print subsystem (spooler)."""

    @abstractmethod
    def enumerate(self) -> List[Printer]:
        """
        List every printer the host knows about.

        Raises:
            PrintSystemError: If the host could not be queried
        """

    @abstractmethod
    def resume(self, printer_name: str) -> None:
        """
        Release a paused queue so held jobs proceed.

        Raises:
            PrintSystemError: If the host refused or the command failed
        """

    @abstractmethod
    def enqueue(
        self,
        printer_name: str,
        image: bytes,
        options: PrintOptions,
        title: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """
        Hand an image to the spooler.

        Returns:
            The spooler's job id

        Raises:
            SpoolerRejected: If the queue refused the job
            SubmissionTimeout: If the spooler did not answer in time
        """


class UsbTransport(ABC):
    """Raw byte transport to a directly attached USB printer."""

    @abstractmethod
    def open(self, printer: Printer) -> Any:
        """Open the device and return a handle. Raises OSError on failure."""

    @abstractmethod
    def write(self, handle: Any, data: bytes) -> int:
        """Write bytes and return how many were written. Raises OSError on failure."""

    @abstractmethod
    def close(self, handle: Any) -> None:
        """Close the handle."""

    def lock_key(self, printer: Printer) -> str:
        """Key identifying the physical device; jobs sharing a key never overlap."""
        return printer.name
