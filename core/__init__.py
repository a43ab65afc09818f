"""
Core module for the coloring page printer service.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- print_system: PrintSystem / UsbTransport capability interfaces
- cups_client: PrintSystem implemented over the CUPS commands
- usb_transport: Raw device-node transport for USB printers

Only the exceptions are re-exported here; the other modules depend on
``models`` and are imported directly (``from core.cups_client import ...``).
"""

from .exceptions import (
    PrintServiceError,
    PrinterNotFound,
    PrinterUnusable,
    NoUsablePrinter,
    InvalidOptions,
    PrintSystemError,
    RegistryRefreshFailed,
    ResumeFailed,
    ImageGenerationError,
    SubmissionError,
    SubmissionTimeout,
    TransportWriteFailed,
    SpoolerRejected,
)

__all__ = [
    "PrintServiceError",
    "PrinterNotFound",
    "PrinterUnusable",
    "NoUsablePrinter",
    "InvalidOptions",
    "PrintSystemError",
    "RegistryRefreshFailed",
    "ResumeFailed",
    "ImageGenerationError",
    "SubmissionError",
    "SubmissionTimeout",
    "TransportWriteFailed",
    "SpoolerRejected",
]
