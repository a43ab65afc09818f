"""
Print job data models.

These models represent a print request from the moment its options are
validated until the spooler or USB device has taken it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional

from core.exceptions import InvalidOptions
from models.printer import Printer


class JobStatus(Enum):
    """
    Status of a print job.

    Lifecycle:
        SUBMITTED -> (QUEUED | PRINTING | COMPLETED | FAILED)

    Direct-USB jobs skip QUEUED.
    """

    SUBMITTED = "submitted"
    """Job accepted for submission, nothing sent yet."""

    QUEUED = "queued"
    """Spooler accepted the job; it will print when the queue reaches it."""

    PRINTING = "printing"
    """Job is being streamed to the device."""

    COMPLETED = "completed"
    """All bytes reached the device."""

    FAILED = "failed"
    """Submission failed."""


class ResolutionRule(Enum):
    """Which step of target resolution picked the printer."""

    EXPLICIT = "explicit"
    LAST_SELECTED = "last_selected"
    DEFAULT = "default"
    USB_FALLBACK = "usb_fallback"


@dataclass(frozen=True)
class ResolvedTarget:
    """A concrete printer chosen by target resolution."""

    printer: Printer
    rule: ResolutionRule

    @property
    def name(self) -> str:
        return self.printer.name

    @property
    def is_usb(self) -> bool:
        return self.printer.is_usb


@dataclass(frozen=True)
class PrintOptions:
    """Formatting options passed through to the spooler or device."""

    copies: int = 1
    fit_to_page: bool = True

    def validate(self) -> "PrintOptions":
        """
        Check the options before any device interaction.

        Returns:
            self, for chaining

        Raises:
            InvalidOptions: If copies is not a positive integer
        """
        # bool is an int subclass; True must not mean one copy
        if isinstance(self.copies, bool) or not isinstance(self.copies, int):
            raise InvalidOptions(
                f"copies must be a whole number, got {self.copies!r}", field="copies"
            )
        if self.copies <= 0:
            raise InvalidOptions(
                f"copies must be at least 1, got {self.copies}", field="copies"
            )
        return self


@dataclass
class PrintJob:
    """
    One submission of an image to one printer.

    Created by the job submitter; lives in memory only.
    """

    id: str
    """Spooler request id, or a synthesized id for direct-USB jobs."""

    printer_name: str
    copies: int = 1
    fit_to_page: bool = True
    via_usb: bool = False

    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: JobStatus = JobStatus.SUBMITTED

    bytes_written: int = 0
    """Bytes handed to the USB device (0 for spooler jobs)."""

    error: Optional[str] = None

    def mark_failed(self, error: str) -> None:
        self.status = JobStatus.FAILED
        self.error = error

    @property
    def is_final(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "jobId": self.id,
            "printerName": self.printer_name,
            "copies": self.copies,
            "fitToPage": self.fit_to_page,
            "viaUSB": self.via_usb,
            "submittedAt": self.submitted_at.isoformat(),
            "status": self.status.value,
            "bytesWritten": self.bytes_written,
            "error": self.error,
        }
