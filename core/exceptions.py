"""
Custom exceptions for the coloring page printer service.

Exception Hierarchy:
    PrintServiceError (base)
    ├── PrinterNotFound          - Named printer is not installed (configuration)
    ├── PrinterUnusable          - Printer found but Paused/Error/Offline (configuration)
    ├── NoUsablePrinter          - Resolution exhausted every fallback (configuration)
    ├── InvalidOptions           - Bad copies or empty image (configuration)
    ├── RegistryRefreshFailed    - Enumeration failed, stale snapshot kept (runtime)
    ├── ResumeFailed             - Resume of a paused queue failed (runtime)
    ├── PrintSystemError         - A host print command failed (runtime)
    ├── ImageGenerationError     - Hosted image model returned nothing usable (runtime)
    └── SubmissionError          - Job submission failed (runtime)
        ├── SubmissionTimeout    - Submission exceeded its overall timeout
        ├── TransportWriteFailed - Raw USB write failed, may have partially printed
        └── SpoolerRejected      - The spooler refused the job

Usage:
    Configuration errors mean the operator should fix printer names or
    install a printer. Runtime errors mean the operator should check the
    hardware or try again. ``hardware_uncertain`` is only set when a USB write
    failed mid-stream and paper may already have come out.
"""

from typing import Optional, Dict, Any


CONFIGURATION = "configuration"
RUNTIME = "runtime"


class PrintServiceError(Exception):
    """
    Base exception for all printer service errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    category = RUNTIME
    http_status = 500
    hardware_uncertain = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error body returned by the HTTP layer."""
        return {
            "error": self.message,
            "kind": type(self).__name__,
            "category": self.category,
            "hardwareUncertain": self.hardware_uncertain,
            "details": self.details,
        }


# =============================================================================
# CONFIGURATION ERRORS - the operator should fix names or install a printer
# =============================================================================

class PrinterNotFound(PrintServiceError):
    """
    No printer with the requested name is known to the print subsystem.

    Typical causes:
    - Printer was renamed or removed in CUPS
    - Browser remembered a printer from another machine
    """

    category = CONFIGURATION
    http_status = 404

    def __init__(self, printer_name: str):
        message = f"Printer not found: {printer_name}"
        details = {
            "printer_name": printer_name,
            "resolution": "Pick a printer from the list or check the name in CUPS",
        }
        super().__init__(message, details)
        self.printer_name = printer_name


class PrinterUnusable(PrintServiceError):
    """Printer exists but is Paused, in Error, or Offline."""

    category = CONFIGURATION
    http_status = 409

    def __init__(self, printer_name: str, status: str):
        message = f"Printer {printer_name} is not accepting jobs (status: {status})"
        details = {
            "printer_name": printer_name,
            "status": status,
            "resolution": "Check the printer is powered on and connected, or pick another printer",
        }
        super().__init__(message, details)
        self.printer_name = printer_name
        self.status = status


class NoUsablePrinter(PrintServiceError):
    """
    Resolution found nothing to print to.

    No explicit or remembered printer was usable, there is no usable system
    default, and no usable USB printer is attached.
    """

    category = CONFIGURATION
    http_status = 503

    def __init__(self, message: str = "No usable printer is available"):
        details = {
            "resolution": "Connect a USB printer or set a default printer in CUPS",
        }
        super().__init__(message, details)


class InvalidOptions(PrintServiceError):
    """Print options were rejected before any device or spooler call."""

    category = CONFIGURATION
    http_status = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, details)
        self.field = field


# =============================================================================
# RUNTIME ERRORS - transient host problems, absorbed by the watcher
# =============================================================================

class PrintSystemError(PrintServiceError):
    """A host print subsystem command failed or could not be run."""

    def __init__(self, command: str, message: str):
        super().__init__(f"{command} failed: {message}", {"command": command})
        self.command = command


class RegistryRefreshFailed(PrintServiceError):
    """
    Printer enumeration failed.

    The registry keeps its previous snapshot, so printers listed before the
    failure are still reported. The watcher retries on its next tick.
    """

    http_status = 503

    def __init__(self, reason: str, consecutive_failures: int = 1):
        message = f"Printer refresh failed: {reason}"
        details = {
            "consecutive_failures": consecutive_failures,
            "resolution": "Check that CUPS is running; the last known printer list is still served",
        }
        super().__init__(message, details)
        self.reason = reason
        self.consecutive_failures = consecutive_failures


class ResumeFailed(PrintServiceError):
    """Resuming a paused queue failed. Retried on the next watcher tick."""

    def __init__(self, printer_name: str, reason: str):
        super().__init__(
            f"Could not resume {printer_name}: {reason}",
            {"printer_name": printer_name},
        )
        self.printer_name = printer_name
        self.reason = reason


class ImageGenerationError(PrintServiceError):
    """The hosted image model failed or returned no image."""

    http_status = 502


# =============================================================================
# SUBMISSION ERRORS - always surfaced to the caller
# =============================================================================

class SubmissionError(PrintServiceError):
    """
    Base class for job submission failures.

    Subclasses distinguish a stuck device from a refused job from a job that
    may have partially printed.
    """

    http_status = 502

    job = None
    """The failed PrintJob, attached by the job submitter."""

    def __init__(
        self,
        message: str,
        printer_name: Optional[str] = None,
        job_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if printer_name:
            error_details["printer_name"] = printer_name
        if job_id:
            error_details["job_id"] = job_id
        super().__init__(message, error_details)
        self.printer_name = printer_name
        self.job_id = job_id


class SubmissionTimeout(SubmissionError):
    """
    Submission did not finish within its overall timeout.

    A jammed device can block a raw write forever; the caller gets this
    instead of hanging.
    """

    http_status = 504

    def __init__(
        self,
        printer_name: str,
        timeout_seconds: float,
        job_id: Optional[str] = None
    ):
        message = f"Printing to {printer_name} timed out after {timeout_seconds:.1f}s"
        details = {
            "timeout_seconds": timeout_seconds,
            "resolution": "Check the printer for a paper jam or a lost connection",
        }
        super().__init__(message, printer_name, job_id, details)
        self.timeout_seconds = timeout_seconds


class TransportWriteFailed(SubmissionError):
    """
    Raw USB write failed.

    Not retried: resending a half-written stream to a physical device is
    unsafe without a device reset. When ``partial`` is set some bytes reached
    the printer, so a human should check what came out.
    """

    def __init__(
        self,
        printer_name: str,
        reason: str,
        bytes_written: int = 0,
        total_bytes: int = 0,
        job_id: Optional[str] = None
    ):
        partial = bytes_written > 0
        if partial:
            message = (
                f"USB write to {printer_name} failed after {bytes_written} of "
                f"{total_bytes} bytes: {reason}. The page may have partially printed"
            )
        else:
            message = f"USB write to {printer_name} failed: {reason}"
        details = {
            "bytes_written": bytes_written,
            "total_bytes": total_bytes,
            "partial": partial,
            "resolution": "Check the printer output and the USB cable before printing again",
        }
        super().__init__(message, printer_name, job_id, details)
        self.reason = reason
        self.bytes_written = bytes_written
        self.total_bytes = total_bytes
        self.partial = partial

    @property
    def hardware_uncertain(self) -> bool:
        return self.partial


class SpoolerRejected(SubmissionError):
    """The spooler refused the job (queue disabled, not accepting, full)."""

    def __init__(self, printer_name: str, reason: str, job_id: Optional[str] = None):
        super().__init__(
            f"Print queue {printer_name} rejected the job: {reason}",
            printer_name,
            job_id,
            {"resolution": "Check the print queue in CUPS"},
        )
        self.reason = reason
