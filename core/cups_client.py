"""
CUPS command-line wrapper.

This module implements the PrintSystem interface on top of the standard CUPS
client commands, which exist on both Linux and macOS:

    lpstat -p      - queue state of every printer (idle / printing / disabled)
    lpstat -d      - the system default destination
    lpstat -v      - device URI of every printer (usb:// => USB printer)
    cupsenable     - resume a disabled (paused) queue
    lp             - enqueue a job, image supplied on stdin

THREAD SAFETY:
    - Every call spawns its own subprocess; no state is shared between calls
    - The watcher thread and request threads may use one instance concurrently

All commands run with LC_ALL=C so that lpstat output is parseable regardless
of the host's locale.

Usage:
    cups = CupsPrintSystem(command_timeout=10.0)

    printers = cups.enumerate()
    cups.resume("Brother_HL_L2350DW")
    job_id = cups.enqueue("Brother_HL_L2350DW", png_bytes, PrintOptions(copies=2))
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from .exceptions import PrintSystemError, SpoolerRejected, SubmissionTimeout
from .print_system import PrintSystem
from models.printer import Printer, PrinterStatus
from models.print_job import PrintOptions


# State reasons that mean the device cannot be reached
OFFLINE_HINTS = (
    "offline",
    "not connected",
    "not responding",
    "unplugged",
    "unable to locate printer",
    "waiting for printer to become available",
)

# State reasons that need a human at the printer
ERROR_HINTS = (
    "jam",
    "out of paper",
    "media-empty",
    "media empty",
    "door open",
    "cover open",
    "toner empty",
    "marker-supply-empty",
)

_REQUEST_ID = re.compile(r"request id is (\S+)")
_DEVICE_LINE = re.compile(r"^device for (?P<name>[^:\s]+):\s*(?P<uri>\S+)")
_DEFAULT_LINE = re.compile(r"^system default destination:\s*(?P<name>\S+)")
_NO_DESTINATIONS = "no destinations added"


def classify_state(state: str, reason: str) -> PrinterStatus:
    """
    Map an lpstat state word and its reason line to a PrinterStatus.

    Args:
        state: Text after the printer name, e.g. "is idle.  enabled since ..."
        reason: Indented reason lines that followed, possibly empty

    Returns:
        PrinterStatus for the printer
    """
    # A disabled queue holds every job whatever its reason says; CUPS keeps
    # the reason text after the device is fixed, so only a resume clears it
    if state.startswith("disabled"):
        return PrinterStatus.PAUSED

    reason_lower = reason.lower()
    if any(hint in reason_lower for hint in OFFLINE_HINTS):
        return PrinterStatus.OFFLINE
    if any(hint in reason_lower for hint in ERROR_HINTS):
        return PrinterStatus.ERROR

    if state.startswith("is idle"):
        return PrinterStatus.IDLE
    if state.startswith("now printing") or state.startswith("is printing"):
        return PrinterStatus.PRINTING
    return PrinterStatus.UNKNOWN


def parse_printer_states(output: str) -> List[Tuple[str, PrinterStatus, str]]:
    """
    Parse ``lpstat -p`` output.

    Each printer line may be followed by indented reason lines:

        printer HP is idle.  enabled since Sat 18 Oct 2026 10:00:00 AM
        printer Canon disabled since Sat 18 Oct 2026 10:02:11 AM -
        \tPaused

    Returns:
        List of (name, status, reason) in output order
    """
    entries: List[List[str]] = []

    for line in output.splitlines():
        if line.startswith("printer "):
            parts = line.split(None, 2)
            if len(parts) < 2:
                continue
            state = parts[2] if len(parts) > 2 else ""
            entries.append([parts[1], state, ""])
        elif line[:1].isspace() and entries and line.strip():
            # Reason line belongs to the printer above it
            current = entries[-1]
            current[2] = f"{current[2]} {line.strip()}".strip()

    return [(name, classify_state(state, reason), reason) for name, state, reason in entries]


def parse_default(output: str) -> Optional[str]:
    """Parse ``lpstat -d``. Returns None when there is no default."""
    for line in output.splitlines():
        match = _DEFAULT_LINE.match(line.strip())
        if match:
            return match.group("name")
    return None


def parse_device_uris(output: str) -> Dict[str, str]:
    """Parse ``lpstat -v`` into {printer name: device URI}."""
    uris: Dict[str, str] = {}
    for line in output.splitlines():
        match = _DEVICE_LINE.match(line.strip())
        if match:
            uris[match.group("name")] = match.group("uri")
    return uris


def is_usb_uri(uri: str) -> bool:
    """True for USB device URIs such as ``usb://HP/LaserJet?serial=1``."""
    return uri.lower().startswith("usb:")


class CupsPrintSystem(PrintSystem):
    """
    PrintSystem backed by the CUPS client commands.

    Attributes:
        command_timeout: Seconds before an lpstat/cupsenable call is abandoned
    """

    def __init__(
        self,
        command_timeout: float = 10.0,
        logger: Optional[logging.Logger] = None
    ):
        self.command_timeout = command_timeout
        self._logger = logger or logging.getLogger("coloring_printer.core.cups_client")
        self._env = {**os.environ, "LC_ALL": "C", "LANG": "C"}

    # -------------------------------------------------------------------------
    # PrintSystem
    # -------------------------------------------------------------------------

    def enumerate(self) -> List[Printer]:
        """
        List printers with status, default flag and USB classification.

        Raises:
            PrintSystemError: If any lpstat call fails
        """
        states = parse_printer_states(self._lpstat("-p"))
        default_name = parse_default(self._lpstat("-d"))
        uris = parse_device_uris(self._lpstat("-v"))

        printers = []
        for name, status, reason in states:
            uri = uris.get(name, "")
            printers.append(Printer(
                name=name,
                is_default=(name == default_name),
                is_usb=is_usb_uri(uri),
                status=status,
                device_uri=uri,
                status_message=reason,
            ))

        self._logger.debug(f"Enumerated {len(printers)} printers (default: {default_name})")
        return printers

    def resume(self, printer_name: str) -> None:
        """Re-enable a disabled queue with ``cupsenable``."""
        result = self._run(["cupsenable", printer_name], timeout=self.command_timeout)
        if result.returncode != 0:
            raise PrintSystemError("cupsenable", self._output(result) or f"exit code {result.returncode}")
        self._logger.info(f"Re-enabled print queue {printer_name}")

    def enqueue(
        self,
        printer_name: str,
        image: bytes,
        options: PrintOptions,
        title: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """
        Submit an image with ``lp``, reading the data from stdin.

        Returns:
            The CUPS request id (e.g. "HP-42")

        Raises:
            SpoolerRejected: If lp exits non-zero or cannot be run
            SubmissionTimeout: If lp does not return in time
        """
        cmd = ["lp", "-d", printer_name, "-n", str(options.copies)]
        if options.fit_to_page:
            cmd += ["-o", "fit-to-page"]
        if title:
            cmd += ["-t", title]

        timeout = timeout_seconds or self.command_timeout
        try:
            result = self._run(cmd, stdin=image, timeout=timeout)
        except PrintSystemError as e:
            if isinstance(e.__cause__, subprocess.TimeoutExpired):
                raise SubmissionTimeout(printer_name, timeout) from e
            raise SpoolerRejected(printer_name, e.message) from e

        if result.returncode != 0:
            raise SpoolerRejected(printer_name, self._output(result) or f"exit code {result.returncode}")

        stdout = result.stdout.decode("utf-8", errors="replace")
        match = _REQUEST_ID.search(stdout)
        if match:
            job_id = match.group(1)
        else:
            job_id = f"{printer_name}-{uuid.uuid4().hex[:8]}"
            self._logger.warning(f"lp gave no request id ({stdout.strip()!r}); using {job_id}")

        self._logger.info(f"Queued job {job_id} on {printer_name} ({options.copies} copies)")
        return job_id

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _lpstat(self, flag: str) -> str:
        result = self._run(["lpstat", flag], timeout=self.command_timeout)
        stdout = result.stdout.decode("utf-8", errors="replace")

        if result.returncode != 0:
            message = self._output(result)
            # CUPS with nothing installed is an empty list, not a failure
            if _NO_DESTINATIONS in message.lower():
                return ""
            raise PrintSystemError(f"lpstat {flag}", message or f"exit code {result.returncode}")

        return stdout

    def _run(
        self,
        args: Sequence[str],
        stdin: Optional[bytes] = None,
        timeout: Optional[float] = None
    ) -> subprocess.CompletedProcess:
        """
        Run a CUPS command and capture its output.

        Raises:
            PrintSystemError: If the command is missing or times out
        """
        command = " ".join(args[:2]) if args[0] == "lpstat" else args[0]
        self._logger.debug(f"Running {list(args)}")
        try:
            return subprocess.run(
                list(args),
                input=stdin,
                capture_output=True,
                timeout=timeout,
                env=self._env,
            )
        except FileNotFoundError as e:
            raise PrintSystemError(command, "command not found - is CUPS installed?") from e
        except subprocess.TimeoutExpired as e:
            raise PrintSystemError(command, f"no response after {timeout}s") from e

    @staticmethod
    def _output(result: subprocess.CompletedProcess) -> str:
        stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        stdout = (result.stdout or b"").decode("utf-8", errors="replace").strip()
        return stderr or stdout
