"""
Raw USB printer transport.

Directly attached USB printers show up as character devices (``/dev/usb/lp0``
on Linux). Writing bytes to the device node sends them straight to the
printer with no spooler in between, so nothing else serializes access:
the job submitter holds a per-device lock around every open/write/close.

Device selection:
    1. USB_DEVICE_MAP entry for the printer name ("Zebra=/dev/usb/lp1")
    2. USB_DEFAULT_DEVICE (default /dev/usb/lp0)

Usage:
    transport = DeviceFileTransport({"Zebra": "/dev/usb/lp1"})
    handle = transport.open(printer)
    try:
        transport.write(handle, data)
    finally:
        transport.close(handle)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, Dict, Optional

from .print_system import UsbTransport
from models.printer import Printer


DEFAULT_DEVICE = "/dev/usb/lp0"


def parse_device_map(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse a ``name=/dev/path`` list separated by commas.

    Malformed entries are skipped.

    Example:
        >>> parse_device_map("Zebra=/dev/usb/lp1, Brother=/dev/usb/lp0")
        {'Zebra': '/dev/usb/lp1', 'Brother': '/dev/usb/lp0'}
    """
    mapping: Dict[str, str] = {}
    if not raw:
        return mapping

    for entry in raw.split(","):
        name, sep, path = entry.partition("=")
        if sep and name.strip() and path.strip():
            mapping[name.strip()] = path.strip()
    return mapping


class DeviceFileTransport(UsbTransport):
    """
    UsbTransport writing to printer device nodes.

    Attributes:
        device_map: Printer name -> device path overrides
        default_device: Device used for printers without an override
    """

    def __init__(
        self,
        device_map: Optional[Dict[str, str]] = None,
        default_device: str = DEFAULT_DEVICE,
        logger: Optional[logging.Logger] = None
    ):
        self.device_map = dict(device_map or {})
        self.default_device = default_device
        self._logger = logger or logging.getLogger("coloring_printer.core.usb_transport")

    def device_path(self, printer: Printer) -> Path:
        """Device node used for this printer."""
        return Path(self.device_map.get(printer.name, self.default_device))

    def lock_key(self, printer: Printer) -> str:
        # Two queue names may point at the same device node
        return str(self.device_path(printer))

    def open(self, printer: Printer) -> BinaryIO:
        path = self.device_path(printer)
        try:
            # Unbuffered so write() reports what actually reached the device
            handle = open(path, "wb", buffering=0)
        except OSError as exc:
            message = f"cannot open {path}: {exc.strerror or exc}"

            # Help debug by listing available usb printers
            usb_dir = Path("/dev/usb")
            if usb_dir.exists():
                message += f" (available devices in /dev/usb: {sorted(os.listdir(usb_dir))})"
            else:
                message += " (/dev/usb does not exist - is the printer connected?)"

            raise OSError(exc.errno, message) from exc

        self._logger.debug(f"Opened {path} for {printer.name}")
        return handle

    def write(self, handle: BinaryIO, data: bytes) -> int:
        written = handle.write(data)
        return len(data) if written is None else written

    def close(self, handle: BinaryIO) -> None:
        handle.close()
