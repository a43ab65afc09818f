"""
Shared fixtures and in-memory fakes for the printer lifecycle tests.

FakePrintSystem and FakeTransport stand in for CUPS and a USB device node so
the registry, watcher and submitter can be tested without hardware.
"""

import threading
import time
from dataclasses import replace

import pytest

from core.print_system import PrintSystem, UsbTransport
from models.printer import Printer, PrinterSnapshot, PrinterStatus


def make_printer(name, status=PrinterStatus.IDLE, is_default=False, is_usb=False):
    """Build a Printer with the fields the tests care about."""
    return Printer(
        name=name,
        is_default=is_default,
        is_usb=is_usb,
        status=status,
        device_uri=f"usb://Test/{name}" if is_usb else f"ipp://printers.local/{name}",
    )


def make_snapshot(*printers):
    return PrinterSnapshot.from_printers(printers)


class FakePrintSystem(PrintSystem):
    """PrintSystem backed by a list of printers."""

    def __init__(self, printers=None):
        self.printers = list(printers or [])
        self.enumerate_error = None
        self.enumerate_calls = 0
        self.resume_calls = []
        self.resume_errors = {}
        self.resume_clears_pause = False
        self.resume_gate = None
        self.max_concurrent_resumes = {}
        self._active_resumes = {}
        self._resume_lock = threading.Lock()
        self.enqueue_calls = []
        self.enqueue_error = None
        self.enqueue_delay = 0.0

    def enumerate(self):
        self.enumerate_calls += 1
        if self.enumerate_error is not None:
            raise self.enumerate_error
        return list(self.printers)

    def resume(self, printer_name):
        with self._resume_lock:
            self.resume_calls.append(printer_name)
            active = self._active_resumes.get(printer_name, 0) + 1
            self._active_resumes[printer_name] = active
            peak = self.max_concurrent_resumes.get(printer_name, 0)
            self.max_concurrent_resumes[printer_name] = max(peak, active)
        try:
            if self.resume_gate is not None:
                self.resume_gate.wait(timeout=5)
            self._finish_resume(printer_name)
        finally:
            with self._resume_lock:
                self._active_resumes[printer_name] -= 1

    def _finish_resume(self, printer_name):
        if printer_name in self.resume_errors:
            raise self.resume_errors[printer_name]
        if self.resume_clears_pause:
            self.printers = [
                replace(p, status=PrinterStatus.IDLE) if p.name == printer_name else p
                for p in self.printers
            ]

    def enqueue(self, printer_name, image, options, title=None, timeout_seconds=None):
        self.enqueue_calls.append((printer_name, image, options, title))
        if self.enqueue_delay:
            time.sleep(self.enqueue_delay)
        if self.enqueue_error is not None:
            raise self.enqueue_error
        return f"{printer_name}-{len(self.enqueue_calls)}"


class FakeTransport(UsbTransport):
    """
    UsbTransport that records writes in memory.

    Args:
        fail_after_bytes: Raise OSError once a write would pass this many bytes
        block: Event that writes wait on before writing
        block_printers: Only block writes for these printer names
    """

    def __init__(self, fail_after_bytes=None, block=None, block_printers=None, write_delay=0.0):
        self.fail_after_bytes = fail_after_bytes
        self.block = block
        self.block_printers = set(block_printers or [])
        self.write_delay = write_delay

        self.opened = []
        self.closed = 0
        self.written = {}
        self.write_calls = 0

        self._active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def open(self, printer):
        self.opened.append(printer.name)
        self.written.setdefault(printer.name, bytearray())
        return printer.name

    def write(self, handle, data):
        with self._lock:
            self.write_calls += 1
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        try:
            if self.block is not None and (not self.block_printers or handle in self.block_printers):
                self.block.wait(timeout=5)
            if self.write_delay:
                time.sleep(self.write_delay)

            buffer = self.written[handle]
            if self.fail_after_bytes is not None and len(buffer) + len(data) > self.fail_after_bytes:
                raise OSError(5, "Input/output error")
            buffer.extend(data)
            return len(data)
        finally:
            with self._lock:
                self._active -= 1

    def close(self, handle):
        self.closed += 1


@pytest.fixture
def fake_print_system():
    return FakePrintSystem([
        make_printer("Office", is_default=True),
        make_printer("Zebra", is_usb=True),
    ])


@pytest.fixture
def fake_transport():
    return FakeTransport()
