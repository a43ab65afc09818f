"""
Target resolution: pick the printer a job goes to.

Order, first match wins:
    1. Explicit printer name from the request (must exist and be usable)
    2. Printer the user last selected, if it exists and is usable
    3. System default printer, if usable
    4. First usable USB printer, so a single plugged-in printer works with
       no setup at all
    5. NoUsablePrinter

Usable means not Paused, Error or Offline.

resolve() is a pure function of its arguments: no I/O, no logging, no
mutation. The same (explicit, last selected, snapshot) always gives the same
answer.
"""

from __future__ import annotations

from typing import Optional

from core.exceptions import NoUsablePrinter, PrinterNotFound, PrinterUnusable
from models.printer import Printer, PrinterSnapshot
from models.print_job import ResolutionRule, ResolvedTarget


def _clean(name: Optional[str]) -> Optional[str]:
    if name is None:
        return None
    name = name.strip()
    return name or None


def resolve(
    explicit_name: Optional[str],
    last_selected: Optional[str],
    snapshot: PrinterSnapshot
) -> ResolvedTarget:
    """
    Resolve the target printer for a job.

    Args:
        explicit_name: Printer named in this request, if any
        last_selected: Printer the client remembers choosing, if any
        snapshot: Current printer snapshot

    Returns:
        ResolvedTarget with the printer and the rule that picked it

    Raises:
        PrinterNotFound: explicit_name is not in the snapshot
        PrinterUnusable: explicit_name is in the snapshot but not usable
        NoUsablePrinter: no hint matched and there is no usable fallback
    """
    explicit_name = _clean(explicit_name)
    last_selected = _clean(last_selected)

    if explicit_name is not None:
        printer = snapshot.get(explicit_name)
        if printer is None:
            raise PrinterNotFound(explicit_name)
        if not printer.is_usable:
            raise PrinterUnusable(printer.name, printer.status.value)
        return ResolvedTarget(printer, ResolutionRule.EXPLICIT)

    if last_selected is not None:
        printer = snapshot.get(last_selected)
        if printer is not None and printer.is_usable:
            return ResolvedTarget(printer, ResolutionRule.LAST_SELECTED)

    default = snapshot.default
    if default is not None and default.is_usable:
        return ResolvedTarget(default, ResolutionRule.DEFAULT)

    usb = _first_usable_usb(snapshot)
    if usb is not None:
        return ResolvedTarget(usb, ResolutionRule.USB_FALLBACK)

    if len(snapshot) == 0:
        raise NoUsablePrinter("No printers are installed")
    raise NoUsablePrinter(
        f"None of the {len(snapshot)} installed printers can take a job right now"
    )


def _first_usable_usb(snapshot: PrinterSnapshot) -> Optional[Printer]:
    for printer in snapshot:
        if printer.is_usb and printer.is_usable:
            return printer
    return None
