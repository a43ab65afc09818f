"""
Printer data models.

These models represent point-in-time snapshots of the host's printers.
Used by the printer registry for state and by routes for display.

Thread Safety:
    - Printer and PrinterSnapshot are frozen dataclasses (immutable)
    - Safe to read from any thread without locks
    - New snapshots replace old ones atomically
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Iterable, Optional, Tuple


class PrinterStatus(Enum):
    """Queue state of a printer as reported by the print subsystem."""

    IDLE = "idle"
    PRINTING = "printing"
    PAUSED = "paused"
    ERROR = "error"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


UNUSABLE_STATUSES = frozenset({
    PrinterStatus.PAUSED,
    PrinterStatus.ERROR,
    PrinterStatus.OFFLINE,
})


@dataclass(frozen=True)
class Printer:
    """
    A single printer known to the print subsystem.

    USB printers can be written to directly over a raw transport,
    bypassing the spooler queue.
    """

    name: str
    """Unique queue name in the print subsystem."""

    is_default: bool = False
    """True for the system default destination."""

    is_usb: bool = False
    """True when the device URI is a USB transport."""

    status: PrinterStatus = PrinterStatus.UNKNOWN
    """Current queue state."""

    device_uri: str = ""
    """Device URI reported by the host (e.g. 'usb://HP/LaserJet?serial=1')."""

    status_message: str = ""
    """Human-readable state reason from the host, if any."""

    @property
    def is_usable(self) -> bool:
        """Whether a job sent now would be accepted and printed."""
        return self.status not in UNUSABLE_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the dictionary shape returned by the printers API."""
        return {
            "name": self.name,
            "isDefault": self.is_default,
            "isUSB": self.is_usb,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class PrinterSnapshot:
    """
    Immutable point-in-time list of printers.

    Created by the registry on each successful refresh and never modified;
    the registry swaps the whole snapshot instead.
    """

    printers: Tuple[Printer, ...] = ()
    """Printers sorted by name."""

    fetched_at: Optional[datetime] = None
    """When the snapshot was taken (None for the initial empty snapshot)."""

    _by_name: Dict[str, Printer] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Frozen dataclass: fill the lookup table through object.__setattr__
        object.__setattr__(self, "_by_name", {p.name: p for p in self.printers})

    @classmethod
    def create_empty(cls) -> "PrinterSnapshot":
        """Snapshot used before the first refresh completes."""
        return cls()

    @classmethod
    def from_printers(
        cls,
        printers: Iterable[Printer],
        fetched_at: Optional[datetime] = None
    ) -> "PrinterSnapshot":
        """
        Build a snapshot from enumerated printers.

        Printers are sorted by name so that every consumer (including target
        resolution) sees a stable order.
        """
        ordered = tuple(sorted(printers, key=lambda p: p.name))
        return cls(
            printers=ordered,
            fetched_at=fetched_at or datetime.now(timezone.utc),
        )

    def __len__(self) -> int:
        return len(self.printers)

    def __iter__(self):
        return iter(self.printers)

    def get(self, name: str) -> Optional[Printer]:
        """Return the printer with this name, or None."""
        return self._by_name.get(name)

    @property
    def default(self) -> Optional[Printer]:
        """The system default printer, if the host reports one."""
        for printer in self.printers:
            if printer.is_default:
                return printer
        return None

    @property
    def age_seconds(self) -> float:
        """Seconds since this snapshot was taken (0 if never fetched)."""
        if self.fetched_at is None:
            return 0.0
        return (datetime.now(timezone.utc) - self.fetched_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "printers": [p.to_dict() for p in self.printers],
            "fetchedAt": self.fetched_at.isoformat() if self.fetched_at else None,
            "ageSeconds": round(self.age_seconds, 1),
        }
