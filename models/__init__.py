"""
Data models for the coloring page printer service.

This module contains dataclasses for:
- Printer: One printer as reported by the print subsystem
- PrinterSnapshot: Immutable point-in-time list of printers
- PrintOptions / ResolvedTarget: Inputs to job submission
- PrintJob: One submission and its status

Printer, PrinterSnapshot, PrintOptions and ResolvedTarget are frozen
(immutable) so they can be passed between threads without locks.
"""

from .printer import Printer, PrinterStatus, PrinterSnapshot
from .print_job import PrintJob, JobStatus, PrintOptions, ResolvedTarget, ResolutionRule

__all__ = [
    # Printer models
    "Printer",
    "PrinterStatus",
    "PrinterSnapshot",
    # Job models
    "PrintJob",
    "JobStatus",
    "PrintOptions",
    "ResolvedTarget",
    "ResolutionRule",
]
