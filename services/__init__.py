"""
Services layer for the coloring page printer.

This module contains the printer lifecycle services:
- PrinterRegistry: Current printer snapshot, refreshed on demand
- QueueWatcher: Background thread that refreshes and resumes paused queues
- JobSubmitter: Job submission threads, spooler or raw USB
- JobStore: Recent jobs by id

Thread Model:
    Main Thread (Flask)
    ├── QueueWatcher thread (poll loop, default every 5 seconds)
    └── Job threads (one per print submission)

The watcher and the job threads never talk to each other; both read
printer state through the PrinterRegistry.
"""

from .printer_registry import PrinterRegistry
from .queue_watcher import QueueWatcher, TickReport
from .job_submitter import JobSubmitter, JobStore

__all__ = [
    "PrinterRegistry",
    "QueueWatcher",
    "TickReport",
    "JobSubmitter",
    "JobStore",
]
