"""
Print job submission with a worker thread per job.

Each submission runs in its own thread so that the calling request thread
can give up after an overall timeout. A jammed USB printer can block a raw
write forever, and the caller must not hang with it.

Two paths, chosen by the resolved printer:

    USB-direct:  per-device lock -> open device -> stream image (once per
                 copy) -> close. Status SUBMITTED -> PRINTING -> COMPLETED.
                 A write failure fails the job and is NOT retried: resending
                 a half-written stream to a printer is unsafe.

    Spooler:     hand the image to the print queue (lp). Status
                 SUBMITTED -> QUEUED. The submitter does not wait for the
                 page to come out; the queue outlives the HTTP request.

Thread Safety:
    - Options are validated in the caller's thread, before any I/O
    - USB jobs for the same device serialize on a per-device lock, acquired
      in arrival order; jobs for different printers never share a lock
    - Spooler jobs rely on the spooler for per-queue ordering
    - JobStore uses threading.Lock for all operations

Usage:
    submitter = JobSubmitter(print_system, transport, default_timeout_seconds=30)
    job = submitter.submit(target, png_bytes, PrintOptions(copies=1))
    print(job.id, job.status)

    # At app shutdown
    submitter.shutdown()
"""

from __future__ import annotations

import threading
import time
import uuid
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from core.exceptions import (
    InvalidOptions,
    PrintServiceError,
    SubmissionError,
    SubmissionTimeout,
    TransportWriteFailed,
)
from core.print_system import PrintSystem, UsbTransport
from models.print_job import JobStatus, PrintJob, PrintOptions, ResolvedTarget
from logging_config import get_logger, get_job_logger, set_thread_name


# Module logger
logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class JobStore:
    """
    Thread-safe, bounded record of recent print jobs.

    Jobs live in memory only. The oldest job is dropped once max_jobs is
    exceeded.
    """

    def __init__(self, max_jobs: int = 200):
        self._jobs: "OrderedDict[str, PrintJob]" = OrderedDict()
        self._max_jobs = max_jobs
        self._lock = threading.Lock()

    def put(self, job: PrintJob) -> None:
        with self._lock:
            self._jobs[job.id] = job
            self._jobs.move_to_end(job.id)
            while len(self._jobs) > self._max_jobs:
                self._jobs.popitem(last=False)

    def get(self, job_id: str) -> Optional[PrintJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def clear(self) -> int:
        """
        Remove all stored jobs.

        Returns:
            Number of jobs removed
        """
        with self._lock:
            count = len(self._jobs)
            self._jobs.clear()
            logger.info(f"Cleared {count} jobs from store")
            return count


class JobSubmitter:
    """
    Submits images to a resolved printer, via the spooler or raw USB.

    Attributes:
        job_store: Recent jobs, looked up by id
        default_timeout_seconds: Overall limit for one submit() call
    """

    def __init__(
        self,
        print_system: PrintSystem,
        transport: UsbTransport,
        default_timeout_seconds: float = 30.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        job_store: Optional[JobStore] = None
    ):
        self._print_system = print_system
        self._transport = transport
        self._default_timeout = default_timeout_seconds
        self._chunk_size = chunk_size
        self._job_store = job_store or JobStore()

        # One lock per USB device, created on first use
        self._device_locks: Dict[str, threading.Lock] = {}
        self._device_locks_guard = threading.Lock()

        # Track active job threads for cleanup
        self._active_threads: Dict[str, threading.Thread] = {}
        self._threads_lock = threading.Lock()

        # Guards job status and id between worker threads and timed-out callers
        self._status_lock = threading.Lock()

        logger.info(f"JobSubmitter initialized (timeout: {default_timeout_seconds}s)")

    @property
    def job_store(self) -> JobStore:
        return self._job_store

    @property
    def default_timeout_seconds(self) -> float:
        return self._default_timeout

    def submit(
        self,
        target: ResolvedTarget,
        image: bytes,
        options: Optional[PrintOptions] = None,
        timeout_seconds: Optional[float] = None
    ) -> PrintJob:
        """
        Submit one image to the resolved printer.

        Args:
            target: Printer chosen by target resolution
            image: Encoded image bytes (PNG from the image generator)
            options: Copies and fit-to-page (defaults: 1 copy, fit)
            timeout_seconds: Overall limit (default: default_timeout_seconds)

        Returns:
            The PrintJob, QUEUED for spooler jobs, COMPLETED for USB jobs

        Raises:
            InvalidOptions: Bad copies, empty image or bad timeout; raised
                before any device or spooler call
            SubmissionTimeout: The job did not finish in time
            TransportWriteFailed: USB write failed (check ``partial``)
            SpoolerRejected: The print queue refused the job
        """
        options = (options or PrintOptions()).validate()
        if not isinstance(image, (bytes, bytearray)) or len(image) == 0:
            raise InvalidOptions("image is empty", field="image")

        timeout = self._default_timeout if timeout_seconds is None else timeout_seconds
        if timeout <= 0:
            raise InvalidOptions(f"timeout must be positive, got {timeout}", field="timeout")

        printer = target.printer
        prefix = "usb" if printer.is_usb else "local"
        job = PrintJob(
            id=f"{prefix}-{uuid.uuid4().hex[:12]}",
            printer_name=printer.name,
            copies=options.copies,
            fit_to_page=options.fit_to_page,
            via_usb=printer.is_usb,
        )

        logger.info(
            f"Submitting job {job.id} to {printer.name} "
            f"({'USB' if printer.is_usb else 'spooler'}, rule={target.rule.value})"
        )

        if printer.is_usb:
            work = self._usb_work(job, target, bytes(image), options, timeout)
        else:
            work = self._spooler_work(job, target, bytes(image), options, timeout)

        return self._run_with_timeout(job, work, timeout)

    def shutdown(self, timeout_per_thread: float = 5.0) -> None:
        """
        Wait for all job worker threads to finish.

        Call this during application shutdown.
        """
        with self._threads_lock:
            active = list(self._active_threads.items())

        if not active:
            logger.info("No active job threads to wait for")
            return

        logger.info(f"Waiting for {len(active)} job threads to complete...")

        for job_id, thread in active:
            if thread.is_alive():
                thread.join(timeout=timeout_per_thread)
                if thread.is_alive():
                    logger.warning(f"Job thread {job_id} did not complete in time")

        logger.info("Job submitter shutdown complete")

    # =========================================================================
    # WORKER THREAD
    # =========================================================================

    def _run_with_timeout(
        self,
        job: PrintJob,
        work: Callable[[threading.Event], Any],
        timeout: float
    ) -> PrintJob:
        """Run work in a job thread and wait at most timeout seconds."""
        cancelled = threading.Event()
        outcome: Dict[str, Any] = {}
        thread_key = job.id
        thread_name = f"Job-{job.id.split('-', 1)[-1][:8]}"

        def job_thread_main() -> None:
            set_thread_name(thread_name)
            try:
                outcome["result"] = work(cancelled)
            except Exception as e:
                outcome["error"] = e
            finally:
                with self._threads_lock:
                    self._active_threads.pop(thread_key, None)
                if cancelled.is_set():
                    logger.warning(
                        f"Job {job.id} finished after its caller timed out "
                        f"({'failed' if 'error' in outcome else 'succeeded'})"
                    )

        thread = threading.Thread(target=job_thread_main, name=thread_name, daemon=True)
        with self._threads_lock:
            self._active_threads[thread_key] = thread
        thread.start()
        thread.join(timeout=timeout)

        if thread.is_alive():
            cancelled.set()
            raise self._failed(job, SubmissionTimeout(job.printer_name, timeout, job.id))

        error = outcome.get("error")
        if isinstance(error, PrintServiceError):
            raise self._failed(job, error)
        if error is not None:
            wrapped = SubmissionError(
                f"Printing to {job.printer_name} failed: {error}",
                job.printer_name,
                job.id,
            )
            raise self._failed(job, wrapped) from error

        self._job_store.put(job)
        return job

    def _failed(self, job: PrintJob, error: PrintServiceError) -> PrintServiceError:
        """Record the job as failed and return the error for the caller to raise."""
        with self._status_lock:
            job.mark_failed(error.message)
            self._job_store.put(job)
        if isinstance(error, SubmissionError):
            error.job = job
        logger.error(f"Job {job.id} on {job.printer_name} failed: {error.message}")
        return error

    def _advance(
        self,
        job: PrintJob,
        cancelled: threading.Event,
        status: JobStatus,
        job_id: Optional[str] = None
    ) -> bool:
        """
        Move a job to a new status from its worker thread.

        Serialized with _failed(), so a job the caller already gave up on is
        never moved out of FAILED or renamed away from its store key.

        Returns:
            False if the caller timed out and the job was left unchanged
        """
        with self._status_lock:
            if cancelled.is_set() or job.status is JobStatus.FAILED:
                return False
            if job_id is not None:
                job.id = job_id
            job.status = status
            return True

    # =========================================================================
    # USB PATH
    # =========================================================================

    def _usb_work(
        self,
        job: PrintJob,
        target: ResolvedTarget,
        image: bytes,
        options: PrintOptions,
        timeout: float
    ) -> Callable[[threading.Event], int]:
        deadline = time.monotonic() + timeout
        lock = self._device_lock(self._transport.lock_key(target.printer))

        def work(cancelled: threading.Event) -> int:
            job_logger = get_job_logger(job.id)
            remaining = max(deadline - time.monotonic(), 0.0)

            if not lock.acquire(timeout=remaining):
                raise SubmissionTimeout(job.printer_name, timeout, job.id)
            try:
                # Caller gave up while we queued for the device
                if not self._advance(job, cancelled, JobStatus.PRINTING):
                    job_logger.info("Caller timed out before the device was free; not printing")
                    return 0
                if not options.fit_to_page:
                    job_logger.debug("fit_to_page off; raw USB path sends the image as-is")
                return self._stream_to_device(job, target, image, options, cancelled, job_logger)
            finally:
                lock.release()

        return work

    def _stream_to_device(
        self,
        job: PrintJob,
        target: ResolvedTarget,
        image: bytes,
        options: PrintOptions,
        cancelled: threading.Event,
        job_logger
    ) -> int:
        """
        Open the device, write the image once per copy, close the device.

        Raises:
            TransportWriteFailed: On any transport error, with the byte count
                that reached the device
        """
        total = len(image) * options.copies
        handle = None

        try:
            handle = self._transport.open(target.printer)
            for copy_number in range(options.copies):
                offset = 0
                while offset < len(image):
                    chunk = image[offset:offset + self._chunk_size]
                    written = self._transport.write(handle, chunk)
                    if not written:
                        raise OSError("device accepted no data")
                    offset += written
                    job.bytes_written += written
                job_logger.debug(f"Copy {copy_number + 1}/{options.copies} sent")
        except Exception as e:
            raise TransportWriteFailed(
                job.printer_name,
                str(e),
                bytes_written=job.bytes_written,
                total_bytes=total,
                job_id=job.id,
            ) from e
        finally:
            if handle is not None:
                try:
                    self._transport.close(handle)
                except Exception as e:
                    job_logger.warning(f"Closing device for {job.printer_name} failed: {e}")

        if not self._advance(job, cancelled, JobStatus.COMPLETED):
            job_logger.warning("All bytes sent after the caller timed out; job stays failed")
        job_logger.info(f"Sent {job.bytes_written} bytes to {job.printer_name}")
        return job.bytes_written

    def _device_lock(self, key: str) -> threading.Lock:
        with self._device_locks_guard:
            lock = self._device_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._device_locks[key] = lock
            return lock

    # =========================================================================
    # SPOOLER PATH
    # =========================================================================

    def _spooler_work(
        self,
        job: PrintJob,
        target: ResolvedTarget,
        image: bytes,
        options: PrintOptions,
        timeout: float
    ) -> Callable[[threading.Event], str]:
        def work(cancelled: threading.Event) -> str:
            job_logger = get_job_logger(job.id)
            spooler_id = self._print_system.enqueue(
                target.name,
                image,
                options,
                title=f"coloring-page-{job.id}",
                timeout_seconds=timeout,
            )
            if not self._advance(job, cancelled, JobStatus.QUEUED, job_id=spooler_id):
                job_logger.warning(f"Spooler accepted {spooler_id} after the caller timed out")
                return spooler_id

            job_logger.info(f"Queued as {spooler_id} on {target.name}")
            return spooler_id

        return work
