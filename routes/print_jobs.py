"""
Print job routes.

Handles:
- POST /api/print           - Print the image in the request body
- GET  /api/jobs/<job_id>   - Look up a submitted job

Printer hints:
    explicit       X-Printer-Name header, or ?printer=
    last selected  X-Last-Selected-Printer header, or ?last_selected=

The browser remembers the last selected printer itself and sends it with
every request; nothing is stored server-side.
"""

from typing import Optional

from flask import Blueprint, current_app, jsonify, request

from core.exceptions import InvalidOptions, RegistryRefreshFailed
from models.print_job import PrintOptions
from modules.target_resolver import resolve
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

print_jobs_bp = Blueprint("print_jobs", __name__)

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _parse_options() -> PrintOptions:
    raw_copies = request.args.get("copies", "1")
    try:
        copies = int(raw_copies)
    except ValueError:
        raise InvalidOptions(f"copies must be a whole number, got {raw_copies!r}", field="copies")

    raw_fit = request.args.get("fit_to_page", "true").strip().lower()
    if raw_fit in _TRUE:
        fit_to_page = True
    elif raw_fit in _FALSE:
        fit_to_page = False
    else:
        raise InvalidOptions(f"fit_to_page must be true or false, got {raw_fit!r}", field="fit_to_page")

    return PrintOptions(copies=copies, fit_to_page=fit_to_page).validate()


def _hint(header: str, arg: str) -> Optional[str]:
    return request.headers.get(header) or request.args.get(arg)


@print_jobs_bp.route("/api/print", methods=["POST"])
def print_image():
    """
    Resolve a printer and submit the request body as one print job.

    Errors are raised as PrintServiceError subclasses and turned into JSON
    by the app-level error handler.
    """
    registry = current_app.config["PRINTER_REGISTRY"]
    submitter = current_app.config["JOB_SUBMITTER"]

    options = _parse_options()
    image = request.get_data()
    if not image:
        raise InvalidOptions("request body must contain the image to print", field="image")

    # First request after a failed startup enumeration
    if registry.snapshot.fetched_at is None:
        try:
            registry.refresh()
        except RegistryRefreshFailed as e:
            logger.warning(f"Printer refresh before printing failed: {e.reason}")

    target = resolve(
        _hint("X-Printer-Name", "printer"),
        _hint("X-Last-Selected-Printer", "last_selected"),
        registry.snapshot,
    )
    job = submitter.submit(target, image, options)

    logger.info(f"Print job {job.id} submitted to {job.printer_name}")

    return jsonify({
        "success": True,
        "printerName": job.printer_name,
        "jobId": job.id,
        "status": job.status.value,
        "rule": target.rule.value,
    })


@print_jobs_bp.route("/api/jobs/<job_id>", methods=["GET"])
def get_job(job_id: str):
    """Return a recently submitted job."""
    submitter = current_app.config["JOB_SUBMITTER"]
    job = submitter.job_store.get(job_id)

    if job is None:
        return jsonify({"error": f"Unknown job: {job_id}"}), 404
    return jsonify(job.to_dict())
