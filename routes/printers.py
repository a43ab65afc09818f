"""
Printer routes.

Handles:
- GET  /api/printers          - Current printer snapshot
- POST /api/printers/refresh  - Force a refresh now
"""

from flask import Blueprint, current_app, jsonify

from core.exceptions import RegistryRefreshFailed
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

printers_bp = Blueprint("printers", __name__)


@printers_bp.route("/api/printers", methods=["GET"])
def list_printers():
    """
    List printers from the registry snapshot.

    Served from the snapshot the queue watcher keeps fresh; never blocks on
    CUPS. After a failed refresh the last good list is returned.
    """
    registry = current_app.config["PRINTER_REGISTRY"]
    return jsonify(registry.snapshot.to_dict())


@printers_bp.route("/api/printers/refresh", methods=["POST"])
def refresh_printers():
    """Refresh the printer list immediately."""
    registry = current_app.config["PRINTER_REGISTRY"]
    logger.info("Forcing printer refresh...")

    try:
        snapshot = registry.refresh()
    except RegistryRefreshFailed as e:
        logger.warning(f"Forced printer refresh failed: {e.reason}")
        body = e.to_dict()
        body.update(registry.snapshot.to_dict())
        return jsonify(body), e.http_status

    return jsonify(snapshot.to_dict())
