"""
Service status routes.

Handles:
- /health - Health check endpoint
"""

from flask import Blueprint, current_app, jsonify


api_bp = Blueprint("api", __name__)


@api_bp.route("/health", methods=["GET"])
def health():
    """
    Health check.

    Reports "degraded" while printer refreshes are failing; the service
    still answers from its last good printer list.
    """
    registry = current_app.config["PRINTER_REGISTRY"]
    watcher = current_app.config.get("QUEUE_WATCHER")

    snapshot = registry.snapshot
    failures = registry.consecutive_failures
    last_report = watcher.last_report if watcher else None

    return jsonify({
        "status": "degraded" if failures else "ok",
        "printers": len(snapshot),
        "snapshotAgeSeconds": round(snapshot.age_seconds, 1),
        "refreshFailures": failures,
        "watcher": {
            "running": bool(watcher and watcher.is_running),
            "ticks": watcher.tick_count if watcher else 0,
            "lastResumed": last_report.resumed if last_report else [],
            "lastResumeFailures": last_report.resume_failures if last_report else [],
        },
    })
