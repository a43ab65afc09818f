"""
Coloring page printer - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration and logging
2. Builds the printer registry and takes the first printer snapshot
3. Starts the queue watcher (separate thread)
4. Creates the job submitter (thread-per-job)
5. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling
    └── Cleanup on shutdown (stop watcher, join job threads)

    QueueWatcher Thread (background)
    └── Poll loop: refresh printers, resume paused queues

    Job Threads (one per submission)
    └── Spooler enqueue or raw USB write, bounded by a timeout

The watcher and job threads share nothing but the PrinterRegistry snapshot.
"""

from __future__ import annotations

import atexit
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import RequestEntityTooLarge

from logging_config import setup_logging, get_logger
from core.cups_client import CupsPrintSystem
from core.exceptions import PrintServiceError, RegistryRefreshFailed
from core.print_system import PrintSystem, UsbTransport
from core.usb_transport import DeviceFileTransport, parse_device_map
from modules.image_generator import ImageGenerator
from services.printer_registry import PrinterRegistry
from services.queue_watcher import QueueWatcher
from services.job_submitter import JobSubmitter
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def create_app(
    config_object: object = "config.Config",
    print_system: Optional[PrintSystem] = None,
    transport: Optional[UsbTransport] = None,
    image_generator: Optional[ImageGenerator] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    The service starts even when CUPS cannot be reached: the first refresh
    failure is logged and the watcher keeps retrying.

    Args:
        config_object: Import path or class for app.config.from_object
        print_system: PrintSystem to use (default: CupsPrintSystem)
        transport: UsbTransport to use (default: DeviceFileTransport)
        image_generator: ImageGenerator to use (default: built from config)

    Returns:
        Configured Flask application
    """
    # Load .env from base path (next to executable in production)
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        log_dir=app.config.get("LOG_DIR") or None,
        enable_file_logging=enable_file_logging,
        quiet_request_log=not app.config.get("DEBUG"),
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting coloring page printer in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # PRINTER LIFECYCLE
    # =========================================================================

    if print_system is None:
        print_system = CupsPrintSystem(
            command_timeout=app.config["CUPS_COMMAND_TIMEOUT_SECONDS"],
        )
    if transport is None:
        transport = DeviceFileTransport(
            device_map=parse_device_map(app.config.get("USB_DEVICE_MAP")),
            default_device=app.config["USB_DEFAULT_DEVICE"],
        )

    registry = PrinterRegistry(print_system)
    try:
        snapshot = registry.refresh()
        logger.info(f"Found {len(snapshot)} printers")
    except RegistryRefreshFailed as e:
        logger.error(f"Initial printer refresh failed, continuing without printers: {e.reason}")
    app.config["PRINTER_REGISTRY"] = registry

    watcher = QueueWatcher(
        registry,
        poll_interval_seconds=app.config["WATCHER_POLL_INTERVAL_SECONDS"],
    )
    if app.config.get("START_WATCHER", True):
        watcher.start()
    app.config["QUEUE_WATCHER"] = watcher

    submitter = JobSubmitter(
        print_system,
        transport,
        default_timeout_seconds=app.config["SUBMIT_TIMEOUT_SECONDS"],
    )
    app.config["JOB_SUBMITTER"] = submitter

    if image_generator is None:
        image_generator = ImageGenerator(
            api_key=app.config.get("GEMINI_API_KEY", ""),
            model=app.config["IMAGE_MODEL"],
            aspect_ratio=app.config["IMAGE_ASPECT_RATIO"],
            timeout_seconds=app.config["IMAGE_TIMEOUT_SECONDS"],
        )
    if not image_generator.is_configured:
        logger.warning("GEMINI_API_KEY is not set; /api/generate will fail")
    app.config["IMAGE_GENERATOR"] = image_generator

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        watcher.stop()
        submitter.shutdown()
        logger.info("Shutdown complete")

    atexit.register(cleanup)
    app.extensions["coloring_printer_cleanup"] = cleanup

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    @app.after_request
    def add_cors_headers(response):
        origin = app.config.get("CORS_ALLOW_ORIGIN")
        if origin:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Headers"] = (
                "Content-Type, X-Printer-Name, X-Last-Selected-Printer"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        return response

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(PrintServiceError)
    def handle_print_service_error(e: PrintServiceError):
        if e.category == "configuration":
            logger.warning(f"Request failed ({type(e).__name__}): {e.message}")
        else:
            logger.error(f"Request failed ({type(e).__name__}): {e.message}")
        return jsonify(e.to_dict()), e.http_status

    @app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(e):
        max_mb = app.config.get("MAX_CONTENT_LENGTH", 16 * 1024 * 1024) / (1024 * 1024)
        return jsonify({"error": f"Image too large. Maximum size is {max_mb:.0f} MB."}), 413

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return jsonify({"error": "An unexpected error occurred"}), 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(
        host="0.0.0.0",
        port=app.config["PORT"],
        debug=app.config["DEBUG"],
        use_reloader=False,
    )
