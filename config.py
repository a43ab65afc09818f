"""
Configuration for the coloring page printer service.

Values come from the environment, with a .env file loaded first.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16 MB images
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"
    PORT = int(os.environ.get("PORT", "3000"))

    # Browser frontend runs on its own dev server
    CORS_ALLOW_ORIGIN = os.environ.get("CORS_ALLOW_ORIGIN", "*")

    # Log files are written in production only (default: ./logs)
    LOG_DIR = os.environ.get("LOG_DIR", "")

    # ==========================================================================
    # Printer lifecycle
    # ==========================================================================
    # WATCHER_POLL_INTERVAL_SECONDS: how often the queue watcher refreshes the
    #   printer list and resumes paused queues. Resume retries are rate-limited
    #   by this interval.
    #
    # SUBMIT_TIMEOUT_SECONDS: overall limit for one print submission. A jammed
    #   USB printer can block a raw write forever; past this the caller gets a
    #   timeout error instead.
    #
    # CUPS_COMMAND_TIMEOUT_SECONDS: limit for each lpstat / cupsenable call.
    # ==========================================================================
    START_WATCHER = _env_bool("START_WATCHER", "1")
    WATCHER_POLL_INTERVAL_SECONDS = float(
        os.environ.get("WATCHER_POLL_INTERVAL_SECONDS", "5")
    )
    SUBMIT_TIMEOUT_SECONDS = float(os.environ.get("SUBMIT_TIMEOUT_SECONDS", "30"))
    CUPS_COMMAND_TIMEOUT_SECONDS = float(
        os.environ.get("CUPS_COMMAND_TIMEOUT_SECONDS", "10")
    )

    # USB_DEVICE_MAP: "PrinterName=/dev/usb/lp1,Other=/dev/usb/lp2"
    USB_DEFAULT_DEVICE = os.environ.get("USB_DEFAULT_DEVICE", "/dev/usb/lp0")
    USB_DEVICE_MAP = os.environ.get("USB_DEVICE_MAP", "")

    # ==========================================================================
    # Image generation
    # ==========================================================================
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
    IMAGE_MODEL = os.environ.get("IMAGE_MODEL", "imagen-4.0-generate-001")
    IMAGE_ASPECT_RATIO = os.environ.get("IMAGE_ASPECT_RATIO", "9:16")
    IMAGE_TIMEOUT_SECONDS = float(os.environ.get("IMAGE_TIMEOUT_SECONDS", "120"))


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    START_WATCHER = False
    SUBMIT_TIMEOUT_SECONDS = 2.0
    GEMINI_API_KEY = "test-key"
