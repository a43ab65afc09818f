"""
Flask route blueprints for the coloring page printer.

- printers: printer list and forced refresh
- print_jobs: print submission and job lookup
- generate: image generation
- api: health check

Each blueprint is registered with the Flask app in create_app().
"""

from .printers import printers_bp
from .print_jobs import print_jobs_bp
from .generate import generate_bp
from .api import api_bp

__all__ = [
    "printers_bp",
    "print_jobs_bp",
    "generate_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(printers_bp)
    app.register_blueprint(print_jobs_bp)
    app.register_blueprint(generate_bp)
    app.register_blueprint(api_bp)
