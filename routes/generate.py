"""
Image generation route.

Handles:
- POST /api/generate - {"prompt": "..."} -> image/png
"""

from flask import Blueprint, Response, current_app, jsonify, request

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

generate_bp = Blueprint("generate", __name__)


@generate_bp.route("/api/generate", methods=["POST"])
def generate():
    """Generate a coloring page without printing it."""
    data = request.get_json(silent=True) or {}
    prompt = data.get("prompt")

    if not isinstance(prompt, str) or not prompt.strip():
        return jsonify({"error": "Prompt is required"}), 400

    generator = current_app.config["IMAGE_GENERATOR"]
    image = generator.generate(prompt)

    return Response(image, status=200, mimetype="image/png")
