"""
Hosted image generation (Imagen via the Gemini REST API).

Turns a spoken or typed prompt into a black and white coloring page. The
service only needs bytes to print, so this is a thin request/response
wrapper.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Optional

import requests

from core.exceptions import ImageGenerationError


logger = logging.getLogger("coloring_printer.modules.image_generator")

API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

PROMPT_TEMPLATE = """A black and white kids coloring page.
<image-description>
{prompt}
</image-description>
{prompt}"""


def build_prompt(prompt: str) -> str:
    """Wrap the user's description in the coloring page instructions."""
    return PROMPT_TEMPLATE.format(prompt=prompt.strip())


class ImageGenerator:
    """Client for the Imagen ``:predict`` endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "imagen-4.0-generate-001",
        aspect_ratio: str = "9:16",
        timeout_seconds: float = 120.0,
        session: Optional[requests.Session] = None,
        base_url: str = API_BASE_URL
    ):
        self.api_key = api_key
        self.model = model
        self.aspect_ratio = aspect_ratio
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def generate(self, prompt: str) -> bytes:
        """
        Generate one coloring page image.

        Args:
            prompt: What the page should show

        Returns:
            PNG image bytes

        Raises:
            ImageGenerationError: If the key is missing, the request fails,
                or the model returned no image
        """
        if not self.is_configured:
            raise ImageGenerationError("GEMINI_API_KEY is not set")

        url = f"{self.base_url}/models/{self.model}:predict"
        payload = {
            "instances": [{"prompt": build_prompt(prompt)}],
            "parameters": {"sampleCount": 1, "aspectRatio": self.aspect_ratio},
        }

        logger.info(f"Generating image with {self.model}: {prompt!r}")
        try:
            response = self._session.post(
                url,
                headers={"x-goog-api-key": self.api_key},
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise ImageGenerationError(f"Image generation request failed: {e}") from e
        except ValueError as e:
            raise ImageGenerationError(f"Image generation returned invalid JSON: {e}") from e

        predictions = data.get("predictions") or []
        encoded = predictions[0].get("bytesBase64Encoded") if predictions else None
        if not encoded:
            raise ImageGenerationError("No image was generated for this prompt")

        try:
            image = base64.b64decode(encoded)
        except (binascii.Error, ValueError) as e:
            raise ImageGenerationError(f"Generated image could not be decoded: {e}") from e

        logger.info(f"Generated {len(image)} byte image")
        return image
