"""Read an EAN/GTIN from a product photo with Gemini Vision."""

from __future__ import annotations

import base64
import binascii
import logging
import os
import re
from typing import Any, Optional, Tuple

import google.generativeai as genai

from .errors import ConfigurationError, EanScanError
from .validators import pick_best_ean

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
_DATA_URL = re.compile(r"^data:(.+?);base64,(.*)$", re.DOTALL)

OCR_PROMPT = (
    "You are an OCR assistant. Extract only the most likely EAN/GTIN number from the photo. "
    "Return ONLY the digits of the best candidate (length 8/12/13/14). No text, no explanation."
)

GENERATION_CONFIG = {
    "temperature": 0,
    "top_p": 0.1,
    "top_k": 1,
    "max_output_tokens": 20,
}


def normalize_image(data: str) -> Tuple[str, str]:
    """Split a data URL into (base64 payload, mime type); bare base64 is taken as JPEG."""
    if not data or not data.strip():
        raise EanScanError("Image data is empty")
    data = data.strip()
    match = _DATA_URL.match(data)
    if match:
        return match.group(2), match.group(1)
    return data, DEFAULT_MIME_TYPE


class EanScanner:
    """Gemini client that turns a barcode photo into EAN digits."""

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None, model: Any = None):
        """
        Args:
            api_key: Gemini API key. If not provided, reads from GEMINI_API_KEY env var.
            model_name: Model name to use.
            model: Ready GenerativeModel (skips configuration).
        """
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        self.model_name = model_name or os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
        self.model = model

    def _get_model(self) -> Any:
        if self.model is None:
            if not self.api_key:
                raise ConfigurationError("Missing GEMINI_API_KEY environment variable")
            genai.configure(api_key=self.api_key)
            self.model = genai.GenerativeModel(self.model_name)
        return self.model

    def scan(self, image_base64: str, mime_type: Optional[str] = None) -> str:
        """
        Extract the EAN from a photo.

        Args:
            image_base64: Base64 image, optionally as a data URL
            mime_type: Overrides the mime type found in the data URL

        Returns:
            The EAN digits (8/12/13/14 long)
        """
        model = self._get_model()
        payload, detected_mime = normalize_image(image_base64)
        try:
            image_bytes = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise EanScanError(f"Image is not valid base64: {e}") from e

        try:
            response = model.generate_content(
                [OCR_PROMPT, {"mime_type": mime_type or detected_mime, "data": image_bytes}],
                generation_config=GENERATION_CONFIG,
            )
            text = response.text or ""
        except Exception as e:
            logger.error("Gemini Vision request failed: %s", e)
            raise EanScanError(f"Gemini Vision error: {e}", status=502) from e

        ean = pick_best_ean(text)
        if not ean:
            raise EanScanError("Nie udało się odczytać EAN z obrazu.")
        logger.info("EAN read from image: %s", ean)
        return ean

    def scan_file(self, path: str) -> str:
        with open(path, "rb") as f:
            encoded = base64.b64encode(f.read()).decode()
        return self.scan(encoded, mime_type=_guess_mime(path))


def _guess_mime(path: str) -> str:
    lowered = path.lower()
    if lowered.endswith(".png"):
        return "image/png"
    if lowered.endswith(".webp"):
        return "image/webp"
    return DEFAULT_MIME_TYPE
