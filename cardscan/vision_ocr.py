"""
Remote OCR using Google Cloud Vision document text detection.

Primary, higher-accuracy path. Any failure is reported as an exception so
the orchestrator can fall back to the local engine.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import requests

from .errors import NoTextDetected, ProviderUnavailable
from .preprocessing import EncodedImage, to_base64

logger = logging.getLogger(__name__)

VISION_API_URL = "https://vision.googleapis.com/v1/images:annotate"


@dataclass(frozen=True)
class VisionAnnotation:
    """Top-ranked text annotation returned by the provider."""
    text: str
    score: Optional[float] = None


class VisionOCR:
    """Google Cloud Vision client for full-page card transcription."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: str = VISION_API_URL,
        timeout: float = 10.0,
    ):
        """
        Initialize Vision OCR.

        Args:
            api_key: Google Cloud API key (or set GOOGLE_CLOUD_API_KEY env var)
            api_url: images:annotate endpoint
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or os.getenv("GOOGLE_CLOUD_API_KEY")
        self.api_url = api_url
        self.timeout = timeout

        if not self.api_key:
            logger.warning("No Google Cloud API key provided. Remote OCR disabled; local OCR only")

    def is_available(self) -> bool:
        """Check if the remote provider is configured."""
        return bool(self.api_key)

    def _build_request(self, image: EncodedImage) -> dict:
        return {
            "requests": [
                {
                    "image": {"content": to_base64(image)},
                    "features": [{"type": "DOCUMENT_TEXT_DETECTION", "maxResults": 1}],
                }
            ]
        }

    def detect_text(self, image: EncodedImage) -> VisionAnnotation:
        """
        Transcribe a business card image.

        Args:
            image: Data URI, bare base64 or raw bytes

        Returns:
            VisionAnnotation with the full-page text and optional score

        Raises:
            ProviderUnavailable: Missing key, network/HTTP error or API error
            NoTextDetected: The provider found no text
        """
        if not self.is_available():
            raise ProviderUnavailable("Google Cloud API key not configured")

        try:
            response = requests.post(
                self.api_url,
                params={"key": self.api_key},
                json=self._build_request(image),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise ProviderUnavailable(f"Vision API request failed: {e}") from e
        except ValueError as e:
            raise ProviderUnavailable(f"Invalid Vision API response: {e}") from e

        if not isinstance(data, dict):
            raise ProviderUnavailable("Invalid Vision API response: expected a JSON object")

        responses = data.get("responses") or [{}]
        if not isinstance(responses, list):
            raise ProviderUnavailable("Invalid Vision API response: 'responses' is not a list")
        first = responses[0] or {}
        if not isinstance(first, dict):
            raise ProviderUnavailable("Invalid Vision API response: malformed response entry")

        if "error" in first:
            error = first["error"]
            message = error.get("message", "unknown error") if isinstance(error, dict) else error
            raise ProviderUnavailable(f"Vision API error: {message}")

        annotations = first.get("textAnnotations") or []
        if not isinstance(annotations, list):
            raise ProviderUnavailable("Invalid Vision API response: 'textAnnotations' is not a list")
        if not annotations:
            raise NoTextDetected("No text detected in image")

        top = annotations[0]
        if not isinstance(top, dict):
            raise ProviderUnavailable("Invalid Vision API response: malformed text annotation")
        text = top.get("description") or ""
        if not isinstance(text, str):
            raise ProviderUnavailable("Invalid Vision API response: description is not text")
        if not text.strip():
            raise NoTextDetected("No text detected in image")

        score = self._parse_score(top.get("score"))
        logger.info(f"Vision API returned {len(text)} chars (score={score})")
        return VisionAnnotation(text=text, score=score)

    @staticmethod
    def _parse_score(score) -> Optional[float]:
        """Read the annotation score; an unreadable score counts as absent."""
        if score is None or isinstance(score, bool):
            return None
        try:
            return float(score)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric Vision score: {score!r}")
            return None
