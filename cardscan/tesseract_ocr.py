"""
On-device OCR fallback using Tesseract.

Used when the remote provider is unavailable or finds no text. Reports
confidence on Tesseract's native 0-100 scale; the orchestrator normalizes it.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import pytesseract

from .errors import LocalOCRError
from .preprocessing import EncodedImage, ImagePreprocessor

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class TesseractResult:
    """Text and mean word confidence (0-100) from one Tesseract run."""
    text: str
    confidence: float


class TesseractOCR:
    """Local OCR engine backed by pytesseract."""

    def __init__(
        self,
        language: str = "eng",
        tesseract_cmd: Optional[str] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
    ):
        """
        Initialize Tesseract engine.

        Args:
            language: Tesseract language model
            tesseract_cmd: Path to the tesseract binary (PATH lookup if None)
            preprocessor: Image preprocessor (plain decoding if None)
        """
        self.language = language
        self.preprocessor = preprocessor or ImagePreprocessor()

        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
            logger.info(f"Using Tesseract binary at: {tesseract_cmd}")

    def recognize(
        self,
        image: EncodedImage,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> TesseractResult:
        """
        Recognize text in an image.

        Args:
            image: Encoded image (data URI, base64 or bytes)
            progress_callback: Receives fractional progress; advisory only

        Returns:
            TesseractResult with text and 0-100 confidence

        Raises:
            LocalOCRError: If the image cannot be decoded or Tesseract fails
        """
        self._report(progress_callback, 0.0)
        try:
            img = self.preprocessor.prepare(image)
        except ValueError as e:
            raise LocalOCRError(f"Cannot prepare image: {e}") from e

        try:
            data = pytesseract.image_to_data(
                img, lang=self.language, output_type=pytesseract.Output.DICT
            )
            self._report(progress_callback, 0.5)
            text = pytesseract.image_to_string(img, lang=self.language)
        except (
            pytesseract.TesseractNotFoundError,
            pytesseract.TesseractError,
            RuntimeError,
            OSError,
            TypeError,
            ValueError,
        ) as e:
            raise LocalOCRError(f"Tesseract failed: {e}") from e

        confidence = self._mean_confidence(data)
        self._report(progress_callback, 1.0)

        logger.info(f"Tesseract recognized {len(text.strip())} chars with {confidence:.1f}% confidence")
        return TesseractResult(text=text, confidence=confidence)

    @staticmethod
    def _mean_confidence(data: dict) -> float:
        """Average word confidence, skipping layout rows Tesseract marks with -1."""
        confidences = []
        for conf, word in zip(data.get("conf", []), data.get("text", [])):
            try:
                value = float(conf)
            except (TypeError, ValueError):
                continue
            if value >= 0 and str(word).strip():
                confidences.append(value)
        return sum(confidences) / len(confidences) if confidences else 0.0

    @staticmethod
    def _report(callback: Optional[ProgressCallback], progress: float) -> None:
        if callback is None:
            return
        try:
            callback(progress)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
