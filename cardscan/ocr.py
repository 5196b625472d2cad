"""
Dual-engine OCR orchestration.

Tries the remote provider first and falls back to the local engine, then
presents one RecognizedText with confidence on a 0..1 scale regardless of
which engine produced it.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .errors import LocalOCRError, NoTextDetected, OCRError
from .preprocessing import EncodedImage
from .tesseract_ocr import TesseractOCR
from .vision_ocr import VisionOCR

logger = logging.getLogger(__name__)

DEFAULT_REMOTE_CONFIDENCE = 0.8
MIN_TEXT_LENGTH = 3


class Provider(str, Enum):
    """Engine that produced a transcription."""
    REMOTE = "remote"
    LOCAL = "local"


@dataclass(frozen=True)
class RecognizedText:
    """One scan attempt's transcription.

    Attributes:
        text: Recognized text, possibly multi-line
        confidence: Best-effort estimate in [0, 1]; a UI hint, not a calibrated probability
        provider: Engine that produced the text
    """
    text: str
    confidence: float
    provider: Provider


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class OCROrchestrator:
    """Remote-first OCR with transparent local fallback."""

    def __init__(
        self,
        remote: Optional[VisionOCR] = None,
        local: Optional[TesseractOCR] = None,
        default_remote_confidence: float = DEFAULT_REMOTE_CONFIDENCE,
        min_text_length: int = MIN_TEXT_LENGTH,
    ):
        """
        Initialize orchestrator.

        Args:
            remote: Remote engine; None skips straight to the local engine
            local: Local fallback engine; None disables the fallback
            default_remote_confidence: Confidence used when the provider omits a score
            min_text_length: Minimum trimmed text length for a successful scan
        """
        self.remote = remote
        self.local = local
        self.default_remote_confidence = default_remote_confidence
        self.min_text_length = min_text_length

    def recognize(
        self,
        image: EncodedImage,
        progress_callback: Optional[Callable[[float], None]] = None,
    ) -> RecognizedText:
        """
        Recognize text on a card image.

        Args:
            image: Data URI, bare base64 or raw image bytes
            progress_callback: Forwarded to the local engine; advisory only

        Returns:
            RecognizedText with normalized confidence

        Raises:
            NoTextDetected: Neither engine produced usable text
        """
        result = self._recognize_remote(image)
        if result is None:
            result = self._recognize_local(image, progress_callback)

        if result is None or len(result.text.strip()) < self.min_text_length:
            raise NoTextDetected()

        return result

    def _recognize_remote(self, image: EncodedImage) -> Optional[RecognizedText]:
        if self.remote is None:
            return None

        start = time.time()
        try:
            annotation = self.remote.detect_text(image)
        except OCRError as e:
            logger.warning(f"Remote OCR failed, using local fallback: {e}")
            return None
        except Exception as e:
            logger.warning(f"Unexpected remote OCR error, using local fallback: {e}", exc_info=True)
            return None

        confidence = annotation.score if annotation.score is not None else self.default_remote_confidence
        logger.debug(f"Remote OCR: {time.time() - start:.2f}s")
        return RecognizedText(text=annotation.text, confidence=_clamp(confidence), provider=Provider.REMOTE)

    def _recognize_local(
        self,
        image: EncodedImage,
        progress_callback: Optional[Callable[[float], None]],
    ) -> Optional[RecognizedText]:
        if self.local is None:
            logger.error("No local OCR engine configured")
            return None

        start = time.time()
        try:
            result = self.local.recognize(image, progress_callback=progress_callback)
        except LocalOCRError as e:
            logger.error(f"Local OCR failed: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected local OCR error: {e}", exc_info=True)
            return None

        logger.debug(f"Local OCR: {time.time() - start:.2f}s")
        return RecognizedText(
            text=result.text,
            confidence=_clamp(result.confidence / 100.0),
            provider=Provider.LOCAL,
        )
