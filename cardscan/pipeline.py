"""
Business Card Scan Pipeline
OCR plus field classification for one card at a time.

FLOW:
1. Google Cloud Vision (remote, high accuracy)
2. If it fails or finds nothing → Tesseract on-device fallback
3. Heuristic field classification → ContactRecord
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional

from .ocr import DEFAULT_REMOTE_CONFIDENCE, MIN_TEXT_LENGTH, OCROrchestrator
from .parser import ContactRecord, FieldClassifier, Source
from .preprocessing import EncodedImage, ImagePreprocessor
from .tesseract_ocr import TesseractOCR
from .vision_ocr import VISION_API_URL, VisionOCR

logger = logging.getLogger(__name__)


class ScanSession:
    """Keeps the newest scan result for one client.

    Each scan takes a generation number when it starts. A result is only
    stored if no newer scan has started since, so a slow response can never
    overwrite a fresher one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._generation = 0
        self.latest: Optional[ContactRecord] = None

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self) -> int:
        """Start a scan and return its generation."""
        with self._lock:
            self._generation += 1
            return self._generation

    def complete(self, generation: int, record: ContactRecord) -> bool:
        """
        Store a finished scan if it is still the newest.

        Args:
            generation: Value returned by begin() for this scan
            record: Classified result

        Returns:
            True if stored, False if a newer scan superseded it
        """
        with self._lock:
            if generation != self._generation:
                return False
            self.latest = record
            return True


class CardScanPipeline:
    """Complete pipeline for scanning business cards."""

    def __init__(
        self,
        vision_api_key: Optional[str] = None,
        vision_api_url: str = VISION_API_URL,
        remote_timeout: float = 10.0,
        ocr_language: str = "eng",
        tesseract_cmd: Optional[str] = None,
        enhance_images: bool = False,
        max_dimension: int = 1600,
        default_remote_confidence: float = DEFAULT_REMOTE_CONFIDENCE,
        min_text_length: int = MIN_TEXT_LENGTH,
        orchestrator: Optional[OCROrchestrator] = None,
        classifier: Optional[FieldClassifier] = None,
    ):
        if orchestrator is None:
            orchestrator = OCROrchestrator(
                remote=VisionOCR(api_key=vision_api_key, api_url=vision_api_url, timeout=remote_timeout),
                local=TesseractOCR(
                    language=ocr_language,
                    tesseract_cmd=tesseract_cmd,
                    preprocessor=ImagePreprocessor(enhance=enhance_images, max_dimension=max_dimension),
                ),
                default_remote_confidence=default_remote_confidence,
                min_text_length=min_text_length,
            )
        self.orchestrator = orchestrator
        self.classifier = classifier or FieldClassifier()

        logger.info("CardScanPipeline initialized")

    # ======================================================
    # SINGLE SCAN
    # ======================================================

    def scan(
        self,
        image: EncodedImage,
        source: Source = Source.UPLOAD,
        session: Optional[ScanSession] = None,
        progress_callback: Optional[Callable[[float], None]] = None,
    ) -> ContactRecord:
        """
        Scan a business card image into a contact record.

        Args:
            image: Data URI, bare base64 or raw image bytes
            source: Whether the image came from the camera or an upload
            session: Optional session that keeps only the newest result
            progress_callback: Advisory progress for the local engine

        Returns:
            ContactRecord for the card

        Raises:
            NoTextDetected: Neither OCR engine produced usable text
        """
        start_time = time.time()
        generation = session.begin() if session is not None else None

        recognized = self.orchestrator.recognize(image, progress_callback=progress_callback)
        record = self.classifier.classify(recognized.text, recognized.confidence, source)
        if not record.has_fields():
            logger.info("Text recognized but no contact fields detected")

        if session is not None and not session.complete(generation, record):
            logger.info(f"Discarding stale scan result (generation {generation} < {session.generation})")

        logger.info(
            f"⏱️ Scan finished in {time.time() - start_time:.2f}s "
            f"via {recognized.provider.value} OCR ({recognized.confidence:.0%} confidence)"
        )
        return record

    def process_text(
        self,
        text: str,
        confidence: Optional[float] = None,
        source: Source = Source.UPLOAD,
    ) -> ContactRecord:
        """Classify already-recognized text, skipping OCR."""
        return self.classifier.classify(text, confidence, source)

    # ======================================================
    # STATUS
    # ======================================================

    def get_status(self) -> Dict:
        """Get pipeline status information."""
        remote = self.orchestrator.remote
        local = self.orchestrator.local
        return {
            "remote_ocr": "google_vision" if remote is not None else None,
            "remote_ocr_configured": bool(remote is not None and remote.is_available()),
            "local_ocr": "tesseract" if local is not None else None,
            "ocr_language": local.language if local is not None else None,
            "image_enhancement": bool(local is not None and local.preprocessor.enhance),
            "default_remote_confidence": self.orchestrator.default_remote_confidence,
            "min_text_length": self.orchestrator.min_text_length,
        }
