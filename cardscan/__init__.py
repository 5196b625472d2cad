"""
Source package initialization for Business Card Scan API.
"""

from .errors import OCRError, ProviderUnavailable, LocalOCRError, NoTextDetected
from .ocr import OCROrchestrator, RecognizedText, Provider
from .parser import FieldClassifier, ContactRecord, Source
from .pipeline import CardScanPipeline, ScanSession
from .tesseract_ocr import TesseractOCR
from .vision_ocr import VisionOCR

__all__ = [
    "OCRError",
    "ProviderUnavailable",
    "LocalOCRError",
    "NoTextDetected",
    "OCROrchestrator",
    "RecognizedText",
    "Provider",
    "FieldClassifier",
    "ContactRecord",
    "Source",
    "CardScanPipeline",
    "ScanSession",
    "TesseractOCR",
    "VisionOCR",
]
