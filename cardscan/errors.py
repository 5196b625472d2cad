"""
Error types raised by the OCR stage.

Only NoTextDetected ever reaches the caller; the other errors are recovered
inside the orchestrator.
"""


class OCRError(Exception):
    """Base class for OCR stage failures."""


class ProviderUnavailable(OCRError):
    """Remote OCR provider failed or is not configured."""


class LocalOCRError(OCRError):
    """On-device OCR engine could not process the image."""


class NoTextDetected(OCRError):
    """No usable text could be recognized in the image."""

    DEFAULT_MESSAGE = "No text could be extracted from the image"

    def __init__(self, message: str = DEFAULT_MESSAGE):
        super().__init__(message)
