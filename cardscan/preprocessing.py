"""
Image handling for business card OCR.

Converts between the encodings the capture side hands over (data URIs,
raw base64, bytes) and prepares images for the local OCR engine.
"""

import base64
import binascii
import logging
import re
from typing import Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

EncodedImage = Union[str, bytes]

DATA_URI_PATTERN = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,")


def strip_data_uri(image_data: str) -> str:
    """
    Remove a 'data:image/...;base64,' prefix if present.

    Args:
        image_data: Data URI or bare base64 string

    Returns:
        Bare base64 payload
    """
    return DATA_URI_PATTERN.sub("", image_data.strip())


def to_base64(image: EncodedImage) -> str:
    """Encode an image as bare base64, the form the remote provider expects."""
    if isinstance(image, (bytes, bytearray)):
        return base64.b64encode(bytes(image)).decode("ascii")
    return strip_data_uri(image)


def to_bytes(image: EncodedImage) -> bytes:
    """
    Decode an image payload into raw bytes.

    Raises:
        ValueError: If a string payload is not valid base64
    """
    if isinstance(image, (bytes, bytearray)):
        return bytes(image)
    try:
        return base64.b64decode(strip_data_uri(image), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e


class ImagePreprocessor:
    """Decodes and optionally enhances card images before local OCR."""

    def __init__(self, enhance: bool = False, max_dimension: int = 1600):
        """
        Initialize preprocessor.

        Args:
            enhance: Apply denoising and contrast enhancement
            max_dimension: Target width for upscaling small images when enhancing
        """
        self.enhance = enhance
        self.max_dimension = max_dimension

    @staticmethod
    def decode(image: EncodedImage) -> np.ndarray:
        """
        Decode an encoded image into a BGR array.

        Raises:
            ValueError: If the payload is not a readable image
        """
        buffer = np.frombuffer(to_bytes(image), dtype=np.uint8)
        img = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
        if img is None:
            raise ValueError("Cannot decode image data")
        return img

    def prepare(self, image: EncodedImage) -> np.ndarray:
        """
        Decode an image and get it ready for Tesseract.

        Returns:
            RGB array, or a single-channel array when enhancement is on

        Raises:
            ValueError: If the image cannot be decoded or processed
        """
        img = self.decode(image)
        try:
            if not self.enhance:
                return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
            return self.enhance_image(img)
        except cv2.error as e:
            raise ValueError(f"Image preprocessing failed: {e}") from e

    def enhance_image(self, img: np.ndarray) -> np.ndarray:
        """Resize, grayscale, denoise and boost contrast."""
        h, w = img.shape[:2]

        # Small phone captures read much better once upscaled
        if w < self.max_dimension:
            scale = self.max_dimension / w
            img = cv2.resize(img, (self.max_dimension, int(h * scale)), interpolation=cv2.INTER_CUBIC)
            logger.debug(f"Resized from {w}x{h} to {img.shape[1]}x{img.shape[0]}")

        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        gray = cv2.fastNlMeansDenoising(gray, None, h=8, templateWindowSize=7, searchWindowSize=21)

        clahe = cv2.createCLAHE(clipLimit=3.0, tileGridSize=(12, 12))
        gray = clahe.apply(gray)

        # Unsharp mask
        blurred = cv2.GaussianBlur(gray, (0, 0), 1.0)
        return cv2.addWeighted(gray, 1.5, blurred, -0.5, 0)
