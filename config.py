"""
Configuration management for Business Card Scan API.

Handles environment variables, API keys, and application settings.
"""

import os
import logging
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class Config:
    """Application configuration class.

    Attributes:
        DEBUG: Enable debug mode
        TESTING: Enable testing mode
        SECRET_KEY: Flask secret key
        MAX_CONTENT_LENGTH: Maximum upload file size (10MB default)
        ALLOWED_EXTENSIONS: Allowed image file extensions
        GOOGLE_CLOUD_API_KEY: Key for the remote Vision OCR provider
        REMOTE_OCR_TIMEOUT: Seconds to wait for the remote provider before falling back
        OCR_LANGUAGE: Tesseract language model for the local fallback
    """

    # Flask Settings
    DEBUG: bool = os.getenv("CARDSCAN_DEBUG", "False").lower() == "true"
    TESTING: bool = os.getenv("CARDSCAN_TESTING", "False").lower() == "true"
    SECRET_KEY: str = os.getenv("CARDSCAN_SECRET_KEY", "dev-secret-key-change-in-production")

    # Upload Settings
    MAX_CONTENT_LENGTH: int = 10 * 1024 * 1024  # 10MB max image size
    ALLOWED_EXTENSIONS: set = {"png", "jpg", "jpeg", "gif", "bmp", "webp"}

    # Remote OCR (Google Cloud Vision)
    GOOGLE_CLOUD_API_KEY: Optional[str] = os.getenv("GOOGLE_CLOUD_API_KEY")
    VISION_API_URL: str = os.getenv(
        "CARDSCAN_VISION_API_URL", "https://vision.googleapis.com/v1/images:annotate"
    )
    REMOTE_OCR_TIMEOUT: float = float(os.getenv("CARDSCAN_REMOTE_OCR_TIMEOUT", "10"))
    DEFAULT_REMOTE_CONFIDENCE: float = 0.8
    MIN_TEXT_LENGTH: int = 3

    # Local OCR (Tesseract)
    OCR_LANGUAGE: str = os.getenv("CARDSCAN_OCR_LANGUAGE", "eng")
    TESSERACT_CMD: Optional[str] = os.getenv("TESSERACT_CMD")
    OCR_ENHANCE_IMAGES: bool = os.getenv("CARDSCAN_OCR_ENHANCE_IMAGES", "False").lower() == "true"
    OCR_MAX_DIMENSION: int = int(os.getenv("CARDSCAN_OCR_MAX_DIMENSION", "1600"))

    # Scan sessions kept in memory; the least recently used is evicted
    MAX_SESSIONS: int = int(os.getenv("CARDSCAN_MAX_SESSIONS", "1000"))

    # Logging
    LOG_LEVEL: str = os.getenv("CARDSCAN_LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def init_app(cls, app) -> None:
        """Initialize Flask app with configuration.

        Args:
            app: Flask application instance
        """
        app.config.from_object(cls)

        # Configure logging
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL.upper()),
            format=cls.LOG_FORMAT
        )

        logger.info("Configuration initialized successfully")

    @classmethod
    def is_allowed_file(cls, filename: str) -> bool:
        """Check if file extension is allowed.

        Args:
            filename: Name of the file to check

        Returns:
            True if file extension is allowed, False otherwise
        """
        return "." in filename and \
            filename.rsplit(".", 1)[1].lower() in cls.ALLOWED_EXTENSIONS

    @classmethod
    def get_api_status(cls) -> dict:
        """Get status of configured API keys.

        Returns:
            Dictionary with API availability status
        """
        return {
            "google_cloud_vision": cls.GOOGLE_CLOUD_API_KEY is not None,
        }


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    LOG_LEVEL = "INFO"


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    LOG_LEVEL = "DEBUG"
    GOOGLE_CLOUD_API_KEY = None


# Configuration mapping
config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig
}


def get_config(config_name: Optional[str] = None) -> Config:
    """Get configuration class by name.

    Args:
        config_name: Configuration name (development, production, testing)

    Returns:
        Configuration class
    """
    if config_name is None:
        config_name = os.getenv("CARDSCAN_ENV", "development")
    return config_by_name.get(config_name, DevelopmentConfig)
