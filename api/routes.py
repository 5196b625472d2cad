"""
API routes for Business Card Scan API.

Flask REST API endpoints for scanning business cards.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Optional

from flask import Blueprint, request, jsonify

from cardscan.errors import NoTextDetected, OCRError
from cardscan.parser import Source
from cardscan.pipeline import CardScanPipeline, ScanSession
from cardscan.preprocessing import to_bytes
from config import Config

logger = logging.getLogger(__name__)

# Create Blueprint
api_bp = Blueprint("api", __name__, url_prefix="/api")

RETAKE_HINT = "Retake the photo with good lighting and the card filling the frame."

# Pipeline instance (lazy initialization)
_pipeline: Optional[CardScanPipeline] = None

# Scan sessions keyed by client-supplied id, least recently used first
_sessions: "OrderedDict[str, ScanSession]" = OrderedDict()
_sessions_lock = threading.Lock()


def get_pipeline() -> CardScanPipeline:
    """Get or create pipeline instance.

    Returns:
        CardScanPipeline instance
    """
    global _pipeline

    if _pipeline is None:
        _pipeline = CardScanPipeline(
            vision_api_key=Config.GOOGLE_CLOUD_API_KEY,
            vision_api_url=Config.VISION_API_URL,
            remote_timeout=Config.REMOTE_OCR_TIMEOUT,
            ocr_language=Config.OCR_LANGUAGE,
            tesseract_cmd=Config.TESSERACT_CMD,
            enhance_images=Config.OCR_ENHANCE_IMAGES,
            max_dimension=Config.OCR_MAX_DIMENSION,
            default_remote_confidence=Config.DEFAULT_REMOTE_CONFIDENCE,
            min_text_length=Config.MIN_TEXT_LENGTH
        )
        logger.info("Pipeline initialized with remote OCR: " + str(Config.GOOGLE_CLOUD_API_KEY is not None))

    return _pipeline


def get_session(session_id: Optional[str], create: bool = True) -> Optional[ScanSession]:
    """Look up (or create) the scan session for a client.

    At most Config.MAX_SESSIONS sessions are kept; creating one beyond that
    evicts the least recently used.
    """
    if not session_id:
        return None
    with _sessions_lock:
        session = _sessions.get(session_id)
        if session is not None:
            _sessions.move_to_end(session_id)
        elif create:
            session = ScanSession()
            _sessions[session_id] = session
            while len(_sessions) > max(Config.MAX_SESSIONS, 1):
                evicted, _ = _sessions.popitem(last=False)
                logger.debug(f"Evicted scan session {evicted}")
        return session


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed.

    Args:
        filename: Name of the file

    Returns:
        True if allowed, False otherwise
    """
    return Config.is_allowed_file(filename)


def error_response(message: str, status: int, **extra):
    body = {"success": False, "error": message}
    body.update(extra)
    return jsonify(body), status


@api_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint.

    Returns:
        JSON with health status
    """
    return jsonify({
        "success": True,
        "status": "healthy",
        "message": "Business Card Scan API is running",
        "version": "1.0.0"
    }), 200


@api_bp.route("/status", methods=["GET"])
def get_status():
    """Get API and pipeline status.

    Returns:
        JSON with status information
    """
    try:
        pipeline = get_pipeline()
        status = pipeline.get_status()

        return jsonify({
            "success": True,
            "data": {
                "api_status": "running",
                "pipeline_status": status,
                "api_keys_configured": Config.get_api_status()
            }
        }), 200

    except Exception as e:
        logger.error(f"Error getting status: {str(e)}")
        return error_response(str(e), 500)


@api_bp.route("/scan", methods=["POST"])
def scan_card():
    """Scan a single business card image.

    Expects either:
        - multipart/form-data with 'file' field (source defaults to 'upload')
        - JSON {"imageData": "<data URI or base64>", "source": "camera"}
    Both accept an optional 'session_id' that keeps the newest result.

    Returns:
        JSON with the extracted contact record
    """
    if "file" in request.files:
        file = request.files["file"]

        if file.filename == "":
            return error_response("No file selected", 400)

        if not allowed_file(file.filename):
            return error_response(
                f"File type not allowed. Allowed: {', '.join(sorted(Config.ALLOWED_EXTENSIONS))}", 400
            )

        if file.mimetype and not file.mimetype.startswith("image/"):
            return error_response("Please select an image file.", 400)

        image = file.read()
        raw_source = request.form.get("source", Source.UPLOAD.value)
        session_id = request.form.get("session_id")
    else:
        data = request.get_json(silent=True) or {}
        image = data.get("imageData")
        if not isinstance(image, str) or not image.strip():
            return error_response(
                "No image provided. Use 'file' in form-data or 'imageData' in JSON.", 400
            )
        raw_source = data.get("source", Source.CAMERA.value)
        session_id = data.get("session_id")

    try:
        source = Source.parse(raw_source)
    except ValueError:
        return error_response(f"Invalid source: {raw_source}. Use 'camera' or 'upload'.", 400)

    try:
        image_bytes = to_bytes(image)
    except ValueError as e:
        return error_response(str(e), 400)

    if not image_bytes:
        return error_response("Empty image", 400)

    session = get_session(session_id)
    start_time = time.time()

    try:
        record = get_pipeline().scan(image_bytes, source=source, session=session)
    except NoTextDetected as e:
        logger.info(f"Scan failed: {e}")
        return error_response(str(e), 422, hint=RETAKE_HINT)

    return jsonify({
        "success": True,
        "contact_data": record.to_dict(),
        "session_id": session_id,
        "processing_time_ms": int((time.time() - start_time) * 1000)
    }), 200


@api_bp.route("/scan/<session_id>", methods=["GET"])
def get_scan_result(session_id: str):
    """Get the newest completed scan for a session."""
    session = get_session(session_id, create=False)
    if session is None or session.latest is None:
        return error_response("No scan result for this session", 404)

    return jsonify({
        "success": True,
        "contact_data": session.latest.to_dict(),
        "session_id": session_id
    }), 200


@api_bp.route("/parse-text", methods=["POST"])
def parse_text():
    """Classify already-recognized card text.

    Expects:
        JSON {"text": "...", "confidence": 0.9, "source": "upload"}

    Returns:
        JSON with the extracted contact record
    """
    data = request.get_json(silent=True) or {}
    text = data.get("text")

    if not isinstance(text, str):
        return error_response("No text provided", 400)

    confidence = data.get("confidence")
    if confidence is not None:
        try:
            confidence = float(confidence)
        except (TypeError, ValueError):
            return error_response("Confidence must be a number", 400)
        if not 0.0 <= confidence <= 1.0:
            return error_response("Confidence must be between 0 and 1", 400)

    raw_source = data.get("source", Source.UPLOAD.value)
    try:
        source = Source.parse(raw_source)
    except ValueError:
        return error_response(f"Invalid source: {raw_source}. Use 'camera' or 'upload'.", 400)

    record = get_pipeline().process_text(text, confidence, source)

    return jsonify({
        "success": True,
        "contact_data": record.to_dict()
    }), 200


@api_bp.route("/vision-ocr", methods=["POST"])
def vision_ocr():
    """Run the remote OCR provider only.

    Expects:
        JSON {"imageData": "<data URI or base64>"}

    Returns:
        JSON with the transcription and its confidence
    """
    data = request.get_json(silent=True) or {}
    image = data.get("imageData")

    if not isinstance(image, str) or not image.strip():
        return error_response("No image provided", 400)

    pipeline = get_pipeline()
    remote = pipeline.orchestrator.remote
    if remote is None:
        return error_response("Remote OCR not configured", 500)

    try:
        annotation = remote.detect_text(image)
    except OCRError as e:
        logger.warning(f"Vision OCR failed: {e}")
        return error_response(str(e), 500)

    confidence = annotation.score
    if confidence is None:
        confidence = pipeline.orchestrator.default_remote_confidence

    return jsonify({
        "success": True,
        "text": annotation.text,
        "confidence": confidence
    }), 200
