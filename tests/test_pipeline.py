"""
Tests for CardScanPipeline class.

Tests the full processing pipeline.
"""

import pytest
from unittest.mock import Mock

from cardscan.errors import NoTextDetected
from cardscan.ocr import OCROrchestrator, Provider, RecognizedText
from cardscan.parser import ContactRecord, Source
from cardscan.pipeline import CardScanPipeline, ScanSession

CARD_TEXT = "Jane Doe\nAcme Solutions Inc\nSenior Engineer\njane@acme.com\n+1 (415) 555-0132"


class TestCardScanPipeline:
    """Test cases for CardScanPipeline."""

    @pytest.fixture
    def mock_orchestrator(self):
        orchestrator = Mock()
        orchestrator.recognize.return_value = RecognizedText(
            text=CARD_TEXT, confidence=0.93, provider=Provider.REMOTE
        )
        return orchestrator

    @pytest.fixture
    def pipeline(self, mock_orchestrator):
        """Create pipeline with a mocked OCR stage."""
        return CardScanPipeline(orchestrator=mock_orchestrator)

    def test_pipeline_initialization(self, monkeypatch):
        """Test default construction wires both engines."""
        monkeypatch.delenv("GOOGLE_CLOUD_API_KEY", raising=False)

        pipeline = CardScanPipeline()

        assert isinstance(pipeline.orchestrator, OCROrchestrator)
        assert pipeline.orchestrator.remote is not None
        assert pipeline.orchestrator.local is not None
        assert pipeline.classifier is not None

    def test_get_status(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_CLOUD_API_KEY", raising=False)

        status = CardScanPipeline(ocr_language="deu", enhance_images=True).get_status()

        assert status["remote_ocr"] == "google_vision"
        assert status["remote_ocr_configured"] is False
        assert status["local_ocr"] == "tesseract"
        assert status["ocr_language"] == "deu"
        assert status["image_enhancement"] is True
        assert status["default_remote_confidence"] == 0.8
        assert status["min_text_length"] == 3

    def test_scan(self, pipeline, mock_orchestrator):
        """Test a scan produces a classified contact record."""
        record = pipeline.scan("data:image/jpeg;base64,aGVsbG8=", source=Source.CAMERA)

        assert isinstance(record, ContactRecord)
        assert record.name == "Jane Doe"
        assert record.company == "Acme Solutions Inc"
        assert record.job_title == "Senior Engineer"
        assert record.email == "jane@acme.com"
        assert record.phone == "+14155550132"
        assert record.raw_text == CARD_TEXT
        assert record.confidence == 0.93
        assert record.source is Source.CAMERA
        mock_orchestrator.recognize.assert_called_once()

    def test_scan_forwards_progress_callback(self, pipeline, mock_orchestrator):
        callback = Mock()

        pipeline.scan(b"image", progress_callback=callback)

        assert mock_orchestrator.recognize.call_args.kwargs["progress_callback"] is callback

    def test_scan_no_text(self, pipeline, mock_orchestrator):
        """Test OCR failure propagates to the caller."""
        mock_orchestrator.recognize.side_effect = NoTextDetected()

        with pytest.raises(NoTextDetected):
            pipeline.scan(b"image")

    def test_scan_stores_result_in_session(self, pipeline):
        session = ScanSession()

        record = pipeline.scan(b"image", session=session)

        assert session.latest is record
        assert session.generation == 1

    def test_stale_scan_is_discarded(self, pipeline, mock_orchestrator):
        """Test a scan superseded mid-flight never becomes the latest result."""
        session = ScanSession()
        recognized = mock_orchestrator.recognize.return_value

        def newer_scan_starts(image, progress_callback=None):
            session.begin()
            return recognized

        mock_orchestrator.recognize.side_effect = newer_scan_starts

        record = pipeline.scan(b"image", session=session)

        assert record.name == "Jane Doe"
        assert session.latest is None
        assert session.generation == 2

    def test_process_text(self, pipeline, mock_orchestrator):
        """Test text-only classification skips OCR."""
        record = pipeline.process_text(CARD_TEXT, 0.5, Source.UPLOAD)

        assert record.name == "Jane Doe"
        assert record.confidence == 0.5
        mock_orchestrator.recognize.assert_not_called()

    def test_scan_without_fields_still_returns_record(self, pipeline, mock_orchestrator):
        """Test text with no recognizable fields gives a record with raw text only."""
        mock_orchestrator.recognize.return_value = RecognizedText(
            text="xq zzv", confidence=0.4, provider=Provider.LOCAL
        )

        record = pipeline.scan(b"image")

        assert record.raw_text == "xq zzv"
        assert not record.has_fields()


class TestScanSession:
    """Test cases for ScanSession."""

    def test_newest_result_wins(self):
        session = ScanSession()
        first = session.begin()
        second = session.begin()

        assert session.complete(second, ContactRecord(raw_text="second")) is True
        assert session.complete(first, ContactRecord(raw_text="first")) is False
        assert session.latest.raw_text == "second"

    def test_starts_empty(self):
        session = ScanSession()

        assert session.latest is None
        assert session.generation == 0

