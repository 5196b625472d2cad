"""
Tests for OCROrchestrator class.

Tests remote-first recognition, local fallback and confidence normalization.
"""

import pytest
from unittest.mock import Mock, patch

from cardscan.errors import LocalOCRError, NoTextDetected, ProviderUnavailable
from cardscan.ocr import OCROrchestrator, Provider, RecognizedText
from cardscan.tesseract_ocr import TesseractResult
from cardscan.vision_ocr import VisionAnnotation, VisionOCR

CARD_TEXT = "Jane Doe\nAcme Solutions Inc\njane@acme.com"
IMAGE = "data:image/jpeg;base64,aGVsbG8="


class TestOCROrchestrator:
    """Test cases for OCROrchestrator."""

    @pytest.fixture
    def remote(self):
        """Create a stub remote engine."""
        engine = Mock()
        engine.detect_text.return_value = VisionAnnotation(text=CARD_TEXT, score=0.93)
        return engine

    @pytest.fixture
    def local(self):
        """Create a stub local engine."""
        engine = Mock()
        engine.recognize.return_value = TesseractResult(text=CARD_TEXT, confidence=87.0)
        return engine

    def test_remote_success(self, remote, local):
        """Test remote text and score are used directly."""
        result = OCROrchestrator(remote=remote, local=local).recognize(IMAGE)

        assert isinstance(result, RecognizedText)
        assert result.text == CARD_TEXT
        assert result.confidence == 0.93
        assert result.provider is Provider.REMOTE
        local.recognize.assert_not_called()

    def test_remote_missing_score_uses_default(self, remote, local):
        """Test absent provider score falls back to the default confidence."""
        remote.detect_text.return_value = VisionAnnotation(text=CARD_TEXT)

        result = OCROrchestrator(remote=remote, local=local).recognize(IMAGE)

        assert result.confidence == 0.8

    def test_remote_failure_falls_back(self, remote, local):
        """Test provider errors transparently switch to the local engine."""
        remote.detect_text.side_effect = ProviderUnavailable("quota exceeded")

        result = OCROrchestrator(remote=remote, local=local).recognize(IMAGE)

        assert result.text == CARD_TEXT
        assert result.confidence == pytest.approx(0.87)
        assert result.provider is Provider.LOCAL
        local.recognize.assert_called_once()

    def test_remote_no_text_falls_back(self, remote, local):
        """Test 'no text' from the provider is a remote failure, not a global one."""
        remote.detect_text.side_effect = NoTextDetected("No text detected in image")

        result = OCROrchestrator(remote=remote, local=local).recognize(IMAGE)

        assert result.provider is Provider.LOCAL

    def test_local_only(self, local):
        """Test the local path can be forced by omitting the remote engine."""
        result = OCROrchestrator(remote=None, local=local).recognize(IMAGE)

        assert result.provider is Provider.LOCAL
        assert result.confidence == pytest.approx(0.87)

    def test_both_engines_fail(self, remote, local):
        """Test failure of both engines raises NoTextDetected."""
        remote.detect_text.side_effect = ProviderUnavailable("offline")
        local.recognize.side_effect = LocalOCRError("tesseract missing")

        with pytest.raises(NoTextDetected):
            OCROrchestrator(remote=remote, local=local).recognize(IMAGE)

    def test_no_engines(self):
        with pytest.raises(NoTextDetected):
            OCROrchestrator().recognize(IMAGE)

    def test_short_local_text_rejected(self, local):
        """Test text under three characters fails the scan."""
        local.recognize.return_value = TesseractResult(text=" ab \n", confidence=40.0)

        with pytest.raises(NoTextDetected):
            OCROrchestrator(local=local).recognize(IMAGE)

    def test_short_remote_text_rejected(self, remote, local):
        """Test short remote text fails the scan without trying local."""
        remote.detect_text.return_value = VisionAnnotation(text="  x ", score=0.5)

        with pytest.raises(NoTextDetected):
            OCROrchestrator(remote=remote, local=local).recognize(IMAGE)
        local.recognize.assert_not_called()

    def test_confidence_clamped(self, remote, local):
        """Test confidence always lands in [0, 1]."""
        local.recognize.return_value = TesseractResult(text=CARD_TEXT, confidence=150.0)
        assert OCROrchestrator(local=local).recognize(IMAGE).confidence == 1.0

        remote.detect_text.return_value = VisionAnnotation(text=CARD_TEXT, score=-0.2)
        assert OCROrchestrator(remote=remote).recognize(IMAGE).confidence == 0.0

    def test_progress_callback_forwarded(self, local):
        """Test the progress callback reaches the local engine."""
        callback = Mock()

        OCROrchestrator(local=local).recognize(IMAGE, progress_callback=callback)

        local.recognize.assert_called_once_with(IMAGE, progress_callback=callback)

    @patch("cardscan.vision_ocr.requests.post")
    def test_malformed_remote_response_falls_back(self, mock_post, local):
        """Test a provider error in an unexpected shape still reaches the local engine."""
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.return_value = {"responses": [{"error": "RESOURCE_EXHAUSTED"}]}
        mock_post.return_value = response

        result = OCROrchestrator(remote=VisionOCR(api_key="test-key"), local=local).recognize(b"img")

        assert result.provider is Provider.LOCAL
        assert result.text == CARD_TEXT

    def test_unexpected_remote_error_falls_back(self, remote, local):
        remote.detect_text.side_effect = KeyError("textAnnotations")

        result = OCROrchestrator(remote=remote, local=local).recognize(IMAGE)

        assert result.provider is Provider.LOCAL

    def test_unexpected_local_error_is_no_text(self, local):
        """Test any local engine failure surfaces as NoTextDetected."""
        local.recognize.side_effect = OSError("tesseract crashed")

        with pytest.raises(NoTextDetected):
            OCROrchestrator(local=local).recognize(IMAGE)
