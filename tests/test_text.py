"""
Tests for text normalization helpers.
"""

from cardscan.text import (
    clean_text,
    contains_digits_of,
    normalize_phone,
    split_lines,
    strip_url_prefix,
)


class TestTextHelpers:
    """Test cases for text helpers."""

    def test_split_lines(self):
        """Test lines are trimmed and single characters dropped."""
        text = "A\n  Jane Doe  \r\n\nx\nAcme Corp\n"

        assert split_lines(text) == ["Jane Doe", "Acme Corp"]

    def test_split_lines_empty(self):
        assert split_lines("") == []
        assert split_lines(None) == []

    def test_clean_text_removes_noise(self):
        """Test stray symbols are removed and whitespace collapsed."""
        assert clean_text("Jane • Doe |  CEO\n") == "Jane Doe CEO"

    def test_clean_text_keeps_contact_punctuation(self):
        """Test characters used by emails and phones survive cleaning."""
        assert clean_text("jane@acme.com +1 (415) 555-0132") == "jane@acme.com +1 (415) 555-0132"

    def test_normalize_phone(self):
        test_cases = [
            ("+1 (415) 555-0132", "+14155550132"),
            ("(415) 555.0132", "4155550132"),
            ("+91-98765-43210", "+919876543210"),
        ]

        for phone, expected in test_cases:
            assert normalize_phone(phone) == expected, f"Failed for: {phone}"

    def test_strip_url_prefix(self):
        test_cases = [
            ("https://www.acme.com", "acme.com"),
            ("http://acme.io", "acme.io"),
            ("WWW.Acme.com", "Acme.com"),
            ("acme.com", "acme.com"),
        ]

        for url, expected in test_cases:
            assert strip_url_prefix(url) == expected, f"Failed for: {url}"

    def test_contains_digits_of(self):
        """Test phone mentions are found regardless of punctuation."""
        assert contains_digits_of("Tel: +1 (415) 555-0132", "+14155550132")
        assert not contains_digits_of("123 Main Street", "+14155550132")
        assert not contains_digits_of("Anything", "")

    def test_clean_text_keeps_line_breaks(self):
        """Test lines are cleaned separately and blank lines dropped."""
        assert clean_text("Jane • Doe\n\n +44 20 7946 0958 \r\n12 High St") == (
            "Jane Doe\n+44 20 7946 0958\n12 High St"
        )
