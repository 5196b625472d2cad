"""
Text normalization helpers shared by the field classifier.
"""
import re
from typing import List

# Anything OCR tends to scatter around a card that never belongs to a field
NOISE_PATTERN = re.compile(r"[^\w\s@.+\-()]")
WHITESPACE_PATTERN = re.compile(r"\s+")
LINE_BREAK_PATTERN = re.compile(r"[\n\r]+")
URL_PREFIX_PATTERN = re.compile(r"^(?:https?://)?(?:www\.)?", re.IGNORECASE)


def split_lines(text: str) -> List[str]:
    """
    Split recognized text into candidate lines.

    Lines are trimmed and anything of length 1 or less is dropped, since a
    lone character is almost always OCR debris.

    Args:
        text: Raw OCR text

    Returns:
        Trimmed candidate lines in card order
    """
    if not text:
        return []
    lines = [line.strip() for line in LINE_BREAK_PATTERN.split(text)]
    return [line for line in lines if len(line) > 1]


def clean_text(text: str) -> str:
    """
    Build the pattern-matching view of the text.

    Each line has stray symbols replaced with spaces and whitespace runs
    collapsed. Non-empty lines are rejoined with '\\n' so no pattern can
    match across a line break.
    """
    if not text:
        return ""
    lines = (
        WHITESPACE_PATTERN.sub(" ", NOISE_PATTERN.sub(" ", line)).strip()
        for line in LINE_BREAK_PATTERN.split(text)
    )
    return "\n".join(line for line in lines if line)


def digits_only(text: str) -> str:
    return "".join(c for c in text if c.isdigit())


def normalize_phone(phone: str) -> str:
    """Reduce a phone candidate to digits, keeping a leading '+'."""
    phone = phone.strip()
    prefix = "+" if phone.startswith("+") else ""
    return prefix + digits_only(phone)


def strip_url_prefix(url: str) -> str:
    """Remove scheme and 'www.' from a website candidate."""
    return URL_PREFIX_PATTERN.sub("", url.strip())


def contains_ignore_case(line: str, needle: str) -> bool:
    return bool(needle) and needle.lower() in line.lower()


def contains_digits_of(line: str, number: str) -> bool:
    """
    Check whether a line carries the same digit run as a phone number.

    Punctuation differs between the line and the normalized phone, so the
    comparison is done on digits alone.
    """
    digits = digits_only(number)
    return bool(digits) and digits in digits_only(line)
