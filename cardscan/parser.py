"""
Heuristic field classifier for business card text.

Turns raw OCR output into a ContactRecord. Emails, phones and websites are
pulled out with patterns over a cleaned copy of the text; name, company,
job title and location are assigned line by line through an ordered rule
table, each line going to at most one field.
"""
import logging
import re
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .text import (
    clean_text,
    contains_digits_of,
    contains_ignore_case,
    normalize_phone,
    split_lines,
    strip_url_prefix,
)

logger = logging.getLogger(__name__)


# =========================
# DATA MODEL
# =========================

class Source(str, Enum):
    """Where the scanned image came from."""
    CAMERA = "camera"
    UPLOAD = "upload"

    @classmethod
    def parse(cls, value: Any, default: "Source" = None) -> "Source":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            if default is not None:
                return default
            raise


@dataclass
class ContactRecord:
    """Structured result of classifying one card.

    Every field except raw_text is derived; None means the field was not
    confidently detected. raw_text is the OCR output exactly as received.
    """
    raw_text: str = ""
    source: Source = Source.UPLOAD
    name: Optional[str] = None
    job_title: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["source"] = self.source.value
        return {
            key: data[key]
            for key in (
                "name", "job_title", "company", "phone", "email",
                "website", "location", "raw_text", "source", "confidence",
            )
        }

    def has_fields(self) -> bool:
        """Check if any field besides the raw text was detected."""
        return any([
            self.name, self.job_title, self.company, self.phone,
            self.email, self.website, self.location,
        ])


# =========================
# PATTERNS & VOCABULARIES
# =========================

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}", re.IGNORECASE)

# Tried as one alternation: the earliest match in the text wins, and at a
# given position the earlier tier wins. Separators never include a line break.
PHONE_PATTERN_TIERS = (
    r"\+?91[ \t-]?[6-9]\d{9}",                                        # India mobile
    r"(?:\+?1[ \t.-]?)?\(?[2-9]\d{2}\)?[ \t.-]?\d{3}[ \t.-]?\d{4}",   # North America
    r"\+\d{1,3}(?:[ \t.-]?\(?\d{1,4}\)?){2,5}",                       # grouped international
    r"\+?[1-9]\d{6,14}",                                              # bare E.164-like run
)
PHONE_PATTERN = re.compile("|".join(f"(?:{tier})" for tier in PHONE_PATTERN_TIERS))

WEBSITE_PATTERN = re.compile(
    r"(?<![\w@.-])(?:https?://)?(?:www\.)?"
    r"(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,}"
    r"(?![\w@-]|\.\w)",
    re.IGNORECASE,
)

_NAME_WORD = r"[A-ZÀ-ÖØ-Þ][A-Za-zÀ-ÖØ-öø-ÿ'’-]+"
NAME_PATTERN = re.compile(rf"^{_NAME_WORD}\s+{_NAME_WORD}(?:\s+{_NAME_WORD})?$")
DIGIT_PATTERN = re.compile(r"\d")

PROPER_CASE_PATTERN = re.compile(r"^[A-Z][a-zA-Z\s&,.-]{2,}")

COMPANY_KEYWORDS = (
    "inc", "ltd", "llc", "corp", "corporation", "company", "co",
    "pvt", "private", "limited", "group", "solutions", "services",
    "technologies", "systems", "enterprises", "consulting", "software",
    "tech", "digital", "innovation", "associates", "holdings", "industries",
)

# Legal abbreviations short enough to hide inside ordinary words
WHOLE_WORD_COMPANY_KEYWORDS = frozenset({"inc", "ltd", "llc", "co", "pvt", "corp"})

TITLE_KEYWORDS = (
    "manager", "director", "ceo", "cto", "cfo", "coo", "president",
    "vice president", "vp", "senior", "lead", "head", "chief", "engineer",
    "developer", "analyst", "consultant", "specialist", "coordinator",
    "executive", "officer", "founder", "partner", "associate", "designer",
    "architect",
)

STREET_PATTERN = re.compile(
    r"\d+.*\b(?:street|st|avenue|ave|road|rd|drive|dr|lane|ln|boulevard|blvd)\b",
    re.IGNORECASE,
)
CITY_STATE_ZIP_PATTERN = re.compile(r"[A-Z][a-z]+,\s*[A-Z]{2}\s*\d{5}")
POSTAL_CODE_6_PATTERN = re.compile(r"\d{6}")
# Also hits unrelated 5-digit numbers (extensions, codes); accepted as lossy.
POSTAL_CODE_5_PATTERN = re.compile(r"\d{5}")

ADDRESS_PATTERNS = (
    STREET_PATTERN,
    CITY_STATE_ZIP_PATTERN,
    POSTAL_CODE_6_PATTERN,
    POSTAL_CODE_5_PATTERN,
)

# Second address line: a city/region ending in a postal code
POSTAL_LINE_PATTERN = re.compile(r"^[^\W\d_][\w\s,.'-]*?\b\d{5,6}(?:-\d{4})?$")


def build_keyword_pattern(keywords: Iterable[str], whole_words: Iterable[str] = ()) -> re.Pattern:
    """
    Compile a keyword vocabulary into one case-insensitive pattern.

    Args:
        keywords: Vocabulary matched as substrings
        whole_words: Members of the vocabulary that must match as whole words

    Returns:
        Compiled alternation pattern
    """
    whole = {w.lower() for w in whole_words}
    parts = []
    for keyword in sorted({k.lower() for k in keywords}, key=lambda k: (-len(k), k)):
        escaped = re.escape(keyword)
        # Whole words also refuse hyphenated compounds such as "Co-Founder"
        parts.append(rf"\b{escaped}\b(?!-)" if keyword in whole else escaped)
    if not parts:
        return re.compile(r"(?!x)x")
    return re.compile("|".join(parts), re.IGNORECASE)


# =========================
# RULE TABLE
# =========================

@dataclass(frozen=True)
class ExtractedContacts:
    """Pattern-extracted values, already normalized."""
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None

    def mentioned_in(self, line: str) -> bool:
        """Check if a line carries any of the extracted values."""
        return (
            contains_ignore_case(line, self.email)
            or (self.phone is not None and contains_digits_of(line, self.phone))
            or contains_ignore_case(line, self.website)
        )


@dataclass(frozen=True)
class LineRule:
    """One step of line classification.

    Attributes:
        field: ContactRecord attribute the rule fills
        predicate: Test applied to a candidate line
        max_index: Highest line index the rule may claim
        continuation: Optional test (matched line, next line) that lets the
            rule claim the following line as well
    """
    field: str
    predicate: Callable[[str], bool]
    max_index: Optional[int] = None
    continuation: Optional[Callable[[str, str], bool]] = None


def looks_like_name(line: str) -> bool:
    return bool(NAME_PATTERN.match(line)) and not DIGIT_PATTERN.search(line)


def looks_like_address(line: str) -> bool:
    return any(pattern.search(line) for pattern in ADDRESS_PATTERNS)


def continues_address(line: str, next_line: str) -> bool:
    if not STREET_PATTERN.search(line):
        return False
    return bool(CITY_STATE_ZIP_PATTERN.search(next_line) or POSTAL_LINE_PATTERN.match(next_line))


def is_proper_case(line: str) -> bool:
    return bool(PROPER_CASE_PATTERN.match(line))


# =========================
# CLASSIFIER
# =========================

class FieldClassifier:
    """Deterministic, rule-based business card field classifier."""

    def __init__(
        self,
        company_keywords: Iterable[str] = COMPANY_KEYWORDS,
        title_keywords: Iterable[str] = TITLE_KEYWORDS,
        whole_word_company_keywords: Iterable[str] = WHOLE_WORD_COMPANY_KEYWORDS,
    ):
        """
        Initialize classifier.

        Args:
            company_keywords: Legal-entity and industry words marking a company line
            title_keywords: Role and seniority words marking a job title line
            whole_word_company_keywords: Company keywords matched as whole words only
        """
        self.company_pattern = build_keyword_pattern(company_keywords, whole_word_company_keywords)
        self.title_pattern = build_keyword_pattern(title_keywords)

        # Evaluated top to bottom; a rule for an already-filled field is skipped
        self.rules: Tuple[LineRule, ...] = (
            LineRule("name", looks_like_name, max_index=3),
            LineRule("company", lambda line: bool(self.company_pattern.search(line))),
            LineRule("company", is_proper_case, max_index=4),
            LineRule("job_title", lambda line: bool(self.title_pattern.search(line))),
            LineRule("location", looks_like_address, continuation=continues_address),
        )

    # =========================
    # PUBLIC API
    # =========================

    def classify(
        self,
        text: str,
        confidence: Optional[float] = None,
        source: Source = Source.UPLOAD,
    ) -> ContactRecord:
        """
        Classify recognized card text into contact fields.

        Never raises: text that yields nothing produces a record with only
        raw_text, source and confidence set.

        Args:
            text: Raw OCR text
            confidence: OCR confidence (0..1), passed through unchanged
            source: Provenance of the scanned image

        Returns:
            ContactRecord for the card
        """
        record = ContactRecord(
            raw_text=text if text is not None else "",
            source=Source.parse(source, default=Source.UPLOAD),
            confidence=confidence,
        )
        if not isinstance(text, str) or not text.strip():
            return record

        lines = split_lines(text)
        contacts = self.extract_contacts(clean_text(text))
        record.email = contacts.email
        record.phone = contacts.phone
        record.website = contacts.website

        fields = self.classify_lines(lines, contacts)
        for field_name, value in fields.items():
            setattr(record, field_name, value)

        logger.debug(
            f"Classified {len(lines)} lines: "
            f"{', '.join(sorted(k for k, v in record.to_dict().items() if v and k != 'raw_text'))}"
        )
        return record

    def extract_contacts(self, cleaned: str) -> ExtractedContacts:
        """Pull email, phone and website from the cleaned text."""
        return ExtractedContacts(
            email=self._extract_email(cleaned),
            phone=self._extract_phone(cleaned),
            website=self._extract_website(cleaned),
        )

    def classify_lines(self, lines: List[str], contacts: ExtractedContacts) -> Dict[str, str]:
        """
        Run the rule table over the candidate lines.

        Args:
            lines: Trimmed candidate lines
            contacts: Pattern-extracted values used to exclude contact lines

        Returns:
            Mapping of field name to the claimed line text
        """
        fields: Dict[str, str] = {}
        claimed: FrozenSet[int] = frozenset()

        for rule in self.rules:
            if rule.field in fields:
                continue
            value, claimed = self._apply_rule(rule, lines, claimed, contacts)
            if value is not None:
                fields[rule.field] = value

        return fields

    # =========================
    # HELPERS
    # =========================

    def _apply_rule(
        self,
        rule: LineRule,
        lines: List[str],
        claimed: FrozenSet[int],
        contacts: ExtractedContacts,
    ) -> Tuple[Optional[str], FrozenSet[int]]:
        """Claim the first available line satisfying the rule."""
        for index, line in enumerate(lines):
            if rule.max_index is not None and index > rule.max_index:
                break
            if not self._is_available(index, lines, claimed, contacts):
                continue
            if not rule.predicate(line):
                continue

            taken = {index}
            value = line
            following = index + 1
            if (
                rule.continuation is not None
                and following < len(lines)
                and self._is_available(following, lines, claimed, contacts)
                and rule.continuation(line, lines[following])
            ):
                value = f"{line.rstrip(',')}, {lines[following]}"
                taken.add(following)

            return value, claimed | taken

        return None, claimed

    @staticmethod
    def _is_available(
        index: int,
        lines: List[str],
        claimed: FrozenSet[int],
        contacts: ExtractedContacts,
    ) -> bool:
        return index not in claimed and not contacts.mentioned_in(lines[index])

    def _extract_email(self, text: str) -> Optional[str]:
        """Extract email address."""
        m = EMAIL_PATTERN.search(text)
        return m.group(0).lower() if m else None

    def _extract_phone(self, text: str) -> Optional[str]:
        """Extract phone number, reduced to digits and a leading '+'."""
        m = PHONE_PATTERN.search(text)
        if not m:
            return None
        return normalize_phone(m.group(0)) or None

    def _extract_website(self, text: str) -> Optional[str]:
        """Extract website host without scheme or 'www.'."""
        m = WEBSITE_PATTERN.search(text)
        if not m:
            return None
        return strip_url_prefix(m.group(0)) or None
