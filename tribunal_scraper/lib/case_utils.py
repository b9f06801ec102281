"""Text helpers for recognising case-shaped content and parsing dates.

A cell or block is "case-shaped" when it carries one of the identifiers the
tribunal portals print for real cases: a long numeric filing/diary number,
a ``NN/YYYY`` case number, a ``DD-MM-YYYY`` date, or a ``X VS Y`` party
separator.
"""
import re
from datetime import date, datetime
from typing import List, Optional

from dateutil import parser as date_parser

FILING_ID_RE = re.compile(r"\b\d{6,}\b")
CASE_NUMBER_RE = re.compile(r"\b\d{1,6}/\d{4}\b")
DATE_RE = re.compile(r"\b\d{2}-\d{2}-\d{4}\b")
PARTY_SEPARATOR_RE = re.compile(r"\S\s+(?:vs\.?|v/s\.?|v\.|versus)\s+\S", re.IGNORECASE)

# Slash-separated filing numbers, e.g. 2709/1234/2022
FILING_NUMBER_SCAN_RE = re.compile(r"\b\d{2,7}/\d{4,5}/\d+\b")

CASE_SHAPE_PATTERNS = (FILING_ID_RE, CASE_NUMBER_RE, DATE_RE, PARTY_SEPARATOR_RE)

_DATE_FORMATS = (
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%d.%m.%Y",
    "%Y-%m-%d",
    "%d-%b-%Y",
    "%d-%B-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%B %d, %Y",
    "%b %d, %Y",
)


def normalize_space(text: Optional[str]) -> str:
    """Collapse runs of whitespace and strip."""
    return re.sub(r"\s+", " ", text or "").strip()


def is_case_shaped(text: Optional[str]) -> bool:
    if not text:
        return False
    return any(p.search(text) for p in CASE_SHAPE_PATTERNS)


def find_filing_numbers(text: Optional[str]) -> List[str]:
    """Return distinct slash-separated filing numbers in document order."""
    seen = []
    for m in FILING_NUMBER_SCAN_RE.finditer(text or ""):
        if m.group(0) not in seen:
            seen.append(m.group(0))
    return seen


def first_match(pattern: "re.Pattern", text: Optional[str]) -> Optional[str]:
    m = pattern.search(text or "")
    return m.group(0) if m else None


def parse_date_str(s: Optional[str]) -> Optional[date]:
    """Parse a date string into a date object or return None.

    Day-first formats are tried before the dateutil fallback since the
    portals print Indian-style dates.
    """
    if not s:
        return None
    s = normalize_space(s)
    # Bare 1-2 digit tokens (serial numbers) are not dates
    if re.fullmatch(r"\d{1,2}", s):
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue

    if not re.search(r"\d", s):
        return None
    try:
        return date_parser.parse(s, dayfirst=True, fuzzy=True).date()
    except (ValueError, OverflowError):
        return None
