from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional, Tuple

from .text import to_title_case


_MONTHS = {
    "january": 1,
    "jan": 1,
    "february": 2,
    "feb": 2,
    "march": 3,
    "mar": 3,
    "april": 4,
    "apr": 4,
    "may": 5,
    "june": 6,
    "jun": 6,
    "july": 7,
    "jul": 7,
    "august": 8,
    "aug": 8,
    "september": 9,
    "sept": 9,
    "sep": 9,
    "october": 10,
    "oct": 10,
    "november": 11,
    "nov": 11,
    "december": 12,
    "dec": 12,
}

_MONTH_NAMES = (
    "january|february|march|april|may|june|july|august|september|october|november|december"
)

_DATE_UK_SLASH_RE = re.compile(r"^\s*(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})\s*$")
_DATE_DMY_MONTHNAME_RE = re.compile(
    r"\b(?P<day>\d{1,2})(?:st|nd|rd|th)?\s+(?P<month>[A-Za-z]{3,9})\.?,?\s+(?P<year>\d{4})\b",
    re.IGNORECASE,
)

_DATE_PATTERNS = (
    re.compile(
        r"(?:date|meeting date|publication date)\s*:\s*(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})",
        re.IGNORECASE,
    ),
    re.compile(r"(?:date|meeting date|publication date)\s*:\s*(\d{1,2}\s+\w+\s+\d{4})", re.IGNORECASE),
    re.compile(rf"(\d{{1,2}}\s+(?:{_MONTH_NAMES})\s+\d{{4}})", re.IGNORECASE),
)

_AUTHOR_PATTERNS = (
    re.compile(r"(?:author|report by|prepared by|officer)\s*:\s*([^\n]+)", re.IGNORECASE),
    re.compile(
        r"(?:managing director|chief executive|head of|director of)\s*[,:\-]?\s*([A-Z][a-z]+\s+[A-Z][a-z]+)",
        re.IGNORECASE,
    ),
)

_TITLE_PREFIX_RE = re.compile(r"^(?:title|subject|report)\s*:\s*(.+)", re.IGNORECASE)
_COMMITTEE_LINE_RE = re.compile(r"^(?:cabinet|council|committee|meeting)", re.IGNORECASE)
_DATE_LINE_RE = re.compile(r"^\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}")
_PAGE_LINE_RE = re.compile(r"^page\s+\d+", re.IGNORECASE)
_APPENDIX_RE = re.compile(r"appendix\s*[a-z0-9]", re.IGNORECASE)

UNTITLED = "Untitled Document"


def parse_uk_date(value: object) -> Optional[date]:
    """Parse DD/MM/YYYY (or DD-MM-YY) and '5 March 2025' style dates.

    Returns None when the value is not a recognizable calendar date.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    m = _DATE_UK_SLASH_RE.match(value)
    if m:
        dd, mm, yy = int(m.group(1)), int(m.group(2)), int(m.group(3))
        if yy < 100:
            yy = 2000 + yy
        try:
            return date(yy, mm, dd)
        except ValueError:
            return None

    m = _DATE_DMY_MONTHNAME_RE.search(value)
    if m:
        month_raw = m.group("month").lower()
        month = _MONTHS.get(month_raw) or _MONTHS.get(month_raw[:3])
        if month is not None:
            try:
                return date(int(m.group("year")), month, int(m.group("day")))
            except ValueError:
                return None

    return None


def compare_uk_dates(a: object, b: object) -> int:
    """Return -1, 0 or 1; unparsable dates compare as equal."""

    da = parse_uk_date(a)
    db = parse_uk_date(b)
    if da is None or db is None:
        return 0
    return -1 if da < db else (1 if da > db else 0)


def extract_title(text: str) -> str:
    lines = [ln.strip() for ln in text.split("\n") if ln.strip()]

    for line in lines[:20]:
        if len(line) < 5 or len(line) > 200:
            continue
        if _COMMITTEE_LINE_RE.match(line):
            continue
        if _DATE_LINE_RE.match(line):
            continue
        if _PAGE_LINE_RE.match(line):
            continue

        m = _TITLE_PREFIX_RE.match(line)
        if m:
            return m.group(1).strip()

        if 10 <= len(line) <= 150:
            is_all_caps = line == line.upper() and re.search(r"[A-Z]", line) is not None
            if is_all_caps:
                return to_title_case(line)

    for line in lines[:10]:
        if 10 <= len(line) <= 150:
            return line

    return UNTITLED


def extract_author(text: str) -> Optional[str]:
    for pattern in _AUTHOR_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(1).strip()
    return None


def extract_document_date(text: str) -> Tuple[Optional[str], Optional[str]]:
    """Best-effort (raw_date, iso_date) for a document."""

    for pattern in _DATE_PATTERNS:
        m = pattern.search(text)
        if m:
            raw = m.group(1).strip()
            parsed = parse_uk_date(raw)
            return raw, (parsed.isoformat() if parsed else None)
    return None, None


def is_appendix(title: Optional[str]) -> bool:
    if not title:
        return False
    return _APPENDIX_RE.search(title) is not None
