from __future__ import annotations

import re
from typing import List, Optional


_NON_WORD_RE = re.compile(r"[^\w\s]")
_PAGE_FOOTER_RE = re.compile(r"\n\s*page\s+\d+\s*(?:of\s+\d+)?\s*\n", re.IGNORECASE)
_HYPHEN_BREAK_RE = re.compile(r"(\w)-\s*\n\s*(\w)")


def tokenize(text: object) -> List[str]:
    """Lowercase, strip punctuation and drop single-character tokens."""

    if not text or not isinstance(text, str):
        return []
    cleaned = _NON_WORD_RE.sub(" ", text.lower())
    return [t for t in cleaned.split() if len(t) > 1]


def normalize_text(text: str) -> str:
    # Keep ordering stable; normalize common PDF/text artifacts.
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("\u00a0", " ")  # NBSP
    text = text.replace("\u200b", "")  # zero-width space
    text = text.replace("\t", " ")

    lines: List[str] = []
    for line in text.split("\n"):
        line = line.rstrip()
        m = re.match(r"^ *", line)
        indent = m.group(0) if m else ""
        rest = re.sub(r" {2,}", " ", line[len(indent) :])
        lines.append(indent + rest)

    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text)


def clean_text(text: Optional[str]) -> Optional[str]:
    """Tidy an extracted span: drop page footers, repair hyphenation, squeeze whitespace."""

    if not text:
        return None

    text = text.replace("\r\n", "\n")
    text = _PAGE_FOOTER_RE.sub("\n", text)
    text = _HYPHEN_BREAK_RE.sub(r"\1\2", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    return text.strip() or None


def collapse_ws(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def count_words(text: str) -> int:
    return len(text.split())


def to_title_case(text: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), text.lower())


def detect_tables(text: str) -> bool:
    # Several lines with repeated column separators.
    tab_lines = 0
    pipe_lines = 0
    for line in text.split("\n"):
        if line.count("\t") >= 2:
            tab_lines += 1
        if line.count("|") >= 2:
            pipe_lines += 1
    return tab_lines >= 3 or pipe_lines >= 3
