from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Tuple


COMMITTEE_REPORT = "committee_report"
QUESTIONS = "questions"
MOTION = "motion"
AMENDMENT = "amendment"
UNKNOWN = "unknown"

# Order matters: earlier archetypes win ties.
RANKED_TYPES = (COMMITTEE_REPORT, QUESTIONS, MOTION)

AMENDMENT_THRESHOLD = 4


def _has(pattern: str, flags: int = re.IGNORECASE) -> Callable[[str], bool]:
    rx = re.compile(pattern, flags)
    return lambda text: rx.search(text) is not None


def _starts_with(pattern: str) -> Callable[[str], bool]:
    rx = re.compile(pattern, re.IGNORECASE)
    return lambda text: rx.match(text.lstrip()) is not None


def _at_least(pattern: str, count: int) -> Callable[[str], bool]:
    rx = re.compile(pattern, re.IGNORECASE)
    return lambda text: len(rx.findall(text)) >= count


@dataclass(frozen=True)
class Signal:
    document_type: str
    weight: int
    test: Callable[[str], bool]


AMENDMENT_HEADER_RE = re.compile(r"^amendment\s*(?:to|:)", re.IGNORECASE)
AMENDMENT_TO_RE = re.compile(r"amendment\s+to\s+(?:the\s+)?(?:motion|recommendation|resolution)", re.IGNORECASE)
MOTION_BE_AMENDED_RE = re.compile(r"that\s+(?:the\s+)?(?:motion|recommendation)\s+be\s+amended", re.IGNORECASE)
DELETE_INSERT_RE = re.compile(
    r"(?:delete|insert|substitute|add|remove)\s+(?:the\s+)?(?:words?|paragraph|section)", re.IGNORECASE
)

SIGNALS: Tuple[Signal, ...] = (
    Signal(COMMITTEE_REPORT, 3, _has(r"reason for report|purpose of report")),
    Signal(COMMITTEE_REPORT, 2, _has(r"recommendations?\s*:?[ \t]*\n")),
    Signal(COMMITTEE_REPORT, 3, _has(r"\d+\.\s+that\s+(?:cabinet|council|committee)")),
    Signal(QUESTIONS, 3, _at_least(r"question\s*\d+", 2)),
    Signal(QUESTIONS, 3, _has(r"public question time")),
    Signal(QUESTIONS, 2, _has(r"question from")),
    Signal(MOTION, 4, _has(r"notice of motion")),
    Signal(MOTION, 2, _at_least(r"this council", 2)),
    Signal(MOTION, 2, _has(r"proposed by councillor")),
    Signal(AMENDMENT, 4, _starts_with(AMENDMENT_HEADER_RE.pattern)),
    Signal(AMENDMENT, 3, _has(AMENDMENT_TO_RE.pattern)),
    Signal(AMENDMENT, 3, _has(MOTION_BE_AMENDED_RE.pattern)),
    Signal(AMENDMENT, 2, _has(DELETE_INSERT_RE.pattern)),
    Signal(AMENDMENT, 2, _at_least(r"\bamendment\b", 2)),
)


def score_document_types(text: str) -> Dict[str, int]:
    scores = {COMMITTEE_REPORT: 0, QUESTIONS: 0, MOTION: 0, AMENDMENT: 0}
    if not text:
        return scores
    for signal in SIGNALS:
        if signal.test(text):
            scores[signal.document_type] += signal.weight
    return scores


def classify_document(text: str) -> str:
    """Pick the archetype whose signals score highest.

    An amendment wins outright once it reaches the threshold and the motion
    signals do not outscore it. Otherwise the best of report/questions/motion
    wins, ties going to the earlier archetype; no signal at all is unknown.
    """

    scores = score_document_types(text)

    if scores[AMENDMENT] >= AMENDMENT_THRESHOLD and scores[AMENDMENT] >= scores[MOTION]:
        return AMENDMENT

    best = UNKNOWN
    best_score = 0
    for doc_type in RANKED_TYPES:
        if scores[doc_type] > best_score:
            best = doc_type
            best_score = scores[doc_type]
    return best
