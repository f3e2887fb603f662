from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .classify import AMENDMENT, COMMITTEE_REPORT, MOTION, QUESTIONS, UNKNOWN, classify_document
from .confidence import assess_confidence
from .metadata import UNTITLED, extract_author, extract_document_date, extract_title, is_appendix
from .text import clean_text, collapse_ws, count_words, detect_tables

logger = logging.getLogger(__name__)


class AnalysisInputError(ValueError):
    pass


DEFAULT_MAX_ITEMS = 20
SECTION_LINE_LIMIT = 100
SHORT_AMENDMENT_WORDS = 500
FULL_TEXT_MIN_CHARS = 50
FULL_TEXT_CAPTURE_RATIO = 0.3
LARGE_DOCUMENT_PAGES = 50
SPARSE_TEXT_WORDS = 50

DEFAULT_QUESTION_FROM = "Member of Public"


# ---------------------------------------------------------------------------
# Committee report sections


@dataclass(frozen=True)
class SectionRule:
    name: str
    output_key: str
    header: re.Pattern


# Evaluated in order; the first rule whose header matches a line claims it.
SECTION_RULES: Tuple[SectionRule, ...] = (
    SectionRule(
        "reason",
        "reason_for_report",
        re.compile(
            r"^(?:reason for report|purpose of report|purpose|executive summary|background and context)\s*:?\s*$",
            re.IGNORECASE,
        ),
    ),
    SectionRule(
        "recommendations",
        "recommendations",
        re.compile(r"^(?:recommendations?|officers? recommends?|proposed resolutions?)\s*:?\s*$", re.IGNORECASE),
    ),
    SectionRule(
        "financial",
        "financial_implications",
        re.compile(
            r"^(?:financial implications?|budget implications?|resource implications?|financial comments?)\s*:?\s*$",
            re.IGNORECASE,
        ),
    ),
    SectionRule(
        "legal",
        "legal_implications",
        re.compile(r"^(?:legal implications?|legal comments?|constitutional issues?)\s*:?\s*$", re.IGNORECASE),
    ),
    SectionRule(
        "risk",
        "risk_assessment",
        re.compile(r"^(?:risk assessment|risks?|risk implications?)\s*:?\s*$", re.IGNORECASE),
    ),
    SectionRule(
        "background",
        "background",
        re.compile(r"^(?:background|context|introduction)\s*:?\s*$", re.IGNORECASE),
    ),
)

_NUMBERED_HEADER_RE = re.compile(r"^(\d+\.?\d*)\s+(.+)")

SECTION_ALIASES: Dict[str, str] = {"reasons": "reason"}
for _rule in SECTION_RULES:
    SECTION_ALIASES[_rule.name] = _rule.name
    SECTION_ALIASES[_rule.output_key] = _rule.name

KNOWN_SECTION_NAMES = frozenset(SECTION_ALIASES) | {"all", "appendix"}

_REC_MARKER_RE = re.compile(r"(?m)^\s*(\d+(?:\.\d+)+\.?|\d+[.)])\s+")
_THAT_STATEMENT_RE = re.compile(r"that\s+(?:cabinet|council|committee|the)[^.]+\.", re.IGNORECASE)
_RESOLVED_BLOCK_RE = re.compile(r"(?i:resolved|recommended)\s*:?\s*\n([\s\S]*?)(?:\n\s*\n|\n[A-Z]{2,})")
_NUMBERED_THAT_RE = re.compile(r"(\d+)\.\s*(that\s+(?:cabinet|council|committee|the)[^.]+\.)", re.IGNORECASE)


def _match_section_header(line: str) -> Optional[SectionRule]:
    for rule in SECTION_RULES:
        if rule.header.match(line):
            return rule

    # "1.0 Recommendations", "3 Financial Implications"
    m = _NUMBERED_HEADER_RE.match(line)
    if m:
        title = m.group(2).strip()
        for rule in SECTION_RULES:
            if rule.header.match(title):
                return rule
    return None


def find_section_headers(lines: Sequence[str]) -> List[Tuple[int, SectionRule]]:
    headers: List[Tuple[int, SectionRule]] = []
    for i, raw in enumerate(lines):
        rule = _match_section_header(raw.strip())
        if rule is not None:
            headers.append((i, rule))
    return headers


def parse_recommendations(text: Optional[str], max_items: int = DEFAULT_MAX_ITEMS) -> List[str]:
    """Split a recommendations block into "N. text" items.

    Leading numeric markers ("1.", "2)", "1.1") start a new item. Without any,
    "That council/cabinet/committee ..." sentences are numbered in order.
    """

    if not text:
        return []

    items: List[str] = []
    markers = list(_REC_MARKER_RE.finditer(text))
    for i, m in enumerate(markers):
        end = markers[i + 1].start() if i + 1 < len(markers) else len(text)
        body = collapse_ws(text[m.end() : end])
        if body:
            items.append(f"{m.group(1).rstrip('.)')}. {body}")

    if not items:
        for n, m in enumerate(_THAT_STATEMENT_RE.finditer(text), start=1):
            items.append(f"{n}. {collapse_ws(m.group(0))}")

    return items[:max_items]


def find_inline_recommendations(text: str, max_items: int = DEFAULT_MAX_ITEMS) -> List[str]:
    m = _RESOLVED_BLOCK_RE.search(text)
    if m:
        items = parse_recommendations(m.group(1), max_items)
        if items:
            return items

    items = []
    for m in _NUMBERED_THAT_RE.finditer(text):
        if len(items) >= max_items:
            break
        items.append(f"{m.group(1)}. {collapse_ws(m.group(2))}")
    return items


def _selected_sections(extract_sections: Sequence[str]) -> Optional[set]:
    """Canonical rule names to extract, or None for all of them."""
    if "all" in extract_sections:
        return None
    return {SECTION_ALIASES[name] for name in extract_sections if name in SECTION_ALIASES}


def extract_report_sections(
    text: str,
    extract_sections: Sequence[str] = ("all",),
    max_items: int = DEFAULT_MAX_ITEMS,
) -> Dict[str, Any]:
    lines = text.split("\n")
    headers = find_section_headers(lines)
    wanted = _selected_sections(extract_sections)

    sections: Dict[str, Any] = {}
    for n, (line_no, rule) in enumerate(headers):
        if wanted is not None and rule.name not in wanted:
            continue

        start = line_no + 1
        if n + 1 < len(headers):
            end = headers[n + 1][0]
        else:
            end = min(start + SECTION_LINE_LIMIT, len(lines))

        body = "\n".join(ln.strip() for ln in lines[start:end] if ln.strip())
        content = clean_text(body)

        if rule.name == "recommendations":
            sections[rule.output_key] = parse_recommendations(content, max_items)
        else:
            sections[rule.output_key] = content

    if wanted is None or "recommendations" in wanted:
        if not sections.get("recommendations"):
            sections["recommendations"] = find_inline_recommendations(text, max_items)

    return sections


# ---------------------------------------------------------------------------
# Questions

SEEKING = "seeking"
IN_QUESTION = "in_question"
IN_ANSWER = "in_answer"
IN_SUPPLEMENTARY = "in_supplementary"

_QUESTION_NUMBER_RE = re.compile(r"^(?:question|q)\s*(\d+)", re.IGNORECASE)
_QUESTION_FROM_RE = re.compile(r"^question(?:\s*\d+)?\s+from\b\s*:?\s*(.+)", re.IGNORECASE)
_ANSWER_RE = re.compile(r"^(?:response|answer|reply)\b\s*:?\s*(.*)", re.IGNORECASE)
_FROM_RE = re.compile(r"^from\s*:\s*(.+)", re.IGNORECASE)
_SUPPLEMENTARY_RE = re.compile(r"^supplementary\b(?:\s+question)?\s*:?\s*(.*)", re.IGNORECASE)

_STATE_FIELDS = {IN_QUESTION: "question", IN_ANSWER: "answer", IN_SUPPLEMENTARY: "supplementary"}


def extract_questions(text: str, max_items: int = DEFAULT_MAX_ITEMS) -> List[Dict[str, Any]]:
    """Walk the lines of a questions paper and emit one record per question.

    A "Question N" or "Question from X" line opens a question and closes the
    previous one. "Answer/Response/Reply" switches to the answer,
    "Supplementary" to the supplementary; "From:" names the asker.
    """

    questions: List[Dict[str, Any]] = []
    current: Optional[Dict[str, Any]] = None
    state = SEEKING
    buffer: List[str] = []

    def close_part() -> None:
        field = _STATE_FIELDS.get(state)
        if current is None or field is None:
            return
        content = clean_text("\n".join(buffer))
        if field == "supplementary":
            current[field] = content
        else:
            current[field] = content or ""

    for raw in text.split("\n"):
        line = raw.strip()
        if not line:
            continue

        num_m = _QUESTION_NUMBER_RE.match(line)
        from_m = _QUESTION_FROM_RE.match(line)
        if num_m or from_m:
            close_part()
            if current is not None:
                questions.append(current)
            current = {
                "number": int(num_m.group(1)) if num_m else len(questions) + 1,
                "from": from_m.group(1).strip() if from_m else DEFAULT_QUESTION_FROM,
                "question": "",
                "answer": "",
                "supplementary": None,
            }
            state = IN_QUESTION
            buffer = []
            continue

        if current is None:
            continue

        answer_m = _ANSWER_RE.match(line)
        if answer_m and state != IN_SUPPLEMENTARY:
            close_part()
            state = IN_ANSWER
            buffer = [answer_m.group(1)] if answer_m.group(1) else []
            continue

        from_line = _FROM_RE.match(line)
        if from_line:
            current["from"] = from_line.group(1).strip()
            continue

        supp_m = _SUPPLEMENTARY_RE.match(line)
        if supp_m:
            close_part()
            state = IN_SUPPLEMENTARY
            buffer = [supp_m.group(1)] if supp_m.group(1) else []
            continue

        buffer.append(line)

    close_part()
    if current is not None:
        questions.append(current)

    return questions[:max_items]


# ---------------------------------------------------------------------------
# Motions

_PROPOSER_RE = re.compile(r"^(?:proposed by|proposer)\s*:?\s*(?:councillor\s+)?(.+)", re.IGNORECASE)
_SECONDER_RE = re.compile(r"^(?:seconded by|seconder)\s*:?\s*(?:councillor\s+)?(.+)", re.IGNORECASE)
_THIS_COUNCIL_RE = re.compile(r"this council", re.IGNORECASE)
_MOTION_TITLE_RE = re.compile(r"notice of motion\s*[:–-]?\s*([^\n]+)", re.IGNORECASE)
_MOTION_BACKGROUND_RE = re.compile(r"\b(?:background|context|reason)", re.IGNORECASE)

_MOTION_END_RES = (
    re.compile(r"\n\s*(?:background|reasons?|notes?|appendix)\b", re.IGNORECASE),
    re.compile(r"\n\s*(?:proposed by|seconded by)", re.IGNORECASE),
    re.compile(r"\n{3,}"),
)
_AMENDED_MOTION_END_RES = _MOTION_END_RES[1:]


def _first_line_match(lines: Iterable[str], pattern: re.Pattern) -> Optional[str]:
    for line in lines:
        m = pattern.match(line.strip())
        if m:
            return m.group(1).strip()
    return None


def _this_council_passage(text: str, end_patterns: Sequence[re.Pattern]) -> Tuple[int, Optional[str]]:
    """Text from the first "This Council" up to the nearest end boundary."""

    m = _THIS_COUNCIL_RE.search(text)
    if not m:
        return -1, None
    passage = text[m.start() :]
    ends = [e.start() for e in (p.search(passage) for p in end_patterns) if e]
    if ends:
        passage = passage[: min(ends)]
    return m.start(), clean_text(passage)


def extract_motion(text: str) -> Dict[str, Optional[str]]:
    lines = text.split("\n")
    motion: Dict[str, Optional[str]] = {
        "title": None,
        "proposer": _first_line_match(lines, _PROPOSER_RE),
        "seconder": _first_line_match(lines, _SECONDER_RE),
        "motion_text": None,
        "background": None,
    }

    start, passage = _this_council_passage(text, _MOTION_END_RES)
    motion["motion_text"] = passage

    m = _MOTION_TITLE_RE.search(text)
    if m:
        motion["title"] = m.group(1).strip()

    if start > 0:
        before = text[:start]
        bg = _MOTION_BACKGROUND_RE.search(before)
        if bg:
            motion["background"] = clean_text(before[bg.start() :])

    return motion


# ---------------------------------------------------------------------------
# Amendments

_AMEND_PROPOSER_RE = re.compile(r"^(?:amendment\s+)?proposed by\s*:?\s*(?:councillor\s+)?(.+)", re.IGNORECASE)
_AMEND_SECONDER_RE = re.compile(r"^(?:amendment\s+)?seconded by\s*:?\s*(?:councillor\s+)?(.+)", re.IGNORECASE)
_COUNCILLOR_LINE_RE = re.compile(r"^(?i:councillor|cllr\.?)\s+([A-Z][a-zA-Z\-']+(?:\s+[A-Z][a-zA-Z\-']+)?)")
_AMEND_TITLE_RE = re.compile(r"amendment\s*(?:to)?\s*[:–-]?\s*([^\n]+)", re.IGNORECASE)
_ITEM_TITLE_RE = re.compile(r"^(ITEM\s+\d+[A-Z]?\s*[-–:]?\s*[^\n]+)", re.IGNORECASE | re.MULTILINE)

AMENDMENT_TYPES: Tuple[Tuple[str, re.Pattern], ...] = (
    ("delete", re.compile(r"\bdelete\b", re.IGNORECASE)),
    ("insert", re.compile(r"\binsert\b", re.IGNORECASE)),
    ("substitute", re.compile(r"\bsubstitute\b", re.IGNORECASE)),
    ("add", re.compile(r"\badd(?:itional)?\b", re.IGNORECASE)),
)
AMENDMENT_TARGETS = ("motion", "recommendation", "resolution")

_AMENDED_TO_READ_RE = re.compile(
    r"(?:be\s+amended\s+to\s+read\s*:?|amended\s+(?:motion|text|recommendation)\s*:)\s*([\s\S]*?)(?:\n\s*\n|\Z)",
    re.IGNORECASE,
)
_DELETE_AND_INSERT_RE = re.compile(
    r"delete\s+(?:the\s+words?\s+)?[\"'“‘]?([^\"'”’\n]+)[\"'”’]?\s+"
    r"and\s+insert\s+(?:the\s+words?\s+)?[\"'“‘]?([^\"'”’\n]+)[\"'”’]?",
    re.IGNORECASE,
)
_AMENDED_MOTION_RE = re.compile(
    r"(?:amended\s+motion|if\s+amended.*would\s+read)\s*:?\s*([\s\S]*?)(?:\n\s*\n|proposed\s+by|seconded\s+by|\Z)",
    re.IGNORECASE,
)
_LIST_ITEM_RE = re.compile(r"(?m)^\s*(?:\d+\.|[a-z]\)|\([a-z]\))\s*[^\n]+", re.IGNORECASE)
_AMEND_THAT_RE = re.compile(
    r"\bthat\s+(?:the\s+)?(?:council|cabinet|committee|recommendation|motion)[\s\S]+?(?:\.|\Z)",
    re.IGNORECASE,
)

# Header lines that precede the body of a short amendment paper.
_BODY_SKIP_RES = (
    re.compile(r"^(?:independent|conservative|labour|liberal democrat|green)\s+(?:group\s+)?amendment$", re.IGNORECASE),
    re.compile(r"^amendment$", re.IGNORECASE),
    re.compile(r"^ITEM\s+\d+", re.IGNORECASE),
    re.compile(r"^[A-Z\s\-–:]+$"),
    re.compile(r"^page\s+\d+", re.IGNORECASE),
    re.compile(r"^\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}$"),
)


def extract_amendment_body(text: str, title: Optional[str] = None) -> Optional[str]:
    """Body of a short amendment once the group, heading and title lines are skipped."""

    lines = [ln.strip() for ln in text.split("\n") if ln.strip()]
    title_key = title.lower()[:20] if title else None

    start = 0
    for i, line in enumerate(lines[:10]):
        if any(p.match(line) for p in _BODY_SKIP_RES):
            start = i + 1
            continue
        if title_key and title_key in line.lower():
            start = i + 1
            continue
        break

    body = lines[start:]
    return "\n".join(body) if body else None


def _amendment_people(lines: Sequence[str]) -> Tuple[Optional[str], Optional[str]]:
    proposer = _first_line_match(lines, _AMEND_PROPOSER_RE)
    seconder = _first_line_match(lines, _AMEND_SECONDER_RE)
    if proposer is None:
        proposer = _first_line_match(lines, _COUNCILLOR_LINE_RE)
    return proposer, seconder


def _amendment_type(text: str) -> Optional[str]:
    for name, pattern in AMENDMENT_TYPES:
        if pattern.search(text):
            return name
    return None


def _amendment_target(text: str) -> Optional[str]:
    for target in AMENDMENT_TARGETS:
        if re.search(rf"amendment\s+to\s+(?:the\s+)?{target}", text, re.IGNORECASE):
            return target
    return None


def _amendment_title(text: str) -> Optional[str]:
    title = None
    m = _AMEND_TITLE_RE.search(text)
    if m:
        title = m.group(1).strip()
    if not title or len(title) < 10:
        item = _ITEM_TITLE_RE.search(text)
        if item:
            title = item.group(1).strip()
    return title


def extract_amendment(text: str) -> Dict[str, Optional[str]]:
    """Pull the proposed change out of an amendment paper.

    Strategies run in order until one captures something: "amended to read"
    wording, delete/insert pairs, an "amended motion" block, a "This Council"
    passage, the body of a short paper, then list items or "That ..."
    sentences. When little was captured, `full_text` carries the whole
    cleaned document so nothing is silently lost.
    """

    lines = text.split("\n")
    proposer, seconder = _amendment_people(lines)
    amendment: Dict[str, Optional[str]] = {
        "title": _amendment_title(text),
        "proposer": proposer,
        "seconder": seconder,
        "original_text": None,
        "amendment_text": None,
        "amended_motion": None,
        "amendment_type": _amendment_type(text),
        "target": _amendment_target(text),
        "full_text": None,
    }

    extracted: Optional[str] = None

    m = _AMENDED_TO_READ_RE.search(text)
    if m and m.group(1).strip():
        extracted = m.group(1)

    if extracted is None:
        m = _DELETE_AND_INSERT_RE.search(text)
        if m:
            amendment["original_text"] = m.group(1).strip()
            extracted = m.group(2).strip()
            amendment["amendment_type"] = "substitute"

    if extracted is None:
        m = _AMENDED_MOTION_RE.search(text)
        if m:
            amendment["amended_motion"] = clean_text(m.group(1))

    if extracted is None and amendment["amended_motion"] is None:
        _start, amendment["amended_motion"] = _this_council_passage(text, _AMENDED_MOTION_END_RES)

    if extracted is None and amendment["amended_motion"] is None:
        if count_words(text) < SHORT_AMENDMENT_WORDS:
            extracted = extract_amendment_body(text, amendment["title"])

    if extracted is None and amendment["amended_motion"] is None:
        items = [m.group(0).strip() for m in _LIST_ITEM_RE.finditer(text)]
        if items:
            extracted = "\n".join(items)
        else:
            sentences = [m.group(0).strip() for m in _AMEND_THAT_RE.finditer(text)]
            if sentences:
                extracted = "\n\n".join(sentences)

    if extracted:
        amendment["amendment_text"] = clean_text(extracted)

    cleaned = clean_text(text)
    if cleaned and len(cleaned) > FULL_TEXT_MIN_CHARS:
        captured = len(amendment["amendment_text"] or "") + len(amendment["amended_motion"] or "")
        if captured < len(cleaned) * FULL_TEXT_CAPTURE_RATIO:
            amendment["full_text"] = cleaned

    return amendment


# ---------------------------------------------------------------------------
# Summaries

_FIRST_SENTENCE_RE = re.compile(r"^[^.]+\.")
_PARAGRAPH_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)*\.?\s+")
_RESOLVES_RE = re.compile(r"resolves? to", re.IGNORECASE)


def summarize_report(title: str, sections: Dict[str, Any]) -> str:
    parts: List[str] = []
    if title and title != UNTITLED:
        parts.append(f'Report on "{title}".')

    reason = sections.get("reason_for_report")
    if reason:
        reason = _PARAGRAPH_NUMBER_RE.sub("", reason)
        m = _FIRST_SENTENCE_RE.match(reason)
        if m and len(m.group(0)) <= 200:
            parts.append(collapse_ws(m.group(0)))
        else:
            parts.append(reason[:150].strip() + "...")

    recommendations = sections.get("recommendations") or []
    if recommendations:
        parts.append(f"Contains {len(recommendations)} recommendation(s).")

    return " ".join(parts) or "Committee report with extractable sections."


def summarize_questions(questions: Sequence[Dict[str, Any]]) -> str:
    if not questions:
        return "Questions document - no questions could be extracted."

    from_public = sum(1 for q in questions if "public" in str(q.get("from") or "").lower())
    from_councillors = len(questions) - from_public

    parts = [f"{len(questions)} question(s) extracted."]
    if from_public:
        parts.append(f"{from_public} from members of the public.")
    if from_councillors:
        parts.append(f"{from_councillors} from councillors.")
    return " ".join(parts)


def summarize_motion(motion: Dict[str, Optional[str]]) -> str:
    parts: List[str] = []
    if motion.get("title"):
        parts.append(f'Motion: "{motion["title"]}".')
    if motion.get("proposer"):
        parts.append(f"Proposed by {motion['proposer']}.")
    resolves = len(_RESOLVES_RE.findall(motion.get("motion_text") or ""))
    if resolves:
        parts.append(f"Contains {resolves} resolution(s).")
    return " ".join(parts) or "Motion document."


def summarize_amendment(amendment: Dict[str, Optional[str]]) -> str:
    parts: List[str] = []
    if amendment.get("title"):
        parts.append(f'Amendment: "{amendment["title"]}".')
    elif amendment.get("target"):
        parts.append(f"Amendment to {amendment['target']}.")
    else:
        parts.append("Amendment document.")

    if amendment.get("proposer"):
        parts.append(f"Proposed by {amendment['proposer']}.")
    if amendment.get("amendment_type"):
        parts.append(f"Type: {amendment['amendment_type']}.")

    if amendment.get("amendment_text"):
        parts.append(f"Amendment text: {count_words(amendment['amendment_text'])} words.")
    if amendment.get("amended_motion"):
        parts.append(f"Amended motion: {count_words(amendment['amended_motion'])} words.")
    if amendment.get("full_text") and not amendment.get("amendment_text") and not amendment.get("amended_motion"):
        parts.append(f"Full document text available ({count_words(amendment['full_text'])} words).")

    return " ".join(parts)


UNKNOWN_SUMMARY = "Document type could not be determined. Attempted to extract available sections."


# ---------------------------------------------------------------------------
# Entry point


def _check_arguments(text: Any, extract_sections: Any, max_items: Any) -> List[str]:
    if not isinstance(text, str):
        raise AnalysisInputError(f"text must be a string, got {type(text).__name__}")

    if isinstance(extract_sections, str):
        names = [extract_sections]
    else:
        try:
            names = list(extract_sections)
        except TypeError as e:
            raise AnalysisInputError("extract_sections must be a list of section names") from e
    names = [str(n).strip().lower() for n in names]
    unknown = sorted(set(n for n in names if n not in KNOWN_SECTION_NAMES))
    if unknown:
        raise AnalysisInputError(
            f"Unknown section(s): {', '.join(unknown)}. Known: {', '.join(sorted(KNOWN_SECTION_NAMES))}"
        )

    if isinstance(max_items, bool) or not isinstance(max_items, int) or max_items < 1:
        raise AnalysisInputError(f"max_items must be a positive integer, got {max_items!r}")

    return names or ["all"]


def analyze_document(
    text: str,
    extract_sections: Sequence[str] = ("all",),
    max_items: int = DEFAULT_MAX_ITEMS,
    *,
    source_url: Optional[str] = None,
    page_count: Optional[int] = None,
) -> Dict[str, Any]:
    """Classify a meeting document and extract its archetype's structure.

    Returns a JSON-serializable dict with the document type, title, author,
    date, a short summary, the extracted structure (`sections`, `questions`,
    `motion` or `amendment`), warnings, an extraction confidence assessment
    and document metadata. Unrecognized documents get every extractor.
    """

    names = _check_arguments(text, extract_sections, max_items)
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    warnings: List[str] = []
    word_count = count_words(text)
    title = extract_title(text)
    raw_date, iso_date = extract_document_date(text)
    appendix = is_appendix(title)

    if appendix and "appendix" not in names:
        warnings.append("This appears to be an appendix document")
    if word_count == 0:
        warnings.append("Document contains no extractable text")
    elif word_count < SPARSE_TEXT_WORDS:
        warnings.append("Document contains very little text; extraction may be incomplete")
    if page_count is not None and page_count > LARGE_DOCUMENT_PAGES:
        warnings.append(f"Large document ({page_count} pages) - some content may be truncated")

    document_type = classify_document(text)

    result: Dict[str, Any] = {
        "document_type": document_type,
        "title": title,
        "author": extract_author(text),
        "date": raw_date,
        "date_iso": iso_date,
        "summary": "",
    }

    if document_type == COMMITTEE_REPORT:
        sections = extract_report_sections(text, names, max_items)
        result["sections"] = sections
        confidence = assess_confidence(sections, COMMITTEE_REPORT)
        result["summary"] = summarize_report(title, sections)
        if not sections.get("reason_for_report"):
            warnings.append("Could not locate 'Reason for Report' section")
        if not sections.get("recommendations"):
            warnings.append("Could not locate 'Recommendations' section")
    elif document_type == QUESTIONS:
        questions = extract_questions(text, max_items)
        result["questions"] = questions
        confidence = assess_confidence({"questions": questions}, QUESTIONS)
        result["summary"] = summarize_questions(questions)
    elif document_type == MOTION:
        motion = extract_motion(text)
        result["motion"] = motion
        confidence = assess_confidence({"motion_text": motion["motion_text"]}, MOTION)
        result["summary"] = summarize_motion(motion)
    elif document_type == AMENDMENT:
        amendment = extract_amendment(text)
        result["amendment"] = amendment
        confidence = assess_confidence(amendment, AMENDMENT)
        result["summary"] = summarize_amendment(amendment)
    else:
        sections = extract_report_sections(text, ("all",), max_items)
        result["sections"] = sections
        result["questions"] = extract_questions(text, max_items)
        result["motion"] = extract_motion(text)
        result["amendment"] = extract_amendment(text)
        confidence = assess_confidence(sections, UNKNOWN)
        result["summary"] = UNKNOWN_SUMMARY
        warnings.append("Could not reliably determine document type")

    result["warnings"] = warnings
    result["confidence"] = confidence.to_dict()
    result["metadata"] = {
        "word_count": word_count,
        "has_tables": detect_tables(text),
        "is_appendix": appendix,
        "page_count": page_count,
        "source_url": source_url,
    }

    logger.debug(
        "Analyzed %r as %s: %d words, confidence %s (%d)",
        title,
        document_type,
        word_count,
        confidence.overall,
        confidence.score,
    )
    return result
