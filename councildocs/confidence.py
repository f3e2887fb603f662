from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class ExpectedField:
    weight: int
    min_length: int = 20
    is_list: bool = False


EXPECTED_FIELDS: Dict[str, Dict[str, ExpectedField]] = {
    "committee_report": {
        "reason_for_report": ExpectedField(weight=3, min_length=50),
        "recommendations": ExpectedField(weight=4, min_length=20, is_list=True),
        "financial_implications": ExpectedField(weight=2, min_length=20),
        "legal_implications": ExpectedField(weight=2, min_length=20),
        "risk_assessment": ExpectedField(weight=1, min_length=20),
        "background": ExpectedField(weight=1, min_length=30),
    },
    "questions": {
        "questions": ExpectedField(weight=5, is_list=True),
    },
    "motion": {
        "motion_text": ExpectedField(weight=5, min_length=30),
    },
    "amendment": {
        "amendment_text": ExpectedField(weight=4, min_length=20),
        "amended_motion": ExpectedField(weight=3, min_length=30),
        "full_text": ExpectedField(weight=2, min_length=50),
    },
}

# (minimum ratio, label, description), checked in order.
_OVERALL_BANDS: Tuple[Tuple[float, str, str], ...] = (
    (0.75, "high", "Most expected sections extracted with good content quality"),
    (0.5, "medium", "Some key sections extracted; content may be partial or incomplete"),
)
_LOW = ("low", "Limited content extracted; document structure may not match expected format")
_NONE = ("none", "No expected sections could be extracted from document")


@dataclass(frozen=True)
class SectionConfidence:
    status: str  # missing | low | medium | high
    score: float
    weight: int


@dataclass(frozen=True)
class ExtractionConfidence:
    overall: str  # none | low | medium | high
    ratio: float
    score: int  # ratio as a whole percentage
    details: str
    sections: Dict[str, SectionConfidence] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _item_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping):
        return str(item.get("text") or item.get("question") or "")
    return ""


def _rate(value: Any, expected: ExpectedField) -> Tuple[str, float]:
    if not value:
        return "missing", 0.0

    if expected.is_list and isinstance(value, (list, tuple)):
        if any(len(_item_text(item)) > 30 for item in value):
            return "high", 1.0
        if len(value) >= 3:
            return "medium", 0.7
        return "low", 0.4

    if isinstance(value, str):
        length = len(value.strip())
        if length >= expected.min_length * 3:
            return "high", 1.0
        if length >= expected.min_length:
            return "medium", 0.7
        if length > 0:
            return "low", 0.3
        return "missing", 0.0

    if isinstance(value, Mapping):
        has_content = any(
            v and (len(v) > 10 if isinstance(v, str) else True) for v in value.values()
        )
        return ("high", 1.0) if has_content else ("low", 0.3)

    return "missing", 0.0


def assess_confidence(extracted: Mapping[str, Any], document_type: Optional[str] = "committee_report") -> ExtractionConfidence:
    """Rate how completely the expected fields of a document type were extracted.

    Each expected field gets a status from its length (text) or item count
    (lists); the overall label comes from the weight-averaged field scores.
    Unrecognized types are judged against the committee report table.
    """

    expected = EXPECTED_FIELDS.get(document_type or "", EXPECTED_FIELDS["committee_report"])

    sections: Dict[str, SectionConfidence] = {}
    total_score = 0.0
    total_weight = 0
    for key, criteria in expected.items():
        status, score = _rate(extracted.get(key), criteria)
        sections[key] = SectionConfidence(status=status, score=score, weight=criteria.weight)
        total_score += score * criteria.weight
        total_weight += criteria.weight

    ratio = total_score / total_weight if total_weight > 0 else 0.0

    if ratio > 0:
        overall, description = _LOW
        for threshold, label, text in _OVERALL_BANDS:
            if ratio >= threshold:
                overall, description = label, text
                break
    else:
        overall, description = _NONE

    found = sum(1 for s in sections.values() if s.status != "missing")
    return ExtractionConfidence(
        overall=overall,
        ratio=ratio,
        score=int(ratio * 100 + 0.5),
        details=f"{description} ({found}/{len(expected)} sections found)",
        sections=sections,
    )
