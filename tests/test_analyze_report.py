from __future__ import annotations

import pytest

from councildocs.analyze import (
    AnalysisInputError,
    analyze_document,
    extract_report_sections,
    find_inline_recommendations,
    parse_recommendations,
)


ALLOTMENT_REPORT = """REVIEW OF ALLOTMENT FEES
Report by: Head of Communities

Reason for Report
To review allotment fees for the coming year and bring them in line with neighbouring councils.

Recommendations
1. That Cabinet approves the revised allotment fees.
2. That Cabinet notes the consultation responses.

Financial Implications
The changes will raise an additional 4,000 pounds each year.

Background
Fees were last reviewed in 2019.
"""

NUMBERED_REPORT = """CAR PARKING STRATEGY REVIEW
Cabinet
Date: 12/03/2025

1.0 Purpose of Report
1.1 To seek approval for a revised car parking strategy for the city centre.

2.0 Recommendations
2.1 That Cabinet approves the revised car parking strategy.
2.2 That Cabinet delegates authority to the Head of Place to implement
the changes.

3.0 Legal Implications
3.1 The Council has the power to set parking charges.
"""


def test_plain_headed_report() -> None:
    result = analyze_document(ALLOTMENT_REPORT, source_url="https://example.gov.uk/fees.pdf")

    assert result["document_type"] == "committee_report"
    assert result["title"] == "Review Of Allotment Fees"
    assert result["author"] == "Head of Communities"
    assert result["date"] is None and result["date_iso"] is None

    sections = result["sections"]
    assert sections["reason_for_report"].startswith("To review allotment fees")
    assert sections["recommendations"] == [
        "1. That Cabinet approves the revised allotment fees.",
        "2. That Cabinet notes the consultation responses.",
    ]
    assert sections["financial_implications"] == "The changes will raise an additional 4,000 pounds each year."
    assert sections["background"] == "Fees were last reviewed in 2019."
    assert "legal_implications" not in sections

    assert result["summary"] == (
        'Report on "Review Of Allotment Fees". To review allotment fees for the coming year '
        "and bring them in line with neighbouring councils. Contains 2 recommendation(s)."
    )
    assert result["warnings"] == []
    assert result["confidence"]["overall"] == "medium"
    assert result["confidence"]["sections"]["legal_implications"]["status"] == "missing"
    assert result["metadata"]["source_url"] == "https://example.gov.uk/fees.pdf"
    assert result["metadata"]["is_appendix"] is False
    assert result["metadata"]["page_count"] is None


def test_numbered_headers_and_wrapped_items() -> None:
    result = analyze_document(NUMBERED_REPORT)

    assert result["document_type"] == "committee_report"
    assert result["date_iso"] == "2025-03-12"
    sections = result["sections"]
    assert "revised car parking strategy" in sections["reason_for_report"]
    assert len(sections["recommendations"]) == 2
    assert sections["recommendations"][1].startswith("2.2")
    assert sections["recommendations"][1].endswith("to implement the changes.")
    assert sections["legal_implications"].startswith("3.1 The Council has the power")
    # Paragraph numbers are not repeated in the summary.
    assert "To seek approval for a revised car parking strategy" in result["summary"]
    assert "1.1" not in result["summary"]


def test_selected_sections_only() -> None:
    sections = extract_report_sections(ALLOTMENT_REPORT, ["financial"])
    assert set(sections) == {"financial_implications"}

    sections = extract_report_sections(ALLOTMENT_REPORT, ["reason_for_report", "recommendations"])
    assert set(sections) == {"reason_for_report", "recommendations"}


def test_missing_sections_raise_warnings() -> None:
    result = analyze_document(ALLOTMENT_REPORT, extract_sections=["background"])
    assert set(result["sections"]) == {"background"}
    assert "Could not locate 'Reason for Report' section" in result["warnings"]
    assert "Could not locate 'Recommendations' section" in result["warnings"]


def test_parse_recommendations_markers() -> None:
    assert parse_recommendations("1) Approve the plan\n2) Note the risks") == [
        "1. Approve the plan",
        "2. Note the risks",
    ]
    assert parse_recommendations("1. a\n2. b\n3. c", max_items=2) == ["1. a", "2. b"]
    assert parse_recommendations("") == []


def test_parse_recommendations_falls_back_to_that_sentences() -> None:
    text = "Members are asked to agree. That Council approves the plan. That the Committee notes the risks."
    assert parse_recommendations(text) == [
        "1. That Council approves the plan.",
        "2. That the Committee notes the risks.",
    ]


def test_inline_resolved_block() -> None:
    text = "Minutes\nRESOLVED:\n1. That the Committee notes the report.\n2. That the Committee agrees the budget.\n\nClose"
    assert find_inline_recommendations(text) == [
        "1. That the Committee notes the report.",
        "2. That the Committee agrees the budget.",
    ]


def test_empty_resolved_block_falls_through_to_numbered_statements() -> None:
    text = "RESOLVED:\nThe committee noted the update.\n\n3. That the Committee approves the plan."
    assert find_inline_recommendations(text) == ["3. That the Committee approves the plan."]


def test_inline_numbered_that_statements() -> None:
    text = "Members discussed the plan.\n1. That Council adopts the plan. 2. That Council publishes it."
    assert find_inline_recommendations(text) == [
        "1. That Council adopts the plan.",
        "2. That Council publishes it.",
    ]


def test_windows_line_endings_are_normalized() -> None:
    unix = analyze_document(ALLOTMENT_REPORT)
    windows = analyze_document(ALLOTMENT_REPORT.replace("\n", "\r\n"))
    assert windows["sections"] == unix["sections"]


def test_appendix_warning_unless_requested() -> None:
    text = "Appendix A - Fee Schedule\nPlot sizes and charges for the coming year."
    result = analyze_document(text)
    assert result["metadata"]["is_appendix"] is True
    assert "This appears to be an appendix document" in result["warnings"]

    result = analyze_document(text, extract_sections=["all", "appendix"])
    assert "This appears to be an appendix document" not in result["warnings"]


def test_sparse_empty_and_large_documents() -> None:
    result = analyze_document("")
    assert result["document_type"] == "unknown"
    assert result["title"] == "Untitled Document"
    assert "Document contains no extractable text" in result["warnings"]
    assert result["confidence"]["overall"] == "none"

    result = analyze_document("Short note for members.", page_count=120)
    assert "Document contains very little text; extraction may be incomplete" in result["warnings"]
    assert "Large document (120 pages) - some content may be truncated" in result["warnings"]
    assert result["metadata"]["page_count"] == 120


def test_unknown_document_gets_every_extractor() -> None:
    result = analyze_document("Minutes of the allotment society picnic held in the park.")
    assert result["document_type"] == "unknown"
    assert {"sections", "questions", "motion", "amendment"} <= set(result)
    assert "Could not reliably determine document type" in result["warnings"]
    assert result["summary"].startswith("Document type could not be determined")


def test_tables_detected() -> None:
    text = ALLOTMENT_REPORT + "\n| Plot | Fee |\n| Half | 40 |\n| Full | 80 |\n"
    assert analyze_document(text)["metadata"]["has_tables"] is True
    assert analyze_document(ALLOTMENT_REPORT)["metadata"]["has_tables"] is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"text": None},
        {"text": 42},
        {"text": "x", "extract_sections": ["finances"]},
        {"text": "x", "extract_sections": 7},
        {"text": "x", "max_items": 0},
        {"text": "x", "max_items": True},
    ],
)
def test_invalid_arguments(kwargs) -> None:
    text = kwargs.pop("text")
    with pytest.raises(AnalysisInputError):
        analyze_document(text, **kwargs)


def test_analysis_input_error_is_a_value_error() -> None:
    assert issubclass(AnalysisInputError, ValueError)
