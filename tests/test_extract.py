from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from councildocs.chunker import SourceDocument
from councildocs.extract import (
    DocumentLoadError,
    PdfExtractionError,
    documents_from_records,
    extract_pdf_text_canonical,
    load_documents,
    load_schema,
    read_text_file,
)


class _FakePage:
    def __init__(self, text: str) -> None:
        self._text = text

    def get_text(self, mode: str) -> str:
        assert mode == "text"
        return self._text


class _FakeDoc:
    def __init__(self, pages) -> None:
        self._pages = [_FakePage(p) for p in pages]
        self.page_count = len(self._pages)
        self.closed = False

    def __iter__(self):
        return iter(self._pages)

    def close(self) -> None:
        self.closed = True


class _FakeFitz:
    def __init__(self, pages=None, error: Exception | None = None) -> None:
        self.pages = pages or []
        self.error = error
        self.opened: list = []

    def open(self, path: str) -> _FakeDoc:
        if self.error is not None:
            raise self.error
        doc = _FakeDoc(self.pages)
        self.opened.append(doc)
        return doc


def test_pdf_text_and_page_count(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeFitz(pages=["Page one\u00a0text", "Page two"])
    monkeypatch.setitem(sys.modules, "fitz", fake)

    text, page_count = extract_pdf_text_canonical(tmp_path / "a.pdf")
    assert text == "Page one text\nPage two"
    assert page_count == 2
    assert fake.opened[0].closed is True


def test_scanned_pdf_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "fitz", _FakeFitz(pages=["  ", ""]))
    with pytest.raises(PdfExtractionError, match="no extractable text"):
        extract_pdf_text_canonical(tmp_path / "scan.pdf")


def test_unreadable_pdf_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "fitz", _FakeFitz(error=RuntimeError("broken xref")))
    with pytest.raises(PdfExtractionError, match="Failed to open PDF"):
        extract_pdf_text_canonical(tmp_path / "broken.pdf")


def test_missing_pymupdf(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "fitz", None)
    with pytest.raises(PdfExtractionError, match="PyMuPDF is required"):
        extract_pdf_text_canonical(tmp_path / "a.pdf")


def test_read_text_file_normalizes(tmp_path: Path) -> None:
    path = tmp_path / "doc.txt"
    path.write_bytes(b"Title\r\n\r\n\r\n\r\nBody\ttext")
    assert read_text_file(path) == "Title\n\nBody text"


def test_load_documents_json_and_jsonl(tmp_path: Path) -> None:
    records = [
        {"text": "Car parking charges", "council": "Gloucester City Council", "meeting_id": "9001", "extra": 1},
        {"text": "Library restoration"},
    ]
    as_json = tmp_path / "docs.json"
    as_json.write_text(json.dumps({"documents": records}), encoding="utf-8")
    docs = load_documents(as_json)
    assert [d.text for d in docs] == ["Car parking charges", "Library restoration"]
    assert docs[0].council == "Gloucester City Council"
    assert docs[0].meeting_id == "9001"
    assert isinstance(docs[1], SourceDocument)

    as_jsonl = tmp_path / "docs.jsonl"
    as_jsonl.write_text("\n".join(json.dumps(r) for r in records) + "\n\n", encoding="utf-8")
    assert load_documents(as_jsonl) == docs


@pytest.mark.parametrize(
    "records, message",
    [
        ("not a list", "JSON array"),
        ([["text"]], "must be an object"),
        ([{"council": "No text"}], "missing a 'text' string"),
        ([{"text": 42}], "missing a 'text' string"),
    ],
)
def test_bad_document_records(records, message: str) -> None:
    with pytest.raises(DocumentLoadError, match=message):
        documents_from_records(records)


def test_bad_files(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("[{", encoding="utf-8")
    with pytest.raises(DocumentLoadError, match="Invalid JSON"):
        load_documents(broken)

    broken_lines = tmp_path / "broken.jsonl"
    broken_lines.write_text('{"text": "ok"}\n{oops\n', encoding="utf-8")
    with pytest.raises(DocumentLoadError, match="line 2"):
        load_documents(broken_lines)

    with pytest.raises(DocumentLoadError, match="Failed to read"):
        load_documents(tmp_path / "missing.json")

    schema = tmp_path / "schema.json"
    schema.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(DocumentLoadError, match="must be a JSON object"):
        load_schema(schema)

    assert issubclass(DocumentLoadError, ValueError)
