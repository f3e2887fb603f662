from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .chunker import SourceDocument
from .text import normalize_text


class PdfExtractionError(RuntimeError):
    pass


class DocumentLoadError(ValueError):
    pass


def read_text_file(path: Path) -> str:
    return normalize_text(path.read_text(encoding="utf-8", errors="replace"))


def extract_pdf_text_canonical(path: Path) -> Tuple[str, int]:
    """Extract (text, page_count) from a PDF with PyMuPDF.

    One extractor only, so the same file always yields the same text.
    """

    try:
        import fitz  # PyMuPDF
    except ImportError as e:
        raise PdfExtractionError(
            "PyMuPDF is required for PDF extraction (pip install PyMuPDF)."
        ) from e

    try:
        doc = fitz.open(str(path))
    except Exception as e:
        raise PdfExtractionError(f"Failed to open PDF: {path}") from e

    try:
        page_count = doc.page_count
        parts: List[str] = []
        for idx, page in enumerate(doc, start=1):
            try:
                parts.append(page.get_text("text") or "")
            except Exception as e:
                raise PdfExtractionError(f"Failed to extract text from page {idx}.") from e
    finally:
        doc.close()

    text = normalize_text("\n".join(parts))
    if not text.strip():
        raise PdfExtractionError(
            "PDF appears scanned or has no extractable text; OCR is not supported yet."
        )

    return text, page_count


def _read_json(path: Path) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentLoadError(f"Failed to read {path}: {e}") from e
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise DocumentLoadError(f"Invalid JSON in {path}: {e}") from e


def _read_jsonl(path: Path) -> List[Any]:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise DocumentLoadError(f"Failed to read {path}: {e}") from e

    records: List[Any] = []
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as e:
            raise DocumentLoadError(f"Invalid JSON on line {lineno} of {path}: {e}") from e
    return records


def documents_from_records(records: Any) -> List[SourceDocument]:
    if isinstance(records, dict) and isinstance(records.get("documents"), list):
        records = records["documents"]
    if not isinstance(records, list):
        raise DocumentLoadError("Documents must be a JSON array (or an object with a 'documents' array).")

    docs: List[SourceDocument] = []
    for i, rec in enumerate(records):
        if not isinstance(rec, dict):
            raise DocumentLoadError(f"Document {i} must be an object, got {type(rec).__name__}.")
        if not isinstance(rec.get("text"), str):
            raise DocumentLoadError(f"Document {i} is missing a 'text' string.")
        docs.append(SourceDocument.from_dict(rec))
    return docs


def load_documents(path: Path) -> List[SourceDocument]:
    """Load harvested documents from a JSON array or a JSONL file."""

    if path.suffix.lower() in {".jsonl", ".ndjson"}:
        return documents_from_records(_read_jsonl(path))
    return documents_from_records(_read_json(path))


def load_schema(path: Path) -> Dict[str, Any]:
    data = _read_json(path)
    if not isinstance(data, dict):
        raise DocumentLoadError(f"Schema must be a JSON object: {path}")
    return data
