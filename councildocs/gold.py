from __future__ import annotations

import json
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from . import cli

_CONFIDENCE_ORDER = ("none", "low", "medium", "high")


@dataclass(frozen=True)
class GoldFailure:
    case_id: str
    message: str


def _as_path(base: Path, raw: Any) -> Optional[Path]:
    if not isinstance(raw, str) or not raw.strip():
        return None
    p = Path(raw)
    return (base / p).resolve() if not p.is_absolute() else p


def load_gold_file(gold_path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(gold_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Gold file must be a mapping: {gold_path}")
    return data


def _lookup(payload: Any, dotted: str) -> Any:
    """Resolve "motion.title" or "results.0.snippet" against a payload."""
    cur = payload
    for part in dotted.split("."):
        if isinstance(cur, dict):
            cur = cur.get(part)
        elif isinstance(cur, list) and part.isdigit() and int(part) < len(cur):
            cur = cur[int(part)]
        else:
            return None
    return cur


def evaluate_gold_case(*, case: Dict[str, Any], base_dir: Path, config_path: Optional[Path]) -> Tuple[int, Dict[str, Any]]:
    case_id = str(case.get("id") or "gold")

    text_path = _as_path(base_dir, case.get("text"))
    documents_path = _as_path(base_dir, case.get("documents"))
    schema_path = _as_path(base_dir, case.get("schema"))

    argv: List[str] = []
    if config_path is not None:
        argv.extend(["--config", str(config_path)])

    if text_path is not None:
        argv.extend(["--analyze-text", str(text_path)])
        sections = case.get("sections")
        if isinstance(sections, list) and sections:
            argv.extend(["--sections", ",".join(str(s) for s in sections)])
    elif documents_path is not None or schema_path is not None:
        query = case.get("query")
        if not isinstance(query, str):
            raise ValueError(f"Gold case {case_id!r} needs a query to search")
        if documents_path is not None:
            argv.extend(["--documents", str(documents_path)])
        else:
            argv.extend(["--schema", str(schema_path), "--corpus", str(case.get("corpus") or "council_tax")])
        argv.extend(["--query", query])
        for key, value in (case.get("filters") or {}).items():
            argv.extend([f"--{str(key).replace('_', '-')}", str(value)])
    else:
        raise ValueError(f"Gold case {case_id!r} must specify text, documents or schema")

    with tempfile.TemporaryDirectory(prefix="councildocs-gold-") as td:
        out_path = Path(td) / f"{case_id}.json"
        argv.extend(["--out", str(out_path)])
        rc = cli.main(argv)
        payload = json.loads(out_path.read_text(encoding="utf-8")) if out_path.exists() else {}

    return rc, payload


def check_gold_payload(*, case_id: str, payload: Dict[str, Any], expected: Dict[str, Any]) -> List[GoldFailure]:
    failures: List[GoldFailure] = []

    def fail(message: str) -> None:
        failures.append(GoldFailure(case_id=case_id, message=message))

    doc_type = expected.get("document_type")
    if isinstance(doc_type, str) and payload.get("document_type") != doc_type:
        fail(f"Expected document_type {doc_type}, got {payload.get('document_type')}")

    for field, want in (expected.get("fields") or {}).items():
        got = _lookup(payload, str(field))
        if got != want:
            fail(f"Field {field}: expected {want!r}, got {got!r}")

    for field, needles in (expected.get("must_include") or {}).items():
        got = _lookup(payload, str(field))
        haystack = (json.dumps(got, ensure_ascii=False) if not isinstance(got, str) else got).casefold()
        missing = [n for n in (needles or []) if isinstance(n, str) and n.casefold() not in haystack]
        if got is None or missing:
            fail(f"Field {field} missing required substrings: {missing or needles}")

    min_conf = expected.get("min_confidence")
    if isinstance(min_conf, str) and min_conf in _CONFIDENCE_ORDER:
        got_conf = _lookup(payload, "confidence.overall")
        if got_conf not in _CONFIDENCE_ORDER or _CONFIDENCE_ORDER.index(got_conf) < _CONFIDENCE_ORDER.index(min_conf):
            fail(f"Expected confidence >= {min_conf}, got {got_conf}")

    min_results = expected.get("min_results")
    if isinstance(min_results, int):
        results = payload.get("results")
        count = len(results) if isinstance(results, list) else 0
        if count < min_results:
            fail(f"Expected at least {min_results} results, got {count}")

    return failures


def evaluate_gold_suite(
    gold_path: Path,
    *,
    case_ids: Optional[List[str]] = None,
    config_path: Optional[Path] = None,
) -> List[GoldFailure]:
    """Run the suite, or only `case_ids`; `config_path` overrides the file's `config:`."""

    gold = load_gold_file(gold_path)
    base_dir = gold_path.parent
    if config_path is None:
        config_path = _as_path(base_dir, gold.get("config"))

    cases = gold.get("cases")
    if not isinstance(cases, list) or not cases:
        raise ValueError("Gold file must include non-empty cases[]")

    if case_ids:
        known = {str(c.get("id")) for c in cases if isinstance(c, dict)}
        missing = [cid for cid in case_ids if cid not in known]
        if missing:
            raise ValueError(f"Unknown gold case(s): {', '.join(missing)}")
        cases = [c for c in cases if isinstance(c, dict) and str(c.get("id")) in case_ids]

    failures: List[GoldFailure] = []
    for c in cases:
        if not isinstance(c, dict):
            continue
        case_id = str(c.get("id") or "(unknown)")
        expected = c.get("expected")
        if not isinstance(expected, dict):
            expected = {}

        rc, payload = evaluate_gold_case(case=c, base_dir=base_dir, config_path=config_path)
        if rc != 0:
            failures.append(GoldFailure(case_id=case_id, message=f"CLI returned non-zero exit code: {rc}"))
            continue

        failures.extend(check_gold_payload(case_id=case_id, payload=payload, expected=expected))

    return failures
