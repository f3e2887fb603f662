"""Direct reads against an indexed JSON policy schema.

Search answers "where is this discussed"; these helpers answer "show me that
record" (by JSON pointer, optionally projected and size-capped) and "what is
still marked TODO", graded by how much it blocks publication.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .corpus import SchemaCorpus, build_pointer, parse_pointer, resolve_pointer

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 200000
PREVIEW_CHARS = 1000

SEVERITIES = ("blocking", "needs-confirmation", "nice-to-have")

_BLOCKING_MARKERS = ("dpo", "sign-off", "sign off", "before publication", "legal")
_CONFIRM_MARKERS = (
    "url",
    "link",
    "confirm",
    "timescale",
    "processing time",
    "validate",
    "policy",
    "current",
)


class SchemaRequestError(ValueError):
    pass


class ForbiddenPathError(SchemaRequestError):
    pass


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def schema_fingerprint(schema: Any) -> str:
    digest = hashlib.sha256(json.dumps(schema, ensure_ascii=False, sort_keys=True).encode("utf-8"))
    return "sha256:" + digest.hexdigest()


def schema_version(schema: Mapping[str, Any]) -> str:
    meta = schema.get("schema_metadata")
    if isinstance(meta, dict) and meta.get("schema_version"):
        return str(meta["schema_version"])
    if schema.get("version"):
        return str(schema["version"])
    return "unknown"


def apply_projection(value: Any, fields: Sequence[str]) -> Any:
    """Keep only `fields` of an object, or of each object in a list."""
    if not fields:
        return value
    if isinstance(value, list):
        return [apply_projection(item, fields) for item in value]
    if isinstance(value, dict):
        return {f: value[f] for f in fields if f in value}
    return value


def _check_str_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise SchemaRequestError(f"'{name}' must be a list of strings")
    return list(value)


def get_schema_item(
    schema: Mapping[str, Any],
    path: str = "",
    *,
    projection: Optional[Sequence[str]] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    corpus: Optional[SchemaCorpus] = None,
) -> Dict[str, Any]:
    """Resolve `path` and return the value, or a preview when it is too large.

    Raises PointerError for malformed pointers, PointerNotFoundError when the
    path is absent and ForbiddenPathError when the corpus does not expose
    the section.
    """

    fields = _check_str_list(projection, "projection")
    if isinstance(max_bytes, bool) or not isinstance(max_bytes, int) or max_bytes < 1:
        raise SchemaRequestError(f"max_bytes must be a positive integer, got {max_bytes!r}")

    parse_pointer(path)
    if corpus is not None and not corpus.is_path_allowed(path):
        raise ForbiddenPathError(
            f"Path {path!r} is not readable in corpus '{corpus.name}'. "
            f"Allowed sections: {', '.join(corpus.allowed_sections)}"
        )

    value = apply_projection(resolve_pointer(schema, path), fields)
    encoded = _dumps(value)
    total = len(encoded.encode("utf-8"))

    result: Dict[str, Any] = {
        "json_path": path,
        "schema_version": schema_version(schema),
        "hash": schema_fingerprint(schema),
        "total_bytes": total,
    }
    if total <= max_bytes:
        result.update(data=value, truncated=False)
        return result

    preview = encoded[: min(PREVIEW_CHARS, max_bytes // 2)]
    logger.debug("Item %s is %d bytes; returning a %d char preview", path, total, len(preview))
    result.update(
        data=None,
        truncated=True,
        preview=preview + "...",
        omitted_bytes=total - len(preview.encode("utf-8")),
    )
    return result


def classify_todo_severity(note: str, path: Sequence[str]) -> str:
    note_lower = note.lower()
    if any(marker in note_lower for marker in _BLOCKING_MARKERS):
        return "blocking"
    if any(marker in note_lower for marker in _CONFIRM_MARKERS):
        return "needs-confirmation"
    if "validation_status" in "/".join(path).lower():
        return "needs-confirmation"
    return "nice-to-have"


def find_todos(value: Any, path: Sequence[str] = ()) -> List[Dict[str, Any]]:
    """Collect outstanding TODO notes in document order.

    Three shapes count: any string containing "TODO", every string in a
    `TODO_SUMMARY` list, and the value(s) of a `TODO` key.
    """

    path = list(path)
    todos: List[Dict[str, Any]] = []

    def add(note: str, at: List[str], graded_by: List[str]) -> None:
        todos.append(
            {
                "json_path": build_pointer(at),
                "note": note,
                "severity": classify_todo_severity(note, graded_by),
            }
        )

    if isinstance(value, str):
        if "TODO" in value:
            add(value, path, path)
    elif isinstance(value, list):
        if path and path[-1] == "TODO_SUMMARY":
            for i, item in enumerate(value):
                if isinstance(item, str):
                    add(item, path + [str(i)], path)
        else:
            for i, item in enumerate(value):
                todos.extend(find_todos(item, path + [str(i)]))
    elif isinstance(value, dict):
        marker = value.get("TODO")
        if marker:
            if isinstance(marker, list):
                for i, item in enumerate(marker):
                    add(item if isinstance(item, str) else _dumps(item), path + ["TODO", str(i)], path)
            else:
                add(marker if isinstance(marker, str) else _dumps(marker), path + ["TODO"], path)
        for key, nested in value.items():
            if key == "TODO":
                continue
            todos.extend(find_todos(nested, path + [str(key)]))

    return todos


def _top_section(pointer: str) -> Optional[str]:
    tokens = parse_pointer(pointer)
    return tokens[0] if tokens else None


def list_schema_todos(schema: Mapping[str, Any], scope: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """TODO notes, most severe first, optionally limited to top-level sections."""

    sections = _check_str_list(scope, "scope")
    todos = find_todos(schema)
    if sections:
        todos = [t for t in todos if _top_section(t["json_path"]) in sections]

    # sort() is stable: notes of equal severity keep document order.
    todos.sort(key=lambda t: SEVERITIES.index(t["severity"]))

    return {
        "todos": todos,
        "total": len(todos),
        "scope": sections,
        "by_severity": {s: sum(1 for t in todos if t["severity"] == s) for s in SEVERITIES},
    }
