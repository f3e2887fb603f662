from __future__ import annotations

import json

import pytest

from councildocs.corpus import PointerError, PointerNotFoundError, schema_corpus
from councildocs.schema import (
    ForbiddenPathError,
    SchemaRequestError,
    apply_projection,
    classify_todo_severity,
    find_todos,
    get_schema_item,
    list_schema_todos,
    schema_fingerprint,
)

SCHEMA = {
    "schema_metadata": {"schema_version": "2.1.0"},
    "discounts": [
        {"discount_id": "spd", "name": "Single person discount", "amount": "25%", "url": "TODO: add URL"},
        {"discount_id": "sdi", "name": "Severe mental impairment", "amount": "100%"},
    ],
    "data_privacy": {
        "retention": "TODO: DPO sign-off required before publication",
        "TODO": ["Confirm current retention timescale", {"owner": "records team"}],
    },
    "payment": {"validation_status": "TODO", "TODO_SUMMARY": ["Tidy headings", "Legal review of wording"]},
    "internal_notes": {"text": "not for publication"},
}


def test_get_item_returns_value_with_version_and_hash() -> None:
    out = get_schema_item(SCHEMA, "/discounts/0/name")
    assert out["data"] == "Single person discount"
    assert out["truncated"] is False
    assert out["json_path"] == "/discounts/0/name"
    assert out["schema_version"] == "2.1.0"
    assert out["hash"] == schema_fingerprint(SCHEMA)
    assert out["hash"].startswith("sha256:")


def test_get_item_applies_projection_to_lists_and_objects() -> None:
    out = get_schema_item(SCHEMA, "/discounts", projection=["name", "amount"])
    assert out["data"] == [
        {"name": "Single person discount", "amount": "25%"},
        {"name": "Severe mental impairment", "amount": "100%"},
    ]
    assert apply_projection("plain", ["name"]) == "plain"
    assert apply_projection({"a": 1}, []) == {"a": 1}


def test_get_item_over_byte_limit_returns_preview() -> None:
    full = json.dumps(SCHEMA["discounts"], ensure_ascii=False, separators=(",", ":"))
    out = get_schema_item(SCHEMA, "/discounts", max_bytes=40)
    assert out["truncated"] is True
    assert out["data"] is None
    assert out["preview"] == full[:20] + "..."
    assert out["total_bytes"] == len(full.encode("utf-8"))
    assert out["omitted_bytes"] == out["total_bytes"] - 20

    exact = get_schema_item(SCHEMA, "/discounts", max_bytes=len(full))
    assert exact["truncated"] is False


def test_get_item_respects_corpus_allowlist() -> None:
    council_tax = schema_corpus("council_tax")
    assert get_schema_item(SCHEMA, "/discounts/1", corpus=council_tax)["data"]["discount_id"] == "sdi"
    assert get_schema_item(SCHEMA, "", corpus=council_tax)["data"] is SCHEMA

    with pytest.raises(ForbiddenPathError, match="internal_notes"):
        get_schema_item(SCHEMA, "/internal_notes", corpus=council_tax)

    # Without a corpus every section is readable.
    assert get_schema_item(SCHEMA, "/internal_notes/text")["data"] == "not for publication"


@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({"path": "discounts"}, PointerError),
        ({"path": "/discounts/7"}, PointerNotFoundError),
        ({"path": "/discounts", "projection": "name"}, SchemaRequestError),
        ({"path": "/discounts", "max_bytes": 0}, SchemaRequestError),
    ],
)
def test_get_item_errors(kwargs, error) -> None:
    with pytest.raises(error):
        get_schema_item(SCHEMA, **kwargs)


@pytest.mark.parametrize(
    "note, path, severity",
    [
        ("TODO: DPO sign-off required", [], "blocking"),
        ("TODO: check before publication", [], "blocking"),
        ("TODO: add URL", [], "needs-confirmation"),
        ("TODO: confirm processing time", [], "needs-confirmation"),
        ("TODO", ["payment", "validation_status"], "needs-confirmation"),
        ("TODO: tidy wording", [], "nice-to-have"),
    ],
)
def test_todo_severity(note: str, path, severity: str) -> None:
    assert classify_todo_severity(note, path) == severity


def test_find_todos_covers_strings_markers_and_summaries() -> None:
    todos = find_todos(SCHEMA)
    by_path = {t["json_path"]: t for t in todos}
    assert set(by_path) == {
        "/discounts/0/url",
        "/data_privacy/TODO/0",
        "/data_privacy/TODO/1",
        "/data_privacy/retention",
        "/payment/validation_status",
        "/payment/TODO_SUMMARY/0",
        "/payment/TODO_SUMMARY/1",
    }
    assert by_path["/data_privacy/TODO/1"]["note"] == '{"owner":"records team"}'
    assert by_path["/payment/TODO_SUMMARY/0"]["note"] == "Tidy headings"


def test_todo_listing_sorts_by_severity_and_counts() -> None:
    out = list_schema_todos(SCHEMA)
    assert out["total"] == 7
    assert out["scope"] == []
    assert out["by_severity"] == {"blocking": 2, "needs-confirmation": 3, "nice-to-have": 2}

    severities = [t["severity"] for t in out["todos"]]
    assert severities == sorted(severities, key=["blocking", "needs-confirmation", "nice-to-have"].index)
    # Equal severities keep document order.
    assert [t["json_path"] for t in out["todos"][:2]] == ["/data_privacy/retention", "/payment/TODO_SUMMARY/1"]


def test_todo_listing_scope() -> None:
    out = list_schema_todos(SCHEMA, ["payment"])
    assert out["scope"] == ["payment"]
    assert {t["json_path"] for t in out["todos"]} == {
        "/payment/validation_status",
        "/payment/TODO_SUMMARY/0",
        "/payment/TODO_SUMMARY/1",
    }

    with pytest.raises(SchemaRequestError):
        list_schema_todos(SCHEMA, "payment")  # type: ignore[arg-type]
