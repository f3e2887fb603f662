from __future__ import annotations

import http.client
import json
import threading
from pathlib import Path
from typing import Any, Iterator, Optional, Tuple

import pytest

from councildocs.config import EngineConfig
from councildocs.index import IndexStore
from councildocs.search import NO_INDEX_MESSAGE
from councildocs.web import make_server

REPO_ROOT = Path(__file__).resolve().parents[1]
DOCUMENTS = json.loads((REPO_ROOT / "gold" / "docs" / "documents.json").read_text(encoding="utf-8"))

MOTION_TEXT = (
    "Notice of Motion: Save the Park\n"
    "Proposed by: Councillor Smith\n"
    "Seconded by: Councillor Jones\n"
    "This Council believes...\n"
    "\n"
    "Background"
)


@pytest.fixture()
def server() -> Iterator[Tuple[int, IndexStore]]:
    store = IndexStore()
    httpd = make_server(host="127.0.0.1", port=0, index_store=store)
    t = threading.Thread(target=httpd.serve_forever, kwargs={"poll_interval": 0.01}, daemon=True)
    t.start()
    try:
        yield int(httpd.server_address[1]), store
    finally:
        httpd.shutdown()
        httpd.server_close()


def _request(port: int, method: str, path: str, body: Optional[Any] = None, raw: Optional[bytes] = None):
    data = raw if raw is not None else (json.dumps(body).encode("utf-8") if body is not None else None)
    headers = {"Content-Type": "application/json"}
    if data is not None:
        headers["Content-Length"] = str(len(data))
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request(method, path, body=data, headers=headers)
        resp = conn.getresponse()
        payload = json.loads(resp.read().decode("utf-8", errors="replace"))
        return resp.status, payload
    finally:
        conn.close()


def test_health_and_empty_index(server) -> None:
    port, _store = server
    status, payload = _request(port, "GET", "/healthz")
    assert status == 200
    assert payload == {"status": "ok", "index": {"indexed": False}}

    status, payload = _request(port, "POST", "/api/search", {"query": "parking"})
    assert status == 200
    assert payload == {"results": [], "total_chunks": 0, "error": NO_INDEX_MESSAGE}


def test_index_search_and_clear(server) -> None:
    port, store = server

    status, payload = _request(port, "POST", "/api/index", {"documents": DOCUMENTS})
    assert status == 200
    assert payload["indexed"] is True
    assert payload["corpus"] == "documents"
    assert payload["total_chunks"] == 3
    assert store.get() is not None and store.get().version == payload["version"]

    status, payload = _request(
        port,
        "POST",
        "/api/search",
        {"query": "listed building consent", "filters": {"committee": "Planning Committee"}, "top_k": 5},
    )
    assert status == 200
    assert [r["meeting_id"] for r in payload["results"]] == ["9002"]
    assert payload["filtered_chunks"] == 1

    status, payload = _request(port, "GET", "/api/index")
    assert payload["total_chunks"] == 3

    status, payload = _request(port, "DELETE", "/api/index")
    assert status == 200
    assert payload == {"indexed": False}
    assert store.get() is None


def test_rebuild_replaces_index_version(server) -> None:
    port, _store = server
    _, first = _request(port, "POST", "/api/index", {"documents": DOCUMENTS})
    _, second = _request(port, "POST", "/api/index", {"documents": {"documents": DOCUMENTS[:1]}})
    assert second["version"] > first["version"]
    assert second["total_chunks"] == 1


def test_schema_index(server) -> None:
    port, _store = server
    schema = {"exemptions": [{"exemption": True, "name": "Class N Students are exempt from council tax"}]}
    status, payload = _request(port, "POST", "/api/index", {"schema": schema, "corpus": "council_tax"})
    assert status == 200
    assert payload["corpus"] == "council_tax"

    status, payload = _request(port, "POST", "/api/search", {"query": "students exempt"})
    assert status == 200
    assert payload["results"][0]["json_path"] == "/exemptions/0"
    assert "exemption" in payload["results"][0]["tags"]


@pytest.mark.parametrize(
    "path, body",
    [
        ("/api/index", {}),
        ("/api/index", {"schema": {}}),
        ("/api/index", {"schema": [], "corpus": "heritage"}),
        ("/api/index", {"schema": {}, "corpus": "licensing"}),
        ("/api/index", {"documents": [{"council": "No text"}]}),
        ("/api/search", {"query": 5}),
        ("/api/search", {"query": "parking", "top_k": 0}),
        ("/api/analyze", {"text": 5}),
        ("/api/analyze", {"text": "x", "page_count": "ten"}),
        ("/api/analyze", {"text": "x", "extract_sections": ["finances"]}),
    ],
)
def test_bad_requests(server, path: str, body: dict) -> None:
    port, _store = server
    status, payload = _request(port, "POST", path, body)
    assert status == 400
    assert payload["error"]


def test_unsupported_filter_for_corpus(server) -> None:
    port, _store = server
    _request(port, "POST", "/api/index", {"documents": DOCUMENTS})
    status, payload = _request(port, "POST", "/api/search", {"query": "parking", "filters": {"section": "a"}})
    assert status == 400
    assert "Unsupported filter(s)" in payload["error"]


def test_malformed_bodies(server) -> None:
    port, _store = server
    status, payload = _request(port, "POST", "/api/analyze", raw=b"{not json")
    assert (status, payload["error"]) == (400, "Invalid JSON")

    status, payload = _request(port, "POST", "/api/analyze", raw=b"[1, 2]")
    assert (status, payload["error"]) == (400, "Request body must be a JSON object")


def test_analyze_endpoint(server) -> None:
    port, _store = server
    status, payload = _request(
        port, "POST", "/api/analyze", {"text": MOTION_TEXT, "source_url": "https://example.gov.uk/m.pdf", "page_count": 2}
    )
    assert status == 200
    assert payload["document_type"] == "motion"
    assert payload["motion"]["title"] == "Save the Park"
    assert payload["metadata"]["page_count"] == 2
    assert payload["metadata"]["source_url"] == "https://example.gov.uk/m.pdf"


def test_unknown_routes(server) -> None:
    port, _store = server
    assert _request(port, "GET", "/nope")[0] == 404
    assert _request(port, "POST", "/api/nope", {})[0] == 404
    assert _request(port, "DELETE", "/api/search")[0] == 404


def test_schema_item_and_todos(server) -> None:
    port, _store = server
    status, payload = _request(port, "POST", "/api/schema/item", {"path": "/discounts/0"})
    assert status == 400
    assert "No schema is indexed" in payload["error"]

    schema = {
        "discounts": [{"discount_id": "spd", "name": "Single person discount", "url": "TODO: add URL"}],
        "internal_notes": {"text": "TODO: tidy wording"},
    }
    status, _ = _request(port, "POST", "/api/index", {"schema": schema, "corpus": "council_tax"})
    assert status == 200

    status, payload = _request(port, "POST", "/api/schema/item", {"path": "/discounts/0", "projection": ["name"]})
    assert status == 200
    assert payload["data"] == {"name": "Single person discount"}

    status, payload = _request(port, "POST", "/api/schema/item", {"path": "/discounts/9"})
    assert status == 404

    status, payload = _request(port, "POST", "/api/schema/item", {"path": "/internal_notes"})
    assert status == 403

    status, payload = _request(port, "POST", "/api/schema/item", {"path": "discounts"})
    assert status == 400

    status, payload = _request(port, "POST", "/api/schema/todos", {"scope": ["discounts"]})
    assert status == 200
    assert [t["json_path"] for t in payload["todos"]] == ["/discounts/0/url"]

    status, payload = _request(port, "POST", "/api/schema/todos", {})
    assert payload["total"] == 2


def test_server_with_bare_engine_config_indexes_schemas() -> None:
    httpd = make_server(host="127.0.0.1", port=0, config=EngineConfig(), index_store=IndexStore())
    t = threading.Thread(target=httpd.serve_forever, kwargs={"poll_interval": 0.01}, daemon=True)
    t.start()
    try:
        port = int(httpd.server_address[1])
        schema = {"legislativeFramework": [{"name": "Section 66", "text": "Listed building consent duty"}]}
        status, payload = _request(port, "POST", "/api/index", {"schema": schema, "corpus": "heritage"})
        assert status == 200
        assert payload["corpus"] == "heritage"

        status, payload = _request(port, "POST", "/api/search", {"query": "listed building"})
        assert payload["results"][0]["json_path"] == "/legislativeFramework/0"
    finally:
        httpd.shutdown()
        httpd.server_close()
