from __future__ import annotations

import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .analyze import analyze_document
from .config import EngineConfig, load_config
from .extract import documents_from_records
from .corpus import PointerNotFoundError
from .index import CorpusIndex, IndexStore, index_documents, index_schema
from .schema import ForbiddenPathError, get_schema_item, list_schema_todos
from .search import search

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 50 * 1024 * 1024


def describe_index(index: Optional[CorpusIndex]) -> Dict[str, Any]:
    if index is None:
        return {"indexed": False}
    return {
        "indexed": True,
        "version": index.version,
        "corpus": index.adapter.name,
        "total_chunks": len(index),
    }


class _Handler(BaseHTTPRequestHandler):
    server_version = "councildocs"

    def _send(self, status: int, data: bytes, *, content_type: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_json(self, status: int, obj: object) -> None:
        payload = json.dumps(obj, ensure_ascii=False).encode("utf-8")
        self._send(status, payload, content_type="application/json; charset=utf-8")

    def _send_json_error(self, status: int, message: str) -> None:
        self._send_json(status, {"error": str(message)})

    def _read_json_object(self) -> Dict[str, Any]:
        try:
            length = int(self.headers.get("Content-Length") or "0")
        except ValueError:
            length = 0
        if length > MAX_BODY_BYTES:
            raise ValueError("Request body too large")
        body = self.rfile.read(length) if length > 0 else b""
        try:
            data = json.loads(body.decode("utf-8", errors="replace") or "null")
        except json.JSONDecodeError as e:
            raise ValueError("Invalid JSON") from e
        if not isinstance(data, dict):
            raise ValueError("Request body must be a JSON object")
        return data

    @property
    def _store(self) -> IndexStore:
        return self.server.index_store  # type: ignore[attr-defined]

    @property
    def _config(self) -> EngineConfig:
        return self.server.config  # type: ignore[attr-defined]

    def do_GET(self) -> None:  # noqa: N802
        path = urlparse(self.path).path

        if path == "/healthz":
            self._send_json(200, {"status": "ok", "index": describe_index(self._store.get())})
            return

        if path == "/api/index":
            self._send_json(200, describe_index(self._store.get()))
            return

        self._send_json_error(404, "Not found")

    def do_DELETE(self) -> None:  # noqa: N802
        path = urlparse(self.path).path

        if path == "/api/index":
            self._store.clear()
            logger.info("Index cleared")
            self._send_json(200, describe_index(None))
            return

        self._send_json_error(404, "Not found")

    def do_POST(self) -> None:  # noqa: N802
        path = urlparse(self.path).path
        handlers = {
            "/api/index": self._api_build_index,
            "/api/search": self._api_search,
            "/api/analyze": self._api_analyze,
            "/api/schema/item": self._api_schema_item,
            "/api/schema/todos": self._api_schema_todos,
        }
        handler = handlers.get(path)
        if handler is None:
            self._send_json_error(404, "Not found")
            return

        try:
            body = self._read_json_object()
            status, payload = handler(body)
        except PointerNotFoundError as e:
            self._send_json_error(404, str(e))
            return
        except ForbiddenPathError as e:
            self._send_json_error(403, str(e))
            return
        except ValueError as e:
            # All request-level errors (corpus, query, analysis input) subclass ValueError.
            self._send_json_error(400, str(e))
            return

        self._send_json(status, payload)

    def _api_build_index(self, body: Dict[str, Any]) -> tuple[int, Dict[str, Any]]:
        if "schema" in body:
            schema = body.get("schema")
            corpus = body.get("corpus")
            if not isinstance(schema, dict):
                raise ValueError("'schema' must be a JSON object")
            if not isinstance(corpus, str) or not corpus:
                raise ValueError("'corpus' is required with 'schema'")
            index = index_schema(schema, corpus, self._config)
        elif "documents" in body:
            index = index_documents(documents_from_records(body.get("documents")), self._config)
        else:
            raise ValueError("Provide 'documents' or 'schema' + 'corpus'")

        self._store.set(index)
        return 200, describe_index(index)

    def _api_search(self, body: Dict[str, Any]) -> tuple[int, Dict[str, Any]]:
        cfg = self._config
        top_k = body.get("top_k", cfg.top_k)
        result = search(
            self._store.get(),
            body.get("query"),
            top_k=top_k,
            filters=body.get("filters"),
            k1=cfg.k1,
            b=cfg.b,
        )
        return 200, result

    def _indexed_schema(self) -> CorpusIndex:
        index = self._store.get()
        if index is None or index.source is None:
            raise ValueError("No schema is indexed. POST 'schema' + 'corpus' to /api/index first.")
        return index

    def _api_schema_item(self, body: Dict[str, Any]) -> tuple[int, Dict[str, Any]]:
        index = self._indexed_schema()
        result = get_schema_item(
            index.source,  # type: ignore[arg-type]
            body.get("path", ""),
            projection=body.get("projection"),
            max_bytes=body.get("max_bytes", self._config.max_bytes),
            corpus=index.adapter,  # type: ignore[arg-type]
        )
        return 200, result

    def _api_schema_todos(self, body: Dict[str, Any]) -> tuple[int, Dict[str, Any]]:
        index = self._indexed_schema()
        return 200, list_schema_todos(index.source, body.get("scope"))  # type: ignore[arg-type]

    def _api_analyze(self, body: Dict[str, Any]) -> tuple[int, Dict[str, Any]]:
        page_count = body.get("page_count")
        if page_count is not None and (isinstance(page_count, bool) or not isinstance(page_count, int)):
            raise ValueError("'page_count' must be an integer")
        result = analyze_document(
            body.get("text"),  # type: ignore[arg-type]
            extract_sections=body.get("extract_sections") or ("all",),
            max_items=body.get("max_items", self._config.max_items),
            source_url=body.get("source_url"),
            page_count=page_count,
        )
        return 200, result

    def log_message(self, fmt: str, *args) -> None:  # noqa: A003
        # Keep test output and CLI usage quiet.
        return


def make_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    config: Optional[EngineConfig] = None,
    index_store: Optional[IndexStore] = None,
) -> ThreadingHTTPServer:
    httpd = ThreadingHTTPServer((host, int(port)), _Handler)
    httpd.config = config or load_config()  # type: ignore[attr-defined]
    httpd.index_store = index_store or IndexStore()  # type: ignore[attr-defined]
    return httpd


def serve(
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    config: Optional[EngineConfig] = None,
    index_store: Optional[IndexStore] = None,
) -> None:
    httpd = make_server(host=host, port=port, config=config, index_store=index_store)
    try:
        httpd.serve_forever(poll_interval=0.25)
    finally:
        httpd.server_close()
