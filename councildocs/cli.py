from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .analyze import analyze_document
from .config import ConfigError, EngineConfig, default_config_path, init_config, load_config, resolve_config_path
from .extract import (
    PdfExtractionError,
    extract_pdf_text_canonical,
    load_documents,
    load_schema,
    read_text_file,
)
from .index import CorpusIndex, IndexStore, index_documents, index_schema
from .schema import get_schema_item, list_schema_todos
from .search import search

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _split_csv(value: Optional[str]) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def _filters_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    filters: Dict[str, Any] = {}
    for name in ("council", "committee", "committee_id", "meeting_id", "from_date", "to_date", "section", "tag"):
        value = getattr(args, name, None)
        if value:
            filters[name] = value
    scope = _split_csv(getattr(args, "scope", None))
    if scope:
        filters["scope"] = scope
    return filters


def _emit(payload: Any, out: Optional[str]) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    if out:
        out_path = Path(out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
        print(f"Wrote {out_path}")
    else:
        sys.stdout.write(text)


def _build_index(args: argparse.Namespace, config: EngineConfig) -> Optional[CorpusIndex]:
    if args.documents:
        return index_documents(load_documents(Path(args.documents)), config)
    if args.schema:
        return index_schema(load_schema(Path(args.schema)), args.corpus, config)
    return None


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Search and analyze council meeting documents")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to engine config YAML (optional; defaults to COUNCILDOCS_CONFIG, XDG config or ./councildocs.yaml)",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Create a starter config at the resolved config path and exit",
    )
    parser.add_argument(
        "--overwrite-config",
        action="store_true",
        help="With --init-config, overwrite an existing config file",
    )
    parser.add_argument(
        "--print-config-path",
        action="store_true",
        help="Print the resolved config path and exit",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    parser.add_argument("--documents", type=str, default=None, help="Harvested documents as a JSON array or JSONL file")
    parser.add_argument("--schema", type=str, default=None, help="Policy schema JSON to index instead of documents")
    parser.add_argument(
        "--corpus",
        type=str,
        default="council_tax",
        help="Schema corpus rules to apply with --schema (default: council_tax)",
    )

    parser.add_argument("--query", type=str, default=None, help="Free-text search query")
    parser.add_argument("--top-k", type=int, default=None, help="Number of results (default from config: 10)")
    parser.add_argument("--council", type=str, default=None, help="Filter: exact council name")
    parser.add_argument("--committee", type=str, default=None, help="Filter: exact committee name")
    parser.add_argument("--committee-id", dest="committee_id", type=str, default=None, help="Filter: committee id")
    parser.add_argument("--meeting-id", dest="meeting_id", type=str, default=None, help="Filter: meeting id")
    parser.add_argument("--from-date", dest="from_date", type=str, default=None, help="Filter: meetings on/after DD/MM/YYYY")
    parser.add_argument("--to-date", dest="to_date", type=str, default=None, help="Filter: meetings on/before DD/MM/YYYY")
    parser.add_argument("--section", type=str, default=None, help="Filter (schema corpora): top-level section")
    parser.add_argument("--tag", type=str, default=None, help="Filter (schema corpora): tag")
    parser.add_argument(
        "--scope",
        type=str,
        default=None,
        help="Comma-separated top-level sections to search or list TODOs in (schema corpora)",
    )

    parser.add_argument("--get-item", dest="get_item", type=str, default=None, help="JSON pointer of a schema record to print")
    parser.add_argument("--projection", type=str, default=None, help="With --get-item: comma-separated fields to keep")
    parser.add_argument("--max-bytes", dest="max_bytes", type=int, default=None, help="With --get-item: size cap (default from config)")
    parser.add_argument("--todos", action="store_true", help="List TODO notes in the schema, most severe first")

    parser.add_argument("--analyze-text", type=str, default=None, help="Analyze a plain text document")
    parser.add_argument("--analyze-pdf", type=str, default=None, help="Analyze a PDF document")
    parser.add_argument(
        "--sections",
        type=str,
        default="all",
        help="Comma-separated report sections to extract (default: all)",
    )
    parser.add_argument("--max-items", type=int, default=None, help="Cap on listed items (default from config: 20)")
    parser.add_argument("--source-url", type=str, default=None, help="Source URL recorded in the analysis metadata")

    parser.add_argument("--out", type=str, default=None, help="Output JSON path (default: stdout)")

    parser.add_argument("--serve", action="store_true", help="Serve the JSON HTTP API")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host for --serve (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port for --serve (default: 8000)")

    args = parser.parse_args(argv)
    _configure_logging(bool(args.verbose))

    # --init-config writes to the XDG location unless a path was given.
    config_path = resolve_config_path(args.config, prefer_xdg=bool(args.init_config))

    if args.print_config_path:
        print(config_path if config_path is not None else f"{default_config_path()} (not found; using defaults)")
        return 0

    if args.init_config:
        path = init_config(config_path or default_config_path(), overwrite=bool(args.overwrite_config))
        print(f"Initialized config at {path}")
        return 0

    try:
        config = load_config(config_path)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 2

    if args.documents and args.schema:
        parser.error("Use either --documents or --schema, not both")

    try:
        index = _build_index(args, config)
    except (ValueError, OSError) as e:
        print(f"Index build failed: {e}", file=sys.stderr)
        return 2

    if args.serve:
        from .web import serve

        store = IndexStore()
        if index is not None:
            store.set(index)
        print(f"Serving councildocs API at http://{args.host}:{int(args.port)}/")
        serve(host=str(args.host), port=int(args.port), config=config, index_store=store)
        return 0

    if args.analyze_text or args.analyze_pdf:
        try:
            if args.analyze_pdf:
                source = Path(args.analyze_pdf)
                text, page_count = extract_pdf_text_canonical(source)
            else:
                source = Path(args.analyze_text)
                text, page_count = read_text_file(source), None
            sections = [s.strip() for s in args.sections.split(",") if s.strip()]
            result = analyze_document(
                text,
                extract_sections=sections or ["all"],
                max_items=args.max_items if args.max_items is not None else config.max_items,
                source_url=args.source_url or str(source),
                page_count=page_count,
            )
        except (PdfExtractionError, ValueError, OSError) as e:
            print(f"Analysis failed: {e}", file=sys.stderr)
            return 2
        logger.info("Analyzed %s as %s", source, result["document_type"])
        _emit(result, args.out)
        return 0

    if args.get_item is not None or args.todos:
        if index is None or index.source is None:
            parser.error("--get-item and --todos require --schema")
        try:
            if args.get_item is not None:
                result = get_schema_item(
                    index.source,
                    args.get_item,
                    projection=_split_csv(args.projection),
                    max_bytes=args.max_bytes if args.max_bytes is not None else config.max_bytes,
                    corpus=index.adapter,  # type: ignore[arg-type]
                )
            else:
                result = list_schema_todos(index.source, _split_csv(args.scope))
        except ValueError as e:
            print(f"Lookup failed: {e}", file=sys.stderr)
            return 2
        _emit(result, args.out)
        return 0

    if args.query is not None:
        if index is None:
            parser.error("--query requires --documents or --schema")
        try:
            result = search(
                index,
                args.query,
                top_k=args.top_k if args.top_k is not None else config.top_k,
                filters=_filters_from_args(args),
                k1=config.k1,
                b=config.b,
            )
        except ValueError as e:
            print(f"Search failed: {e}", file=sys.stderr)
            return 2
        _emit(result, args.out)
        return 0

    if index is not None:
        _emit({"indexed": True, "corpus": index.adapter.name, "total_chunks": len(index)}, args.out)
        return 0

    parser.error("Provide --query with --documents/--schema, --get-item/--todos with --schema, --analyze-text/--analyze-pdf, or --serve")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
