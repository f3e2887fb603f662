from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .chunker import Chunk
from .corpus import CorpusAdapter, query_words
from .index import CorpusIndex
from .metadata import parse_uk_date
from .text import tokenize

logger = logging.getLogger(__name__)


class SearchQueryError(ValueError):
    pass


DEFAULT_TOP_K = 10
DEFAULT_K1 = 1.5
DEFAULT_B = 0.75

NO_INDEX_MESSAGE = "No document index available. Build the search index from harvested documents first."
EMPTY_QUERY_MESSAGE = "Search query is required."
NO_FILTER_MATCH_MESSAGE = "No documents match the specified filters."
EMPTY_INDEX_MESSAGE = "The search index is empty. Rebuild it from documents that contain text."


def bm25_score(
    query_tokens: Sequence[str],
    term_freq: Mapping[str, int],
    doc_length: int,
    idf: Mapping[str, float],
    avg_length: float,
    k1: float = DEFAULT_K1,
    b: float = DEFAULT_B,
) -> float:
    if avg_length <= 0:
        return 0.0

    score = 0.0
    for token in query_tokens:
        tf = term_freq.get(token, 0)
        if tf == 0:
            continue
        numerator = tf * (k1 + 1)
        denominator = tf + k1 * (1 - b + b * (doc_length / avg_length))
        score += idf.get(token, 0.0) * (numerator / denominator)
    return score


def keyword_boost(query: str, text: str, adapter: Optional[CorpusAdapter] = None) -> float:
    """Multiplier >= 1.0 for literal phrase and whole-word matches."""

    query_lower = query.lower()
    text_lower = text.lower()
    boost = 1.0

    if query_lower in text_lower:
        boost += 0.5

    words = query_words(query)
    if words:
        matched = [w for w in words if re.search(rf"\b{re.escape(w)}\b", text_lower)]
        boost += 0.3 * (len(matched) / len(words))

    if adapter is not None:
        boost += adapter.domain_boost(query_lower, text_lower)

    return boost


def extract_snippet(text: str, query: str, max_length: int = 300) -> str:
    """Window of `max_length` chars starting a third of the way before the first match."""

    if not text or len(text) <= max_length:
        return text or ""

    query_lower = query.lower()
    text_lower = text.lower()

    pos = text_lower.find(query_lower)
    if pos == -1:
        first_word = query_lower.split()[0] if query_lower.split() else ""
        pos = text_lower.find(first_word) if first_word else -1
    if pos == -1:
        return text[:max_length] + "..."

    start = max(0, pos - max_length // 3)
    end = min(len(text), start + max_length)
    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet


def _check_filters(filters: Any, adapter: CorpusAdapter) -> Dict[str, Any]:
    if filters is None:
        return {}
    if not isinstance(filters, Mapping):
        raise SearchQueryError(f"filters must be an object, got {type(filters).__name__}")

    unknown = adapter.validate_filters(filters)
    if unknown:
        raise SearchQueryError(
            f"Unsupported filter(s) for corpus '{adapter.name}': {', '.join(unknown)}. "
            f"Supported: {', '.join(sorted(adapter.filter_keys))}"
        )

    for key in ("from_date", "to_date"):
        value = filters.get(key)
        if value and parse_uk_date(value) is None:
            raise SearchQueryError(f"Filter '{key}' must be a DD/MM/YYYY date, got {value!r}")

    scope = filters.get("scope")
    if scope is not None and not (isinstance(scope, list) and all(isinstance(s, str) for s in scope)):
        raise SearchQueryError(f"Filter 'scope' must be a list of section names, got {scope!r}")

    return {k: v for k, v in filters.items() if v not in (None, "", [])}


def apply_filters(chunks: Sequence[Chunk], filters: Mapping[str, Any], adapter: CorpusAdapter) -> List[Tuple[int, Chunk]]:
    """Return (position, chunk) pairs that pass the filters, in corpus order."""
    if not filters:
        return list(enumerate(chunks))
    return [(i, c) for i, c in enumerate(chunks) if adapter.matches(c, filters)]


def search(
    index: Optional[CorpusIndex],
    query: Any,
    top_k: int = DEFAULT_TOP_K,
    filters: Optional[Mapping[str, Any]] = None,
    *,
    k1: float = DEFAULT_K1,
    b: float = DEFAULT_B,
) -> Dict[str, Any]:
    """Rank the index's chunks against a free-text query.

    Returns a JSON-serializable dict:
      {results[], total_chunks, filtered_chunks, query}

    "Nothing to search" conditions come back as the same shape with an
    `error` or `note` explaining why; caller misuse raises SearchQueryError.
    """

    if query is not None and not isinstance(query, str):
        raise SearchQueryError(f"query must be a string, got {type(query).__name__}")
    if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k < 1:
        raise SearchQueryError(f"top_k must be a positive integer, got {top_k!r}")

    if index is None:
        return {"results": [], "total_chunks": 0, "error": NO_INDEX_MESSAGE}

    adapter = index.adapter
    active_filters = _check_filters(filters, adapter)
    total = len(index)

    if not query or not query.strip():
        return {"results": [], "total_chunks": total, "error": EMPTY_QUERY_MESSAGE}

    if total == 0:
        return {"results": [], "total_chunks": 0, "filtered_chunks": 0, "note": EMPTY_INDEX_MESSAGE}

    candidates = apply_filters(index.chunks, active_filters, adapter)
    if not candidates:
        return {
            "results": [],
            "total_chunks": total,
            "filtered_chunks": 0,
            "note": NO_FILTER_MATCH_MESSAGE,
        }

    query_tokens = tokenize(query)
    if not query_tokens:
        return {"results": [], "total_chunks": total, "filtered_chunks": len(candidates), "query": query}

    # Statistics always describe the full corpus, not the filtered subset.
    stats = index.stats

    scored: List[Tuple[float, Chunk]] = []
    for pos, chunk in candidates:
        term_freq: Counter = stats.term_frequencies[pos]
        bm25 = bm25_score(query_tokens, term_freq, stats.lengths[pos], stats.idf, stats.avg_length, k1, b)
        if bm25 <= 0:
            continue
        score = bm25 * keyword_boost(query, chunk.text, adapter) * adapter.metadata_boost(query, chunk)
        scored.append((score, chunk))

    # sort() is stable: equal scores keep corpus order.
    scored.sort(key=lambda item: item[0], reverse=True)

    results: List[Dict[str, Any]] = []
    for score, chunk in scored[:top_k]:
        entry: Dict[str, Any] = {
            "snippet": extract_snippet(chunk.text, query, adapter.snippet_chars),
            "score": round(score, 2),
        }
        entry.update(adapter.result_fields(chunk))
        results.append(entry)

    logger.debug(
        "Query %r: %d/%d candidates scored, %d returned",
        query,
        len(scored),
        len(candidates),
        len(results),
    )

    return {
        "results": results,
        "total_chunks": total,
        "filtered_chunks": len(candidates),
        "query": query,
    }
