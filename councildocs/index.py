from __future__ import annotations

import itertools
import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

from .chunker import Chunk, SourceDocument, build_index
from .config import EngineConfig
from .corpus import MEETING_DOCUMENTS, CorpusAdapter, schema_corpus
from .text import tokenize

logger = logging.getLogger(__name__)

_VERSIONS = itertools.count(1)


def build_idf(token_sets: Iterable[Iterable[str]]) -> Dict[str, float]:
    """IDF per term: ln((N - df + 0.5) / (df + 0.5) + 1) over the given chunks."""

    doc_freq: Counter = Counter()
    n = 0
    for tokens in token_sets:
        n += 1
        doc_freq.update(set(tokens))

    return {term: math.log((n - df + 0.5) / (df + 0.5) + 1) for term, df in doc_freq.items()}


@dataclass(frozen=True)
class CorpusStats:
    version: int
    idf: Dict[str, float]
    term_frequencies: Tuple[Counter, ...]
    lengths: Tuple[int, ...]
    avg_length: float


class CorpusIndex:
    """An immutable chunk snapshot plus statistics derived from the whole set.

    Statistics are computed on first use and cached on the snapshot. Chunks
    never change after construction, so a rebuilt corpus is a new snapshot
    with a new version and its own table.
    """

    def __init__(
        self,
        chunks: Iterable[Chunk],
        *,
        adapter: CorpusAdapter = MEETING_DOCUMENTS,
        source: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._chunks: Tuple[Chunk, ...] = tuple(chunks)
        self.version = next(_VERSIONS)
        self.adapter = adapter
        # The schema a schema corpus was cut from, kept for item lookups.
        self.source = source
        self._stats: Optional[CorpusStats] = None

    @property
    def chunks(self) -> Tuple[Chunk, ...]:
        return self._chunks

    def __len__(self) -> int:
        return len(self._chunks)

    def __repr__(self) -> str:
        return f"CorpusIndex(version={self.version}, chunks={len(self._chunks)}, corpus={self.adapter.name!r})"

    @property
    def stats(self) -> CorpusStats:
        if self._stats is None:
            self._stats = self._compute_stats()
        return self._stats

    @property
    def idf(self) -> Dict[str, float]:
        return self.stats.idf

    def _compute_stats(self) -> CorpusStats:
        token_lists = [tokenize(c.text) for c in self._chunks]
        lengths = tuple(len(t) for t in token_lists)
        avg_length = (sum(lengths) / len(lengths)) if lengths else 0.0
        stats = CorpusStats(
            version=self.version,
            idf=build_idf(token_lists),
            term_frequencies=tuple(Counter(t) for t in token_lists),
            lengths=lengths,
            avg_length=avg_length,
        )
        logger.debug(
            "Built IDF table v%d: %d terms over %d chunks (avg length %.1f)",
            self.version,
            len(stats.idf),
            len(self._chunks),
            avg_length,
        )
        return stats


class IndexStore:
    """Holds the current CorpusIndex; replacing it swaps a single reference."""

    def __init__(self) -> None:
        self._index: Optional[CorpusIndex] = None

    def set(self, chunks: Union[CorpusIndex, Sequence[Chunk]], *, adapter: CorpusAdapter = MEETING_DOCUMENTS) -> CorpusIndex:
        index = chunks if isinstance(chunks, CorpusIndex) else CorpusIndex(chunks, adapter=adapter)
        self._index = index
        logger.debug("Index replaced: %r", index)
        return index

    def get(self) -> Optional[CorpusIndex]:
        return self._index

    def clear(self) -> None:
        self._index = None


_default_store = IndexStore()


def set_index(chunks: Union[CorpusIndex, Sequence[Chunk]], *, adapter: CorpusAdapter = MEETING_DOCUMENTS) -> CorpusIndex:
    return _default_store.set(chunks, adapter=adapter)


def get_index() -> Optional[CorpusIndex]:
    return _default_store.get()


def clear_index() -> None:
    _default_store.clear()


def index_documents(
    documents: Iterable[Union[SourceDocument, Mapping[str, Any]]], config: Optional[EngineConfig] = None
) -> CorpusIndex:
    cfg = config or EngineConfig()
    chunks = build_index(documents, cfg.chunk_size, cfg.overlap)
    logger.info("Indexed %d chunks (chunk_size=%d, overlap=%d)", len(chunks), cfg.chunk_size, cfg.overlap)
    return CorpusIndex(chunks)


def index_schema(schema: Mapping[str, Any], corpus: str, config: Optional[EngineConfig] = None) -> CorpusIndex:
    adapter = schema_corpus(corpus, config)
    chunks = adapter.build_chunks(schema)
    logger.info("Indexed %d %s schema chunks", len(chunks), corpus)
    return CorpusIndex(chunks, adapter=adapter, source=schema)
