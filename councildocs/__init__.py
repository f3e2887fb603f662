"""Search and structural analysis for council meeting documents."""

from .analyze import AnalysisInputError, analyze_document
from .chunker import Chunk, SourceDocument, build_index
from .classify import classify_document
from .index import CorpusIndex, IndexStore, clear_index, get_index, set_index
from .search import SearchQueryError, search

__all__ = [
    "AnalysisInputError",
    "Chunk",
    "CorpusIndex",
    "IndexStore",
    "SearchQueryError",
    "SourceDocument",
    "analyze_document",
    "build_index",
    "classify_document",
    "clear_index",
    "get_index",
    "search",
    "set_index",
]
