"""Corpus adapters: the per-corpus rules that parameterize the search engine.

The ranking pipeline is shared. An adapter decides which filters a corpus
accepts, how chunk metadata boosts a score, which domain phrases earn an
extra keyword boost, how long snippets are and which fields a result carries.
Schema corpora also know how to cut a JSON policy document into chunks.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from .chunker import Chunk
from .config import EngineConfig, default_config_data
from .metadata import compare_uk_dates

logger = logging.getLogger(__name__)


class UnknownCorpusError(ValueError):
    pass


def query_words(query: str) -> List[str]:
    return [w for w in query.lower().split() if len(w) > 2]


class CorpusAdapter:
    name = "base"
    filter_keys: FrozenSet[str] = frozenset()
    snippet_chars = 300
    boost_terms: Tuple[str, ...] = ()

    def validate_filters(self, filters: Mapping[str, Any]) -> List[str]:
        """Return the filter keys this corpus does not understand."""
        return sorted(k for k in filters if k not in self.filter_keys)

    def matches(self, chunk: Chunk, filters: Mapping[str, Any]) -> bool:
        return True

    def domain_boost(self, query_lower: str, text_lower: str) -> float:
        boost = 0.0
        for term in self.boost_terms:
            if term in query_lower and term in text_lower:
                boost += 0.2
        return boost

    def metadata_boost(self, query: str, chunk: Chunk) -> float:
        return 1.0

    def result_fields(self, chunk: Chunk) -> Dict[str, Any]:
        return dict(chunk.metadata)


class MeetingDocumentsCorpus(CorpusAdapter):
    """Harvested committee papers carrying council/committee/meeting metadata."""

    name = "documents"
    filter_keys = frozenset(
        {"council", "committee", "committee_id", "meeting_id", "from_date", "to_date"}
    )
    snippet_chars = 300

    def matches(self, chunk: Chunk, filters: Mapping[str, Any]) -> bool:
        for key in ("council", "committee", "committee_id", "meeting_id"):
            wanted = filters.get(key)
            if wanted and chunk.get(key) != wanted:
                return False

        meeting_date = chunk.get("meeting_date")
        if filters.get("from_date") and meeting_date:
            if compare_uk_dates(meeting_date, filters["from_date"]) < 0:
                return False
        if filters.get("to_date") and meeting_date:
            if compare_uk_dates(meeting_date, filters["to_date"]) > 0:
                return False

        return True

    def metadata_boost(self, query: str, chunk: Chunk) -> float:
        query_lower = query.lower()
        boost = 1.0

        for key in ("council", "committee"):
            value = chunk.get(key)
            if isinstance(value, str) and value.strip():
                first_word = value.lower().split()[0]
                if first_word in query_lower:
                    boost += 0.2

        title = chunk.get("document_title")
        if isinstance(title, str) and title:
            title_lower = title.lower()
            words = query_words(query)
            matched = [w for w in words if w in title_lower]
            if matched:
                boost += 0.3 * (len(matched) / len(words))

        return boost

    def result_fields(self, chunk: Chunk) -> Dict[str, Any]:
        out = dict(chunk.metadata)
        out["chunk_position"] = chunk.position
        return out


class SchemaCorpus(CorpusAdapter):
    """A static JSON policy schema cut into one chunk per record."""

    filter_keys = frozenset({"section", "scope", "tag", "tags"})
    snippet_chars = 200

    def __init__(
        self,
        name: str,
        *,
        boost_terms: Sequence[str] = (),
        tag_keys: Optional[Mapping[str, str]] = None,
        tag_phrases: Optional[Mapping[str, str]] = None,
        allowed_sections: Sequence[str] = (),
    ) -> None:
        self.name = name
        self.boost_terms = tuple(t.lower() for t in boost_terms)
        self.tag_keys = dict(tag_keys or {})
        self.tag_phrases = dict(tag_phrases or {})
        self.allowed_sections = tuple(allowed_sections)

    def is_path_allowed(self, pointer: str) -> bool:
        """Whether item lookups may read `pointer`; no allowlist means every section."""
        if not self.allowed_sections or pointer in ("", "/"):
            return True
        return parse_pointer(pointer)[0] in self.allowed_sections

    def matches(self, chunk: Chunk, filters: Mapping[str, Any]) -> bool:
        tags = chunk.get("tags") or []
        for key, value in filters.items():
            if key == "section" and chunk.get("section") != value:
                return False
            if key == "scope" and chunk.get("section") not in value:
                return False
            if key == "tag" and value not in tags:
                return False
            if key == "tags" and isinstance(value, list):
                if not any(t in tags for t in value):
                    return False
        return True

    def result_fields(self, chunk: Chunk) -> Dict[str, Any]:
        return {
            "json_path": chunk.get("json_path"),
            "section": chunk.get("section"),
            "tags": list(chunk.get("tags") or []),
        }

    def extract_tags(self, value: Any, path: Sequence[str]) -> List[str]:
        tags: List[str] = []

        def add(tag: str) -> None:
            if tag not in tags:
                tags.append(tag)

        if path:
            add(path[0])

        if isinstance(value, dict):
            for key, tag in self.tag_keys.items():
                if value.get(key):
                    add(tag)
            if value.get("status") == "TODO" and "TODO" in self.tag_keys:
                add(self.tag_keys["TODO"])

        text = flatten_text(value)
        lowered = text.lower()
        for phrase, tag in self.tag_phrases.items():
            # Upper-case markers such as TODO only count verbatim.
            haystack = text if phrase.isupper() else lowered
            needle = phrase if phrase.isupper() else phrase.lower()
            if needle in haystack:
                add(tag)

        return tags

    def build_chunks(self, schema: Mapping[str, Any], *, id_prefix: Optional[str] = None) -> List[Chunk]:
        """Walk the schema's top-level sections and emit one chunk per record.

        A record is a list item or a mapping entry one level below a section.
        Objects listed inside a record are chunked again so detailed
        provisions are searchable on their own.
        """

        prefix = id_prefix or f"{self.name}_chunk_"
        records: List[Tuple[List[str], Any]] = []
        for section, value in schema.items():
            records.extend(_collect_records(str(section), value))

        by_section: Dict[str, int] = {}
        for path, _value in records:
            by_section[path[0]] = by_section.get(path[0], 0) + 1

        seen: Dict[str, int] = {}
        chunks: List[Chunk] = []
        for n, (path, value) in enumerate(records, start=1):
            section = path[0]
            idx = seen.get(section, 0)
            seen[section] = idx + 1
            chunks.append(
                Chunk(
                    id=f"{prefix}{n}",
                    text=flatten_text(value),
                    chunk_index=idx,
                    total_chunks=by_section[section],
                    metadata={
                        "section": section,
                        "tags": self.extract_tags(value, path),
                        "json_path": build_pointer(path),
                    },
                )
            )

        logger.debug("Chunked %s schema into %d chunks", self.name, len(chunks))
        return chunks


def _collect_records(section: str, value: Any) -> List[Tuple[List[str], Any]]:
    if isinstance(value, list):
        entries = [([section, str(i)], v) for i, v in enumerate(value)]
    elif isinstance(value, dict):
        entries = [([section, str(k)], v) for k, v in value.items()]
    else:
        return [([section], value)]

    records: List[Tuple[List[str], Any]] = []
    for path, entry in entries:
        records.append((path, entry))
        if not isinstance(entry, dict):
            continue
        # Lists of objects inside a record (provisions, steps) are chunked on their own too.
        for key, nested in entry.items():
            if isinstance(nested, list):
                for j, item in enumerate(nested):
                    if isinstance(item, dict):
                        records.append((path + [str(key), str(j)], item))
    return records


def flatten_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return " ".join(flatten_text(v) for v in value)
    if isinstance(value, dict):
        return " ".join(flatten_text(v) for v in value.values())
    return ""


class PointerError(ValueError):
    """A JSON pointer that is malformed or does not resolve."""


class PointerNotFoundError(PointerError):
    pass


def escape_pointer_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def unescape_pointer_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def build_pointer(path: Sequence[str]) -> str:
    """RFC 6901 JSON pointer for a path of keys/indices."""
    if not path:
        return ""
    return "/" + "/".join(escape_pointer_token(str(p)) for p in path)


def parse_pointer(pointer: str) -> List[str]:
    if not isinstance(pointer, str):
        raise PointerError(f"JSON pointer must be a string, got {type(pointer).__name__}")
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        raise PointerError(f"Invalid JSON pointer {pointer!r}: must start with '/' or be empty")
    return [unescape_pointer_token(t) for t in pointer[1:].split("/")]


_ARRAY_INDEX_RE = re.compile(r"0|[1-9][0-9]*")


def resolve_pointer(document: Any, pointer: str) -> Any:
    """Return the value `pointer` addresses inside `document`.

    Array tokens must be canonical non-negative integers ("01" and "-" never
    match). Raises PointerNotFoundError when any step is missing.
    """

    current = document
    for token in parse_pointer(pointer):
        if isinstance(current, list):
            if not _ARRAY_INDEX_RE.fullmatch(token) or int(token) >= len(current):
                raise PointerNotFoundError(f"Path {pointer!r} not found")
            current = current[int(token)]
        elif isinstance(current, dict):
            if token not in current:
                raise PointerNotFoundError(f"Path {pointer!r} not found")
            current = current[token]
        else:
            raise PointerNotFoundError(f"Path {pointer!r} not found")
    return current


MEETING_DOCUMENTS = MeetingDocumentsCorpus()


def schema_corpus(name: str, config: Optional[EngineConfig] = None) -> SchemaCorpus:
    corpora = config.corpora if config is not None else default_config_data()["corpora"]
    rules = corpora.get(name)
    if rules is None:
        raise UnknownCorpusError(
            f"Unknown corpus '{name}'. Known: {', '.join(sorted(corpora)) or '(none)'}"
        )
    return SchemaCorpus(
        name,
        boost_terms=rules.get("boost_terms") or (),
        tag_keys=rules.get("tag_keys") or {},
        tag_phrases=rules.get("tag_phrases") or {},
        allowed_sections=rules.get("allowed_sections") or (),
    )


def get_adapter(name: str, config: Optional[EngineConfig] = None) -> CorpusAdapter:
    if name == MEETING_DOCUMENTS.name:
        return MEETING_DOCUMENTS
    return schema_corpus(name, config)
