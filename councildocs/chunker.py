from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union


# Metadata every harvested document carries onto each of its chunks.
DOCUMENT_METADATA_FIELDS = (
    "council",
    "committee",
    "committee_id",
    "meeting_id",
    "meeting_date",
    "document_title",
    "document_url",
    "agenda_item",
    "attachment_id",
    "publication_date",
    "page_count",
    "word_count",
)

DEFAULT_CHUNK_SIZE = 500
DEFAULT_OVERLAP = 50


@dataclass(frozen=True)
class SourceDocument:
    text: str
    council: Optional[str] = None
    committee: Optional[str] = None
    committee_id: Optional[str] = None
    meeting_id: Optional[str] = None
    meeting_date: Optional[str] = None  # DD/MM/YYYY
    document_title: Optional[str] = None
    document_url: Optional[str] = None
    agenda_item: Optional[str] = None
    attachment_id: Optional[str] = None
    publication_date: Optional[str] = None
    page_count: Optional[int] = None
    word_count: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SourceDocument":
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        text = kwargs.pop("text", "")
        return cls(text=text if isinstance(text, str) else "", **kwargs)

    def metadata(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in DOCUMENT_METADATA_FIELDS}


@dataclass(frozen=True)
class Chunk:
    id: str
    text: str
    chunk_index: int
    total_chunks: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    @property
    def position(self) -> str:
        return f"{self.chunk_index + 1}/{self.total_chunks}"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "chunk_index": self.chunk_index,
            "total_chunks": self.total_chunks,
        }
        out.update(self.metadata)
        return out


def _validate_window(chunk_size: int, overlap: int) -> None:
    if not isinstance(chunk_size, int) or chunk_size <= 0:
        raise ValueError(f"chunk_size must be a positive integer, got {chunk_size!r}")
    if not isinstance(overlap, int) or overlap < 0:
        raise ValueError(f"overlap must be a non-negative integer, got {overlap!r}")
    if overlap >= chunk_size:
        raise ValueError(f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})")


def split_text_into_chunks(
    text: object, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_OVERLAP
) -> List[str]:
    """Split text into overlapping windows of roughly `chunk_size` words.

    The window advances by `chunk_size - overlap` words. Once fewer than
    `2 * overlap` words remain after a step, the remainder becomes the final
    chunk, so the last two chunks may overlap by more than `overlap` words.
    """

    _validate_window(chunk_size, overlap)
    if not text or not isinstance(text, str):
        return []

    words = text.split()
    if not words:
        return []

    if len(words) <= chunk_size:
        return [" ".join(words)]

    chunks: List[str] = []
    start = 0
    while start < len(words):
        end = min(start + chunk_size, len(words))
        chunks.append(" ".join(words[start:end]))

        start += chunk_size - overlap

        if len(words) - start < overlap * 2 and start < len(words):
            chunks.append(" ".join(words[start:]))
            break

    return chunks


def build_index(
    documents: Iterable[Union[SourceDocument, Mapping[str, Any]]],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    *,
    id_prefix: str = "doc_chunk_",
) -> List[Chunk]:
    """Chunk every document and stamp each chunk with its document's metadata.

    Chunk ids are unique across the returned list and increase monotonically.
    Storing the result in an index is left to the caller.
    """

    _validate_window(chunk_size, overlap)

    chunks: List[Chunk] = []
    next_id = 1
    for doc in documents:
        if not isinstance(doc, SourceDocument):
            doc = SourceDocument.from_dict(doc)

        texts = split_text_into_chunks(doc.text, chunk_size, overlap)
        meta = doc.metadata()
        for idx, chunk_text in enumerate(texts):
            chunks.append(
                Chunk(
                    id=f"{id_prefix}{next_id}",
                    text=chunk_text,
                    chunk_index=idx,
                    total_chunks=len(texts),
                    metadata=dict(meta),
                )
            )
            next_id += 1

    return chunks
