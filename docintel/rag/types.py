from __future__ import annotations

"""Core data types for documents and retrieval."""

from dataclasses import dataclass


class DocumentStatus:
    """Lifecycle states of an uploaded document."""
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"

    ALL = frozenset({UPLOADED, PROCESSING, READY, ERROR})


@dataclass(frozen=True)
class DocumentRecord:
    """Document metadata as stored by the ingestion side."""
    id: str
    owner_id: str
    name: str
    stored_locator: str
    mime_type: str
    status: str = DocumentStatus.UPLOADED


@dataclass(frozen=True)
class Chunk:
    """Chunk of a document's extracted text with provenance."""
    text: str
    index: int
    document_id: str
    document_name: str


@dataclass(frozen=True)
class SearchResult:
    """Search result with similarity score and 1-based rank."""
    chunk: Chunk
    score: float
    rank: int


@dataclass(frozen=True)
class RetrievedSource:
    """Ranked fragment handed to prompt assembly."""
    text: str
    document_id: str
    document_name: str
    source_number: int
    score: float

    def as_dict(self) -> dict[str, object]:
        return {
            "text": self.text,
            "documentId": self.document_id,
            "documentName": self.document_name,
            "sourceNumber": self.source_number,
            "score": self.score,
        }
