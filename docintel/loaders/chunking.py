from __future__ import annotations

"""Recursive character chunking with overlap."""

from dataclasses import dataclass, field

from docintel.rag.errors import ChunkingError
from docintel.rag.types import Chunk

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")


def _split_keep_separator(text: str, separator: str) -> list[str]:
    """Split text on a separator, keeping it at the end of each piece."""
    if separator == "":
        return list(text)
    parts = text.split(separator)
    pieces = [part + separator for part in parts[:-1]]
    pieces.append(parts[-1])
    return [piece for piece in pieces if piece]


@dataclass
class RecursiveTextSplitter:
    """Split text on the largest natural boundary that keeps chunks bounded."""
    chunk_size: int = 500
    chunk_overlap: int = 100
    separators: tuple[str, ...] = field(default=DEFAULT_SEPARATORS)

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be greater than zero")
        if self.chunk_overlap < 0:
            self.chunk_overlap = 0
        if self.chunk_overlap >= self.chunk_size:
            self.chunk_overlap = max(0, self.chunk_size // 4)

    def split(self, text: str) -> list[str]:
        """Split text into ordered, overlapping chunks."""
        if not text or not text.strip():
            raise ChunkingError("Cannot chunk empty text", stage="chunk")
        cleaned = text.replace("\r\n", "\n").strip()
        if len(cleaned) <= self.chunk_size:
            return [cleaned]
        return self._split(cleaned, list(self.separators))

    def _split(self, text: str, separators: list[str]) -> list[str]:
        separator = separators[-1]
        remaining: list[str] = []
        for idx, candidate in enumerate(separators):
            if candidate == "":
                separator = candidate
                break
            if candidate in text:
                separator = candidate
                remaining = separators[idx + 1:]
                break

        chunks: list[str] = []
        pending: list[str] = []
        for piece in _split_keep_separator(text, separator):
            if len(piece) <= self.chunk_size:
                pending.append(piece)
                continue
            if pending:
                chunks.extend(self._merge(pending))
                pending = []
            if remaining:
                chunks.extend(self._split(piece, remaining))
            else:
                chunks.append(piece.strip())
        if pending:
            chunks.extend(self._merge(pending))
        return chunks

    def _merge(self, pieces: list[str]) -> list[str]:
        """Greedily merge pieces, carrying trailing pieces over as overlap."""
        merged: list[str] = []
        window: list[str] = []
        total = 0
        for piece in pieces:
            length = len(piece)
            if window and total + length > self.chunk_size:
                chunk = "".join(window).strip()
                if chunk:
                    merged.append(chunk)
                while window and (
                    total > self.chunk_overlap or total + length > self.chunk_size
                ):
                    total -= len(window.pop(0))
            window.append(piece)
            total += length
        chunk = "".join(window).strip()
        if chunk:
            merged.append(chunk)
        return merged

    def split_document(self, text: str, document_id: str, document_name: str) -> list[Chunk]:
        """Chunk a document's text and attach provenance to every chunk."""
        try:
            pieces = self.split(text)
        except ChunkingError as exc:
            raise ChunkingError(str(exc), document_id=document_id, stage="chunk") from exc
        return [
            Chunk(
                text=piece,
                index=idx,
                document_id=document_id,
                document_name=document_name,
            )
            for idx, piece in enumerate(pieces)
        ]
