from __future__ import annotations

"""Ephemeral in-memory index with cosine similarity search."""

import math
from dataclasses import dataclass, field
from typing import Sequence

from docintel.rag.errors import EmbeddingIntegrityError
from docintel.rag.types import Chunk, SearchResult


@dataclass(frozen=True)
class IndexEntry:
    chunk: Chunk
    vector: list[float]


@dataclass
class InMemoryIndex:
    """Ordered (chunk, vector) entries for one user's ready documents."""
    user_id: str
    entries: list[IndexEntry] = field(default_factory=list)

    @property
    def dimension(self) -> int | None:
        if not self.entries:
            return None
        return len(self.entries[0].vector)

    def __len__(self) -> int:
        return len(self.entries)

    def add(self, chunks: Sequence[Chunk], vectors: Sequence[Sequence[float]]) -> int:
        """Pair the Nth chunk with the Nth vector and append them."""
        if len(chunks) != len(vectors):
            raise EmbeddingIntegrityError(
                f"Embedding count mismatch: submitted {len(chunks)} texts, "
                f"received {len(vectors)} vectors",
                user_id=self.user_id,
                stage="index",
            )
        expected = self.dimension
        for vector in vectors:
            if expected is None:
                expected = len(vector)
            if len(vector) != expected:
                raise EmbeddingIntegrityError(
                    f"Embedding dimension mismatch: expected {expected}, got {len(vector)}",
                    user_id=self.user_id,
                    stage="index",
                )
        for chunk, vector in zip(chunks, vectors):
            self.entries.append(IndexEntry(chunk=chunk, vector=list(vector)))
        return len(chunks)

    def search(
        self,
        query_vector: Sequence[float],
        k: int,
        document_id: str | None = None,
    ) -> list[SearchResult]:
        """Rank entries by cosine similarity, filtering by document first."""
        if k <= 0:
            return []
        candidates = self.entries
        if document_id is not None:
            candidates = [entry for entry in candidates if entry.chunk.document_id == document_id]
        if not candidates:
            return []
        if self.dimension is not None and len(query_vector) != self.dimension:
            raise EmbeddingIntegrityError(
                f"Query dimension {len(query_vector)} does not match index dimension "
                f"{self.dimension}",
                user_id=self.user_id,
                stage="search",
            )
        scored = [
            (self._cosine_similarity(query_vector, entry.vector), entry) for entry in candidates
        ]
        # list.sort is stable, so equal scores keep index order
        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            SearchResult(chunk=entry.chunk, score=score, rank=rank)
            for rank, (score, entry) in enumerate(scored[:k], start=1)
        ]

    def _cosine_similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        """Compute cosine similarity between two vectors."""
        dot = sum(x * y for x, y in zip(a, b))
        norm_a = math.sqrt(sum(x * x for x in a))
        norm_b = math.sqrt(sum(y * y for y in b))
        if norm_a == 0.0 or norm_b == 0.0:
            return 0.0
        return dot / (norm_a * norm_b)

    def stats(self) -> dict[str, int | str | None]:
        """Return basic stats for the index."""
        return {
            "backend": "memory",
            "user_id": self.user_id,
            "chunk_count": len(self.entries),
            "document_count": len({entry.chunk.document_id for entry in self.entries}),
            "embedding_dimension": self.dimension,
        }
