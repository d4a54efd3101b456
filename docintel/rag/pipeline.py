from __future__ import annotations

import logging
from dataclasses import dataclass

from docintel.metadata.history import QueryRecorder
from docintel.rag.embeddings import EmbeddingProvider
from docintel.rag.errors import EmbeddingError, InvalidArgumentError
from docintel.rag.index_builder import IndexBuilder
from docintel.rag.types import RetrievedSource, SearchResult

logger = logging.getLogger(__name__)


def to_sources(results: list[SearchResult]) -> list[RetrievedSource]:
    return [
        RetrievedSource(
            text=result.chunk.text,
            document_id=result.chunk.document_id,
            document_name=result.chunk.document_name,
            source_number=number,
            score=result.score,
        )
        for number, result in enumerate(results, start=1)
    ]


@dataclass
class RetrievalPipeline:
    index_builder: IndexBuilder
    embedder: EmbeddingProvider
    history: QueryRecorder | None = None
    default_k: int = 5

    def query(
        self,
        user_id: str,
        question: str,
        k: int | None = None,
        document_id: str | None = None,
    ) -> list[RetrievedSource]:
        if not question or not question.strip():
            raise InvalidArgumentError("Question is required", user_id=user_id, stage="validate")
        top_k = self.default_k if k is None else k
        if top_k < 1:
            raise InvalidArgumentError("k must be at least 1", user_id=user_id, stage="validate")

        index = self.index_builder.build(user_id)
        try:
            query_vector = self.embedder.embed_query(question)
        except EmbeddingError as exc:
            exc.user_id = exc.user_id or user_id
            raise
        results = index.search(query_vector, top_k, document_id=document_id)
        sources = to_sources(results)
        logger.info(
            "retrieval_complete",
            extra={
                "user_id": user_id,
                "results": len(sources),
                "query_length": len(question),
                "document_filter": document_id,
                "indexed_chunks": len(index),
            },
        )
        self._record(user_id, question, sources)
        return sources

    def _record(self, user_id: str, question: str, sources: list[RetrievedSource]) -> None:
        """Persist the query; failures never reach the caller."""
        if self.history is None:
            return
        try:
            self.history.record(user_id, question, sources)
        except Exception as exc:
            logger.warning(
                "query_history_failed",
                extra={
                    "user_id": user_id,
                    "stage": "persist",
                    "error_type": type(exc).__name__,
                },
            )
