from __future__ import annotations

"""Assemble a user's ready documents into an ephemeral in-memory index."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from docintel.loaders.chunking import RecursiveTextSplitter
from docintel.loaders.extract import extract_stored_file
from docintel.loaders.storage import FileStorage
from docintel.metadata.store import DocumentCatalog
from docintel.rag.embeddings import EmbeddingProvider
from docintel.rag.errors import (
    CatalogError,
    ChunkingError,
    EmbeddingError,
    ExtractionError,
    NoExtractableContentError,
    NoReadyDocumentsError,
)
from docintel.rag.types import Chunk, DocumentRecord, DocumentStatus
from docintel.vectorstore.inmemory import InMemoryIndex

logger = logging.getLogger(__name__)


@dataclass
class IndexBuilder:
    catalog: DocumentCatalog
    storage: FileStorage
    embedder: EmbeddingProvider
    splitter: RecursiveTextSplitter = field(default_factory=RecursiveTextSplitter)
    max_workers: int = 1

    def build(self, user_id: str) -> InMemoryIndex:
        """Build a fresh index over every ready document owned by the user."""
        started = time.monotonic()
        try:
            documents = self.catalog.list_documents(user_id, DocumentStatus.READY)
        except CatalogError as exc:
            exc.user_id = exc.user_id or user_id
            exc.stage = exc.stage or "list"
            raise
        except Exception as exc:
            raise CatalogError(
                f"Failed to list documents: {type(exc).__name__}",
                user_id=user_id,
                stage="list",
            ) from exc
        if not documents:
            raise NoReadyDocumentsError(
                "No ready documents for this user.", user_id=user_id, stage="list"
            )

        chunks: list[Chunk] = []
        for document_chunks in self._chunk_all(user_id, documents):
            chunks.extend(document_chunks)
        if not chunks:
            raise NoExtractableContentError(
                "No chunks available to build the index.", user_id=user_id, stage="chunk"
            )

        try:
            vectors = self.embedder.embed_documents([chunk.text for chunk in chunks])
        except EmbeddingError as exc:
            exc.user_id = exc.user_id or user_id
            raise
        index = InMemoryIndex(user_id=user_id)
        index.add(chunks, vectors)
        logger.info(
            "index_built",
            extra={
                "user_id": user_id,
                "documents": len(documents),
                "chunks": len(chunks),
                "dimension": index.dimension,
                "elapsed_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return index

    def _chunk_all(self, user_id: str, documents: list[DocumentRecord]) -> list[list[Chunk]]:
        """Extract and chunk documents, preserving document-list order."""
        if self.max_workers <= 1 or len(documents) == 1:
            return [self._chunk_document(user_id, document) for document in documents]
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(
                executor.map(lambda document: self._chunk_document(user_id, document), documents)
            )

    def _chunk_document(self, user_id: str, document: DocumentRecord) -> list[Chunk]:
        """Return a document's chunks, or an empty list when it must be skipped."""
        try:
            text = extract_stored_file(
                self.storage,
                document.stored_locator,
                document.mime_type,
                document_id=document.id,
            )
        except ExtractionError as exc:
            logger.warning(
                "document_skipped",
                extra={**exc.context(), "user_id": user_id, "reason": str(exc)},
            )
            return []
        if not text or not text.strip():
            logger.warning(
                "document_skipped",
                extra={
                    "user_id": user_id,
                    "document_id": document.id,
                    "stage": "extract",
                    "reason": "no text extracted",
                },
            )
            return []
        try:
            chunks = self.splitter.split_document(text, document.id, document.name)
        except ChunkingError as exc:
            logger.warning(
                "document_skipped",
                extra={**exc.context(), "user_id": user_id, "reason": str(exc)},
            )
            return []
        logger.debug(
            "document_chunked",
            extra={"user_id": user_id, "document_id": document.id, "chunks": len(chunks)},
        )
        return chunks
