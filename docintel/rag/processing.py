from __future__ import annotations

"""Ingestion-side processing: verify an uploaded document is searchable."""

import logging
from typing import Protocol

from docintel.loaders.chunking import RecursiveTextSplitter
from docintel.loaders.extract import extract_stored_file
from docintel.loaders.storage import FileStorage
from docintel.rag.embeddings import EmbeddingProvider
from docintel.rag.errors import DocIntelError, EmbeddingIntegrityError, ExtractionError
from docintel.rag.types import DocumentRecord, DocumentStatus

logger = logging.getLogger(__name__)


class StatusWriter(Protocol):
    def set_status(self, document_id: str, status: str) -> None:
        raise NotImplementedError


def process_document(
    document: DocumentRecord,
    catalog: StatusWriter,
    storage: FileStorage,
    splitter: RecursiveTextSplitter,
    embedder: EmbeddingProvider,
) -> str:
    """Extract, chunk and embed a document, then mark it ready or error.

    Returns the final status. Processing failures are logged and recorded on
    the document, never raised.
    """
    catalog.set_status(document.id, DocumentStatus.PROCESSING)
    try:
        text = extract_stored_file(
            storage, document.stored_locator, document.mime_type, document_id=document.id
        )
        if not text.strip():
            raise ExtractionError(
                "No text extracted from document", document_id=document.id, stage="extract"
            )
        chunks = splitter.split_document(text, document.id, document.name)
        vectors = embedder.embed_documents([chunk.text for chunk in chunks])
        if len(vectors) != len(chunks):
            raise EmbeddingIntegrityError(
                f"Embedding count mismatch: {len(chunks)} chunks, {len(vectors)} vectors",
                document_id=document.id,
                stage="embed",
            )
    except DocIntelError as exc:
        logger.error(
            "document_processing_failed",
            extra={**exc.context(), "document_id": document.id, "reason": str(exc)},
        )
        catalog.set_status(document.id, DocumentStatus.ERROR)
        return DocumentStatus.ERROR
    except Exception as exc:
        logger.error(
            "document_processing_failed",
            extra={
                "document_id": document.id,
                "owner_id": document.owner_id,
                "stage": "process",
                "error_type": type(exc).__name__,
                "reason": str(exc),
            },
        )
        catalog.set_status(document.id, DocumentStatus.ERROR)
        return DocumentStatus.ERROR
    catalog.set_status(document.id, DocumentStatus.READY)
    logger.info(
        "document_processed",
        extra={"document_id": document.id, "owner_id": document.owner_id, "chunks": len(chunks)},
    )
    return DocumentStatus.READY
