from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ["RAG_ALLOW_ANONYMOUS"] = "true"
os.environ["RAG_DEFAULT_USER_ID"] = "local"
os.environ["EMBEDDING_PROVIDER"] = "hash"
os.environ["EMBEDDING_DIMENSION"] = "256"
os.environ["RAG_METADATA_DB_URI"] = "sqlite://"
os.environ.pop("RAG_API_KEY_MAP", None)
os.environ.pop("RAG_HISTORY_DB_URI", None)
os.environ.pop("HUGGINGFACEHUB_API_KEY", None)
os.environ.pop("HF_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)

from docintel.rag.embeddings import HashEmbedder  # noqa: E402
from docintel.rag.types import DocumentRecord, DocumentStatus  # noqa: E402


class MemoryCatalog:
    """List-backed document catalog."""

    def __init__(self) -> None:
        self.documents: list[DocumentRecord] = []
        self.status_history: list[tuple[str, str]] = []

    def add(
        self,
        document_id: str,
        name: str,
        mime_type: str = "text/plain",
        status: str = DocumentStatus.READY,
        owner_id: str = "user-1",
        locator: str | None = None,
    ) -> DocumentRecord:
        record = DocumentRecord(
            id=document_id,
            owner_id=owner_id,
            name=name,
            stored_locator=locator or f"{document_id}.bin",
            mime_type=mime_type,
            status=status,
        )
        self.documents.append(record)
        return record

    def list_documents(self, owner_id: str, status: str) -> list[DocumentRecord]:
        return [
            doc for doc in self.documents if doc.owner_id == owner_id and doc.status == status
        ]

    def set_status(self, document_id: str, status: str) -> None:
        self.status_history.append((document_id, status))
        self.documents = [
            DocumentRecord(**{**doc.__dict__, "status": status}) if doc.id == document_id else doc
            for doc in self.documents
        ]


class MemoryStorage:
    """Dict-backed file storage."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    def read(self, locator: str) -> bytes:
        if locator not in self.files:
            raise FileNotFoundError(locator)
        return self.files[locator]


class RecordingEmbedder(HashEmbedder):
    """Hash embedder that records every provider call."""

    def __init__(self, dimension: int = 64) -> None:
        super().__init__(dimension=dimension)
        self.document_batches: list[list[str]] = []
        self.queries: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.document_batches) + len(self.queries)

    def embed_documents(self, texts):
        self.document_batches.append(list(texts))
        return super().embed_documents(texts)

    def embed_query(self, text):
        self.queries.append(text)
        return super().embed_query(text)


@pytest.fixture
def catalog() -> MemoryCatalog:
    return MemoryCatalog()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def embedder() -> RecordingEmbedder:
    return RecordingEmbedder()


@pytest.fixture
def add_text_document(catalog: MemoryCatalog, storage: MemoryStorage):
    """Register a text document in the catalog and store its bytes."""

    def _add(
        document_id: str,
        name: str,
        text: str,
        status: str = DocumentStatus.READY,
        owner_id: str = "user-1",
    ) -> DocumentRecord:
        record = catalog.add(document_id, name, status=status, owner_id=owner_id)
        storage.files[record.stored_locator] = text.encode("utf-8")
        return record

    return _add
