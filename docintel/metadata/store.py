from __future__ import annotations

"""Document metadata catalog backed by a SQL database."""

import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from docintel.rag.errors import CatalogError
from docintel.rag.types import DocumentRecord, DocumentStatus


class MetadataStoreError(CatalogError):
    """Raised when metadata persistence fails."""
    pass


class DocumentCatalog(Protocol):
    """Read access to document metadata used by the index builder."""

    def list_documents(self, owner_id: str, status: str) -> list[DocumentRecord]:
        """Return the owner's documents in the given status, oldest first."""
        raise NotImplementedError


class SQLDocumentCatalog:
    """Store document metadata in a SQL database."""
    def __init__(self, connection_uri: str) -> None:
        """Initialize the catalog and ensure tables exist."""
        try:
            from sqlalchemy import (
                Column,
                DateTime,
                Integer,
                MetaData,
                String,
                Table,
                Text,
                create_engine,
            )
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise MetadataStoreError(
                "sqlalchemy is required to use the document catalog"
            ) from exc

        self._engine = create_engine(connection_uri)
        self._metadata = MetaData()
        self._table = Table(
            "documents",
            self._metadata,
            Column("id", String(36), primary_key=True),
            Column("owner_id", String(128), nullable=False, index=True),
            Column("name", String(255), nullable=False),
            Column("stored_locator", Text, nullable=False),
            Column("mime_type", String(128), nullable=False),
            Column("status", String(32), nullable=False),
            Column("size", Integer, nullable=True),
            Column("seq", Integer, nullable=False),
            Column("created_at", DateTime(timezone=True), nullable=False),
            Column("updated_at", DateTime(timezone=True), nullable=False),
        )
        self._metadata.create_all(self._engine)

    def add(
        self,
        owner_id: str,
        name: str,
        stored_locator: str,
        mime_type: str,
        status: str = DocumentStatus.UPLOADED,
        size: int | None = None,
        document_id: str | None = None,
    ) -> DocumentRecord:
        """Insert a document row and return its record."""
        from sqlalchemy import func, select

        self._check_status(status)
        record = DocumentRecord(
            id=document_id or str(uuid.uuid4()),
            owner_id=owner_id,
            name=name,
            stored_locator=stored_locator,
            mime_type=mime_type,
            status=status,
        )
        now = datetime.now(timezone.utc)
        with self._engine.begin() as conn:
            seq = conn.execute(select(func.coalesce(func.max(self._table.c.seq), 0))).scalar_one()
            conn.execute(
                self._table.insert().values(
                    id=record.id,
                    owner_id=record.owner_id,
                    name=record.name,
                    stored_locator=record.stored_locator,
                    mime_type=record.mime_type,
                    status=record.status,
                    size=size,
                    seq=seq + 1,
                    created_at=now,
                    updated_at=now,
                )
            )
        return record

    def get(self, document_id: str) -> DocumentRecord | None:
        from sqlalchemy import select

        with self._engine.connect() as conn:
            row = conn.execute(
                select(self._table).where(self._table.c.id == document_id)
            ).mappings().first()
        return self._to_record(row) if row else None

    def list_documents(self, owner_id: str, status: str) -> list[DocumentRecord]:
        from sqlalchemy import select
        from sqlalchemy.exc import SQLAlchemyError

        self._check_status(status)
        query = (
            select(self._table)
            .where(self._table.c.owner_id == owner_id)
            .where(self._table.c.status == status)
            .order_by(self._table.c.seq)
        )
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        except SQLAlchemyError as exc:
            raise MetadataStoreError(
                f"Failed to list documents: {type(exc).__name__}",
                user_id=owner_id,
                stage="list",
            ) from exc
        return [self._to_record(row) for row in rows]

    def set_status(self, document_id: str, status: str) -> None:
        """Update a document's lifecycle status."""
        self._check_status(status)
        with self._engine.begin() as conn:
            result = conn.execute(
                self._table.update()
                .where(self._table.c.id == document_id)
                .values(status=status, updated_at=datetime.now(timezone.utc))
            )
        if result.rowcount == 0:
            raise MetadataStoreError(f"Unknown document: {document_id}")

    @staticmethod
    def _check_status(status: str) -> None:
        if status not in DocumentStatus.ALL:
            raise MetadataStoreError(f"Invalid document status: {status}")

    @staticmethod
    def _to_record(row: Any) -> DocumentRecord:
        return DocumentRecord(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            stored_locator=row["stored_locator"],
            mime_type=row["mime_type"],
            status=row["status"],
        )
