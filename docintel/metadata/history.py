from __future__ import annotations

"""Query history storage."""

import json
import uuid
from datetime import datetime, timezone
from typing import Protocol, Sequence

from docintel.rag.errors import QueryHistoryError
from docintel.rag.types import RetrievedSource

SNIPPET_MAX_CHARS = 300
UNKNOWN_DOCUMENT = "Unknown document"


class QueryRecorder(Protocol):
    """Sink for answered queries."""

    def record(
        self,
        user_id: str,
        question: str,
        sources: Sequence[RetrievedSource],
        answer: str | None = None,
    ) -> str:
        """Persist a query and return its record ID."""
        raise NotImplementedError


def serialize_sources(sources: Sequence[RetrievedSource]) -> list[dict[str, object]]:
    """Reduce sources to the snippet form kept in history."""
    return [
        {
            "documentId": source.document_id or None,
            "documentName": source.document_name or UNKNOWN_DOCUMENT,
            "textSnippet": (source.text or "")[:SNIPPET_MAX_CHARS],
            "sourceNumber": source.source_number,
        }
        for source in sources
    ]


class QueryHistoryStore:
    """Persist answered queries to a SQL database."""
    def __init__(self, connection_uri: str) -> None:
        """Initialize the history store and ensure tables exist."""
        try:
            from sqlalchemy import Column, DateTime, MetaData, String, Table, Text, create_engine
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise QueryHistoryError(
                "sqlalchemy is required to use the query history store", stage="persist"
            ) from exc

        self._engine = create_engine(connection_uri)
        self._metadata = MetaData()
        self._table = Table(
            "query_history",
            self._metadata,
            Column("id", String(36), primary_key=True),
            Column("user_id", String(128), nullable=False, index=True),
            Column("question", Text, nullable=False),
            Column("answer", Text, nullable=True),
            Column("sources", Text, nullable=False),
            Column("created_at", DateTime(timezone=True), nullable=False),
        )
        self._metadata.create_all(self._engine)

    def record(
        self,
        user_id: str,
        question: str,
        sources: Sequence[RetrievedSource],
        answer: str | None = None,
    ) -> str:
        """Insert a query row."""
        from sqlalchemy.exc import SQLAlchemyError

        record_id = str(uuid.uuid4())
        payload = {
            "id": record_id,
            "user_id": user_id,
            "question": question,
            "answer": answer,
            "sources": json.dumps(serialize_sources(sources), ensure_ascii=True, default=str),
            "created_at": datetime.now(timezone.utc),
        }
        try:
            with self._engine.begin() as conn:
                conn.execute(self._table.insert().values(**payload))
        except SQLAlchemyError as exc:
            raise QueryHistoryError(
                f"Failed to save query history: {type(exc).__name__}",
                user_id=user_id,
                stage="persist",
            ) from exc
        return record_id

    def list_for_user(self, user_id: str, limit: int = 50) -> list[dict[str, object]]:
        """Return the user's most recent queries, newest first."""
        from sqlalchemy import select
        from sqlalchemy.exc import SQLAlchemyError

        query = (
            select(self._table)
            .where(self._table.c.user_id == user_id)
            .order_by(self._table.c.created_at.desc())
            .limit(limit)
        )
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        except SQLAlchemyError as exc:
            raise QueryHistoryError(
                f"Failed to load query history: {type(exc).__name__}",
                user_id=user_id,
                stage="list",
            ) from exc
        return [
            {
                "id": row["id"],
                "question": row["question"],
                "answer": row["answer"],
                "sources": json.loads(row["sources"]),
                "created_at": row["created_at"],
            }
            for row in rows
        ]
