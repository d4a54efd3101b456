from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class QueryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(min_length=1)
    k: int | None = Field(default=None, ge=1, le=50)
    document_id: str | None = Field(default=None, alias="documentId")


class SourceFragment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    document_id: str = Field(alias="documentId")
    document_name: str = Field(alias="documentName")
    source_number: int = Field(alias="sourceNumber")
    score: float


class QueryResponse(BaseModel):
    question: str
    sources: list[SourceFragment]
    request_id: str


class QueryHistoryItem(BaseModel):
    id: str
    question: str
    answer: str | None = None
    sources: list[dict[str, Any]]
    created_at: datetime


class QueryHistoryResponse(BaseModel):
    queries: list[QueryHistoryItem]
