from __future__ import annotations

"""Dispatch stored files to the extractor for their declared content type."""

from typing import Callable

from docintel.loaders.pdf import load_pdf_bytes
from docintel.loaders.storage import FileStorage, StorageError
from docintel.loaders.text import load_text_bytes
from docintel.rag.errors import ExtractionError

_EXTRACTORS: dict[str, Callable[[bytes, str], str]] = {
    "application/pdf": load_pdf_bytes,
    "text/plain": load_text_bytes,
}


def normalize_mime_type(mime_type: str) -> str:
    """Drop parameters and case from a content type."""
    return mime_type.split(";", 1)[0].strip().lower()


def supported_mime_types() -> set[str]:
    return set(_EXTRACTORS)


def extract_text(data: bytes, mime_type: str, source: str) -> str:
    """Convert file bytes to plain text based on the declared content type."""
    extractor = _EXTRACTORS.get(normalize_mime_type(mime_type or ""))
    if extractor is None:
        raise ExtractionError(
            f"Unsupported mime type for text extraction: {mime_type}",
            stage="extract",
        )
    return extractor(data, source)


def extract_stored_file(
    storage: FileStorage,
    locator: str,
    mime_type: str,
    document_id: str | None = None,
) -> str:
    """Read a stored file and extract its text."""
    try:
        data = storage.read(locator)
    except FileNotFoundError as exc:
        raise ExtractionError(
            f"File missing from storage: {locator}",
            document_id=document_id,
            stage="read",
        ) from exc
    except StorageError as exc:
        raise ExtractionError(str(exc), document_id=document_id, stage="read") from exc
    except OSError as exc:
        raise ExtractionError(
            f"Failed to read stored file {locator}: {exc}",
            document_id=document_id,
            stage="read",
        ) from exc
    try:
        return extract_text(data, mime_type, source=locator)
    except ExtractionError as exc:
        raise ExtractionError(str(exc), document_id=document_id, stage=exc.stage) from exc
