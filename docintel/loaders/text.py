from __future__ import annotations

"""Plain text extraction."""

from docintel.rag.errors import ExtractionError


def load_text_bytes(data: bytes, source: str) -> str:
    """Decode plain text bytes as UTF-8."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ExtractionError(
            f"{source} is not valid UTF-8 text: {exc.reason} at byte {exc.start}",
            stage="extract",
        ) from exc
