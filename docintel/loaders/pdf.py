from __future__ import annotations

"""PDF text extraction."""

from docintel.rag.errors import ExtractionError

PAGE_SEPARATOR = "\n\n"


def load_pdf_bytes(data: bytes, source: str) -> str:
    """Extract per-page text from PDF bytes, in page order."""
    try:
        import fitz
    except ImportError as exc:
        raise ExtractionError(
            "PyMuPDF is required to load PDF files", stage="extract"
        ) from exc

    try:
        reader = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise ExtractionError(f"Failed to open PDF {source}: {exc}", stage="extract") from exc
    try:
        pages = [(page.get_text() or "").strip() for page in reader]
    except Exception as exc:
        raise ExtractionError(
            f"Failed to read PDF pages from {source}: {exc}", stage="extract"
        ) from exc
    finally:
        reader.close()
    return PAGE_SEPARATOR.join(pages)
