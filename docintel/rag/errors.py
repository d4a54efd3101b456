from __future__ import annotations

"""Error taxonomy for the retrieval core."""


class DocIntelError(RuntimeError):
    """Base error carrying the pipeline context it was raised in."""

    def __init__(
        self,
        message: str,
        *,
        user_id: str | None = None,
        document_id: str | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message)
        self.user_id = user_id
        self.document_id = document_id
        self.stage = stage

    def context(self) -> dict[str, str | None]:
        """Return the error context as logging extras."""
        return {
            "error_type": type(self).__name__,
            "user_id": self.user_id,
            "document_id": self.document_id,
            "stage": self.stage,
        }


class ConfigurationError(DocIntelError):
    """Raised when required configuration (such as a credential) is missing."""
    pass


class ExtractionError(DocIntelError):
    """Raised when a stored file cannot be turned into plain text."""
    pass


class ChunkingError(DocIntelError):
    """Raised when text cannot be chunked."""
    pass


class EmbeddingError(DocIntelError):
    """Raised when embeddings fail or are invalid."""
    pass


class EmbeddingIntegrityError(EmbeddingError):
    """Raised when vectors cannot be paired safely with their texts."""
    pass


class NoReadyDocumentsError(DocIntelError):
    """Raised when a user has no documents with status ready."""
    pass


class NoExtractableContentError(DocIntelError):
    """Raised when no ready document yields any chunk."""
    pass


class InvalidArgumentError(DocIntelError, ValueError):
    """Raised when a query argument is invalid."""
    pass


class QueryHistoryError(DocIntelError):
    """Raised when persisting a query record fails."""
    pass


class CatalogError(DocIntelError):
    """Raised when document metadata cannot be read or written."""
    pass
