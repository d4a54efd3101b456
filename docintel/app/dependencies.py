from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from docintel.app.settings import settings
from docintel.loaders.chunking import RecursiveTextSplitter
from docintel.loaders.storage import (
    FileStorage,
    LocalFileStorage,
    ObjectStoreConfig,
    S3FileStorage,
)
from docintel.metadata.history import QueryHistoryStore
from docintel.metadata.store import SQLDocumentCatalog
from docintel.rag.embeddings import (
    EmbeddingProvider,
    HashEmbedder,
    HuggingFaceEmbedder,
    OpenAIEmbedder,
)
from docintel.rag.errors import ConfigurationError
from docintel.rag.index_builder import IndexBuilder
from docintel.rag.pipeline import RetrievalPipeline


@lru_cache
def get_pipeline() -> RetrievalPipeline:
    embedder = build_embedder()
    builder = IndexBuilder(
        catalog=get_catalog(),
        storage=build_storage(),
        embedder=embedder,
        splitter=build_splitter(),
        max_workers=settings.index_workers,
    )
    return RetrievalPipeline(
        index_builder=builder,
        embedder=embedder,
        history=get_history_store(),
        default_k=settings.top_k,
    )


def reset_pipeline_cache() -> None:
    get_pipeline.cache_clear()
    get_catalog.cache_clear()
    get_history_store.cache_clear()


@lru_cache
def get_catalog() -> SQLDocumentCatalog:
    return SQLDocumentCatalog(settings.metadata_db_uri)


@lru_cache
def get_history_store() -> QueryHistoryStore | None:
    if not settings.history_db_uri:
        return None
    return QueryHistoryStore(settings.history_db_uri)


def build_splitter() -> RecursiveTextSplitter:
    return RecursiveTextSplitter(
        chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap
    )


def build_embedder() -> EmbeddingProvider:
    provider = settings.embedding_provider.lower().strip()
    if provider in {"huggingface", "hf"}:
        return HuggingFaceEmbedder(
            api_key=settings.hf_api_key or "",
            model=settings.hf_embedding_model,
            url_template=settings.hf_inference_url,
            timeout=settings.embedding_timeout,
            dimension=settings.embedding_dimension or None,
        )
    if provider == "openai":
        return OpenAIEmbedder(
            api_key=settings.openai_api_key or "",
            model=settings.openai_embedding_model or "",
            dimension=settings.embedding_dimension,
            timeout=settings.embedding_timeout,
        )
    if provider == "hash":
        return HashEmbedder(dimension=settings.embedding_dimension or 256)
    raise ConfigurationError(f"Unsupported embedding provider: {provider}", stage="configure")


def build_storage() -> FileStorage:
    backend = settings.storage_backend.lower().strip()
    if backend == "s3":
        if not settings.object_store_bucket:
            raise ConfigurationError(
                "RAG_OBJECT_STORE_BUCKET is required for s3 storage", stage="configure"
            )
        config = ObjectStoreConfig(
            bucket=settings.object_store_bucket,
            endpoint_url=settings.object_store_endpoint_url,
            region=settings.object_store_region,
            access_key=settings.object_store_access_key,
            secret_key=settings.object_store_secret_key,
            session_token=settings.object_store_session_token,
            prefix=settings.object_store_prefix,
            max_bytes=settings.object_store_max_bytes,
        )
        return S3FileStorage(config=config)
    if backend == "local":
        return LocalFileStorage(root=Path(settings.uploads_dir))
    raise ConfigurationError(f"Unsupported storage backend: {backend}", stage="configure")
