from __future__ import annotations

import json
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    embedding_provider: str = os.getenv("EMBEDDING_PROVIDER", "huggingface")
    embedding_dimension: int = int(os.getenv("EMBEDDING_DIMENSION", "0"))
    embedding_timeout: float = float(os.getenv("EMBEDDING_TIMEOUT", "30"))
    hf_api_key_raw: str | None = os.getenv("HUGGINGFACEHUB_API_KEY") or os.getenv("HF_API_KEY")
    hf_embedding_model: str = os.getenv(
        "HF_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"
    )
    hf_inference_url: str = os.getenv(
        "HF_INFERENCE_URL",
        "https://router.huggingface.co/hf-inference/models/{model}/pipeline/feature-extraction",
    )
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_embedding_model: str | None = os.getenv("OPENAI_EMBEDDING_MODEL")
    chunk_size: int = int(os.getenv("RAG_CHUNK_SIZE", "500"))
    chunk_overlap: int = int(os.getenv("RAG_CHUNK_OVERLAP", "100"))
    top_k: int = int(os.getenv("RAG_TOP_K", "5"))
    index_workers: int = int(os.getenv("RAG_INDEX_WORKERS", "1"))
    storage_backend: str = os.getenv("RAG_STORAGE_BACKEND", "local")
    uploads_dir: str = os.getenv("RAG_UPLOADS_DIR", "uploads")
    object_store_endpoint_url: str | None = os.getenv("RAG_OBJECT_STORE_ENDPOINT_URL")
    object_store_region: str | None = os.getenv("RAG_OBJECT_STORE_REGION")
    object_store_access_key: str | None = os.getenv("RAG_OBJECT_STORE_ACCESS_KEY")
    object_store_secret_key: str | None = os.getenv("RAG_OBJECT_STORE_SECRET_KEY")
    object_store_session_token: str | None = os.getenv("RAG_OBJECT_STORE_SESSION_TOKEN")
    object_store_bucket: str | None = os.getenv("RAG_OBJECT_STORE_BUCKET")
    object_store_prefix: str = os.getenv("RAG_OBJECT_STORE_PREFIX", "")
    object_store_max_bytes: int = int(os.getenv("RAG_OBJECT_STORE_MAX_BYTES", "52428800"))
    metadata_db_uri: str = os.getenv("RAG_METADATA_DB_URI", "sqlite:///docintel.db")
    history_db_uri: str | None = os.getenv("RAG_HISTORY_DB_URI")
    api_key_map_raw: str = os.getenv("RAG_API_KEY_MAP", "")
    default_user_id: str = os.getenv("RAG_DEFAULT_USER_ID", "local")
    metrics_enabled: bool = _env_flag("RAG_METRICS_ENABLED", "true")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def hf_api_key(self) -> str | None:
        return (
            os.getenv("HUGGINGFACEHUB_API_KEY")
            or os.getenv("HF_API_KEY")
            or self.hf_api_key_raw
        )

    @property
    def allow_anonymous(self) -> bool:
        return _env_flag("RAG_ALLOW_ANONYMOUS", "false")

    @property
    def api_key_map(self) -> dict[str, str]:
        """Map of API key to user ID."""
        raw = os.getenv("RAG_API_KEY_MAP", self.api_key_map_raw).strip()
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        if not isinstance(data, dict):
            return {}
        return {
            key: value
            for key, value in data.items()
            if isinstance(key, str) and isinstance(value, str) and value.strip()
        }


settings = Settings()
