from __future__ import annotations

"""Embedding providers: batched document embedding and single query embedding."""

import hashlib
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

import httpx

from docintel.rag.errors import ConfigurationError, EmbeddingError

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")

DEFAULT_HF_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_HF_URL = (
    "https://router.huggingface.co/hf-inference/models/{model}/pipeline/feature-extraction"
)


class EmbeddingProvider(Protocol):
    """Capability interface for embedding providers."""

    def embed_documents(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one vector per text, in submission order."""
        raise NotImplementedError

    def embed_query(self, text: str) -> list[float]:
        """Return the vector for a single query string."""
        raise NotImplementedError


def coerce_vector(raw: Any, dimension: int | None = None) -> list[float]:
    """Normalize a provider vector into a flat list of floats.

    Providers may answer a single input with token-level rows; the first row
    is taken in that case.
    """
    if isinstance(raw, (list, tuple)) and raw and isinstance(raw[0], (list, tuple)):
        raw = raw[0]
    if not isinstance(raw, (list, tuple)) or not raw:
        raise EmbeddingError("Embedding response is not a vector", stage="embed")
    cleaned: list[float] = []
    for value in raw:
        if isinstance(value, bool):
            raise EmbeddingError("Embedding contains a non-numeric value", stage="embed")
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise EmbeddingError(
                "Embedding contains a non-numeric value", stage="embed"
            ) from exc
        if not math.isfinite(number):
            raise EmbeddingError("Embedding contains a non-finite value", stage="embed")
        cleaned.append(number)
    if dimension is not None and len(cleaned) != dimension:
        raise EmbeddingError(
            f"Embedding dimension mismatch: expected {dimension}, got {len(cleaned)}",
            stage="embed",
        )
    return cleaned


@dataclass
class HashEmbedder:
    """Deterministic hash-based embedder for testing or offline use."""
    dimension: int = 256

    def embed_documents(self, texts: Sequence[str]) -> list[list[float]]:
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)

    def _embed(self, text: str) -> list[float]:
        """Embed text using token hashing and L2 normalization."""
        vector = [0.0] * self.dimension
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            vector[digest[0] % self.dimension] += 1.0
        return self._l2_normalize(vector)

    def _l2_normalize(self, vector: list[float]) -> list[float]:
        """Normalize vector magnitude to 1.0."""
        norm = math.sqrt(sum(value * value for value in vector))
        if norm == 0.0:
            return vector
        return [value / norm for value in vector]


@dataclass
class HuggingFaceEmbedder:
    """Embedding provider using the Hugging Face feature-extraction endpoint."""
    api_key: str
    model: str = DEFAULT_HF_MODEL
    url_template: str = DEFAULT_HF_URL
    timeout: float = 30.0
    dimension: int | None = None
    client: httpx.Client | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration and create an HTTP client."""
        if not self.api_key:
            raise ConfigurationError(
                "HUGGINGFACEHUB_API_KEY (or HF_API_KEY) is required for HuggingFaceEmbedder",
                stage="configure",
            )
        if not self.model:
            raise ConfigurationError("HF_EMBEDDING_MODEL must not be empty", stage="configure")
        if self.client is None:
            self.client = httpx.Client(timeout=self.timeout)
        logger.info("hf_embedder_configured", extra={"model": self.model})

    @property
    def url(self) -> str:
        return self.url_template.format(model=self.model)

    def embed_documents(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed all texts in one request."""
        if not texts:
            return []
        data = self._request(list(texts))
        if not isinstance(data, list):
            raise EmbeddingError("Embedding response is not a list", stage="embed")
        if len(texts) == 1 and data and not isinstance(data[0], list):
            data = [data]
        return [coerce_vector(row, self.dimension) for row in data]

    def embed_query(self, text: str) -> list[float]:
        """Embed a single query string."""
        return coerce_vector(self._request(text), self.dimension)

    def _request(self, inputs: str | list[str]) -> Any:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            response = self.client.post(self.url, json={"inputs": inputs}, headers=headers)
        except httpx.HTTPError as exc:
            raise EmbeddingError(
                f"Embedding request failed: {type(exc).__name__}: {exc}", stage="embed"
            ) from exc
        if response.status_code >= 400:
            raise EmbeddingError(
                f"Embedding provider returned {response.status_code}: {response.text[:200]}",
                stage="embed",
            )
        try:
            return response.json()
        except ValueError as exc:
            raise EmbeddingError("Embedding response is not valid JSON", stage="embed") from exc


def resolve_openai_dimension(model: str) -> int | None:
    """Return expected dimension for OpenAI embedding model."""
    mapping = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }
    return mapping.get(model)


@dataclass
class OpenAIEmbedder:
    """Embedding provider using OpenAI embeddings API."""
    api_key: str
    model: str
    dimension: int = 0
    timeout: float = 30.0
    client: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate OpenAI configuration and create a client."""
        if not self.api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is required for OpenAIEmbedder", stage="configure"
            )
        if not self.model:
            raise ConfigurationError(
                "OPENAI_EMBEDDING_MODEL is required for OpenAIEmbedder", stage="configure"
            )
        resolved = resolve_openai_dimension(self.model)
        if self.dimension <= 0:
            if resolved is None:
                raise ConfigurationError(
                    "EMBEDDING_DIMENSION must be set for OpenAI embeddings when model is unknown",
                    stage="configure",
                )
            self.dimension = resolved
        elif resolved is not None and self.dimension != resolved:
            raise ConfigurationError(
                f"EMBEDDING_DIMENSION should be {resolved} for model {self.model}",
                stage="configure",
            )
        if self.client is None:
            from openai import OpenAI

            self.client = OpenAI(api_key=self.api_key, timeout=self.timeout)

    def embed_documents(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed all texts in one request, ordered by the response index."""
        if not texts:
            return []
        items = sorted(self._create(list(texts)), key=lambda item: item.index)
        return [coerce_vector(list(item.embedding), self.dimension) for item in items]

    def embed_query(self, text: str) -> list[float]:
        data = self._create(text)
        if not data:
            raise EmbeddingError("OpenAI embedding response is empty", stage="embed")
        return coerce_vector(list(data[0].embedding), self.dimension)

    def _create(self, inputs: str | list[str]) -> list[Any]:
        from openai import OpenAIError

        try:
            response = self.client.embeddings.create(model=self.model, input=inputs)
        except OpenAIError as exc:
            raise EmbeddingError(
                f"OpenAI embedding request failed: {type(exc).__name__}", stage="embed"
            ) from exc
        return list(response.data)
