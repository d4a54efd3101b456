from __future__ import annotations

"""Read access to stored upload files."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol


class StorageError(RuntimeError):
    """Raised when a storage backend cannot serve a read."""
    pass


class FileStorage(Protocol):
    """Protocol for stored-file readers."""

    def read(self, locator: str) -> bytes:
        """Return file bytes, raising FileNotFoundError when absent."""
        raise NotImplementedError


@dataclass
class LocalFileStorage:
    """Files stored under a local uploads directory."""
    root: Path

    def __post_init__(self) -> None:
        self.root = Path(self.root).resolve()

    def path_for(self, locator: str) -> Path:
        """Resolve a locator to a path inside the uploads directory."""
        path = (self.root / locator).resolve()
        if not path.is_relative_to(self.root):
            raise FileNotFoundError(f"Locator escapes storage root: {locator}")
        return path

    def read(self, locator: str) -> bytes:
        path = self.path_for(locator)
        if not path.is_file():
            raise FileNotFoundError(f"File not found in storage: {locator}")
        return path.read_bytes()

    def write(self, locator: str, data: bytes) -> Path:
        """Store bytes under a locator, creating parent directories."""
        path = self.path_for(locator)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path


@dataclass(frozen=True)
class ObjectStoreConfig:
    bucket: str
    endpoint_url: str | None = None
    region: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    session_token: str | None = None
    prefix: str = ""
    max_bytes: int | None = None


@dataclass
class S3FileStorage:
    """Files stored as objects in an S3-compatible bucket."""
    config: ObjectStoreConfig
    client: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.client is not None:
            return
        try:
            import boto3
        except ImportError as exc:
            raise StorageError("boto3 is required for object storage reads") from exc

        session = boto3.session.Session(
            aws_access_key_id=self.config.access_key,
            aws_secret_access_key=self.config.secret_key,
            aws_session_token=self.config.session_token,
            region_name=self.config.region,
        )
        self.client = session.client("s3", endpoint_url=self.config.endpoint_url)

    def read(self, locator: str) -> bytes:
        key = f"{self.config.prefix}{locator}"
        try:
            response = self.client.get_object(Bucket=self.config.bucket, Key=key)
        except Exception as exc:
            if _is_missing_key(exc):
                raise FileNotFoundError(f"Object not found: {key}") from exc
            raise StorageError(f"Failed to fetch object {key}: {exc}") from exc
        body = response.get("Body")
        if body is None:
            raise StorageError("Object body missing in response")
        try:
            data = body.read()
        except Exception as exc:
            raise StorageError(f"Failed to read object body {key}: {exc}") from exc
        if not isinstance(data, (bytes, bytearray)):
            raise StorageError("Invalid object body data")
        if self.config.max_bytes is not None and len(data) > self.config.max_bytes:
            raise StorageError(f"Object {key} exceeds configured max_bytes")
        return bytes(data)


def _is_missing_key(exc: Exception) -> bool:
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return False
    code = str(response.get("Error", {}).get("Code", ""))
    return code in {"NoSuchKey", "404", "NotFound"}
