from __future__ import annotations

"""CLI utility to register local files and process uploaded documents."""

import argparse
import mimetypes
import uuid
from pathlib import Path

from docintel.app.dependencies import build_embedder, build_splitter, get_catalog
from docintel.app.settings import settings
from docintel.loaders.extract import normalize_mime_type, supported_mime_types
from docintel.loaders.storage import LocalFileStorage
from docintel.rag.processing import process_document
from docintel.rag.types import DocumentStatus


def register(args: argparse.Namespace) -> None:
    """Copy a file into the uploads directory and record it as uploaded."""
    source = Path(args.path)
    if not source.is_file():
        raise SystemExit(f"No such file: {source}")
    mime_type = args.mime_type or mimetypes.guess_type(source.name)[0] or ""
    if normalize_mime_type(mime_type) not in supported_mime_types():
        raise SystemExit(f"Unsupported file type: {mime_type or source.suffix}")
    storage = LocalFileStorage(root=Path(settings.uploads_dir))
    data = source.read_bytes()
    locator = f"{uuid.uuid4().hex}{source.suffix}"
    storage.write(locator, data)
    record = get_catalog().add(
        owner_id=args.user,
        name=source.name,
        stored_locator=locator,
        mime_type=mime_type,
        size=len(data),
    )
    print(f"Registered {record.name} as {record.id}")


def process(args: argparse.Namespace) -> None:
    """Process every uploaded document for a user."""
    if settings.storage_backend.lower().strip() != "local":
        raise SystemExit("process only supports RAG_STORAGE_BACKEND=local")
    catalog = get_catalog()
    storage = LocalFileStorage(root=Path(settings.uploads_dir))
    splitter = build_splitter()
    embedder = build_embedder()
    documents = catalog.list_documents(args.user, DocumentStatus.UPLOADED)
    if not documents:
        print(f"No uploaded documents for {args.user}")
        return
    for document in documents:
        status = process_document(document, catalog, storage, splitter, embedder)
        print(f"{document.name}: {status}")


def main() -> None:
    """Dispatch subcommands using app settings."""
    parser = argparse.ArgumentParser(description="Manage documents available for retrieval.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_parser = subparsers.add_parser("register", help="Register a local file.")
    register_parser.add_argument("path", help="File to register.")
    register_parser.add_argument("--user", required=True, help="Owner user ID.")
    register_parser.add_argument("--mime-type", default=None, help="Override detected type.")
    register_parser.set_defaults(handler=register)

    process_parser = subparsers.add_parser("process", help="Process uploaded documents.")
    process_parser.add_argument("--user", required=True, help="Owner user ID.")
    process_parser.set_defaults(handler=process)

    args = parser.parse_args()
    args.handler(args)


if __name__ == "__main__":
    main()
