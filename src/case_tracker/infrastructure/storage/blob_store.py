"""Blob store providers for document bytes.

The metadata store only ever holds a StoredBlob's opaque id and a resolved
URL; the bytes live behind one of these providers.
"""

import asyncio
import logging
import posixpath
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Dict, List, Union
from uuid import uuid4

from case_tracker.core.errors import StoreError

logger = logging.getLogger(__name__)

FileStream = Union[bytes, BinaryIO]

BLOB_STORE_FAILURE = "Document storage failed"


@dataclass(frozen=True)
class StoredBlob:
    """Result of a successful put."""

    opaque_id: str
    url: str


@dataclass(frozen=True)
class BlobInfo:
    """Listing entry used by the orphan sweep."""

    opaque_id: str
    stored_at: datetime


def build_key(namespace: str, extension: str) -> str:
    """Unique, namespaced object key ending in the declared extension."""
    extension = extension.lower().lstrip(".")
    name = uuid4().hex
    if extension:
        name = f"{name}.{extension}"
    return posixpath.join(namespace.strip("/"), name)


def read_stream(file_stream: FileStream) -> bytes:
    if isinstance(file_stream, bytes):
        return file_stream
    # Seek to start only if the stream supports it
    if hasattr(file_stream, "seekable") and file_stream.seekable():
        file_stream.seek(0)
    return file_stream.read()


class BlobStore(ABC):
    """
    Abstract Base Class for blob storage operations.

    Implementations raise StoreError on terminal failure; retries and
    timeouts are left to the underlying client.
    """

    @abstractmethod
    async def put(self, file_stream: FileStream, namespace: str, extension: str) -> StoredBlob:
        """
        Store bytes under a new key inside ``namespace``.

        Args:
            file_stream: Raw bytes or a file-like object
            namespace: Logical folder, e.g. 'case-tracker'
            extension: Declared file extension without the dot

        Returns:
            Opaque id of the new blob and a provisional URL
        """

    @abstractmethod
    async def resolve_secure_url(self, opaque_id: str) -> str:
        """Stable, secure retrieval URL for an existing blob."""

    @abstractmethod
    async def delete(self, opaque_id: str) -> None:
        """
        Delete a blob. Deleting a blob that no longer exists succeeds.
        """

    @abstractmethod
    async def list_blobs(self, namespace: str) -> List[BlobInfo]:
        """Every blob stored inside ``namespace`` with its write time."""


class InMemoryBlobStore(BlobStore):
    """Dictionary-backed blob store for testing and development."""

    def __init__(self, base_url: str = "memory://blobs"):
        self.base_url = base_url.rstrip("/")
        self.blobs: Dict[str, bytes] = {}
        self.stored_at: Dict[str, datetime] = {}

    async def put(self, file_stream: FileStream, namespace: str, extension: str) -> StoredBlob:
        key = build_key(namespace, extension)
        self.blobs[key] = read_stream(file_stream)
        self.stored_at[key] = datetime.now(timezone.utc)
        return StoredBlob(opaque_id=key, url=f"{self.base_url}/tmp/{key}")

    async def resolve_secure_url(self, opaque_id: str) -> str:
        if opaque_id not in self.blobs:
            raise StoreError(f"Blob {opaque_id} not found")
        return f"{self.base_url}/{opaque_id}"

    async def delete(self, opaque_id: str) -> None:
        self.blobs.pop(opaque_id, None)
        self.stored_at.pop(opaque_id, None)

    async def list_blobs(self, namespace: str) -> List[BlobInfo]:
        prefix = namespace.strip("/") + "/"
        return [
            BlobInfo(opaque_id=key, stored_at=self.stored_at[key])
            for key in self.blobs
            if key.startswith(prefix)
        ]


class LocalBlobStore(BlobStore):
    """
    Local filesystem implementation for development environments.
    """

    def __init__(self, base_path: str, base_url: str):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")

    def _safe_path(self, opaque_id: str) -> Path:
        """
        Resolve a key inside the base directory, rejecting path traversal.
        """
        target = (self.base_path / opaque_id.lstrip("/")).resolve()
        try:
            target.relative_to(self.base_path)
        except ValueError:
            logger.warning(f"Security Alert: Path traversal attempt detected: {opaque_id}")
            raise StoreError("Invalid blob path.")
        return target

    def _write(self, target: Path, file_stream: FileStream) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as f:
            if isinstance(file_stream, bytes):
                f.write(file_stream)
            else:
                if hasattr(file_stream, "seekable") and file_stream.seekable():
                    file_stream.seek(0)
                shutil.copyfileobj(file_stream, f)

    async def put(self, file_stream: FileStream, namespace: str, extension: str) -> StoredBlob:
        key = build_key(namespace, extension)
        target = self._safe_path(key)
        try:
            await asyncio.to_thread(self._write, target, file_stream)
        except OSError as e:
            logger.error(f"Local blob write failed: {e}")
            raise StoreError(BLOB_STORE_FAILURE) from e

        logger.info(f"Blob saved locally: {target}")
        return StoredBlob(opaque_id=key, url=target.as_uri())

    async def resolve_secure_url(self, opaque_id: str) -> str:
        target = self._safe_path(opaque_id)
        if not await asyncio.to_thread(target.is_file):
            raise StoreError(f"Blob {opaque_id} not found")
        return f"{self.base_url}/{opaque_id}"

    async def delete(self, opaque_id: str) -> None:
        target = self._safe_path(opaque_id)
        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as e:
            logger.error(f"Local blob delete failed: {e}")
            raise StoreError(BLOB_STORE_FAILURE) from e

    def _scan(self, root: Path) -> List[BlobInfo]:
        if not root.is_dir():
            return []
        return [
            BlobInfo(
                opaque_id=path.relative_to(self.base_path).as_posix(),
                stored_at=datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc),
            )
            for path in root.rglob("*")
            if path.is_file()
        ]

    async def list_blobs(self, namespace: str) -> List[BlobInfo]:
        root = self._safe_path(namespace)
        try:
            return await asyncio.to_thread(self._scan, root)
        except OSError as e:
            logger.error(f"Local blob listing failed under {namespace}: {e}")
            raise StoreError(BLOB_STORE_FAILURE) from e
