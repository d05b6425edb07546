"""Blob storage providers and factory."""

import logging

from case_tracker.config import settings
from .blob_store import (
    BlobInfo,
    BlobStore,
    InMemoryBlobStore,
    LocalBlobStore,
    StoredBlob,
)

logger = logging.getLogger(__name__)


def create_blob_store() -> BlobStore:
    """
    Build the blob store selected by BLOB_STORE_TYPE.
    """
    store_type = settings.blob_store_type.lower()

    if store_type == "s3":
        if not settings.s3_bucket:
            logger.critical("Configuration Error: S3_BUCKET is missing.")
            raise ValueError("S3_BUCKET must be set when BLOB_STORE_TYPE=s3")

        from .s3_blob_store import S3BlobStore

        return S3BlobStore(
            bucket=settings.s3_bucket,
            public_base_url=settings.s3_public_base_url,
            url_expiry_seconds=settings.s3_url_expiry_seconds,
        )

    if store_type == "inmemory":
        return InMemoryBlobStore()

    return LocalBlobStore(
        base_path=settings.local_blob_path,
        base_url=settings.local_blob_base_url,
    )


__all__ = [
    "BlobInfo",
    "BlobStore",
    "InMemoryBlobStore",
    "LocalBlobStore",
    "StoredBlob",
    "create_blob_store",
]
