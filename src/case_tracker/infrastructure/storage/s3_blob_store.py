"""S3-compatible blob store backed by boto3."""

import asyncio
import logging
from functools import lru_cache
from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from case_tracker.config import settings
from case_tracker.core.errors import StoreError
from .blob_store import (
    BLOB_STORE_FAILURE,
    BlobInfo,
    BlobStore,
    FileStream,
    StoredBlob,
    build_key,
    read_stream,
)

logger = logging.getLogger(__name__)


@lru_cache()
def get_s3_client():
    """Singleton boto3 S3 client configured from settings."""
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint,
        region_name=settings.s3_region,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
    )


class S3BlobStore(BlobStore):
    """
    Production blob store on S3 or any S3-compatible endpoint.

    boto3 is synchronous, so every call runs in a worker thread.
    """

    def __init__(
        self,
        bucket: str,
        client=None,
        public_base_url: Optional[str] = None,
        url_expiry_seconds: int = 7 * 24 * 3600,
    ):
        self.bucket = bucket
        self.client = client or get_s3_client()
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.url_expiry_seconds = url_expiry_seconds

    async def put(self, file_stream: FileStream, namespace: str, extension: str) -> StoredBlob:
        key = build_key(namespace, extension)
        data = await asyncio.to_thread(read_stream, file_stream)
        try:
            await asyncio.to_thread(
                self.client.put_object, Bucket=self.bucket, Key=key, Body=data
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 upload failed: {e}")
            raise StoreError(BLOB_STORE_FAILURE) from e

        logger.info(f"Blob saved to s3://{self.bucket}/{key}")
        return StoredBlob(opaque_id=key, url=f"s3://{self.bucket}/{key}")

    async def resolve_secure_url(self, opaque_id: str) -> str:
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=opaque_id)
            if self.public_base_url:
                return f"{self.public_base_url}/{opaque_id}"
            return await asyncio.to_thread(
                self.client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": opaque_id},
                ExpiresIn=self.url_expiry_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to resolve URL for {opaque_id}: {e}")
            raise StoreError(BLOB_STORE_FAILURE) from e

    async def delete(self, opaque_id: str) -> None:
        # DeleteObject succeeds for missing keys
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=opaque_id)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 delete failed for {opaque_id}: {e}")
            raise StoreError(BLOB_STORE_FAILURE) from e

    async def list_blobs(self, namespace: str) -> List[BlobInfo]:
        prefix = namespace.strip("/") + "/"

        def _list() -> List[BlobInfo]:
            paginator = self.client.get_paginator("list_objects_v2")
            blobs = []
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                blobs.extend(
                    BlobInfo(opaque_id=obj["Key"], stored_at=obj["LastModified"])
                    for obj in page.get("Contents", [])
                )
            return blobs

        try:
            return await asyncio.to_thread(_list)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to list blobs under {prefix}: {e}")
            raise StoreError(BLOB_STORE_FAILURE) from e
