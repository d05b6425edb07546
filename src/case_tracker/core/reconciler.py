"""Reconciliation of partial document operations.

Finishes deletes left in the pending_delete state and removes blobs no
document row refers to.
"""

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Dict

from case_tracker.core.document_manager import DocumentAttachmentManager
from case_tracker.core.errors import AuthorizationError, StoreError
from case_tracker.models import Requester, utcnow

if TYPE_CHECKING:
    from case_tracker.infrastructure.persistence import MetadataRepository
    from case_tracker.infrastructure.storage import BlobStore

logger = logging.getLogger(__name__)


class Reconciler:
    """Repairs the enumerated partial states of attach and remove."""

    def __init__(
        self,
        repository: "MetadataRepository",
        blob_store: "BlobStore",
        documents: DocumentAttachmentManager,
        namespace: str,
        orphan_grace: timedelta,
        system_actor_id: str = "system",
    ):
        self.repository = repository
        self.blob_store = blob_store
        self.documents = documents
        self.namespace = namespace
        self.orphan_grace = orphan_grace
        self.system_actor_id = system_actor_id

    async def reconcile_pending_deletes(self) -> int:
        """Finish every pending delete. Failures stay pending for next time."""
        completed = 0
        for document in await self.repository.list_pending_deletes():
            try:
                await self.documents.complete_delete(document, self.system_actor_id)
            except StoreError as e:
                logger.warning(f"Pending delete of document {document.id} still failing: {e}")
                continue
            completed += 1
            logger.info(f"Completed pending delete of document {document.id}")
        return completed

    async def sweep_orphan_blobs(self) -> int:
        """Delete unreferenced blobs older than the grace period.

        Younger blobs may belong to an attach that has not committed yet.
        """
        cutoff = utcnow() - self.orphan_grace
        referenced = await self.repository.referenced_blob_ids()
        removed = 0
        for blob in await self.blob_store.list_blobs(self.namespace):
            if blob.opaque_id in referenced or blob.stored_at > cutoff:
                continue
            try:
                await self.blob_store.delete(blob.opaque_id)
            except StoreError as e:
                logger.warning(f"Could not remove orphan blob {blob.opaque_id}: {e}")
                continue
            removed += 1
            logger.info(f"Removed orphan blob {blob.opaque_id}")
        return removed

    async def reconcile(self, requester: Requester) -> Dict[str, int]:
        """Run both passes. Admin only."""
        if not requester.is_admin:
            raise AuthorizationError("Not authorized to run reconciliation")

        result = {
            "pending_deletes_completed": await self.reconcile_pending_deletes(),
            "orphan_blobs_removed": await self.sweep_orphan_blobs(),
        }
        logger.info(f"Reconciliation finished: {result}")
        return result
