"""Document attachment manager.

Binds blobs held by the external blob store to cases. The blob store and
the metadata store do not share a transaction, so attach and remove are
written as explicit multi-step protocols whose partial outcomes are known:

attach
    1. put bytes                  -> failure: clean StoreError
    2. resolve secure URL         -> failure: blob without metadata
    3. document row + Update      -> failure: blob without metadata
    A blob without metadata is deleted on the spot; if that fails too,
    PartialFailureError(ORPHAN_BLOB) is raised for the orphan sweep.

remove
    1. mark row pending_delete    -> failure: clean StoreError
    2. delete blob                -> failure: PENDING_DELETE
    3. delete row + Update        -> failure: PENDING_DELETE
    A pending_delete row is hidden from reads and finished by the
    reconciler.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from case_tracker.core.audit_trail import AuditTrail
from case_tracker.core.authorization import AuthorizationGuard, ResourceKind
from case_tracker.core.errors import PartialFailureError, PartialState, StoreError, ValidationError
from case_tracker.models import (
    DeleteState,
    Document,
    Requester,
    StorageRef,
    UpdateType,
    utcnow,
)

if TYPE_CHECKING:
    from case_tracker.infrastructure.persistence import MetadataRepository
    from case_tracker.infrastructure.storage import BlobStore
    from case_tracker.infrastructure.storage.blob_store import FileStream

logger = logging.getLogger(__name__)


class DocumentAttachmentManager:
    """Attach, read, edit and remove case documents."""

    def __init__(
        self,
        repository: "MetadataRepository",
        blob_store: "BlobStore",
        audit_trail: AuditTrail,
        guard: AuthorizationGuard,
        namespace: str,
    ):
        self.repository = repository
        self.blob_store = blob_store
        self.audit_trail = audit_trail
        self.guard = guard
        self.namespace = namespace

    async def attach(
        self,
        case_id: str,
        title: Optional[str],
        document_type: Optional[str],
        file_stream: "FileStream",
        extension: str,
        requester: Requester,
    ) -> Document:
        """Upload a file and bind it to a case.

        The stream is expected to have passed ingestion checks (extension,
        size) already.

        Raises:
            ValidationError: If title or document type is missing
            NotFoundError: If the case does not exist
            AuthorizationError: If the requester may not upload to the case
            StoreError: If the upload failed cleanly
            PartialFailureError: If an uploaded blob could not be discarded
        """
        title = (title or "").strip()
        document_type = (document_type or "").strip()
        if not case_id or not title or not document_type:
            raise ValidationError("Missing required fields")

        case = await self.guard.check_case(requester, case_id, "upload to this case")

        stored = await self.blob_store.put(file_stream, self.namespace, extension)
        logger.info(f"Stored blob {stored.opaque_id} for case {case.id}")

        try:
            secure_url = await self.blob_store.resolve_secure_url(stored.opaque_id)
            document = Document(
                case_id=case.id,
                title=title,
                document_type=document_type,
                storage_ref=StorageRef(remote_url=secure_url, opaque_id=stored.opaque_id),
                uploaded_by=requester.id,
            )
            async with self.repository.transaction():
                await self.repository.add_document(document)
                await self.audit_trail.record_event(
                    case.id,
                    f"New document uploaded: {title}",
                    UpdateType.DOCUMENT,
                    requester.id,
                    is_automatic=True,
                )
        except Exception as e:
            await self._discard_blob(stored.opaque_id, e)
            raise

        logger.info(f"Document {document.id} attached to case {case.id}")
        return document

    async def _discard_blob(self, opaque_id: str, cause: Exception) -> None:
        logger.warning(f"Attach failed after upload of {opaque_id}: {cause}; discarding blob")
        try:
            await self.blob_store.delete(opaque_id)
        except StoreError as e:
            logger.error(f"Blob {opaque_id} left orphaned: {e}")
            raise PartialFailureError(
                "Document upload failed and the stored file could not be removed",
                PartialState.ORPHAN_BLOB,
                opaque_id,
            ) from cause

    async def list(self, case_id: str, requester: Requester) -> List[Document]:
        await self.guard.check_case(requester, case_id, "view documents for this case")
        return await self.repository.list_documents(case_id)

    async def get_by_id(self, document_id: str, requester: Requester) -> Document:
        document, _ = await self.guard.check(
            requester, ResourceKind.DOCUMENT, document_id, "view this document"
        )
        return document

    async def update(
        self,
        document_id: str,
        requester: Requester,
        title: Optional[str] = None,
        document_type: Optional[str] = None,
    ) -> Document:
        """Edit document metadata. The stored bytes never change."""
        document, case = await self.guard.check(
            requester, ResourceKind.DOCUMENT, document_id, "update this document"
        )

        if title and title.strip():
            document.title = title.strip()
        if document_type and document_type.strip():
            document.document_type = document_type.strip()
        document.updated_at = utcnow()

        async with self.repository.transaction():
            await self.repository.save_document(document)
            await self.audit_trail.record_event(
                case.id,
                f"Document details updated: {document.title}",
                UpdateType.DOCUMENT,
                requester.id,
                is_automatic=True,
            )
        return document

    async def remove(self, document_id: str, requester: Requester) -> None:
        """Delete a document and its blob.

        Raises:
            StoreError: If the document could not be marked for deletion
            PartialFailureError: If the delete stopped after marking; the
                reconciler finishes it
        """
        document, _ = await self.guard.check(
            requester, ResourceKind.DOCUMENT, document_id, "delete this document"
        )

        document.delete_state = DeleteState.PENDING_DELETE
        document.updated_at = utcnow()
        async with self.repository.transaction():
            await self.repository.save_document(document)

        try:
            await self.complete_delete(document, requester.id)
        except StoreError as e:
            logger.error(f"Delete of document {document.id} left pending: {e}")
            raise PartialFailureError(
                "Document deletion is pending and will be retried",
                PartialState.PENDING_DELETE,
                document.id,
            ) from e

        logger.info(f"Document {document.id} removed by {requester.id}")

    async def complete_delete(self, document: Document, actor_id: str) -> None:
        """Delete the blob, then the row together with its Update.

        Safe to repeat: blob deletes are idempotent and the row is only
        removed once the blob is gone.
        """
        await self.blob_store.delete(document.storage_ref.opaque_id)
        async with self.repository.transaction():
            await self.repository.delete_document(document.id)
            await self.audit_trail.record_event(
                document.case_id,
                f"Document deleted: {document.title}",
                UpdateType.DOCUMENT,
                actor_id,
                is_automatic=True,
            )
