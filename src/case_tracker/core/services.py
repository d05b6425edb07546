"""Wiring of the core services around one repository and blob store."""

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from case_tracker.config import settings
from case_tracker.core.audit_trail import AuditTrail
from case_tracker.core.authorization import AuthorizationGuard
from case_tracker.core.case_registry import CaseRegistry
from case_tracker.core.document_manager import DocumentAttachmentManager
from case_tracker.core.reconciler import Reconciler

if TYPE_CHECKING:
    from case_tracker.infrastructure.persistence import MetadataRepository
    from case_tracker.infrastructure.storage import BlobStore


@dataclass
class CaseTrackerServices:
    guard: AuthorizationGuard
    audit_trail: AuditTrail
    cases: CaseRegistry
    documents: DocumentAttachmentManager
    reconciler: Reconciler


def build_services(
    repository: "MetadataRepository",
    blob_store: "BlobStore",
    namespace: Optional[str] = None,
) -> CaseTrackerServices:
    namespace = namespace or settings.blob_namespace
    guard = AuthorizationGuard(repository)
    audit_trail = AuditTrail(repository, guard)
    documents = DocumentAttachmentManager(repository, blob_store, audit_trail, guard, namespace)
    return CaseTrackerServices(
        guard=guard,
        audit_trail=audit_trail,
        cases=CaseRegistry(repository, audit_trail, guard),
        documents=documents,
        reconciler=Reconciler(
            repository,
            blob_store,
            documents,
            namespace,
            orphan_grace=timedelta(seconds=settings.orphan_grace_seconds),
            system_actor_id=settings.system_actor_id,
        ),
    )
