"""Core business logic."""

from .errors import (
    AuthorizationError,
    CaseTrackerError,
    DuplicateError,
    NotFoundError,
    PartialFailureError,
    PartialState,
    StoreError,
    ValidationError,
)
from .authorization import AuthorizationGuard, ResourceKind, authorize
from .audit_trail import AuditTrail
from .case_registry import CaseRegistry, format_case_number
from .document_manager import DocumentAttachmentManager
from .reconciler import Reconciler
from .services import CaseTrackerServices, build_services

__all__ = [
    "AuthorizationError",
    "CaseTrackerError",
    "DuplicateError",
    "NotFoundError",
    "PartialFailureError",
    "PartialState",
    "StoreError",
    "ValidationError",
    "AuthorizationGuard",
    "ResourceKind",
    "authorize",
    "AuditTrail",
    "CaseRegistry",
    "format_case_number",
    "DocumentAttachmentManager",
    "Reconciler",
    "CaseTrackerServices",
    "build_services",
]
