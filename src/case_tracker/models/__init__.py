"""Models package."""

from .case import (
    Case,
    CaseStatus,
    CourtInfo,
    DeleteState,
    Document,
    Requester,
    Role,
    StorageRef,
    Update,
    UpdateType,
    new_id,
    utcnow,
)
from .requests import (
    CaseCreateRequest,
    CaseListResponse,
    CaseResponse,
    CaseStatusUpdateRequest,
    CaseUpdateRequest,
    DocumentListResponse,
    DocumentResponse,
    DocumentUpdateRequest,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    ReconcileResponse,
    ReconcileResult,
    UpdateCreateRequest,
    UpdateListResponse,
    UpdateResponse,
)

__all__ = [
    "Case",
    "CaseStatus",
    "CourtInfo",
    "DeleteState",
    "Document",
    "Requester",
    "Role",
    "StorageRef",
    "Update",
    "UpdateType",
    "new_id",
    "utcnow",
    "CaseCreateRequest",
    "CaseListResponse",
    "CaseResponse",
    "CaseStatusUpdateRequest",
    "CaseUpdateRequest",
    "DocumentListResponse",
    "DocumentResponse",
    "DocumentUpdateRequest",
    "ErrorResponse",
    "HealthResponse",
    "MessageResponse",
    "ReconcileResponse",
    "ReconcileResult",
    "UpdateCreateRequest",
    "UpdateListResponse",
    "UpdateResponse",
]
