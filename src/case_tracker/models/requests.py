"""API request and response models."""

from typing import Any, Dict, List, Optional

from case_tracker.models.case import Case, CamelModel, CourtInfo, Document, Update


class CaseCreateRequest(CamelModel):
    """Request to file a new case."""

    title: Optional[str] = None
    description: Optional[str] = None
    court_info: Optional[CourtInfo] = None


class CaseUpdateRequest(CamelModel):
    """Partial update of case details. Empty fields are ignored."""

    title: Optional[str] = None
    description: Optional[str] = None
    court_info: Optional[CourtInfo] = None


class CaseStatusUpdateRequest(CamelModel):
    """Request to update case status."""

    status: Optional[str] = None


class DocumentUpdateRequest(CamelModel):
    """Partial update of document metadata."""

    title: Optional[str] = None
    document_type: Optional[str] = None


class UpdateCreateRequest(CamelModel):
    """Manual audit trail entry."""

    case_id: Optional[str] = None
    message: Optional[str] = None
    update_type: Optional[str] = None


class CaseResponse(CamelModel):
    success: bool = True
    data: Case


class CaseListResponse(CamelModel):
    success: bool = True
    count: int
    data: List[Case]


class DocumentResponse(CamelModel):
    success: bool = True
    data: Document


class DocumentListResponse(CamelModel):
    success: bool = True
    count: int
    data: List[Document]


class UpdateResponse(CamelModel):
    success: bool = True
    data: Update


class UpdateListResponse(CamelModel):
    success: bool = True
    count: int
    data: List[Update]


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class ReconcileResult(CamelModel):
    pending_deletes_completed: int
    orphan_blobs_removed: int


class ReconcileResponse(CamelModel):
    success: bool = True
    data: ReconcileResult


class ErrorResponse(CamelModel):
    """Failure envelope. Diagnostic fields are set only in development."""

    success: bool = False
    message: str
    partial_state: Optional[str] = None
    errors: Optional[List[str]] = None
    error: Optional[str] = None

    def to_content(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    service: str
    version: str
    database: str
    blob_store: str
