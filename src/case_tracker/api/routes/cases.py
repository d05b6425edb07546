"""Case API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from case_tracker.api.dependencies import get_requester, get_services
from case_tracker.api.routes.documents import attach_upload
from case_tracker.core import CaseTrackerServices
from case_tracker.models import (
    CaseCreateRequest,
    CaseListResponse,
    CaseResponse,
    CaseStatusUpdateRequest,
    CaseUpdateRequest,
    DocumentListResponse,
    DocumentResponse,
    Requester,
    UpdateCreateRequest,
    UpdateListResponse,
    UpdateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/cases", tags=["cases"])


# =============================================================================
# Core CRUD Endpoints
# =============================================================================

@router.post(
    "",
    response_model=CaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="File a new case",
    description="""
Files a new case owned by the requesting user.

**Workflow**:
1. Title and description validated (both required)
2. Case number allocated from the per-year counter (`CASE-<year>-<5 digits>`)
3. Case created in `pending` status
4. Automatic "Case filing initiated" update recorded in the same transaction

**Request Body Example**:
```json
{
  "title": "Contract Dispute",
  "description": "Breach of contract claim",
  "courtInfo": {"courtName": "District Court", "judge": "J. Doe", "hearingDate": "2026-11-02T09:00:00Z"}
}
```

**Response Example**:
```json
{
  "success": true,
  "data": {
    "id": "case_a1b2c3d4e5f6",
    "caseNumber": "CASE-2026-00001",
    "ownerId": "user_123",
    "title": "Contract Dispute",
    "description": "Breach of contract claim",
    "status": "pending",
    "courtInfo": null,
    "createdAt": "2026-10-19T10:30:00Z",
    "updatedAt": "2026-10-19T10:30:00Z"
  }
}
```

**Authorization**: Requires X-User-ID header from the API Gateway
    """,
    responses={
        201: {"description": "Case created successfully"},
        400: {"description": "Title and description are required"},
        401: {"description": "Unauthorized - missing X-User-ID header"},
        409: {"description": "Case number collision"},
        502: {"description": "Metadata store failure"},
    },
)
async def create_case(
    request: CaseCreateRequest,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    case = await services.cases.create_case(
        request.title, request.description, request.court_info, requester.id
    )
    return CaseResponse(data=case)


@router.get(
    "",
    response_model=CaseListResponse,
    summary="List cases",
    description="Newest first. Admins see every case; other users see the cases they own.",
)
async def list_cases(
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    cases = await services.cases.get_cases(requester)
    return CaseListResponse(count=len(cases), data=cases)


@router.get(
    "/{case_id}",
    response_model=CaseResponse,
    summary="Get case by ID",
    responses={
        403: {"description": "Not authorized to view this case"},
        404: {"description": "Case not found"},
    },
)
async def get_case(
    case_id: str,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    case = await services.cases.get_case(case_id, requester)
    return CaseResponse(data=case)


@router.put(
    "/{case_id}",
    response_model=CaseResponse,
    summary="Update case details",
    description="""
Updates title, description and/or court info. Fields that are absent or
empty are left unchanged. Records a "Case details updated" update.
    """,
    responses={
        403: {"description": "Not authorized to update this case"},
        404: {"description": "Case not found"},
    },
)
async def update_case(
    case_id: str,
    request: CaseUpdateRequest,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    case = await services.cases.update_case_details(
        case_id,
        requester,
        title=request.title,
        description=request.description,
        court_info=request.court_info,
    )
    return CaseResponse(data=case)


@router.put(
    "/{case_id}/status",
    response_model=CaseResponse,
    summary="Update case status",
    description="""
Sets status to one of `pending`, `in-progress`, `completed`, `rejected`.
Any status may follow any other. Records "Case status updated to <status>".
    """,
    responses={
        400: {"description": "Invalid status"},
        403: {"description": "Not authorized to update this case"},
        404: {"description": "Case not found"},
    },
)
async def update_case_status(
    case_id: str,
    request: CaseStatusUpdateRequest,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    case = await services.cases.update_case_status(case_id, request.status, requester)
    return CaseResponse(data=case)


# =============================================================================
# Nested Document and Update Endpoints
# =============================================================================

@router.post(
    "/{case_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload document to this case",
)
async def upload_case_document(
    case_id: str,
    title: Optional[str] = Form(None),
    document_type: Optional[str] = Form(None, alias="documentType"),
    file: Optional[UploadFile] = File(None),
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    return await attach_upload(services, case_id, title, document_type, file, requester)


@router.get(
    "/{case_id}/documents",
    response_model=DocumentListResponse,
    summary="List documents of this case",
)
async def list_case_documents(
    case_id: str,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    documents = await services.documents.list(case_id, requester)
    return DocumentListResponse(count=len(documents), data=documents)


@router.post(
    "/{case_id}/updates",
    response_model=UpdateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a manual update to this case",
)
async def create_case_update(
    case_id: str,
    request: UpdateCreateRequest,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    update = await services.audit_trail.create_update(
        case_id, request.message, request.update_type, requester
    )
    return UpdateResponse(data=update)


@router.get(
    "/{case_id}/updates",
    response_model=UpdateListResponse,
    summary="List updates of this case",
)
async def list_case_updates(
    case_id: str,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    updates = await services.audit_trail.list_events(case_id, requester)
    return UpdateListResponse(count=len(updates), data=updates)
