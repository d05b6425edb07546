"""Document API routes."""

import logging
from pathlib import PurePath
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from case_tracker.api.dependencies import get_requester, get_services
from case_tracker.core import CaseTrackerServices, ValidationError
from case_tracker.models import (
    DocumentListResponse,
    DocumentResponse,
    DocumentUpdateRequest,
    MessageResponse,
    Requester,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/documents", tags=["documents"])


async def attach_upload(
    services: CaseTrackerServices,
    case_id: Optional[str],
    title: Optional[str],
    document_type: Optional[str],
    file: Optional[UploadFile],
    requester: Requester,
) -> DocumentResponse:
    """Hand an upload that already passed ingestion checks to the core."""
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")

    extension = PurePath(file.filename).suffix.lstrip(".").lower()
    logger.info(f"Uploading file: {file.filename} ({file.content_type}, {file.size} bytes)")

    document = await services.documents.attach(
        case_id, title, document_type, file.file, extension, requester
    )
    return DocumentResponse(data=document)


@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload document to a case",
    description="""
Uploads a file and attaches it to a case (multipart form: `caseId`, `title`,
`documentType`, `file`).

**Workflow**:
1. File stored in the blob store under the configured namespace
2. Secure retrieval URL resolved before any metadata is written
3. Document row and "New document uploaded: <title>" update committed together

**Partial failure**: if the stored file cannot be discarded after a later
step fails, the response is 500 with `partialState: "orphan_blob"` and the
orphan sweep removes the file.

**Authorization**: Case owner or admin
    """,
    responses={
        201: {"description": "Document uploaded"},
        400: {"description": "Missing file or required fields"},
        403: {"description": "Not authorized to upload to this case"},
        404: {"description": "Case not found"},
        502: {"description": "Blob store or metadata store failure"},
    },
)
async def upload_document(
    case_id: Optional[str] = Form(None, alias="caseId"),
    title: Optional[str] = Form(None),
    document_type: Optional[str] = Form(None, alias="documentType"),
    file: Optional[UploadFile] = File(None),
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    return await attach_upload(services, case_id, title, document_type, file, requester)


@router.get(
    "/case/{case_id}",
    response_model=DocumentListResponse,
    summary="List documents of a case",
)
async def get_documents(
    case_id: str,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    """List documents newest first."""
    documents = await services.documents.list(case_id, requester)
    return DocumentListResponse(count=len(documents), data=documents)


@router.get("/{document_id}", response_model=DocumentResponse, summary="Get a document")
async def get_document(
    document_id: str,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    document = await services.documents.get_by_id(document_id, requester)
    return DocumentResponse(data=document)


@router.put(
    "/{document_id}",
    response_model=DocumentResponse,
    summary="Update document details",
    description="Changes `title` and/or `documentType`. The stored file is immutable.",
)
async def update_document(
    document_id: str,
    request: DocumentUpdateRequest,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    document = await services.documents.update(
        document_id,
        requester,
        title=request.title,
        document_type=request.document_type,
    )
    return DocumentResponse(data=document)


@router.delete(
    "/{document_id}",
    response_model=MessageResponse,
    summary="Delete a document",
    description="""
Deletes a document and its stored file.

**Workflow**:
1. Document marked `pending_delete` (hidden from reads from here on)
2. File deleted from the blob store
3. Document row deleted and "Document deleted: <title>" update recorded

**Partial failure**: if step 2 or 3 fails the response is 500 with
`partialState: "pending_delete"`; reconciliation finishes the delete.

**Authorization**: Case owner or admin
    """,
    responses={
        200: {"description": "Document removed"},
        403: {"description": "Not authorized to delete this document"},
        404: {"description": "Document not found"},
        500: {"description": "Delete pending reconciliation"},
        502: {"description": "Document could not be marked for deletion"},
    },
)
async def delete_document(
    document_id: str,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    await services.documents.remove(document_id, requester)
    return MessageResponse(message="Document removed successfully")
