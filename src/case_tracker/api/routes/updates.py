"""Audit trail API routes."""

from fastapi import APIRouter, Depends, status

from case_tracker.api.dependencies import get_requester, get_services
from case_tracker.core import CaseTrackerServices
from case_tracker.models import (
    MessageResponse,
    Requester,
    UpdateCreateRequest,
    UpdateListResponse,
    UpdateResponse,
)

router = APIRouter(prefix="/api/v1/updates", tags=["updates"])


@router.post(
    "",
    response_model=UpdateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a manual update to a case",
    responses={
        400: {"description": "Missing case ID/message, message under 3 characters, or invalid type"},
        403: {"description": "Not authorized to create updates for this case"},
        404: {"description": "Case not found"},
    },
)
async def create_update(
    request: UpdateCreateRequest,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    update = await services.audit_trail.create_update(
        request.case_id, request.message, request.update_type, requester
    )
    return UpdateResponse(data=update)


@router.get("/case/{case_id}", response_model=UpdateListResponse, summary="List updates of a case")
async def get_case_updates(
    case_id: str,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    """List the audit trail newest first."""
    updates = await services.audit_trail.list_events(case_id, requester)
    return UpdateListResponse(count=len(updates), data=updates)


@router.delete(
    "/{update_id}",
    response_model=MessageResponse,
    summary="Delete an update",
    description="""
Hard-deletes an audit trail entry. Authorization is checked against the
parent case (owner or admin), not the entry's author.
    """,
)
async def delete_update(
    update_id: str,
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    await services.audit_trail.delete_event(update_id, requester)
    return MessageResponse(message="Update deleted successfully")
