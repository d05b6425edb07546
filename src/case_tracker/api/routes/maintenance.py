"""Maintenance routes."""

from fastapi import APIRouter, Depends

from case_tracker.api.dependencies import get_requester, get_services
from case_tracker.core import CaseTrackerServices
from case_tracker.models import ReconcileResponse, ReconcileResult, Requester

router = APIRouter(prefix="/api/v1/maintenance", tags=["maintenance"])


@router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    summary="Reconcile partial document operations",
    description="""
Finishes document deletes left in `pending_delete` and removes stored files
that no document references (older than ORPHAN_GRACE_SECONDS).

**Authorization**: Admin only
    """,
)
async def reconcile(
    requester: Requester = Depends(get_requester),
    services: CaseTrackerServices = Depends(get_services),
):
    result = await services.reconciler.reconcile(requester)
    return ReconcileResponse(data=ReconcileResult(**result))
