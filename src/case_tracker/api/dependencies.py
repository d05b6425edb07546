"""FastAPI dependencies: stores, services and the trusted requester."""

import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException, status

from case_tracker.config import settings
from case_tracker.core import CaseTrackerServices, build_services
from case_tracker.infrastructure.database import db_client
from case_tracker.infrastructure.persistence import (
    InMemoryMetadataRepository,
    MetadataRepository,
    SQLAlchemyMetadataRepository,
)
from case_tracker.infrastructure.storage import BlobStore, create_blob_store
from case_tracker.models import Requester, Role

logger = logging.getLogger(__name__)

# Process-wide singletons (persist across requests)
_inmemory_repository: Optional[InMemoryMetadataRepository] = None
_blob_store: Optional[BlobStore] = None


async def get_repository() -> AsyncGenerator[MetadataRepository, None]:
    """Dependency to get the metadata repository.

    Returns the implementation selected by STORAGE_TYPE:
    - inmemory (default): InMemoryMetadataRepository singleton for dev/testing
    - sql: SQLAlchemyMetadataRepository over a request-scoped session
    """
    if settings.storage_type.lower() == "sql":
        async for session in db_client.get_session():
            yield SQLAlchemyMetadataRepository(session)
    else:
        global _inmemory_repository
        if _inmemory_repository is None:
            _inmemory_repository = InMemoryMetadataRepository()
        yield _inmemory_repository


def get_blob_store() -> BlobStore:
    global _blob_store
    if _blob_store is None:
        _blob_store = create_blob_store()
    return _blob_store


async def get_services(
    repository: MetadataRepository = Depends(get_repository),
    blob_store: BlobStore = Depends(get_blob_store),
) -> CaseTrackerServices:
    return build_services(repository, blob_store)


async def get_requester(
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> Requester:
    """Build the requester from X-User-* headers set by the API Gateway.

    The gateway authenticates the user and strips client-provided X-User-*
    headers, so this service trusts them without further verification.

    Raises:
        HTTPException: If X-User-ID is missing or X-User-Role is unknown
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-ID header required (should be added by API Gateway)",
        )

    try:
        role = Role((x_user_role or Role.USER.value).lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role in X-User-Role header: {x_user_role}",
        )

    return Requester(id=x_user_id, role=role)
