"""Main FastAPI application for case-tracker-service."""

import logging
import sys
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from case_tracker import __version__
from case_tracker.api.errors import register_exception_handlers
from case_tracker.api.routes.cases import router as cases_router
from case_tracker.api.routes.documents import router as documents_router
from case_tracker.api.routes.maintenance import router as maintenance_router
from case_tracker.api.routes.updates import router as updates_router
from case_tracker.config import settings
from case_tracker.infrastructure.database import db_client
from case_tracker.models import HealthResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Case Tracker Service",
    description="Case lifecycle, document attachments and audit trail",
    version=__version__,
)

# Requester identity comes from X-User-* headers set by the API Gateway
logger.info("Service trusts X-User-* headers from API Gateway (no credential verification)")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(cases_router)
app.include_router(documents_router)
app.include_router(updates_router)
app.include_router(maintenance_router)

# Local blobs are served at the retrieval URL LocalBlobStore hands out
if settings.blob_store_type.lower() == "local":
    blob_dir = Path(settings.local_blob_path).resolve()
    blob_dir.mkdir(parents=True, exist_ok=True)
    app.mount(settings.local_blob_mount_path, StaticFiles(directory=str(blob_dir)), name="blobs")


def _uses_sql() -> bool:
    return settings.storage_type.lower() == "sql"


@app.on_event("startup")
async def startup():
    """Initialize database on startup."""
    logger.info(f"Starting {settings.service_name} on port {settings.port}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Metadata store: {settings.storage_type}, blob store: {settings.blob_store_type}")

    if not _uses_sql():
        return

    try:
        # Verify connection with retry logic
        await db_client.verify_connection()

        # Alembic migrations are the primary schema path; create_tables()
        # covers setups that never ran them
        await db_client.create_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


@app.on_event("shutdown")
async def shutdown():
    """Clean up resources on shutdown."""
    logger.info("Shutting down service")
    if _uses_sql():
        await db_client.close()


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="""
Returns the health status of the Case Tracker Service.

**Response Example**:
```json
{
  "status": "healthy",
  "service": "case-tracker-service",
  "version": "1.0.0",
  "database": "inmemory",
  "blobStore": "local"
}
```

**Storage**: No database query (reports configuration only)
**Authorization**: None required (public endpoint)
    """,
)
async def health_check():
    """Health check endpoint."""
    database = settings.database_url.split("://")[0] if _uses_sql() else "inmemory"
    return HealthResponse(
        status="healthy",
        service=settings.service_name,
        version=__version__,
        database=database,
        blob_store=settings.blob_store_type,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "case_tracker.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.is_development,
    )
