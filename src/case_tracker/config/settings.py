"""Service configuration settings."""

from typing import List, Optional
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    service_name: str = "case-tracker-service"
    environment: str = "production"
    port: int = 8003

    # Metadata store
    database_url: str = "sqlite+aiosqlite:///./case_tracker.db"
    storage_type: str = "inmemory"  # inmemory | sql

    # Blob store
    blob_store_type: str = "local"  # inmemory | local | s3
    blob_namespace: str = "case-tracker"
    local_blob_path: str = "./blobs"
    local_blob_base_url: str = "http://localhost:8003/blobs"

    s3_bucket: Optional[str] = None
    s3_endpoint: Optional[str] = None
    s3_region: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_public_base_url: Optional[str] = None
    s3_url_expiry_seconds: int = 7 * 24 * 3600

    # Reconciliation
    orphan_grace_seconds: int = 3600
    system_actor_id: str = "system"

    # CORS configuration
    cors_origins: str = "*"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def local_blob_mount_path(self) -> str:
        """URL path under which the local blob directory is served."""
        return urlparse(self.local_blob_base_url).path.rstrip("/") or "/blobs"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


# Global settings instance
settings = Settings()
