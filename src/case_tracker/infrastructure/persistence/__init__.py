"""Metadata persistence layer - Repository Pattern implementation."""

from case_tracker.infrastructure.persistence.repository import (
    InMemoryMetadataRepository,
    MetadataRepository,
)
from case_tracker.infrastructure.persistence.sqlalchemy_repository import (
    SQLAlchemyMetadataRepository,
)

__all__ = [
    "InMemoryMetadataRepository",
    "MetadataRepository",
    "SQLAlchemyMetadataRepository",
]
