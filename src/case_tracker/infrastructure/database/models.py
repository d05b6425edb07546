"""SQLAlchemy database models."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

from case_tracker.models import CaseStatus, DeleteState, UpdateType

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # Store enum values ("in-progress"), not member names
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class CaseDB(Base):
    """SQLAlchemy model for cases table."""

    __tablename__ = "cases"

    id = Column(String(50), primary_key=True)
    case_number = Column(String(20), nullable=False, unique=True, index=True)
    owner_id = Column(String(100), nullable=False, index=True)

    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)

    status = Column(
        _enum(CaseStatus, "casestatus"),
        nullable=False,
        default=CaseStatus.PENDING,
        index=True,
    )
    court_info = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class DocumentDB(Base):
    """SQLAlchemy model for documents table."""

    __tablename__ = "documents"

    id = Column(String(50), primary_key=True)
    case_id = Column(String(50), ForeignKey("cases.id"), nullable=False)

    title = Column(Text, nullable=False)
    document_type = Column(Text, nullable=False)
    remote_url = Column(Text, nullable=False)
    opaque_id = Column(String(512), nullable=False, unique=True)
    uploaded_by = Column(String(100), nullable=False)
    delete_state = Column(
        _enum(DeleteState, "deletestate"),
        nullable=False,
        default=DeleteState.ACTIVE,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("ix_documents_case_id_created_at", "case_id", "created_at"),)


class UpdateDB(Base):
    """SQLAlchemy model for the audit trail (case_updates table)."""

    __tablename__ = "case_updates"

    id = Column(String(50), primary_key=True)
    case_id = Column(String(50), ForeignKey("cases.id"), nullable=False)

    message = Column(Text, nullable=False)
    update_type = Column(
        _enum(UpdateType, "updatetype"),
        nullable=False,
        default=UpdateType.GENERAL,
    )
    created_by = Column(String(100), nullable=False, index=True)
    is_automatic = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("ix_case_updates_case_id_created_at", "case_id", "created_at"),)


class CaseNumberSequenceDB(Base):
    """Per-year case number counter."""

    __tablename__ = "case_number_sequences"

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(Integer, nullable=False, default=0)
