"""Domain models for the case tracker.

Cases own Documents and Updates. Documents and Updates carry no ownership
of their own; authorization always resolves through the parent case.
Fields are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Role(str, Enum):
    """Requester capability levels."""

    USER = "user"
    ADMIN = "admin"


class CaseStatus(str, Enum):
    """Case lifecycle status. No transition graph is enforced."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class UpdateType(str, Enum):
    """Audit trail entry categories."""

    STATUS = "status"
    DOCUMENT = "document"
    COURT = "court"
    GENERAL = "general"


class DeleteState(str, Enum):
    """Document delete protocol state."""

    ACTIVE = "active"
    PENDING_DELETE = "pending_delete"


class Requester(CamelModel):
    """Trusted caller identity supplied by the identity provider."""

    id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class CourtInfo(CamelModel):
    court_name: Optional[str] = None
    judge: Optional[str] = None
    hearing_date: Optional[datetime] = None


class Case(CamelModel):
    """A tracked unit of legal work."""

    id: str = Field(default_factory=lambda: new_id("case"))
    case_number: str
    owner_id: str = Field(description="Owner user ID")
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    status: CaseStatus = CaseStatus.PENDING
    court_info: Optional[CourtInfo] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class StorageRef(CamelModel):
    """Pointer to a blob held by the external blob store."""

    remote_url: str
    opaque_id: str


class Document(CamelModel):
    """Metadata for a file attached to a case."""

    id: str = Field(default_factory=lambda: new_id("doc"))
    case_id: str
    title: str
    document_type: str
    storage_ref: StorageRef
    uploaded_by: str
    # Internal delete-protocol marker, never serialized
    delete_state: DeleteState = Field(default=DeleteState.ACTIVE, exclude=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Update(CamelModel):
    """Audit trail entry attached to a case."""

    id: str = Field(default_factory=lambda: new_id("upd"))
    case_id: str
    message: str
    update_type: UpdateType = UpdateType.GENERAL
    created_by: str
    is_automatic: bool = False
    created_at: datetime = Field(default_factory=utcnow)
