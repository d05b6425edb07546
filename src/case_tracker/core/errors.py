"""Domain error types.

Every error the core raises derives from CaseTrackerError and carries a
human-readable message that is safe to return to the caller.
"""

from enum import Enum
from typing import Optional


class CaseTrackerError(Exception):
    """Base class for case tracker errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CaseTrackerError):
    """Missing, short or invalid field."""

    status_code = 400


class NotFoundError(CaseTrackerError):
    """Case, document or update does not exist."""

    status_code = 404


class AuthorizationError(CaseTrackerError):
    """Requester is neither the owner nor an admin."""

    status_code = 403


class DuplicateError(CaseTrackerError):
    """Unique constraint violation, e.g. a case number collision."""

    status_code = 409


class StoreError(CaseTrackerError):
    """Terminal failure of the metadata store or blob store."""

    status_code = 502


class PartialState(str, Enum):
    """Known intermediate states left behind by a multi-step operation."""

    ORPHAN_BLOB = "orphan_blob"
    PENDING_DELETE = "pending_delete"


class PartialFailureError(StoreError):
    """A multi-step operation stopped after committing some of its steps.

    The reconciler acts on ``state``; ``resource_id`` is the document id for
    PENDING_DELETE and the blob opaque id for ORPHAN_BLOB.
    """

    status_code = 500

    def __init__(self, message: str, state: PartialState, resource_id: Optional[str] = None):
        super().__init__(message)
        self.state = state
        self.resource_id = resource_id
