"""Audit trail: append-only log of case lifecycle events."""

import logging
from typing import TYPE_CHECKING, List, Optional, Union

from case_tracker.core.authorization import AuthorizationGuard, ResourceKind
from case_tracker.core.errors import ValidationError
from case_tracker.models import Requester, Update, UpdateType

if TYPE_CHECKING:
    from case_tracker.infrastructure.persistence import MetadataRepository

logger = logging.getLogger(__name__)

MIN_MESSAGE_LENGTH = 3


def parse_update_type(value: Union[str, UpdateType, None]) -> UpdateType:
    if value is None or value == "":
        return UpdateType.GENERAL
    try:
        return UpdateType(value)
    except ValueError:
        raise ValidationError("Invalid update type")


class AuditTrail:
    """Appends, lists and deletes Updates.

    Mutating operations elsewhere call ``record_event`` inside their own
    transaction so the state change and its Update commit together.
    """

    def __init__(self, repository: "MetadataRepository", guard: AuthorizationGuard):
        self.repository = repository
        self.guard = guard

    async def record_event(
        self,
        case_id: str,
        message: str,
        update_type: Union[str, UpdateType, None],
        author_id: str,
        is_automatic: bool,
    ) -> Update:
        """Append an Update to a case's trail.

        Raises:
            ValidationError: If the message is shorter than 3 characters or
                the update type is unknown
        """
        message = (message or "").strip()
        if len(message) < MIN_MESSAGE_LENGTH:
            raise ValidationError(
                f"Message must be at least {MIN_MESSAGE_LENGTH} characters long"
            )
        entry = Update(
            case_id=case_id,
            message=message,
            update_type=parse_update_type(update_type),
            created_by=author_id,
            is_automatic=is_automatic,
        )
        async with self.repository.transaction():
            await self.repository.add_update(entry)
        return entry

    async def create_update(
        self,
        case_id: Optional[str],
        message: Optional[str],
        update_type: Union[str, UpdateType, None],
        requester: Requester,
    ) -> Update:
        """Record a manual Update on behalf of the requester."""
        if not case_id or not message:
            raise ValidationError("Case ID and message are required")

        await self.guard.check_case(requester, case_id, "create updates for this case")
        entry = await self.record_event(case_id, message, update_type, requester.id, is_automatic=False)

        logger.info(f"User {requester.id} added update {entry.id} to case {case_id}")
        return entry

    async def list_events(self, case_id: str, requester: Requester) -> List[Update]:
        await self.guard.check_case(requester, case_id, "view updates for this case")
        return await self.repository.list_updates(case_id)

    async def delete_event(self, update_id: str, requester: Requester) -> None:
        """Hard-delete an Update.

        Authority comes from the parent case, not the Update's author.
        """
        await self.guard.check(requester, ResourceKind.UPDATE, update_id, "delete this update")
        async with self.repository.transaction():
            await self.repository.delete_update(update_id)
        logger.info(f"User {requester.id} deleted update {update_id}")
