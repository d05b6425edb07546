"""Authorization guard.

A requester may act on a case iff they own it or hold the admin role.
Documents and Updates carry no ownership of their own; their authority is
resolved through the parent case.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Tuple

from case_tracker.core.errors import AuthorizationError, NotFoundError
from case_tracker.models import Case, DeleteState, Document, Requester, Update

if TYPE_CHECKING:
    from case_tracker.infrastructure.persistence import MetadataRepository

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    CASE = "case"
    DOCUMENT = "document"
    UPDATE = "update"


def authorize(requester: Requester, owner_id: str, action: str) -> None:
    """Raise AuthorizationError unless requester is admin or the owner.

    Args:
        requester: Trusted caller identity
        owner_id: Owner of the case the resource belongs to
        action: Phrase completing "Not authorized to ...", e.g. "view this case"
    """
    if requester.is_admin or requester.id == owner_id:
        return
    logger.warning(f"User {requester.id} denied: {action} (owner {owner_id})")
    raise AuthorizationError(f"Not authorized to {action}")


class AuthorizationGuard:
    """Resolves the owning case of a resource and applies ``authorize``."""

    def __init__(self, repository: "MetadataRepository"):
        self.repository = repository
        self._resolvers: Dict[ResourceKind, Callable[[str], Awaitable[Tuple[Any, Case]]]] = {
            ResourceKind.CASE: self._resolve_case,
            ResourceKind.DOCUMENT: self._resolve_document,
            ResourceKind.UPDATE: self._resolve_update,
        }

    async def load_case(self, case_id: str) -> Case:
        case = await self.repository.get_case(case_id)
        if case is None:
            raise NotFoundError("Case not found")
        return case

    async def _resolve_case(self, case_id: str) -> Tuple[Case, Case]:
        case = await self.load_case(case_id)
        return case, case

    async def _resolve_document(self, document_id: str) -> Tuple[Document, Case]:
        document = await self.repository.get_document(document_id)
        # Rows awaiting reconciliation are already gone from the caller's view
        if document is None or document.delete_state != DeleteState.ACTIVE:
            raise NotFoundError("Document not found")
        return document, await self.load_case(document.case_id)

    async def _resolve_update(self, update_id: str) -> Tuple[Update, Case]:
        update = await self.repository.get_update(update_id)
        if update is None:
            raise NotFoundError("Update not found")
        return update, await self.load_case(update.case_id)

    async def check(
        self,
        requester: Requester,
        kind: ResourceKind,
        resource_id: str,
        action: str,
    ) -> Tuple[Any, Case]:
        """Load a resource and its owning case, then authorize.

        Returns:
            Tuple of (resource, owning case)

        Raises:
            NotFoundError: If the resource or its case does not exist
            AuthorizationError: If the requester may not perform ``action``
        """
        resource, case = await self._resolvers[kind](resource_id)
        authorize(requester, case.owner_id, action)
        return resource, case

    async def check_case(self, requester: Requester, case_id: str, action: str) -> Case:
        case, _ = await self.check(requester, ResourceKind.CASE, case_id, action)
        return case
