"""Case registry - business logic for the case lifecycle."""

import logging
from typing import TYPE_CHECKING, List, Optional, Union

from case_tracker.core.audit_trail import AuditTrail
from case_tracker.core.authorization import AuthorizationGuard
from case_tracker.core.errors import ValidationError
from case_tracker.models import Case, CaseStatus, CourtInfo, Requester, UpdateType, utcnow

if TYPE_CHECKING:
    from case_tracker.infrastructure.persistence import MetadataRepository

logger = logging.getLogger(__name__)


def format_case_number(year: int, sequence: int) -> str:
    """CASE-<year>-<sequence zero-padded to 5 digits>."""
    return f"CASE-{year}-{sequence:05d}"


def _has_content(court_info: Optional[CourtInfo]) -> bool:
    return court_info is not None and any(
        value not in (None, "") for value in court_info.model_dump().values()
    )


class CaseRegistry:
    """Business logic for case operations.

    This class implements the service layer using the Repository pattern.
    Every mutation commits together with its audit trail entry.
    """

    def __init__(
        self,
        repository: "MetadataRepository",
        audit_trail: AuditTrail,
        guard: AuthorizationGuard,
    ):
        """Initialize case registry.

        Args:
            repository: MetadataRepository implementation (InMemory or SQLAlchemy)
            audit_trail: Audit trail receiving automatic Updates
            guard: Authorization guard shared with the other services
        """
        self.repository = repository
        self.audit_trail = audit_trail
        self.guard = guard

    async def create_case(
        self,
        title: Optional[str],
        description: Optional[str],
        court_info: Optional[CourtInfo],
        owner_id: str,
    ) -> Case:
        """File a new case.

        The case number comes from the per-year counter. The counter
        increment, the case row and the initiating Update are one
        transaction.

        Args:
            title: Case title, required
            description: Case description, required
            court_info: Optional court details
            owner_id: User ID of the filing user

        Returns:
            Created case with its case number

        Raises:
            ValidationError: If title or description is empty
            DuplicateError: If the allocated number is already taken
        """
        title = (title or "").strip()
        description = (description or "").strip()
        if not title or not description:
            raise ValidationError("Title and description are required")

        now = utcnow()
        async with self.repository.transaction():
            sequence = await self.repository.next_case_sequence(now.year)
            case = Case(
                case_number=format_case_number(now.year, sequence),
                owner_id=owner_id,
                title=title,
                description=description,
                court_info=court_info if _has_content(court_info) else None,
                created_at=now,
                updated_at=now,
            )
            await self.repository.add_case(case)
            await self.audit_trail.record_event(
                case.id,
                "Case filing initiated",
                UpdateType.STATUS,
                owner_id,
                is_automatic=True,
            )

        logger.info(f"Created case {case.case_number} ({case.id}) for user {owner_id}")
        return case

    async def get_cases(self, requester: Requester) -> List[Case]:
        """List cases newest first; admins see every case."""
        if requester.is_admin:
            return await self.repository.list_cases()
        return await self.repository.list_cases(owner_id=requester.id)

    async def get_case(self, case_id: str, requester: Requester) -> Case:
        return await self.guard.check_case(requester, case_id, "view this case")

    async def update_case_status(
        self,
        case_id: str,
        new_status: Union[str, CaseStatus, None],
        requester: Requester,
    ) -> Case:
        """Move a case to any status.

        No transition graph is enforced; completed and rejected cases can
        be reopened.
        """
        case = await self.guard.check_case(requester, case_id, "update this case")
        try:
            status = CaseStatus(new_status)
        except ValueError:
            allowed = ", ".join(s.value for s in CaseStatus)
            raise ValidationError(f"Invalid status. Must be one of: {allowed}")

        case.status = status
        case.updated_at = utcnow()
        async with self.repository.transaction():
            await self.repository.save_case(case)
            await self.audit_trail.record_event(
                case.id,
                f"Case status updated to {status.value}",
                UpdateType.STATUS,
                requester.id,
                is_automatic=True,
            )

        logger.info(f"Case {case.case_number} status set to {status.value} by {requester.id}")
        return case

    async def update_case_details(
        self,
        case_id: str,
        requester: Requester,
        title: Optional[str] = None,
        description: Optional[str] = None,
        court_info: Optional[CourtInfo] = None,
    ) -> Case:
        """Replace title, description or court info.

        Only fields that are present and non-empty are applied.
        """
        case = await self.guard.check_case(requester, case_id, "update this case")

        if title and title.strip():
            case.title = title.strip()
        if description and description.strip():
            case.description = description.strip()
        if _has_content(court_info):
            case.court_info = court_info
        case.updated_at = utcnow()

        async with self.repository.transaction():
            await self.repository.save_case(case)
            await self.audit_trail.record_event(
                case.id,
                "Case details updated",
                UpdateType.GENERAL,
                requester.id,
                is_automatic=True,
            )

        logger.info(f"Updated case {case.id}")
        return case
