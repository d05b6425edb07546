"""SQLAlchemy metadata repository - production implementation.

Works on SQLite (aiosqlite) and PostgreSQL (asyncpg). One repository wraps
one AsyncSession; writes are flushed as they happen and committed when the
outermost transaction() scope exits.

Case numbers come from the case_number_sequences table. The counter row for
a year is created on demand with INSERT ... ON CONFLICT DO NOTHING and then
incremented in place, so the row lock taken by the UPDATE serializes
concurrent creations until their transaction commits.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional, Set

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from case_tracker.core.errors import DuplicateError, StoreError
from case_tracker.infrastructure.database.models import (
    CaseDB,
    CaseNumberSequenceDB,
    DocumentDB,
    UpdateDB,
)
from case_tracker.infrastructure.persistence.repository import MetadataRepository
from case_tracker.models import (
    Case,
    CourtInfo,
    DeleteState,
    Document,
    StorageRef,
    Update,
)

logger = logging.getLogger(__name__)

METADATA_STORE_FAILURE = "Metadata store failure"


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLAlchemyMetadataRepository(MetadataRepository):
    """
    Metadata repository backed by an async SQLAlchemy session.
    """

    def __init__(self, db_session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            db_session: SQLAlchemy AsyncSession for database operations
        """
        self.db = db_session
        self._depth = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Metadata store transaction failed: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e
        except BaseException:
            await self.db.rollback()
            raise
        finally:
            self._depth = 0

    async def _flush(self, action: str) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to {action}: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e

    # ========================================================================
    # Row conversion
    # ========================================================================

    @staticmethod
    def _to_case(row: CaseDB) -> Case:
        return Case(
            id=row.id,
            case_number=row.case_number,
            owner_id=row.owner_id,
            title=row.title,
            description=row.description,
            status=row.status,
            court_info=CourtInfo.model_validate(row.court_info) if row.court_info else None,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )

    @staticmethod
    def _to_document(row: DocumentDB) -> Document:
        return Document(
            id=row.id,
            case_id=row.case_id,
            title=row.title,
            document_type=row.document_type,
            storage_ref=StorageRef(remote_url=row.remote_url, opaque_id=row.opaque_id),
            uploaded_by=row.uploaded_by,
            delete_state=row.delete_state,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )

    @staticmethod
    def _to_update(row: UpdateDB) -> Update:
        return Update(
            id=row.id,
            case_id=row.case_id,
            message=row.message,
            update_type=row.update_type,
            created_by=row.created_by,
            is_automatic=row.is_automatic,
            created_at=_aware(row.created_at),
        )

    @staticmethod
    def _court_info_json(case: Case):
        if case.court_info is None:
            return None
        return case.court_info.model_dump(mode="json")

    # ========================================================================
    # Cases
    # ========================================================================

    async def next_case_sequence(self, year: int) -> int:
        dialect = self.db.get_bind().dialect.name
        table = CaseNumberSequenceDB.__table__

        try:
            if dialect == "postgresql":
                stmt = postgresql.insert(table).values(year=year, last_value=0)
                await self.db.execute(stmt.on_conflict_do_nothing(index_elements=["year"]))
            elif dialect == "sqlite":
                stmt = sqlite.insert(table).values(year=year, last_value=0)
                await self.db.execute(stmt.on_conflict_do_nothing(index_elements=["year"]))
            else:
                existing = await self.db.get(CaseNumberSequenceDB, year)
                if existing is None:
                    self.db.add(CaseNumberSequenceDB(year=year, last_value=0))
                    await self.db.flush()

            await self.db.execute(
                update(CaseNumberSequenceDB)
                .where(CaseNumberSequenceDB.year == year)
                .values(last_value=CaseNumberSequenceDB.last_value + 1)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(
                select(CaseNumberSequenceDB.last_value).where(CaseNumberSequenceDB.year == year)
            )
            return result.scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Failed to allocate case number for {year}: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e

    async def add_case(self, case: Case) -> Case:
        self.db.add(
            CaseDB(
                id=case.id,
                case_number=case.case_number,
                owner_id=case.owner_id,
                title=case.title,
                description=case.description,
                status=case.status,
                court_info=self._court_info_json(case),
                created_at=case.created_at,
                updated_at=case.updated_at,
            )
        )
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise DuplicateError(f"Case number {case.case_number} is already assigned") from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to save case {case.id}: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e
        return case

    async def get_case(self, case_id: str) -> Optional[Case]:
        try:
            row = await self.db.get(CaseDB, case_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load case {case_id}: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e
        return self._to_case(row) if row else None

    async def list_cases(self, owner_id: Optional[str] = None) -> List[Case]:
        query = select(CaseDB).order_by(CaseDB.created_at.desc())
        if owner_id is not None:
            query = query.where(CaseDB.owner_id == owner_id)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list cases: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e
        return [self._to_case(row) for row in result.scalars().all()]

    async def save_case(self, case: Case) -> Case:
        row = await self.db.get(CaseDB, case.id)
        if row is None:
            raise StoreError(f"Case {case.id} does not exist")
        row.title = case.title
        row.description = case.description
        row.status = case.status
        row.court_info = self._court_info_json(case)
        row.updated_at = case.updated_at
        await self._flush(f"save case {case.id}")
        return case

    # ========================================================================
    # Documents
    # ========================================================================

    async def add_document(self, document: Document) -> Document:
        self.db.add(
            DocumentDB(
                id=document.id,
                case_id=document.case_id,
                title=document.title,
                document_type=document.document_type,
                remote_url=document.storage_ref.remote_url,
                opaque_id=document.storage_ref.opaque_id,
                uploaded_by=document.uploaded_by,
                delete_state=document.delete_state,
                created_at=document.created_at,
                updated_at=document.updated_at,
            )
        )
        await self._flush(f"save document {document.id}")
        return document

    async def get_document(self, document_id: str) -> Optional[Document]:
        try:
            row = await self.db.get(DocumentDB, document_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load document {document_id}: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e
        return self._to_document(row) if row else None

    async def list_documents(self, case_id: str) -> List[Document]:
        query = (
            select(DocumentDB)
            .where(
                DocumentDB.case_id == case_id,
                DocumentDB.delete_state == DeleteState.ACTIVE,
            )
            .order_by(DocumentDB.created_at.desc())
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list documents for case {case_id}: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e
        return [self._to_document(row) for row in result.scalars().all()]

    async def list_pending_deletes(self) -> List[Document]:
        query = select(DocumentDB).where(DocumentDB.delete_state == DeleteState.PENDING_DELETE)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list pending deletes: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e
        return [self._to_document(row) for row in result.scalars().all()]

    async def save_document(self, document: Document) -> Document:
        row = await self.db.get(DocumentDB, document.id)
        if row is None:
            raise StoreError(f"Document {document.id} does not exist")
        row.title = document.title
        row.document_type = document.document_type
        row.remote_url = document.storage_ref.remote_url
        row.delete_state = document.delete_state
        row.updated_at = document.updated_at
        await self._flush(f"save document {document.id}")
        return document

    async def delete_document(self, document_id: str) -> bool:
        row = await self.db.get(DocumentDB, document_id)
        if row is None:
            return False
        await self.db.delete(row)
        await self._flush(f"delete document {document_id}")
        return True

    async def referenced_blob_ids(self) -> Set[str]:
        try:
            result = await self.db.execute(select(DocumentDB.opaque_id))
        except SQLAlchemyError as e:
            logger.error(f"Failed to list blob references: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e
        return set(result.scalars().all())

    # ========================================================================
    # Updates
    # ========================================================================

    async def add_update(self, update_entry: Update) -> Update:
        self.db.add(
            UpdateDB(
                id=update_entry.id,
                case_id=update_entry.case_id,
                message=update_entry.message,
                update_type=update_entry.update_type,
                created_by=update_entry.created_by,
                is_automatic=update_entry.is_automatic,
                created_at=update_entry.created_at,
            )
        )
        await self._flush(f"save update {update_entry.id}")
        return update_entry

    async def get_update(self, update_id: str) -> Optional[Update]:
        try:
            row = await self.db.get(UpdateDB, update_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load update {update_id}: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e
        return self._to_update(row) if row else None

    async def list_updates(self, case_id: str) -> List[Update]:
        query = (
            select(UpdateDB)
            .where(UpdateDB.case_id == case_id)
            .order_by(UpdateDB.created_at.desc())
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list updates for case {case_id}: {e}")
            raise StoreError(METADATA_STORE_FAILURE) from e
        return [self._to_update(row) for row in result.scalars().all()]

    async def delete_update(self, update_id: str) -> bool:
        row = await self.db.get(UpdateDB, update_id)
        if row is None:
            return False
        await self.db.delete(row)
        await self._flush(f"delete update {update_id}")
        return True
