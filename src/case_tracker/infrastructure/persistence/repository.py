"""Metadata repository for cases, documents and audit trail entries.

This module provides the repository pattern for the metadata store. The
service layer works against MetadataRepository and never touches a
database session directly.
"""

import asyncio
import itertools
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Set

from case_tracker.core.errors import DuplicateError, StoreError
from case_tracker.models import Case, DeleteState, Document, Update


# ============================================================
# Repository Interface
# ============================================================

class MetadataRepository(ABC):
    """
    Abstract repository interface for metadata persistence.

    Implementations:
    - SQLAlchemyMetadataRepository: SQLite/PostgreSQL via async SQLAlchemy
    - InMemoryMetadataRepository: Testing and development
    """

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Scope in which all writes commit together or not at all.

        Nested scopes join the outermost one. Default implementation is a
        no-op; stores that support transactions override it.
        """
        yield

    # ------------------------------------------------------------
    # Cases
    # ------------------------------------------------------------

    @abstractmethod
    async def next_case_sequence(self, year: int) -> int:
        """
        Atomically increment and return the case counter for a year.

        Must be called inside transaction(); the increment is rolled back
        with it.

        Args:
            year: Calendar year the counter is scoped to

        Returns:
            The new counter value, starting at 1

        Raises:
            StoreError: If the increment fails
        """

    @abstractmethod
    async def add_case(self, case: Case) -> Case:
        """
        Insert a new case.

        Raises:
            DuplicateError: If the case number is already taken
            StoreError: If the insert fails
        """

    @abstractmethod
    async def get_case(self, case_id: str) -> Optional[Case]:
        """
        Retrieve case by ID.

        Returns:
            Case if found, None otherwise
        """

    @abstractmethod
    async def list_cases(self, owner_id: Optional[str] = None) -> List[Case]:
        """
        List cases newest first.

        Args:
            owner_id: Restrict to cases owned by this user; None lists all
        """

    @abstractmethod
    async def save_case(self, case: Case) -> Case:
        """Persist changes to an existing case."""

    # ------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------

    @abstractmethod
    async def add_document(self, document: Document) -> Document:
        """
        Insert document metadata.

        Raises:
            StoreError: If the parent case is missing or the insert fails
        """

    @abstractmethod
    async def get_document(self, document_id: str) -> Optional[Document]:
        """Retrieve a document regardless of its delete state."""

    @abstractmethod
    async def list_documents(self, case_id: str) -> List[Document]:
        """List active documents of a case newest first."""

    @abstractmethod
    async def list_pending_deletes(self) -> List[Document]:
        """List documents left in the pending_delete state."""

    @abstractmethod
    async def save_document(self, document: Document) -> Document:
        """Persist changes to an existing document."""

    @abstractmethod
    async def delete_document(self, document_id: str) -> bool:
        """
        Delete document metadata.

        Returns:
            True if deleted, False if not found
        """

    @abstractmethod
    async def referenced_blob_ids(self) -> Set[str]:
        """Opaque ids of every blob referenced by a document row."""

    # ------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------

    @abstractmethod
    async def add_update(self, update: Update) -> Update:
        """
        Append an audit trail entry.

        Raises:
            StoreError: If the parent case is missing or the insert fails
        """

    @abstractmethod
    async def get_update(self, update_id: str) -> Optional[Update]:
        """Retrieve an audit trail entry by ID."""

    @abstractmethod
    async def list_updates(self, case_id: str) -> List[Update]:
        """List audit trail entries of a case newest first."""

    @abstractmethod
    async def delete_update(self, update_id: str) -> bool:
        """
        Hard-delete an audit trail entry.

        Returns:
            True if deleted, False if not found
        """


# ============================================================
# In-Memory Implementation (for Testing)
# ============================================================

class InMemoryMetadataRepository(MetadataRepository):
    """
    In-memory metadata repository for testing and development.

    Data stored in dictionaries, not persistent across restarts. Transactions
    are serialized by a lock and rolled back by restoring a snapshot.
    """

    def __init__(self):
        """Initialize empty in-memory store."""
        self._cases: Dict[str, Case] = {}
        self._documents: Dict[str, Document] = {}
        self._updates: Dict[str, Update] = {}
        self._sequences: Dict[int, int] = {}
        # Insertion order breaks created_at ties
        self._order: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task] = None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        task = asyncio.current_task()
        if self._owner is not None and self._owner is task:
            yield
            return

        async with self._lock:
            self._owner = task
            snapshot = (
                dict(self._cases),
                dict(self._documents),
                dict(self._updates),
                dict(self._sequences),
                dict(self._order),
            )
            try:
                yield
            except BaseException:
                (
                    self._cases,
                    self._documents,
                    self._updates,
                    self._sequences,
                    self._order,
                ) = snapshot
                raise
            finally:
                self._owner = None

    def _newest_first(self, items):
        return sorted(
            items,
            key=lambda item: (item.created_at, self._order.get(item.id, 0)),
            reverse=True,
        )

    def _track(self, item_id: str) -> None:
        self._order[item_id] = next(self._counter)

    async def next_case_sequence(self, year: int) -> int:
        value = self._sequences.get(year, 0) + 1
        self._sequences[year] = value
        return value

    async def add_case(self, case: Case) -> Case:
        if case.id in self._cases:
            raise StoreError(f"Case {case.id} already exists")
        if any(c.case_number == case.case_number for c in self._cases.values()):
            raise DuplicateError(f"Case number {case.case_number} is already assigned")
        self._cases[case.id] = case.model_copy(deep=True)
        self._track(case.id)
        return case

    async def get_case(self, case_id: str) -> Optional[Case]:
        case = self._cases.get(case_id)
        return case.model_copy(deep=True) if case else None

    async def list_cases(self, owner_id: Optional[str] = None) -> List[Case]:
        cases = [
            c for c in self._cases.values()
            if owner_id is None or c.owner_id == owner_id
        ]
        return [c.model_copy(deep=True) for c in self._newest_first(cases)]

    async def save_case(self, case: Case) -> Case:
        if case.id not in self._cases:
            raise StoreError(f"Case {case.id} does not exist")
        self._cases[case.id] = case.model_copy(deep=True)
        return case

    async def add_document(self, document: Document) -> Document:
        if document.case_id not in self._cases:
            raise StoreError(f"Case {document.case_id} does not exist")
        if document.storage_ref.opaque_id in await self.referenced_blob_ids():
            raise StoreError(f"Blob {document.storage_ref.opaque_id} is already referenced")
        self._documents[document.id] = document.model_copy(deep=True)
        self._track(document.id)
        return document

    async def get_document(self, document_id: str) -> Optional[Document]:
        document = self._documents.get(document_id)
        return document.model_copy(deep=True) if document else None

    async def list_documents(self, case_id: str) -> List[Document]:
        documents = [
            d for d in self._documents.values()
            if d.case_id == case_id and d.delete_state == DeleteState.ACTIVE
        ]
        return [d.model_copy(deep=True) for d in self._newest_first(documents)]

    async def list_pending_deletes(self) -> List[Document]:
        return [
            d.model_copy(deep=True) for d in self._documents.values()
            if d.delete_state == DeleteState.PENDING_DELETE
        ]

    async def save_document(self, document: Document) -> Document:
        if document.id not in self._documents:
            raise StoreError(f"Document {document.id} does not exist")
        self._documents[document.id] = document.model_copy(deep=True)
        return document

    async def delete_document(self, document_id: str) -> bool:
        return self._documents.pop(document_id, None) is not None

    async def referenced_blob_ids(self) -> Set[str]:
        return {d.storage_ref.opaque_id for d in self._documents.values()}

    async def add_update(self, update: Update) -> Update:
        if update.case_id not in self._cases:
            raise StoreError(f"Case {update.case_id} does not exist")
        self._updates[update.id] = update.model_copy(deep=True)
        self._track(update.id)
        return update

    async def get_update(self, update_id: str) -> Optional[Update]:
        update = self._updates.get(update_id)
        return update.model_copy(deep=True) if update else None

    async def list_updates(self, case_id: str) -> List[Update]:
        updates = [u for u in self._updates.values() if u.case_id == case_id]
        return [u.model_copy(deep=True) for u in self._newest_first(updates)]

    async def delete_update(self, update_id: str) -> bool:
        return self._updates.pop(update_id, None) is not None

    def clear(self):
        """Clear all data (testing utility)."""
        self._cases.clear()
        self._documents.clear()
        self._updates.clear()
        self._sequences.clear()
        self._order.clear()
