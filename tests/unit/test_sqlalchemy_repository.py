"""Tests for the SQLAlchemy repository against a throwaway SQLite file."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import Text
from sqlalchemy.exc import IntegrityError

from case_tracker.core import DuplicateError, StoreError, build_services
from case_tracker.infrastructure.database import CaseDB, DatabaseClient, DocumentDB
from case_tracker.infrastructure.persistence import SQLAlchemyMetadataRepository
from case_tracker.infrastructure.storage import InMemoryBlobStore
from case_tracker.models import (
    Case,
    CaseStatus,
    CourtInfo,
    DeleteState,
    Document,
    Requester,
    StorageRef,
    Update,
    UpdateType,
    utcnow,
)


@pytest_asyncio.fixture
async def db(tmp_path):
    client = DatabaseClient(f"sqlite+aiosqlite:///{tmp_path / 'cases.db'}")
    await client.create_tables()
    yield client
    await client.close()


@pytest_asyncio.fixture
async def session(db):
    async with db.async_session_maker() as session:
        yield session


@pytest.fixture
def sql_repo(session):
    return SQLAlchemyMetadataRepository(session)


@pytest.fixture
def sql_services(sql_repo):
    return build_services(sql_repo, InMemoryBlobStore(), namespace="case-tracker")


def _case(number: str, owner_id: str = "user_owner", **kwargs) -> Case:
    return Case(case_number=number, owner_id=owner_id, title="Title", description="Description", **kwargs)


@pytest.mark.unit
class TestCaseSequences:
    @pytest.mark.asyncio
    async def test_counter_starts_at_one_per_year(self, sql_repo):
        async with sql_repo.transaction():
            assert await sql_repo.next_case_sequence(2026) == 1
            assert await sql_repo.next_case_sequence(2026) == 2
            assert await sql_repo.next_case_sequence(2027) == 1

    @pytest.mark.asyncio
    async def test_counter_survives_new_sessions(self, db):
        for expected in (1, 2, 3):
            async with db.async_session_maker() as session:
                repo = SQLAlchemyMetadataRepository(session)
                async with repo.transaction():
                    assert await repo.next_case_sequence(2026) == expected

    @pytest.mark.asyncio
    async def test_sequential_cases(self, sql_services):
        year = utcnow().year
        first = await sql_services.cases.create_case("One", "First", None, "user_owner")
        second = await sql_services.cases.create_case("Two", "Second", None, "user_owner")
        assert first.case_number == f"CASE-{year}-00001"
        assert second.case_number == f"CASE-{year}-00002"

    @pytest.mark.asyncio
    async def test_concurrent_creations_on_separate_sessions(self, db):
        async def file_case(i):
            async with db.async_session_maker() as session:
                services = build_services(
                    SQLAlchemyMetadataRepository(session), InMemoryBlobStore(), namespace="case-tracker"
                )
                return await services.cases.create_case(f"Case {i}", "Concurrent filing", None, "user_owner")

        cases = await asyncio.gather(*(file_case(i) for i in range(8)))

        year = utcnow().year
        assert sorted(c.case_number for c in cases) == [f"CASE-{year}-{n:05d}" for n in range(1, 9)]

    @pytest.mark.asyncio
    async def test_duplicate_case_number(self, sql_repo):
        async with sql_repo.transaction():
            await sql_repo.add_case(_case("CASE-2026-00001"))

        with pytest.raises(DuplicateError):
            async with sql_repo.transaction():
                await sql_repo.add_case(_case("CASE-2026-00001"))

        assert len(await sql_repo.list_cases()) == 1


@pytest.mark.unit
class TestTransactions:
    @pytest.mark.asyncio
    async def test_failed_update_rolls_back_case_and_counter(self, db, sql_repo, sql_services, monkeypatch):
        async def failing_add_update(update):
            raise StoreError("update insert failed")

        monkeypatch.setattr(sql_repo, "add_update", failing_add_update)
        with pytest.raises(StoreError):
            await sql_services.cases.create_case("Title", "Description", None, "user_owner")
        monkeypatch.undo()

        async with db.async_session_maker() as session:
            repo = SQLAlchemyMetadataRepository(session)
            assert await repo.list_cases() == []
            async with repo.transaction():
                assert await repo.next_case_sequence(utcnow().year) == 1

    @pytest.mark.asyncio
    async def test_committed_work_visible_to_other_sessions(self, db, sql_services):
        case = await sql_services.cases.create_case("Title", "Description", None, "user_owner")

        async with db.async_session_maker() as session:
            repo = SQLAlchemyMetadataRepository(session)
            stored = await repo.get_case(case.id)
            updates = await repo.list_updates(case.id)

        assert stored.case_number == case.case_number
        assert stored.created_at.tzinfo is not None
        assert [u.message for u in updates] == ["Case filing initiated"]

    @pytest.mark.asyncio
    async def test_update_requires_existing_case(self, sql_repo):
        with pytest.raises(StoreError) as exc_info:
            async with sql_repo.transaction():
                await sql_repo.add_update(
                    Update(case_id="case_missing", message="Orphan", created_by="user_owner")
                )

        assert exc_info.value.message == "Metadata store failure"
        assert isinstance(exc_info.value.__cause__, IntegrityError)


@pytest.mark.unit
class TestRowMapping:
    @pytest.mark.asyncio
    async def test_case_round_trip(self, sql_repo):
        case = _case(
            "CASE-2026-00001",
            court_info=CourtInfo(
                court_name="District Court",
                judge="J. Doe",
                hearing_date=datetime(2026, 11, 2, 9, 30, tzinfo=timezone.utc),
            ),
        )
        async with sql_repo.transaction():
            await sql_repo.add_case(case)
            case.status = CaseStatus.IN_PROGRESS
            await sql_repo.save_case(case)

        stored = await sql_repo.get_case(case.id)
        assert stored.status == CaseStatus.IN_PROGRESS
        assert stored.court_info.court_name == "District Court"
        assert stored.court_info.hearing_date == datetime(2026, 11, 2, 9, 30, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_list_cases_newest_first_and_by_owner(self, sql_repo):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        older = _case("CASE-2026-00001", created_at=base)
        newer = _case("CASE-2026-00002", created_at=base + timedelta(minutes=1))
        other = _case("CASE-2026-00003", owner_id="user_other", created_at=base + timedelta(minutes=2))
        async with sql_repo.transaction():
            for case in (older, newer, other):
                await sql_repo.add_case(case)

        assert [c.id for c in await sql_repo.list_cases()] == [other.id, newer.id, older.id]
        assert [c.id for c in await sql_repo.list_cases(owner_id="user_owner")] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_documents_and_delete_state(self, sql_repo):
        case = _case("CASE-2026-00001")
        document = Document(
            case_id=case.id,
            title="Deed",
            document_type="contract",
            storage_ref=StorageRef(remote_url="memory://blobs/case-tracker/a.pdf", opaque_id="case-tracker/a.pdf"),
            uploaded_by="user_owner",
        )
        async with sql_repo.transaction():
            await sql_repo.add_case(case)
            await sql_repo.add_document(document)

        assert await sql_repo.referenced_blob_ids() == {"case-tracker/a.pdf"}
        assert [d.id for d in await sql_repo.list_documents(case.id)] == [document.id]

        document.delete_state = DeleteState.PENDING_DELETE
        async with sql_repo.transaction():
            await sql_repo.save_document(document)

        assert await sql_repo.list_documents(case.id) == []
        assert [d.id for d in await sql_repo.list_pending_deletes()] == [document.id]

        async with sql_repo.transaction():
            assert await sql_repo.delete_document(document.id) is True
        assert await sql_repo.get_document(document.id) is None
        assert await sql_repo.delete_document(document.id) is False

    @pytest.mark.asyncio
    async def test_updates_newest_first_and_delete(self, sql_repo):
        case = _case("CASE-2026-00001")
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        first = Update(case_id=case.id, message="First", created_by="u", created_at=base)
        second = Update(
            case_id=case.id,
            message="Second",
            update_type=UpdateType.COURT,
            created_by="u",
            created_at=base + timedelta(seconds=1),
        )
        async with sql_repo.transaction():
            await sql_repo.add_case(case)
            await sql_repo.add_update(first)
            await sql_repo.add_update(second)

        updates = await sql_repo.list_updates(case.id)
        assert [u.message for u in updates] == ["Second", "First"]
        assert updates[0].update_type == UpdateType.COURT

        async with sql_repo.transaction():
            assert await sql_repo.delete_update(first.id) is True
        assert await sql_repo.get_update(first.id) is None
        assert [u.id for u in await sql_repo.list_updates(case.id)] == [second.id]


@pytest.mark.unit
class TestFreeTextColumns:
    def test_titles_and_types_are_unbounded(self):
        assert isinstance(CaseDB.__table__.c.title.type, Text)
        assert isinstance(DocumentDB.__table__.c.title.type, Text)
        assert isinstance(DocumentDB.__table__.c.document_type.type, Text)
        assert isinstance(DocumentDB.__table__.c.remote_url.type, Text)

    @pytest.mark.asyncio
    async def test_long_title_round_trip(self, sql_services, sql_repo):
        title = "Appeal " * 100
        case = await sql_services.cases.create_case(title, "Description", None, "user_owner")
        assert (await sql_repo.get_case(case.id)).title == title.strip()


@pytest.mark.unit
class TestDocumentFlowOnSql:
    @pytest.mark.asyncio
    async def test_attach_and_remove(self, sql_services, sql_repo):
        case = await sql_services.cases.create_case("Title", "Description", None, "user_owner")
        owner = Requester(id="user_owner")
        document = await sql_services.documents.attach(case.id, "Deed", "contract", b"data", "pdf", owner)
        await sql_services.documents.remove(document.id, owner)

        assert await sql_repo.get_document(document.id) is None
        messages = [u.message for u in await sql_repo.list_updates(case.id)]
        assert "Document deleted: Deed" in messages
        assert "New document uploaded: Deed" in messages
