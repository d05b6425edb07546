"""Shared fixtures: in-memory stores, wired services and requesters."""

import pytest

from case_tracker.core import StoreError, build_services
from case_tracker.infrastructure.persistence import InMemoryMetadataRepository
from case_tracker.infrastructure.storage import InMemoryBlobStore
from case_tracker.models import Requester, Role

NAMESPACE = "case-tracker"


class FlakyBlobStore(InMemoryBlobStore):
    """In-memory blob store whose operations can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_put = False
        self.fail_resolve = False
        self.fail_delete = False

    async def put(self, file_stream, namespace, extension):
        if self.fail_put:
            raise StoreError("blob put failed")
        return await super().put(file_stream, namespace, extension)

    async def resolve_secure_url(self, opaque_id):
        if self.fail_resolve:
            raise StoreError("secure url lookup failed")
        return await super().resolve_secure_url(opaque_id)

    async def delete(self, opaque_id):
        if self.fail_delete:
            raise StoreError("blob delete failed")
        await super().delete(opaque_id)


class FlakyMetadataRepository(InMemoryMetadataRepository):
    """In-memory repository whose writes can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_add_update = False
        self.fail_add_document = False
        self.fail_delete_document = False
        self.fail_save_document = False

    async def add_update(self, update):
        if self.fail_add_update:
            raise StoreError("update insert failed")
        return await super().add_update(update)

    async def add_document(self, document):
        if self.fail_add_document:
            raise StoreError("document insert failed")
        return await super().add_document(document)

    async def delete_document(self, document_id):
        if self.fail_delete_document:
            raise StoreError("document delete failed")
        return await super().delete_document(document_id)

    async def save_document(self, document):
        if self.fail_save_document:
            raise StoreError("document save failed")
        return await super().save_document(document)


@pytest.fixture
def repository():
    return FlakyMetadataRepository()


@pytest.fixture
def blob_store():
    return FlakyBlobStore()


@pytest.fixture
def services(repository, blob_store):
    return build_services(repository, blob_store, namespace=NAMESPACE)


@pytest.fixture
def owner():
    return Requester(id="user_owner", role=Role.USER)


@pytest.fixture
def stranger():
    return Requester(id="user_stranger", role=Role.USER)


@pytest.fixture
def admin():
    return Requester(id="user_admin", role=Role.ADMIN)
