"""HTTP tests for the case tracker API."""

from pathlib import Path
from unittest.mock import MagicMock
from urllib.parse import urlparse

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from case_tracker.api.dependencies import get_blob_store, get_repository
from case_tracker.config import settings
from case_tracker.infrastructure.storage import LocalBlobStore
from case_tracker.infrastructure.storage.s3_blob_store import S3BlobStore
from case_tracker.main import app

OWNER = {"X-User-ID": "user_owner", "X-User-Role": "user"}
STRANGER = {"X-User-ID": "user_stranger"}
ADMIN = {"X-User-ID": "user_admin", "X-User-Role": "admin"}


@pytest.fixture
def client(repository, blob_store):
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def case(client):
    response = client.post(
        "/api/v1/cases",
        json={
            "title": "Contract Dispute",
            "description": "Breach of contract claim",
            "courtInfo": {"courtName": "District Court"},
        },
        headers=OWNER,
    )
    assert response.status_code == 201
    return response.json()["data"]


def _upload(client, case_id, headers=OWNER, title="Lease Agreement"):
    return client.post(
        f"/api/v1/cases/{case_id}/documents",
        data={"title": title, "documentType": "contract"},
        files={"file": ("lease.PDF", b"%PDF-1.7", "application/pdf")},
        headers=headers,
    )


@pytest.mark.unit
class TestHealth:
    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "case-tracker-service"
        assert "blobStore" in body


@pytest.mark.unit
class TestCaseEndpoints:
    def test_create_case_envelope(self, case):
        assert case["caseNumber"].startswith("CASE-")
        assert case["caseNumber"].endswith("-00001")
        assert case["status"] == "pending"
        assert case["ownerId"] == "user_owner"
        assert case["courtInfo"]["courtName"] == "District Court"

    def test_missing_identity(self, client):
        response = client.get("/api/v1/cases")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_unknown_role(self, client):
        response = client.get("/api/v1/cases", headers={"X-User-ID": "u1", "X-User-Role": "root"})
        assert response.status_code == 401

    def test_missing_fields(self, client):
        response = client.post("/api/v1/cases", json={"title": "Only a title"}, headers=OWNER)
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Title and description are required"}

    def test_malformed_body(self, client):
        response = client.post("/api/v1/cases", json=[1, 2], headers=OWNER)
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation Error"
        assert body["errors"]

    def test_list_scoped_by_role(self, client, case):
        assert client.get("/api/v1/cases", headers=STRANGER).json() == {
            "success": True,
            "count": 0,
            "data": [],
        }
        assert client.get("/api/v1/cases", headers=ADMIN).json()["count"] == 1

    def test_stranger_gets_403(self, client, case):
        response = client.get(f"/api/v1/cases/{case['id']}", headers=STRANGER)
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Not authorized to view this case"}

    def test_unknown_case_gets_404(self, client):
        response = client.get("/api/v1/cases/case_missing", headers=OWNER)
        assert response.status_code == 404
        assert response.json()["message"] == "Case not found"

    def test_status_update(self, client, case):
        response = client.put(
            f"/api/v1/cases/{case['id']}/status", json={"status": "in-progress"}, headers=ADMIN
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "in-progress"

        updates = client.get(f"/api/v1/cases/{case['id']}/updates", headers=OWNER).json()
        assert updates["data"][0]["message"] == "Case status updated to in-progress"
        assert updates["data"][0]["updateType"] == "status"

    def test_invalid_status(self, client, case):
        response = client.put(f"/api/v1/cases/{case['id']}/status", json={"status": "archived"}, headers=OWNER)
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid status")

    def test_update_details(self, client, case):
        response = client.put(
            f"/api/v1/cases/{case['id']}",
            json={"title": "Renamed", "description": ""},
            headers=OWNER,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Renamed"
        assert data["description"] == "Breach of contract claim"


@pytest.mark.unit
class TestDocumentEndpoints:
    def test_upload_via_case_route(self, client, blob_store, case):
        response = _upload(client, case["id"])

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "Lease Agreement"
        assert data["documentType"] == "contract"
        assert data["storageRef"]["opaqueId"].endswith(".pdf")
        assert blob_store.blobs[data["storageRef"]["opaqueId"]] == b"%PDF-1.7"

    def test_upload_via_documents_route(self, client, case):
        response = client.post(
            "/api/v1/documents",
            data={"caseId": case["id"], "title": "Deed", "documentType": "deed"},
            files={"file": ("deed.pdf", b"data", "application/pdf")},
            headers=OWNER,
        )
        assert response.status_code == 201
        listing = client.get(f"/api/v1/documents/case/{case['id']}", headers=OWNER).json()
        assert listing["count"] == 1

    def test_upload_without_file(self, client, case):
        response = client.post(
            f"/api/v1/cases/{case['id']}/documents",
            data={"title": "Deed", "documentType": "deed"},
            headers=OWNER,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "No file uploaded"

    def test_stranger_cannot_upload(self, client, blob_store, case):
        response = _upload(client, case["id"], headers=STRANGER)
        assert response.status_code == 403
        assert blob_store.blobs == {}

    def test_edit_document(self, client, case):
        document = _upload(client, case["id"]).json()["data"]
        response = client.put(
            f"/api/v1/documents/{document['id']}", json={"title": "Signed Lease"}, headers=OWNER
        )
        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Signed Lease"

    def test_admin_deletes_document(self, client, blob_store, case):
        document = _upload(client, case["id"]).json()["data"]

        response = client.delete(f"/api/v1/documents/{document['id']}", headers=ADMIN)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Document removed successfully"}
        assert blob_store.blobs == {}
        updates = client.get(f"/api/v1/updates/case/{case['id']}", headers=OWNER).json()["data"]
        assert updates[0]["message"] == "Document deleted: Lease Agreement"
        assert client.get(f"/api/v1/documents/{document['id']}", headers=OWNER).status_code == 404

    def test_partial_delete_reports_state(self, client, blob_store, case):
        document = _upload(client, case["id"]).json()["data"]
        blob_store.fail_delete = True

        response = client.delete(f"/api/v1/documents/{document['id']}", headers=OWNER)

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["partialState"] == "pending_delete"

    def test_blob_store_failure_is_502(self, client, blob_store, case):
        blob_store.fail_put = True
        response = _upload(client, case["id"])
        assert response.status_code == 502
        assert response.json()["success"] is False


@pytest.mark.unit
class TestUpdateEndpoints:
    def test_manual_update_lifecycle(self, client, case):
        created = client.post(
            "/api/v1/updates",
            json={"caseId": case["id"], "message": "Hearing moved", "updateType": "court"},
            headers=OWNER,
        )
        assert created.status_code == 201
        update = created.json()["data"]
        assert update["isAutomatic"] is False
        assert update["updateType"] == "court"

        deleted = client.delete(f"/api/v1/updates/{update['id']}", headers=ADMIN)
        assert deleted.json() == {"success": True, "message": "Update deleted successfully"}

    def test_short_message(self, client, case):
        response = client.post(
            f"/api/v1/cases/{case['id']}/updates", json={"message": "ok"}, headers=OWNER
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Message must be at least 3 characters long"


@pytest.mark.unit
class TestMaintenanceEndpoints:
    def test_admin_reconcile(self, client):
        response = client.post("/api/v1/maintenance/reconcile", headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["data"] == {"pendingDeletesCompleted": 0, "orphanBlobsRemoved": 0}

    def test_user_reconcile_denied(self, client):
        response = client.post("/api/v1/maintenance/reconcile", headers=OWNER)
        assert response.status_code == 403


@pytest.mark.unit
class TestStoreFailureMessages:
    @pytest.fixture
    def denied_s3(self):
        s3 = MagicMock()
        s3.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "secret-bucket policy arn:aws:iam::123:role/x"}},
            "PutObject",
        )
        app.dependency_overrides[get_blob_store] = lambda: S3BlobStore(bucket="docs", client=s3)

    def test_driver_text_hidden_in_production(self, client, case, denied_s3, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")

        response = _upload(client, case["id"])

        assert response.status_code == 502
        assert response.json() == {"success": False, "message": "Document storage failed"}

    def test_driver_text_only_in_error_field_in_development(self, client, case, denied_s3, monkeypatch):
        monkeypatch.setattr(settings, "environment", "development")

        body = _upload(client, case["id"]).json()

        assert body["message"] == "Document storage failed"
        assert "AccessDenied" in body["error"]


@pytest.mark.unit
class TestDocumentWireShape:
    def test_delete_state_not_serialized(self, client, case):
        data = _upload(client, case["id"]).json()["data"]
        assert "deleteState" not in data
        assert set(data) == {
            "id",
            "caseId",
            "title",
            "documentType",
            "storageRef",
            "uploadedBy",
            "createdAt",
            "updatedAt",
        }


@pytest.mark.unit
@pytest.mark.skipif(settings.blob_store_type.lower() != "local", reason="local blob store not mounted")
class TestLocalBlobServing:
    @pytest.fixture
    def local_store(self):
        store = LocalBlobStore(base_path=settings.local_blob_path, base_url=settings.local_blob_base_url)
        app.dependency_overrides[get_blob_store] = lambda: store
        return store

    def test_remote_url_is_served(self, client, case, local_store):
        data = _upload(client, case["id"]).json()["data"]
        opaque_id = data["storageRef"]["opaqueId"]
        try:
            response = client.get(urlparse(data["storageRef"]["remoteUrl"]).path)

            assert response.status_code == 200
            assert response.content == b"%PDF-1.7"
        finally:
            (Path(settings.local_blob_path).resolve() / opaque_id).unlink(missing_ok=True)
