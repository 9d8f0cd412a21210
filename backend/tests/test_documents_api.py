"""
Tests for the document box and the project export.
"""

import io
import zipfile

import pytest
import pytest_asyncio
from sqlalchemy.exc import SQLAlchemyError

from sandrocket.config import Settings
from sandrocket.services import documents as document_service
from sandrocket.services.documents import content_disposition


@pytest_asyncio.fixture
async def project(client, register_user) -> dict:
    await register_user(client, "ada@example.com", "Ada")
    response = await client.post("/api/projects", json={"name": "Rocket"})
    return response.json()


async def upload(ac, project_id, name="notes.txt", content=b"hello world", mime="text/plain"):
    return await ac.post(
        f"/api/projects/{project_id}/documents",
        files={"file": (name, content, mime)},
    )


class TestContentDisposition:
    def test_ascii_name(self):
        assert content_disposition("inline", "notes.txt") == (
            "inline; filename=\"notes.txt\"; filename*=UTF-8''notes.txt"
        )

    def test_non_ascii_name_gets_fallback(self):
        header = content_disposition("attachment", "résumé final.pdf")

        assert header.startswith('attachment; filename="r_sum_ final.pdf"')
        assert header.endswith("filename*=UTF-8''r%C3%A9sum%C3%A9%20final.pdf")


class TestUpload:
    """POST /api/projects/{id}/documents"""

    @pytest.mark.asyncio
    async def test_upload_stores_file(self, client, project, isolated_settings):
        response = await upload(client, project["id"])

        assert response.status_code == 201
        document = response.json()
        assert document["original_filename"] == "notes.txt"
        assert document["size_bytes"] == 11
        assert document["uploader_display_name"] == "Ada"

        stored = list((isolated_settings.upload_dir / str(project["id"])).iterdir())
        assert len(stored) == 1
        assert stored[0].suffix == ".txt"
        assert stored[0].read_bytes() == b"hello world"

    @pytest.mark.asyncio
    async def test_file_too_large(self, client, project, isolated_settings, monkeypatch):
        monkeypatch.setattr(isolated_settings, "max_file_size_mb", 100 / (1024 * 1024))

        response = await upload(client, project["id"], content=b"x" * 101)

        assert response.status_code == 413
        assert response.json()["error"] == "file_too_large"

    def test_limit_overrides_do_not_leak(self, isolated_settings):
        """Runs after test_file_too_large lowered the per-file limit."""
        assert isolated_settings.max_file_size_mb == Settings.model_fields["max_file_size_mb"].default
        assert isolated_settings.max_project_storage_mb == Settings.model_fields["max_project_storage_mb"].default

    @pytest.mark.asyncio
    async def test_project_quota(self, client, project, isolated_settings, monkeypatch):
        monkeypatch.setattr(isolated_settings, "max_project_storage_mb", 200 / (1024 * 1024))
        assert (await upload(client, project["id"], content=b"x" * 150)).status_code == 201

        response = await upload(client, project["id"], content=b"y" * 60)

        assert response.status_code == 413
        assert response.json()["error"] == "storage_quota_exceeded"

    @pytest.mark.asyncio
    async def test_non_member_cannot_upload(self, client, other_client, project, register_user):
        await register_user(other_client, "bob@example.com", "Bob")

        response = await upload(other_client, project["id"])

        assert response.status_code == 403


class TestListAndServe:
    """Listing, viewing and downloading record activity."""

    @pytest.mark.asyncio
    async def test_list_with_usage(self, client, project, isolated_settings):
        await upload(client, project["id"], "a.txt", b"12345")
        await upload(client, project["id"], "b.txt", b"678")

        body = (await client.get(f"/api/projects/{project['id']}/documents")).json()

        assert {d["original_filename"] for d in body["documents"]} == {"a.txt", "b.txt"}
        assert body["total_size_bytes"] == 8
        assert body["max_size_bytes"] == isolated_settings.max_project_storage_bytes
        assert [a["action"] for a in body["activity"]] == ["uploaded", "uploaded"]
        assert body["activity"][0]["user_display_name"] == "Ada"

    @pytest.mark.asyncio
    async def test_view_and_download(self, client, project):
        document = (await upload(client, project["id"])).json()

        viewed = await client.get(f"/api/documents/{document['id']}/view")
        downloaded = await client.get(f"/api/documents/{document['id']}/download")

        assert viewed.status_code == 200
        assert viewed.content == b"hello world"
        assert viewed.headers["content-disposition"].startswith("inline;")
        assert downloaded.headers["content-disposition"].startswith("attachment;")
        assert "filename*=UTF-8''notes.txt" in downloaded.headers["content-disposition"]

        activity = (await client.get(f"/api/projects/{project['id']}/documents")).json()["activity"]
        assert [a["action"] for a in activity] == ["downloaded", "viewed", "uploaded"]

    @pytest.mark.asyncio
    async def test_activity_is_capped(self, client, project):
        document = (await upload(client, project["id"])).json()
        for _ in range(25):
            await client.get(f"/api/documents/{document['id']}/view")

        activity = (await client.get(f"/api/projects/{project['id']}/documents")).json()["activity"]

        assert len(activity) == 20

    @pytest.mark.asyncio
    async def test_unknown_document(self, client, project):
        assert (await client.get("/api/documents/9999/view")).status_code == 404


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_removes_file_and_logs(self, client, project, isolated_settings):
        document = (await upload(client, project["id"])).json()

        response = await client.delete(f"/api/documents/{document['id']}")

        assert response.status_code == 204
        assert list((isolated_settings.upload_dir / str(project["id"])).iterdir()) == []

        body = (await client.get(f"/api/projects/{project['id']}/documents")).json()
        assert body["documents"] == []
        assert body["total_size_bytes"] == 0
        assert body["activity"][0]["action"] == "deleted"
        assert body["activity"][0]["filename"] == "notes.txt"

    @pytest.mark.asyncio
    async def test_project_delete_removes_upload_dir(self, client, project, isolated_settings):
        await upload(client, project["id"])

        await client.delete(f"/api/projects/{project['id']}")

        assert not (isolated_settings.upload_dir / str(project["id"])).exists()


class TestExport:
    """GET /api/projects/{id}/export"""

    @pytest.mark.asyncio
    async def test_zip_contains_summary_and_documents(self, client, project):
        epic = (await client.post(f"/api/projects/{project['id']}/epics", json={"name": "Launch"})).json()
        await client.post(f"/api/epics/{epic['id']}/tasks", json={"description": "Fuel up"})
        task = (await client.post(f"/api/epics/{epic['id']}/tasks", json={"description": "Count down"})).json()
        await client.patch(f"/api/tasks/{task['id']}", json={"status": "done"})
        await upload(client, project["id"], "plan.txt", b"the plan")

        response = await client.get(f"/api/projects/{project['id']}/export")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert "Rocket-backup.zip" in response.headers["content-disposition"]

        with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
            names = set(archive.namelist())
            assert names == {"Rocket-backup/project-summary.txt", "Rocket-backup/documents/plan.txt"}
            summary = archive.read("Rocket-backup/project-summary.txt").decode("utf-8")
            assert archive.read("Rocket-backup/documents/plan.txt") == b"the plan"

        assert "Launch" in summary
        assert "Backlog (1)" in summary
        assert "Done (1)" in summary
        assert "Fuel up" in summary
        assert "By Ada" in summary
        assert "plan.txt" in summary

    @pytest.mark.asyncio
    async def test_non_member_cannot_export(self, client, other_client, project, register_user):
        await register_user(other_client, "bob@example.com", "Bob")

        assert (await other_client.get(f"/api/projects/{project['id']}/export")).status_code == 403


class TestStorageConsistency:
    """Files on disk and document rows never drift apart."""

    @pytest.mark.asyncio
    async def test_failed_upload_leaves_no_file(self, test_session, session_maker, board, isolated_settings, monkeypatch):
        project_id, user_id = board.project.id, board.user.id

        async def failing_log(*args, **kwargs):
            raise SQLAlchemyError("activity log unavailable")

        monkeypatch.setattr(document_service, "log_activity", failing_log)

        with pytest.raises(SQLAlchemyError):
            await document_service.upload_document(
                test_session, project_id, user_id, "notes.txt", "text/plain", b"hello world"
            )

        assert list((isolated_settings.upload_dir / str(project_id)).iterdir()) == []
        async with session_maker() as fresh:
            assert await document_service.list_documents(fresh, project_id) == []

    @pytest.mark.asyncio
    async def test_file_survives_failed_delete(self, test_session, board, monkeypatch):
        document = await document_service.upload_document(
            test_session, board.project.id, board.user.id, "notes.txt", "text/plain", b"hello world"
        )
        path = document_service.document_path(document)

        async def failing_commit():
            raise SQLAlchemyError("database is locked")

        monkeypatch.setattr(test_session, "commit", failing_commit)

        with pytest.raises(SQLAlchemyError):
            await document_service.delete_document(test_session, document, board.user.id)

        assert path.read_bytes() == b"hello world"
