"""Tests for API endpoints."""

import datetime
import os

from lecture_hub import accounting, config, models


def upload(test_client, headers, uploader_id, name="a.pdf", data=b"%PDF-", content_type="application/pdf", **form):
    fields = {"title": "Intro", "subject": "photogrammetry", "uploaded_by": uploader_id}
    fields.update(form)
    return test_client.post(
        "/api/lectures",
        data=fields,
        files={"file": (name, data, content_type)},
        headers=headers,
    )


class TestLectureEndpoints:
    """Test lecture API endpoints."""

    def test_list_lectures_empty(self, test_client):
        response = test_client.get("/api/lectures")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 0
        assert data["items"] == []

    def test_list_lectures_with_pagination(self, test_client, admin_user, make_lecture):
        for _ in range(35):
            make_lecture(admin_user)

        response = test_client.get("/api/lectures?offset=0&limit=10")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 35
        assert len(data["items"]) == 10
        assert data["skip"] == 0
        assert data["limit"] == 10

        response = test_client.get("/api/lectures?offset=30&limit=10")
        assert len(response.json()["items"]) == 5

    def test_list_lectures_newest_first(self, test_client, admin_user, make_lecture):
        older = make_lecture(admin_user, minutes=1)
        newer = make_lecture(admin_user, minutes=2)

        items = test_client.get("/api/lectures").json()["items"]
        assert [item["id"] for item in items] == [newer.id, older.id]
        assert "file_path" not in items[0]

    def test_list_lectures_invalid_limit(self, test_client):
        assert test_client.get("/api/lectures?limit=0").status_code == 422
        assert test_client.get("/api/lectures?limit=5000").status_code == 422

    def test_get_lecture(self, test_client, admin_user, make_lecture):
        lecture = make_lecture(admin_user, title="Stereo pairs")

        response = test_client.get(f"/api/lectures/{lecture.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Stereo pairs"
        assert data["download_count"] == 0

    def test_get_lecture_not_found(self, test_client):
        response = test_client.get("/api/lectures/unknown")
        assert response.status_code == 404

    def test_create_lecture(self, test_client, test_db, admin_headers, admin_user, upload_dir):
        response = upload(test_client, admin_headers, admin_user.id, description="Basics")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Intro"
        assert data["description"] == "Basics"
        assert data["file_type"] == "pdf"
        assert data["file_size"] == 5
        assert data["download_count"] == 0
        assert os.listdir(upload_dir) == [data["file_name"]]

    def test_create_lecture_requires_api_key(self, test_client, admin_user, upload_dir):
        response = upload(test_client, {}, admin_user.id)
        assert response.status_code == 401

        response = upload(test_client, {"X-API-Key": "wrong"}, admin_user.id)
        assert response.status_code == 401
        assert os.listdir(upload_dir) == []

    def test_create_lecture_unsupported_type(self, test_client, admin_headers, admin_user, upload_dir):
        response = upload(test_client, admin_headers, admin_user.id, name="notes.txt", data=b"hi", content_type="text/plain")

        assert response.status_code == 400
        assert "Unsupported" in response.json()["detail"]
        assert os.listdir(upload_dir) == []

    def test_create_lecture_disallowed_mime_with_pdf_name(self, test_client, admin_headers, admin_user, upload_dir):
        response = upload(test_client, admin_headers, admin_user.id, name="evil.pdf", data=b"<html>", content_type="text/html")

        assert response.status_code == 400
        assert os.listdir(upload_dir) == []

    def test_create_lecture_too_large(self, test_client, admin_headers, admin_user, upload_dir, monkeypatch):
        monkeypatch.setattr(config, "MAX_FILE_SIZE", 4)

        response = upload(test_client, admin_headers, admin_user.id)

        assert response.status_code == 400
        assert "too large" in response.json()["detail"]

    def test_create_lecture_missing_title(self, test_client, admin_headers, admin_user, upload_dir):
        response = upload(test_client, admin_headers, admin_user.id, title="")

        assert response.status_code == 400

    def test_create_lecture_unknown_uploader(self, test_client, admin_headers, upload_dir):
        response = upload(test_client, admin_headers, "no-such-user")

        assert response.status_code == 500
        assert os.listdir(upload_dir) == []

    def test_delete_lecture(self, test_client, test_db, admin_headers, admin_user, upload_dir):
        created = upload(test_client, admin_headers, admin_user.id).json()

        response = test_client.delete(f"/api/lectures/{created['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "deleted"
        assert os.listdir(upload_dir) == []

        assert test_client.get(f"/api/lectures/{created['id']}").status_code == 404
        assert test_client.delete(f"/api/lectures/{created['id']}", headers=admin_headers).status_code == 404

    def test_delete_lecture_requires_api_key(self, test_client, admin_user, make_lecture):
        lecture = make_lecture(admin_user)

        assert test_client.delete(f"/api/lectures/{lecture.id}").status_code == 401


class TestUploads:
    """Test serving stored files."""

    def test_serve_file(self, test_client, admin_headers, admin_user, upload_dir):
        created = upload(test_client, admin_headers, admin_user.id).json()

        response = test_client.get(f"/uploads/{created['file_name']}")
        assert response.status_code == 200
        assert response.content == b"%PDF-"

    def test_serve_missing_file(self, test_client, upload_dir):
        assert test_client.get("/uploads/missing.pdf").status_code == 404


class TestStatsEndpoints:
    """Test statistics, export and admin maintenance endpoints."""

    def test_stats(self, test_client, test_db, admin_user, make_user, make_lecture):
        lecture = make_lecture(admin_user, size=64)
        student = make_user()
        accounting.record_download(test_db, student.id, lecture.id)

        response = test_client.get("/api/stats")
        assert response.status_code == 200
        assert response.json() == {
            "total_lectures": 1,
            "active_students": 1,
            "total_downloads": 1,
            "storage_used": 64,
        }

    def test_export(self, test_client, admin_headers, admin_user, make_lecture):
        make_lecture(admin_user, title="Exported")

        response = test_client.get("/api/export", headers=admin_headers)

        assert response.status_code == 200
        today = datetime.date.today().isoformat()
        assert response.headers["content-disposition"] == (
            f'attachment; filename="photogrammetry_backup_{today}.json"'
        )
        data = response.json()
        assert data["statistics"]["total_lectures"] == 1
        assert data["lectures"][0]["title"] == "Exported"

    def test_export_requires_api_key(self, test_client):
        assert test_client.get("/api/export").status_code == 401

    def test_broadcast(self, test_client, admin_headers):
        response = test_client.post("/api/broadcast", json={"message": "Exam on Friday"}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "accepted"

    def test_broadcast_empty_message(self, test_client, admin_headers):
        response = test_client.post("/api/broadcast", json={"message": "   "}, headers=admin_headers)
        assert response.status_code == 400

        response = test_client.post("/api/broadcast", json={}, headers=admin_headers)
        assert response.status_code == 422

    def test_reconcile(self, test_client, test_db, admin_headers, admin_user, make_lecture):
        make_lecture(admin_user)
        orphan_id = make_lecture(admin_user, with_file=False).id

        response = test_client.post("/api/reconcile", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"removed": 1, "remaining": 1}
        assert test_db.query(models.Lecture).filter(models.Lecture.id == orphan_id).count() == 0

        response = test_client.post("/api/reconcile", headers=admin_headers)
        assert response.json()["removed"] == 0

    def test_user_downloads(self, test_client, test_db, admin_headers, admin_user, make_user, make_lecture):
        lecture = make_lecture(admin_user)
        student = make_user()
        accounting.record_download(test_db, student.id, lecture.id)

        response = test_client.get(f"/api/users/{student.id}/downloads", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["lecture_id"] == lecture.id

        response = test_client.get("/api/users/unknown/downloads", headers=admin_headers)
        assert response.status_code == 404


class TestServiceEndpoints:
    """Test health, diagnostics and the admin page."""

    def test_health_check(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["telegram_connected"] is False

    def test_diagnostics_status(self, test_client, admin_headers, admin_user, make_lecture):
        make_lecture(admin_user, size=3)
        orphan = make_lecture(admin_user, with_file=False)

        response = test_client.get("/api/diagnostics/status", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["telegram_bot"]["configured"] is False
        assert data["database"]["total_lectures"] == 2
        assert data["database"]["orphaned_ids"] == [orphan.id]
        assert data["file_store"]["file_count"] == 1
        assert data["file_store"]["bytes_on_disk"] == 3

    def test_admin_page(self, test_client):
        response = test_client.get("/admin")
        assert response.status_code == 200
        assert "Lecture admin" in response.text
