import asyncio

import pytest

from conftest import auth_headers, make_campaign, make_creator, make_staff, make_task
from core.storage_service import StoredObject, UploadTooLarge, build_object_key, read_upload
from database.models import UserRole


@pytest.fixture
def task(db, brand, creator):
    _, brand_id = brand
    return make_task(db, make_campaign(db, brand_id), creator)


@pytest.fixture
def stored_key(task, storage):
    key = f"{task.id}/20260101120000-abcd1234-clip.mp4"
    storage.objects[("task-uploads", key)] = StoredObject(b"video-bytes", "video/mp4")
    return key


class TestTaskUploadProxy:

    def test_creator_reads_file(self, client, creator, stored_key):
        resp = client.get(f"/api/storage/task-uploads/{stored_key}", headers=auth_headers(creator))

        assert resp.status_code == 200
        assert resp.content == b"video-bytes"
        assert resp.headers["content-type"] == "video/mp4"
        assert resp.headers["cache-control"] == "public, max-age=3600"

    def test_brand_member_reads_file(self, client, brand, stored_key):
        manager, _ = brand
        resp = client.get(f"/api/storage/task-uploads/{stored_key}", headers=auth_headers(manager))
        assert resp.status_code == 200

    def test_staff_reads_file(self, client, db, stored_key):
        ops = make_staff(db, UserRole.CONTENT_OPS)
        resp = client.get(f"/api/storage/task-uploads/{stored_key}", headers=auth_headers(ops))
        assert resp.status_code == 200

    def test_unrelated_creator_is_forbidden(self, client, db, stored_key):
        stranger = make_creator(db, email="stranger@example.com")
        resp = client.get(f"/api/storage/task-uploads/{stored_key}", headers=auth_headers(stranger))
        assert resp.status_code == 403

    def test_missing_object_is_404(self, client, creator, task):
        resp = client.get(f"/api/storage/task-uploads/{task.id}/nothing-here.mp4", headers=auth_headers(creator))
        assert resp.status_code == 404

    def test_unknown_task_is_404(self, client, creator):
        resp = client.get("/api/storage/task-uploads/no-such-task/clip.mp4", headers=auth_headers(creator))
        assert resp.status_code == 404

    def test_parent_segments_are_refused(self, client, creator, task):
        resp = client.get(f"/api/storage/task-uploads/{task.id}/%2E%2E/secret.mp4", headers=auth_headers(creator))
        assert resp.status_code == 400

    def test_empty_segments_are_refused(self, client, creator, task):
        resp = client.get(f"/api/storage/task-uploads/{task.id}//clip.mp4", headers=auth_headers(creator))
        assert resp.status_code == 400

    def test_requires_token(self, client, stored_key):
        assert client.get(f"/api/storage/task-uploads/{stored_key}").status_code == 401


def test_object_key_is_prefixed_and_safe():
    key = build_object_key("task-1", "my summer clip.mp4")

    prefix, name = key.split("/", 1)
    assert prefix == "task-1"
    assert name.endswith("-my_summer_clip.mp4")
    assert "/" not in name


class RecordingUpload:
    """UploadFile stand-in that remembers how much was asked for."""

    def __init__(self, data, size=None):
        self.data = data
        self.size = size
        self.requested = []

    async def read(self, size=-1):
        self.requested.append(size)
        return self.data if size < 0 else self.data[:size]


class TestReadUpload:

    def test_reads_at_most_one_byte_past_the_limit(self):
        upload = RecordingUpload(b"x" * 100)

        with pytest.raises(UploadTooLarge):
            asyncio.run(read_upload(upload, 10))

        assert upload.requested == [11]

    def test_declared_size_is_checked_before_reading(self):
        upload = RecordingUpload(b"x" * 100, size=100)

        with pytest.raises(UploadTooLarge):
            asyncio.run(read_upload(upload, 10))

        assert upload.requested == []

    def test_file_at_the_limit_is_returned(self):
        upload = RecordingUpload(b"x" * 10, size=10)
        assert asyncio.run(read_upload(upload, 10)) == b"x" * 10
