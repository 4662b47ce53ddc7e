# tests/test_service.py
"""Tests for CatalogService."""

import threading
from datetime import datetime, timezone

import pytest

from baluflix.errors import NotFoundError, ValidationError
from baluflix.ingestion.youtube import parse_video_id
from baluflix.models import UploadedFile, VideoKind, VideoRecord
from baluflix.service import CatalogService
from baluflix.storage.sqlite import SQLiteVideoRepository


@pytest.fixture
def uploaded():
    return UploadedFile(
        filename="1700000000000-clip.mp4",
        original_name="clip.mp4",
        size=1000,
        content_type="video/mp4",
    )


class TestCreateFromReference:
    @pytest.mark.parametrize(
        "url",
        [
            "https://youtu.be/abc123",
            "https://www.youtube.com/watch?v=abc123",
            "https://example.com/x/y/abc123",
            "abc123",
        ],
    )
    def test_video_id_is_extracted(self, service, url):
        video = service.create_from_reference("Title", url)
        assert video.video_id == parse_video_id(url)

    def test_defaults(self, service):
        video = service.create_from_reference("Title", "https://youtu.be/abc123")
        assert video.kind is VideoKind.VIDEO
        assert video.thumbnail == "https://img.youtube.com/vi/abc123/hqdefault.jpg"
        assert video.published is False
        assert video.url == "https://youtu.be/abc123"
        assert video.created_at.tzinfo is not None

    def test_explicit_kind_and_thumbnail(self, service):
        video = service.create_from_reference(
            "Song", "https://youtu.be/abc123", kind="Song", thumbnail="https://cdn/x.jpg"
        )
        assert video.kind is VideoKind.SONG
        assert video.thumbnail == "https://cdn/x.jpg"

    def test_no_default_thumbnail_for_other_hosts(self, service):
        video = service.create_from_reference("Clip", "https://vimeo.com/12345")
        assert video.thumbnail is None

    def test_persisted(self, service, sqlite_repo):
        video = service.create_from_reference("Title", "abc123")
        assert sqlite_repo.find_by_id(video.key) is not None

    @pytest.mark.parametrize("title,url", [("", "abc"), ("T", ""), (None, "abc"), ("T", None), ("  ", "abc")])
    def test_missing_fields(self, service, title, url):
        with pytest.raises(ValidationError):
            service.create_from_reference(title, url)

    def test_unknown_kind(self, service):
        with pytest.raises(ValidationError, match="Unknown type"):
            service.create_from_reference("T", "abc", kind="Podcast")

    def test_default_published_policy(self, sqlite_repo):
        svc = CatalogService(sqlite_repo, default_published=True)
        video = svc.create_from_reference("Title", "abc123")
        assert video.published is True
        assert [v.key for v in svc.list_published()] == [video.key]


class TestCreateFromUpload:
    def test_upload(self, service, uploaded):
        video = service.create_from_upload(uploaded, "admin", title="Holiday", description="beach")
        assert video.title == "Holiday"
        assert video.description == "beach"
        assert video.filename == uploaded.filename
        assert video.video_id == uploaded.filename
        assert video.published is False
        assert video.uploaded_by == "admin"

    def test_title_defaults_to_original_name(self, service, uploaded):
        video = service.create_from_upload(uploaded, "admin")
        assert video.title == "clip.mp4"

    def test_upload_unpublished_even_with_public_default(self, sqlite_repo, uploaded):
        svc = CatalogService(sqlite_repo, default_published=True)
        assert svc.create_from_upload(uploaded, "admin").published is False

    def test_no_file(self, service):
        with pytest.raises(ValidationError, match="No file"):
            service.create_from_upload(None, "admin")


class TestListing:
    def test_list_published_excludes_drafts(self, service):
        a = service.create_from_reference("A", "aaa")
        service.create_from_reference("B", "bbb")
        service.publish(a.key)
        published = service.list_published()
        assert [v.key for v in published] == [a.key]
        assert all(v.published for v in published)

    def test_list_all_newest_first(self, service, sqlite_repo):
        for i, month in enumerate((1, 3, 2)):
            sqlite_repo.insert(
                VideoRecord(
                    video_id=f"v{i}",
                    title=f"V{i}",
                    url=f"v{i}",
                    created_at=datetime(2025, month, 1, tzinfo=timezone.utc),
                )
            )
        assert [v.video_id for v in service.list_all()] == ["v1", "v2", "v0"]


class TestPublish:
    def test_publish(self, service):
        video = service.create_from_reference("A", "aaa")
        published = service.publish(video.key)
        assert published.published is True
        assert published.created_at == video.created_at

    def test_publish_twice_is_noop(self, service):
        video = service.create_from_reference("A", "aaa")
        service.publish(video.key)
        again = service.publish(video.key)
        assert again.published is True

    def test_publish_unknown(self, service, sqlite_repo):
        with pytest.raises(NotFoundError):
            service.publish("nonexistent")
        assert sqlite_repo.find_all() == []

    def test_get(self, service):
        video = service.create_from_reference("A", "aaa")
        assert service.get(video.key).title == "A"
        with pytest.raises(NotFoundError):
            service.get("nonexistent")

    def test_concurrent_publish_single_transition(self, tmp_path):
        repo = SQLiteVideoRepository(str(tmp_path / "catalog.db"))
        transitions = []
        original = repo.update_by_id

        def counting_update(*args, **kwargs):
            result = original(*args, **kwargs)
            if result is not None:
                transitions.append(result.key)
            return result

        repo.update_by_id = counting_update
        svc = CatalogService(repo)
        video = svc.create_from_reference("A", "aaa")

        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(svc.publish(video.key))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert transitions == [video.key]
        assert len(results) == 8
        assert all(r.published for r in results)

    def test_concurrent_publish_json_backend(self, json_repo):
        svc = CatalogService(json_repo)
        video = svc.create_from_reference("A", "aaa")
        results = []
        threads = [
            threading.Thread(target=lambda: results.append(svc.publish(video.key)))
            for _ in range(6)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert all(r.published for r in results)
        assert json_repo.find_by_id(video.key).published is True


class TestPing:
    def test_ping(self, service):
        assert service.ping() is True
