"""
Tests for the HTTP surface: status mapping, ownership and type checks before
staging, and the error body format.
"""

from pathlib import Path
from unittest.mock import Mock
from uuid import uuid4

import pytest

from fastapi.testclient import TestClient

from tubely.core.errors import ExternalToolError, PersistenceError, SigningError, VideoNotFoundError
from tubely.models.video import Video


MP4_BYTES = b"\x00\x00\x00\x20ftypisom" + b"\x02" * 128


def video_files(content: bytes = MP4_BYTES, media_type: str = "video/mp4") -> dict:
    return {"video": ("clip.mp4", content, media_type)}


def thumbnail_files(content: bytes = b"\x89PNG\r\n\x1a\n", media_type: str = "image/png") -> dict:
    return {"thumbnail": ("thumb.png", content, media_type)}


# =============================================================================
# Video upload endpoint
# =============================================================================


class TestVideoUploadEndpoint:
    """PUT /api/video_upload/{video_id}"""

    def test_success(
        self,
        authed_test_client: TestClient,
        auth_headers: dict,
        sample_video: Video,
        mock_video_store: Mock,
        uploaded_objects: dict,
        staging_dir: Path,
    ) -> None:
        response = authed_test_client.put(
            f"/api/video_upload/{sample_video.id}", files=video_files(), headers=auth_headers
        )

        assert response.status_code == 200
        assert response.content == b""
        assert uploaded_objects["landscape/tubely-upload-name-0.mp4"]["body"] == MP4_BYTES
        stored = mock_video_store.update_video.await_args.args[0]
        assert stored.video_url == "test-bucket,landscape/tubely-upload-name-0.mp4"
        assert list(staging_dir.iterdir()) == []

    def test_missing_token(self, authed_test_client: TestClient, sample_video: Video) -> None:
        response = authed_test_client.put(f"/api/video_upload/{sample_video.id}", files=video_files())

        assert response.status_code == 401
        assert response.json() == {"error": "Couldn't find JWT"}

    def test_invalid_token(self, authed_test_client: TestClient, sample_video: Video) -> None:
        response = authed_test_client.put(
            f"/api/video_upload/{sample_video.id}",
            files=video_files(),
            headers={"Authorization": "Bearer not.a.jwt"},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Couldn't validate JWT"}

    def test_invalid_id_checked_before_token(self, authed_test_client: TestClient) -> None:
        response = authed_test_client.put("/api/video_upload/not-a-uuid", files=video_files())

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid ID"}

    def test_unknown_video(
        self, authed_test_client: TestClient, auth_headers: dict, mock_video_store: Mock
    ) -> None:
        mock_video_store.get_video.side_effect = VideoNotFoundError("Couldn't find video")

        response = authed_test_client.put(f"/api/video_upload/{uuid4()}", files=video_files(), headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Couldn't find video"}

    def test_non_owner_rejected_before_staging(
        self,
        authed_test_client: TestClient,
        other_auth_headers: dict,
        sample_video: Video,
        fake_prober,
        mock_storage_service: Mock,
        mock_video_store: Mock,
        staging_dir: Path,
    ) -> None:
        response = authed_test_client.put(
            f"/api/video_upload/{sample_video.id}", files=video_files(), headers=other_auth_headers
        )

        assert response.status_code == 401
        assert response.json() == {"error": "User is not the video owner"}
        assert fake_prober.calls == []
        assert list(staging_dir.iterdir()) == []
        mock_storage_service.upload_fileobj.assert_not_awaited()
        mock_video_store.update_video.assert_not_awaited()

    @pytest.mark.parametrize("media_type", ["video/quicktime", "image/png", "application/octet-stream"])
    def test_unsupported_type_rejected_before_staging(
        self,
        authed_test_client: TestClient,
        auth_headers: dict,
        sample_video: Video,
        fake_prober,
        mock_storage_service: Mock,
        staging_dir: Path,
        media_type: str,
    ) -> None:
        response = authed_test_client.put(
            f"/api/video_upload/{sample_video.id}",
            files=video_files(media_type=media_type),
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid file type"}
        assert fake_prober.calls == []
        assert list(staging_dir.iterdir()) == []
        mock_storage_service.upload_fileobj.assert_not_awaited()

    def test_media_type_parameters_ignored(
        self, authed_test_client: TestClient, auth_headers: dict, sample_video: Video
    ) -> None:
        response = authed_test_client.put(
            f"/api/video_upload/{sample_video.id}",
            files=video_files(media_type="Video/MP4; codecs=avc1"),
            headers=auth_headers,
        )

        assert response.status_code == 200

    def test_missing_field(self, authed_test_client: TestClient, auth_headers: dict, sample_video: Video) -> None:
        response = authed_test_client.put(
            f"/api/video_upload/{sample_video.id}",
            files={"file": ("clip.mp4", MP4_BYTES, "video/mp4")},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Unable to parse form file"}

    def test_non_file_field(self, authed_test_client: TestClient, auth_headers: dict, sample_video: Video) -> None:
        response = authed_test_client.put(
            f"/api/video_upload/{sample_video.id}",
            data={"video": "not a file"},
            files={"other": ("x.txt", b"x", "text/plain")},
            headers=auth_headers,
        )

        assert response.status_code == 400

    def test_probe_failure_is_500_and_cleans_up(
        self,
        authed_test_client: TestClient,
        auth_headers: dict,
        sample_video: Video,
        fake_prober,
        staging_dir: Path,
    ) -> None:
        fake_prober.error = ExternalToolError("Couldn't get video aspect ratio")

        response = authed_test_client.put(
            f"/api/video_upload/{sample_video.id}", files=video_files(), headers=auth_headers
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Couldn't get video aspect ratio"}
        assert fake_prober.existed == [True]
        assert list(staging_dir.iterdir()) == []

    def test_persistence_failure_is_500(
        self,
        authed_test_client: TestClient,
        auth_headers: dict,
        sample_video: Video,
        mock_video_store: Mock,
        mock_storage_service: Mock,
    ) -> None:
        mock_video_store.update_video.side_effect = PersistenceError("Couldn't update video")

        response = authed_test_client.put(
            f"/api/video_upload/{sample_video.id}", files=video_files(), headers=auth_headers
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Couldn't update video"}
        mock_storage_service.delete_object.assert_awaited_once()


# =============================================================================
# Thumbnail upload endpoint
# =============================================================================


class TestThumbnailUploadEndpoint:
    """PUT /api/thumbnail_upload/{video_id}"""

    def test_success(
        self, authed_test_client: TestClient, auth_headers: dict, sample_video: Video, assets_dir: Path
    ) -> None:
        response = authed_test_client.put(
            f"/api/thumbnail_upload/{sample_video.id}", files=thumbnail_files(), headers=auth_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == str(sample_video.id)
        assert body["thumbnail_url"] == "http://localhost:8091/assets/name-0.png"
        assert (assets_dir / "name-0.png").read_bytes() == b"\x89PNG\r\n\x1a\n"

    def test_unsupported_type(
        self, authed_test_client: TestClient, auth_headers: dict, sample_video: Video, assets_dir: Path
    ) -> None:
        response = authed_test_client.put(
            f"/api/thumbnail_upload/{sample_video.id}",
            files=thumbnail_files(b"GIF89a", "image/gif"),
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid file type"}
        assert not assets_dir.exists()

    def test_non_owner(
        self, authed_test_client: TestClient, other_auth_headers: dict, sample_video: Video, assets_dir: Path
    ) -> None:
        response = authed_test_client.put(
            f"/api/thumbnail_upload/{sample_video.id}", files=thumbnail_files(), headers=other_auth_headers
        )

        assert response.status_code == 401
        assert not assets_dir.exists()


# =============================================================================
# Video records
# =============================================================================


class TestVideoRecordEndpoints:
    def test_create_video(self, authed_test_client: TestClient, auth_headers: dict, user_id) -> None:
        response = authed_test_client.post(
            "/api/videos", json={"title": "Boots", "description": "A pair of boots"}, headers=auth_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == str(user_id)
        assert body["title"] == "Boots"
        assert body["video_url"] is None

    def test_create_video_invalid_body(self, authed_test_client: TestClient, auth_headers: dict) -> None:
        response = authed_test_client.post("/api/videos", json={"title": ""}, headers=auth_headers)

        assert response.status_code == 400
        assert "error" in response.json()

    def test_get_video_signs_locator(
        self,
        authed_test_client: TestClient,
        auth_headers: dict,
        sample_video: Video,
        mock_video_store: Mock,
        mock_storage_service: Mock,
    ) -> None:
        mock_video_store.get_video.return_value = sample_video.model_copy(
            update={"video_url": "test-bucket,landscape/key.mp4"}
        )

        response = authed_test_client.get(f"/api/videos/{sample_video.id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["video_url"].startswith("https://test-bucket.s3.amazonaws.com/")
        mock_storage_service.generate_presigned_download_url.assert_awaited_once_with(
            "test-bucket", "landscape/key.mp4", 5
        )

    def test_get_video_signing_failure(
        self,
        authed_test_client: TestClient,
        auth_headers: dict,
        sample_video: Video,
        mock_video_store: Mock,
    ) -> None:
        mock_video_store.get_video.return_value = sample_video.model_copy(update={"video_url": "no-comma"})

        response = authed_test_client.get(f"/api/videos/{sample_video.id}", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Couldn't generate presigned URL"}

    def test_list_videos(
        self, authed_test_client: TestClient, auth_headers: dict, sample_video: Video, mock_video_store: Mock, user_id
    ) -> None:
        response = authed_test_client.get("/api/videos", headers=auth_headers)

        assert response.status_code == 200
        assert [v["id"] for v in response.json()] == [str(sample_video.id)]
        mock_video_store.list_videos.assert_awaited_once_with(user_id)

    def test_list_requires_token(self, authed_test_client: TestClient) -> None:
        assert authed_test_client.get("/api/videos").status_code == 401


class TestHealth:
    def test_health(self, authed_test_client: TestClient) -> None:
        response = authed_test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_without_database(self, authed_test_client: TestClient) -> None:
        response = authed_test_client.get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"] == {"mongodb": False}


def test_signing_error_status() -> None:
    assert SigningError("x").status_code == 500
