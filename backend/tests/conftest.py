"""
Pytest Configuration and Test Fixtures for the Tubely Backend

This module provides shared fixtures including:
- Test Settings pointing staging and assets at per-test temporary directories
- A scripted Prober and a deterministic NameGenerator
- Mocked StorageService and VideoStore for dependency injection
- Access tokens for the video owner and for another user
- FastAPI TestClient with dependency overrides
"""

from io import BytesIO
from pathlib import Path
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from fastapi.testclient import TestClient
from starlette.datastructures import Headers, UploadFile

from tubely.config import Settings
from tubely.core.auth import create_access_token
from tubely.models.video import Video
from tubely.services.intake import IntakeFile
from tubely.services.media_probe import AspectRatioClassifier, ProbeResult, ProbeStream
from tubely.services.staging import UploadStager
from tubely.services.storage_service import StorageService
from tubely.services.upload_service import ThumbnailService, VideoUploadService
from tubely.services.video_store import VideoStore


TEST_BUCKET = "test-bucket"
TEST_SECRET = "test-secret-key-for-jwt-signing-minimum-32-chars"


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")


# ==============================================================================
# Test doubles
# ==============================================================================


class FakeProber:
    """Prober returning scripted dimensions and recording what it was asked."""

    def __init__(self, width: int = 1920, height: int = 1080, error: Exception | None = None) -> None:
        self.width = width
        self.height = height
        self.error = error
        self.calls: list[Path] = []
        self.existed: list[bool] = []
        self.contents: list[bytes] = []

    async def probe(self, path: Path) -> ProbeResult:
        self.calls.append(path)
        self.existed.append(path.exists())
        if path.exists():
            self.contents.append(path.read_bytes())
        if self.error is not None:
            raise self.error
        return ProbeResult(streams=[ProbeStream(width=self.width, height=self.height)])


class SequentialNameGenerator:
    """NameGenerator returning name-0, name-1, ..."""

    def __init__(self, prefix: str = "name") -> None:
        self.prefix = prefix
        self.count = 0

    def new_name(self) -> str:
        name = f"{self.prefix}-{self.count}"
        self.count += 1
        return name


def make_intake_file(
    content: bytes = b"\x00\x00\x00\x20ftypisom" + b"\x00" * 64,
    media_type: str = "video/mp4",
    filename: str = "clip.mp4",
) -> IntakeFile:
    upload = UploadFile(
        file=BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": media_type}),
    )
    return IntakeFile(upload=upload, media_type=media_type, filename=filename)


# ==============================================================================
# Settings
# ==============================================================================


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    return tmp_path / "assets"


@pytest.fixture
def mock_settings(staging_dir: Path, assets_dir: Path) -> Settings:
    """Settings with test credentials and per-test staging and assets directories."""
    return Settings(
        app_env="testing",
        app_name="tubely-test",
        secret_key=TEST_SECRET,
        mongodb_uri="mongodb://localhost:27017",
        mongodb_db_name="test_tubely",
        s3_bucket_name=TEST_BUCKET,
        s3_region="us-east-1",
        s3_access_key_id="test-access-key",
        s3_secret_access_key="test-secret-key",
        upload_temp_dir=staging_dir,
        assets_root=assets_dir,
        port=8091,
    )


# ==============================================================================
# Identities and records
# ==============================================================================


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_user_id() -> UUID:
    return uuid4()


@pytest.fixture
def sample_video(user_id: UUID) -> Video:
    return Video(user_id=user_id, title="Boots", description="A pair of boots")


@pytest.fixture
def auth_headers(user_id: UUID, mock_settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, mock_settings)}"}


@pytest.fixture
def other_auth_headers(other_user_id: UUID, mock_settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(other_user_id, mock_settings)}"}


# ==============================================================================
# Service mocks
# ==============================================================================


@pytest.fixture
def uploaded_objects() -> dict[str, dict]:
    """Objects captured by the mocked StorageService, keyed by object key."""
    return {}


@pytest.fixture
def mock_storage_service(uploaded_objects: dict[str, dict]) -> Mock:
    """StorageService mock that reads and records whatever is uploaded."""

    async def _capture(fileobj, bucket: str, key: str, content_type: str) -> None:
        uploaded_objects[key] = {
            "bucket": bucket,
            "content_type": content_type,
            "body": fileobj.read(),
        }

    mock = Mock(spec=StorageService)
    mock.bucket_name = TEST_BUCKET
    mock.upload_fileobj = AsyncMock(side_effect=_capture)
    mock.delete_object = AsyncMock(return_value=None)
    mock.generate_presigned_download_url = AsyncMock(
        return_value="https://test-bucket.s3.amazonaws.com/landscape/key.mp4?X-Amz-Expires=5"
    )
    return mock


@pytest.fixture
def mock_video_store(sample_video: Video) -> Mock:
    """VideoStore mock serving ``sample_video`` and echoing updates back."""
    mock = Mock(spec=VideoStore)
    mock.get_video = AsyncMock(return_value=sample_video)
    mock.update_video = AsyncMock(side_effect=lambda video: video)
    mock.create_video = AsyncMock(side_effect=lambda video: video)
    mock.list_videos = AsyncMock(return_value=[sample_video])
    return mock


@pytest.fixture
def make_intake():
    """Factory for validated intake files backed by in-memory content."""
    return make_intake_file


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def name_generator() -> SequentialNameGenerator:
    return SequentialNameGenerator()


@pytest.fixture
def video_upload_service(
    mock_settings: Settings,
    mock_storage_service: Mock,
    mock_video_store: Mock,
    fake_prober: FakeProber,
    name_generator: SequentialNameGenerator,
) -> VideoUploadService:
    return VideoUploadService(
        settings=mock_settings,
        storage=mock_storage_service,
        store=mock_video_store,
        classifier=AspectRatioClassifier(fake_prober),
        stager=UploadStager(mock_settings, name_generator),
    )


@pytest.fixture
def thumbnail_service(
    mock_settings: Settings,
    mock_video_store: Mock,
    name_generator: SequentialNameGenerator,
) -> ThumbnailService:
    return ThumbnailService(mock_settings, mock_video_store, name_generator)


# ==============================================================================
# FastAPI client
# ==============================================================================


@pytest.fixture
def authed_test_client(
    mock_settings: Settings,
    mock_storage_service: Mock,
    mock_video_store: Mock,
    video_upload_service: VideoUploadService,
    thumbnail_service: ThumbnailService,
) -> TestClient:
    """TestClient with settings, storage, record store and upload services overridden."""
    from tubely.api.v1.videos import get_thumbnail_service, get_video_upload_service
    from tubely.config import get_settings
    from tubely.main import app
    from tubely.services.storage_service import get_storage_service
    from tubely.services.video_store import get_video_store

    app.dependency_overrides[get_settings] = lambda: mock_settings
    app.dependency_overrides[get_storage_service] = lambda: mock_storage_service
    app.dependency_overrides[get_video_store] = lambda: mock_video_store
    app.dependency_overrides[get_video_upload_service] = lambda: video_upload_service
    app.dependency_overrides[get_thumbnail_service] = lambda: thumbnail_service

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
