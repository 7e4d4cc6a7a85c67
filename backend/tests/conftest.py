"""
Pytest Configuration and Test Fixtures for the Tubely Backend

This module provides the shared fixtures for the test suite:
- Test Settings with an isolated assets root and scratch directory
- In-memory stand-in for the MongoDB ``videos`` collection
- Fake media prober replacing the ffprobe subprocess
- Mocked boto3 S3 client behind a real S3AssetStore
- FastAPI TestClient wired through ``app.dependency_overrides``
- Bearer tokens for two distinct users
- Sample images generated with Pillow

No MongoDB, S3 or ffprobe is needed to run the suite.
"""

import os
import tempfile

from io import BytesIO
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, Generator, Optional
from unittest.mock import Mock

import pytest


# The app module mounts the assets directory at import time
os.environ.setdefault("ASSETS_ROOT", tempfile.mkdtemp(prefix="tubely-test-assets-"))
os.environ.setdefault("APP_ENV", "testing")

from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402
from starlette.datastructures import Headers, UploadFile  # noqa: E402

from tubely.api.v1.dependencies import (  # noqa: E402
    get_prober,
    get_thumbnail_store,
    get_video_service,
    get_video_store,
)
from tubely.config import Settings, get_settings  # noqa: E402
from tubely.core.auth import create_access_token  # noqa: E402
from tubely.main import app  # noqa: E402
from tubely.models.video import Video  # noqa: E402
from tubely.services.media_probe import StreamGeometry  # noqa: E402
from tubely.services.storage_service import LocalDiskAssetStore, S3AssetStore  # noqa: E402
from tubely.services.thumbnail_registry import (  # noqa: E402
    ThumbnailRegistry,
    get_thumbnail_registry,
)
from tubely.services.upload_service import UploadService  # noqa: E402
from tubely.services.video_service import VideoService  # noqa: E402


TEST_JWT_SECRET = "test-secret-key-for-jwt-signing-minimum-32-chars"
TEST_BUCKET = "test-bucket"
TEST_REGION = "us-east-1"
TEST_BASE_URL = "http://testserver"

OWNER_ID = "user-owner-0001"
OTHER_USER_ID = "user-other-0002"
VIDEO_ID = "video-0001"

_MISSING = object()


# ==============================================================================
# In-memory Test Doubles
# ==============================================================================


class FakeVideosCollection:
    """
    Minimal async stand-in for the Motor ``videos`` collection.

    Supports exactly the query shapes VideoService issues: equality on
    fields, ``$or`` and ``$exists``.
    """

    def __init__(self) -> None:
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.replace_calls = 0

    def insert(self, video: Video) -> None:
        self.documents[video.id] = video.to_document()

    async def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        for document in self.documents.values():
            if self._matches(document, query):
                return dict(document)
        return None

    async def replace_one(self, query: Dict[str, Any], replacement: Dict[str, Any]) -> Any:
        self.replace_calls += 1
        for key, document in self.documents.items():
            if self._matches(document, query):
                self.documents[key] = dict(replacement)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    @classmethod
    def _matches(cls, document: Dict[str, Any], query: Dict[str, Any]) -> bool:
        for field, expected in query.items():
            if field == "$or":
                if not any(cls._matches(document, clause) for clause in expected):
                    return False
            elif isinstance(expected, dict) and "$exists" in expected:
                if (field in document) != expected["$exists"]:
                    return False
            elif document.get(field, _MISSING) != expected:
                return False
        return True


class FakeProber:
    """MetadataProber returning a fixed geometry, recording what it saw."""

    def __init__(self, width: int = 1920, height: int = 1080) -> None:
        self.geometry = StreamGeometry(width=width, height=height)
        self.error: Optional[Exception] = None
        self.probed: list = []

    async def probe(self, path: Any) -> StreamGeometry:
        path = Path(path)
        # (path, existed, size) at the moment of probing
        self.probed.append((path, path.exists(), path.stat().st_size if path.exists() else 0))
        if self.error is not None:
            raise self.error
        return self.geometry


def make_upload(data: bytes, filename: str, content_type: str, declare_size: bool = True) -> UploadFile:
    """Build the UploadFile a multipart form field would produce."""
    return UploadFile(
        file=BytesIO(data),
        size=len(data) if declare_size else None,
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def image_bytes(fmt: str = "PNG", size: tuple = (64, 36), color: str = "red") -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color=color).save(buf, format=fmt)
    return buf.getvalue()


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def mock_settings(tmp_path: Path) -> Settings:
    """
    Settings isolated to the test's temporary directory.

    Assets are written below ``tmp_path/assets`` and scratch files below
    ``tmp_path/scratch`` so tests can assert on both directories.
    """
    scratch_dir = tmp_path / "scratch"
    scratch_dir.mkdir()
    assets_root = tmp_path / "assets"
    assets_root.mkdir()
    return Settings(
        app_env="testing",
        app_name="tubely-test",
        debug=True,
        jwt_secret=TEST_JWT_SECRET,
        public_base_url=TEST_BASE_URL,
        s3_bucket_name=TEST_BUCKET,
        s3_region=TEST_REGION,
        assets_root=str(assets_root),
        scratch_dir=str(scratch_dir),
        thumbnail_backend="disk",
    )


# ==============================================================================
# Record Store Fixtures
# ==============================================================================


@pytest.fixture
def videos_collection() -> FakeVideosCollection:
    return FakeVideosCollection()


@pytest.fixture
def video_service(videos_collection: FakeVideosCollection) -> VideoService:
    return VideoService(videos_collection)


@pytest.fixture
def test_video(videos_collection: FakeVideosCollection) -> Video:
    """A stored video record owned by ``OWNER_ID`` with no assets yet."""
    video = Video(id=VIDEO_ID, user_id=OWNER_ID, title="Beach trip", description="Waves")
    videos_collection.insert(video)
    return video


# ==============================================================================
# Pipeline Collaborator Fixtures
# ==============================================================================


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def mock_s3_client() -> Mock:
    """
    Mocked boto3 S3 client.

    ``upload_file``, ``put_object`` and ``delete_object`` succeed by default;
    set ``side_effect`` to simulate failures.
    """
    client = Mock()
    client.upload_file = Mock(return_value=None)
    client.put_object = Mock(return_value={"ETag": '"abc"'})
    client.delete_object = Mock(return_value={})
    return client


@pytest.fixture
def video_store(mock_s3_client: Mock) -> S3AssetStore:
    return S3AssetStore(
        bucket_name=TEST_BUCKET, region_name=TEST_REGION, timeout=5, client=mock_s3_client
    )


@pytest.fixture
def disk_store(mock_settings: Settings) -> LocalDiskAssetStore:
    return LocalDiskAssetStore(root=mock_settings.assets_root, base_url=mock_settings.base_url)


@pytest.fixture
def registry() -> ThumbnailRegistry:
    return ThumbnailRegistry()


@pytest.fixture
def upload_service(
    mock_settings: Settings,
    video_service: VideoService,
    fake_prober: FakeProber,
    video_store: S3AssetStore,
    disk_store: LocalDiskAssetStore,
    registry: ThumbnailRegistry,
) -> UploadService:
    """UploadService with the disk thumbnail backend."""
    return UploadService(
        settings=mock_settings,
        videos=video_service,
        prober=fake_prober,
        video_store=video_store,
        thumbnail_store=disk_store,
        registry=registry,
    )


@pytest.fixture
def registry_upload_service(upload_service: UploadService) -> UploadService:
    """Same service configured for the in-memory thumbnail registry."""
    upload_service.thumbnail_store = None
    return upload_service


# ==============================================================================
# Authentication Fixtures
# ==============================================================================


@pytest.fixture
def owner_token(mock_settings: Settings) -> str:
    return create_access_token(OWNER_ID, settings=mock_settings)


@pytest.fixture
def other_token(mock_settings: Settings) -> str:
    return create_access_token(OTHER_USER_ID, settings=mock_settings)


@pytest.fixture
def owner_headers(owner_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {owner_token}"}


@pytest.fixture
def other_headers(other_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {other_token}"}


# ==============================================================================
# FastAPI Test Client Fixtures
# ==============================================================================


@pytest.fixture
def test_client(
    mock_settings: Settings,
    video_service: VideoService,
    fake_prober: FakeProber,
    video_store: S3AssetStore,
    disk_store: LocalDiskAssetStore,
    registry: ThumbnailRegistry,
) -> Generator[TestClient, None, None]:
    """
    TestClient with every external collaborator overridden.

    Startup handlers are not run (no ``with`` block), so no MongoDB
    connection is attempted. The thumbnail backend is the disk store; tests
    needing the registry override ``get_thumbnail_store`` to return None.
    """
    app.dependency_overrides[get_settings] = lambda: mock_settings
    app.dependency_overrides[get_video_service] = lambda: video_service
    app.dependency_overrides[get_prober] = lambda: fake_prober
    app.dependency_overrides[get_video_store] = lambda: video_store
    app.dependency_overrides[get_thumbnail_store] = lambda: disk_store
    app.dependency_overrides[get_thumbnail_registry] = lambda: registry

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def registry_client(test_client: TestClient) -> TestClient:
    """TestClient configured for the in-memory thumbnail backend."""
    app.dependency_overrides[get_thumbnail_store] = lambda: None
    return test_client


# ==============================================================================
# Sample Test Data Fixtures - Files
# ==============================================================================


@pytest.fixture
def png_bytes() -> bytes:
    """Small valid PNG generated with Pillow."""
    return image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return image_bytes("JPEG", color="blue")


@pytest.fixture
def video_bytes() -> bytes:
    """5 MB payload standing in for a 1920x1080 MP4 (the prober is faked)."""
    return b"\x00\x00\x00\x18ftypmp42" + b"\x00" * (5 * 1024 * 1024 - 12)
