"""Tests for VideoService reads and version-guarded write-back."""

import pytest

from tubely.core.errors import ConflictError, InternalError
from tubely.models.video import Video

from conftest import OWNER_ID, VIDEO_ID


class TestVideoService:
    @pytest.mark.asyncio
    async def test_get_missing(self, video_service):
        assert await video_service.get_video("nope") is None

    @pytest.mark.asyncio
    async def test_get_existing(self, video_service, test_video):
        video = await video_service.get_video(VIDEO_ID)

        assert video.id == VIDEO_ID
        assert video.user_id == OWNER_ID
        assert video.video_url is None

    @pytest.mark.asyncio
    async def test_update_bumps_version(self, video_service, videos_collection, test_video):
        video = await video_service.get_video(VIDEO_ID)
        updated = await video_service.update_video(
            video.model_copy(update={"video_url": "https://example.test/a.mp4"})
        )

        assert updated.version == video.version + 1
        assert updated.updated_at >= video.updated_at
        stored = videos_collection.documents[VIDEO_ID]
        assert stored["video_url"] == "https://example.test/a.mp4"
        assert stored["version"] == 1
        assert stored["_id"] == VIDEO_ID

    @pytest.mark.asyncio
    async def test_stale_write_conflicts(self, video_service, videos_collection, test_video):
        first = await video_service.get_video(VIDEO_ID)
        second = await video_service.get_video(VIDEO_ID)

        await video_service.update_video(first.model_copy(update={"title": "first"}))
        with pytest.raises(ConflictError) as exc_info:
            await video_service.update_video(second.model_copy(update={"title": "second"}))

        assert exc_info.value.status_code == 409
        assert videos_collection.documents[VIDEO_ID]["title"] == "first"

    @pytest.mark.asyncio
    async def test_record_without_version_counter(self, video_service, videos_collection):
        document = Video(id="legacy", user_id=OWNER_ID).to_document()
        del document["version"]
        videos_collection.documents["legacy"] = document

        video = await video_service.get_video("legacy")
        updated = await video_service.update_video(video)

        assert video.version == 0
        assert updated.version == 1

    @pytest.mark.asyncio
    async def test_malformed_record(self, video_service, videos_collection):
        videos_collection.documents["broken"] = {"_id": "broken"}

        with pytest.raises(InternalError):
            await video_service.get_video("broken")
