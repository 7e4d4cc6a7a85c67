"""
Media Probe Test Suite

Covers orientation classification, ffprobe output parsing and the
FFprobeProber subprocess handling (exit status, missing binary, timeout).
The ffprobe process itself is replaced by a mocked asyncio subprocess.
"""

import asyncio
import json

from unittest.mock import AsyncMock, Mock, patch

import pytest

from tubely.core.errors import MetadataUnavailableError, ProbeFailedError
from tubely.services import media_probe
from tubely.services.media_probe import (
    FFprobeProber,
    Orientation,
    StreamGeometry,
    classify_orientation,
    get_video_orientation,
    parse_ffprobe_output,
)

from conftest import FakeProber


def ffprobe_json(width, height) -> bytes:
    return json.dumps({"programs": [], "streams": [{"width": width, "height": height}]}).encode()


def mock_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> Mock:
    process = Mock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.returncode = returncode
    process.kill = Mock()
    process.wait = AsyncMock(return_value=returncode)
    return process


# =============================================================================
# Classification
# =============================================================================


class TestClassifyOrientation:
    """Bucketing of width/height into landscape, portrait and other."""

    @pytest.mark.parametrize(
        "width,height",
        [(1920, 1080), (1280, 720), (3840, 2160), (1366, 768), (187, 100)],
    )
    def test_landscape(self, width, height):
        assert classify_orientation(width, height) is Orientation.LANDSCAPE

    @pytest.mark.parametrize("width,height", [(1080, 1920), (720, 1280), (608, 1080)])
    def test_portrait(self, width, height):
        assert classify_orientation(width, height) is Orientation.PORTRAIT

    @pytest.mark.parametrize(
        "width,height",
        [(1000, 1000), (640, 480), (1080, 1350), (188, 100), (2560, 1080)],
    )
    def test_other(self, width, height):
        assert classify_orientation(width, height) is Orientation.OTHER

    def test_tolerance_boundary_is_exclusive(self, monkeypatch):
        """A ratio exactly one tolerance away from a reference is not in its band."""
        monkeypatch.setattr(media_probe, "LANDSCAPE_RATIO", 1.5)
        monkeypatch.setattr(media_probe, "RATIO_TOLERANCE", 0.5)

        assert classify_orientation(2, 1) is Orientation.OTHER
        assert classify_orientation(7, 4) is Orientation.LANDSCAPE

    @pytest.mark.parametrize("width,height", [(0, 1080), (1920, 0), (-1, 10)])
    def test_rejects_non_positive_dimensions(self, width, height):
        with pytest.raises(ValueError):
            classify_orientation(width, height)

    def test_orientation_values_are_key_folders(self):
        assert [o.value for o in Orientation] == ["landscape", "portrait", "other"]

    def test_stream_geometry_properties(self):
        geometry = StreamGeometry(width=1920, height=1080)
        assert geometry.aspect_ratio == pytest.approx(16 / 9)
        assert geometry.orientation is Orientation.LANDSCAPE


# =============================================================================
# Output Parsing
# =============================================================================


class TestParseFFprobeOutput:
    """Structured output to StreamGeometry."""

    def test_parses_first_stream(self):
        raw = json.dumps({"streams": [{"width": 720, "height": 1280}, {"width": 1, "height": 1}]})
        assert parse_ffprobe_output(raw) == StreamGeometry(width=720, height=1280)

    def test_accepts_bytes(self):
        assert parse_ffprobe_output(ffprobe_json(1920, 1080)).width == 1920

    def test_invalid_json(self):
        with pytest.raises(MetadataUnavailableError):
            parse_ffprobe_output(b"not json")

    @pytest.mark.parametrize("raw", ['{"streams": []}', "{}", "[]", '{"streams": "x"}'])
    def test_no_streams(self, raw):
        with pytest.raises(MetadataUnavailableError, match="No video streams"):
            parse_ffprobe_output(raw)

    @pytest.mark.parametrize(
        "stream",
        [
            {"width": 0, "height": 1080},
            {"width": 1920},
            {"width": "1920", "height": 1080},
            {"width": True, "height": 1080},
            {"width": 1920, "height": -5},
        ],
    )
    def test_unusable_dimensions(self, stream):
        with pytest.raises(MetadataUnavailableError):
            parse_ffprobe_output(json.dumps({"streams": [stream]}))


# =============================================================================
# FFprobeProber
# =============================================================================


class TestFFprobeProber:
    """Subprocess invocation and failure mapping."""

    def test_build_command(self):
        prober = FFprobeProber(binary="/usr/bin/ffprobe")
        assert prober.build_command("/tmp/in.mp4") == [
            "/usr/bin/ffprobe",
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height",
            "-of", "json",
            "/tmp/in.mp4",
        ]

    @pytest.mark.asyncio
    async def test_probe_success(self):
        process = mock_process(stdout=ffprobe_json(1920, 1080))
        with patch.object(
            media_probe.asyncio, "create_subprocess_exec", AsyncMock(return_value=process)
        ) as spawn:
            geometry = await FFprobeProber().probe("/tmp/in.mp4")

        assert geometry == StreamGeometry(width=1920, height=1080)
        assert spawn.await_args.args[-1] == "/tmp/in.mp4"

    @pytest.mark.asyncio
    async def test_nonzero_exit_carries_diagnostics(self):
        process = mock_process(stderr=b"/tmp/in.mp4: Invalid data found", returncode=1)
        with patch.object(
            media_probe.asyncio, "create_subprocess_exec", AsyncMock(return_value=process)
        ):
            with pytest.raises(ProbeFailedError) as exc_info:
                await FFprobeProber().probe("/tmp/in.mp4")

        assert "Invalid data found" in exc_info.value.diagnostics
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_zero_exit_without_streams(self):
        process = mock_process(stdout=b'{"streams": []}')
        with patch.object(
            media_probe.asyncio, "create_subprocess_exec", AsyncMock(return_value=process)
        ):
            with pytest.raises(MetadataUnavailableError):
                await FFprobeProber().probe("/tmp/in.mp4")

    @pytest.mark.asyncio
    async def test_missing_binary(self):
        with patch.object(
            media_probe.asyncio,
            "create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError("ffprobe")),
        ):
            with pytest.raises(ProbeFailedError, match="not found"):
                await FFprobeProber(binary="ffprobe-missing").probe("/tmp/in.mp4")

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        async def hang():
            await asyncio.sleep(10)

        process = mock_process()
        process.communicate = hang
        with patch.object(
            media_probe.asyncio, "create_subprocess_exec", AsyncMock(return_value=process)
        ):
            with pytest.raises(ProbeFailedError, match="timed out"):
                await FFprobeProber(timeout=0.05).probe("/tmp/in.mp4")

        process.kill.assert_called_once()
        process.wait.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_video_orientation(self, tmp_path):
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"data")

        assert await get_video_orientation(FakeProber(720, 1280), path) is Orientation.PORTRAIT
