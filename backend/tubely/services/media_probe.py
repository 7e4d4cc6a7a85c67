"""
Media probing and orientation classification for Tubely.

Video uploads are probed with ``ffprobe`` to learn the width and height of the
primary video stream. The geometry is bucketed into a coarse orientation that
becomes the folder prefix of the stored object key.

The probe needs a path to a fully written file, so callers flush the upload to
a scratch file before calling ``probe``.
"""

import asyncio
import json
import logging

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from tubely.core.errors import MetadataUnavailableError, ProbeFailedError


logger = logging.getLogger(__name__)

LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16
# Coarse bucketing: admits encoder rounding (1.77 vs 1.7778), nothing finer
RATIO_TOLERANCE = 0.1

# Cap on stderr kept in error messages
MAX_DIAGNOSTIC_CHARS = 2000


class Orientation(str, Enum):
    """Coarse frame-geometry classification used as the key folder."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


@dataclass(frozen=True)
class StreamGeometry:
    """Width and height of the primary video stream, in pixels."""

    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def orientation(self) -> Orientation:
        return classify_orientation(self.width, self.height)


def classify_orientation(width: int, height: int) -> Orientation:
    """
    Classify frame geometry as landscape, portrait or other.

    ``ratio = width / height`` is compared with 16/9 and 9/16 using an
    absolute tolerance of 0.1. The comparison is strict, so a ratio exactly
    0.1 away from a reference falls into ``other``.

    Args:
        width: Frame width in pixels (positive).
        height: Frame height in pixels (positive).

    Raises:
        ValueError: If either dimension is not positive.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Frame dimensions must be positive, got {width}x{height}")

    ratio = width / height
    if abs(ratio - LANDSCAPE_RATIO) < RATIO_TOLERANCE:
        return Orientation.LANDSCAPE
    if abs(ratio - PORTRAIT_RATIO) < RATIO_TOLERANCE:
        return Orientation.PORTRAIT
    return Orientation.OTHER


def parse_ffprobe_output(raw: str | bytes) -> StreamGeometry:
    """
    Parse ``ffprobe -of json`` output into the first stream's geometry.

    Raises:
        MetadataUnavailableError: If the output is not JSON, has no streams,
            or the first stream lacks positive integer width and height.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MetadataUnavailableError("ffprobe output is not valid JSON") from e

    streams = data.get("streams") if isinstance(data, dict) else None
    if not streams or not isinstance(streams, list):
        raise MetadataUnavailableError("No video streams found")

    stream = streams[0]
    width = stream.get("width") if isinstance(stream, dict) else None
    height = stream.get("height") if isinstance(stream, dict) else None

    # bool is an int subclass; reject it explicitly
    for value in (width, height):
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise MetadataUnavailableError(
                f"Video stream has no usable dimensions (width={width!r}, height={height!r})"
            )

    return StreamGeometry(width=width, height=height)


class MetadataProber(Protocol):
    """Anything that can report the stream geometry of a media file."""

    async def probe(self, path: str | Path) -> StreamGeometry: ...


class FFprobeProber:
    """
    ``MetadataProber`` backed by the ``ffprobe`` executable.

    One process is spawned per call, with no retry. The process is killed if
    it outlives ``timeout`` seconds.

    Example:
        >>> prober = FFprobeProber(timeout=10)
        >>> geometry = await prober.probe("/tmp/upload.mp4")
        >>> geometry.orientation
        <Orientation.LANDSCAPE: 'landscape'>
    """

    def __init__(self, binary: str = "ffprobe", timeout: float = 30.0) -> None:
        self.binary = binary
        self.timeout = timeout

    def build_command(self, path: str | Path) -> list[str]:
        return [
            self.binary,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height",
            "-of", "json",
            str(path),
        ]

    async def probe(self, path: str | Path) -> StreamGeometry:
        """
        Probe ``path`` and return the primary video stream geometry.

        Raises:
            ProbeFailedError: If ffprobe is missing, times out or exits nonzero.
            MetadataUnavailableError: If the output carries no usable geometry.
        """
        cmd = self.build_command(path)
        logger.debug("Running %s", " ".join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            logger.error("%s not found; install FFmpeg to enable video uploads", self.binary)
            raise ProbeFailedError(f"{self.binary} executable not found") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            logger.error("ffprobe timed out after %ss for %s", self.timeout, path)
            raise ProbeFailedError(f"ffprobe timed out after {self.timeout}s") from e

        if process.returncode != 0:
            diagnostics = stderr.decode("utf-8", errors="ignore")[:MAX_DIAGNOSTIC_CHARS]
            logger.error(
                "ffprobe exited with status %s for %s: %s", process.returncode, path, diagnostics
            )
            raise ProbeFailedError(
                f"ffprobe exited with status {process.returncode}: {diagnostics}",
                diagnostics=diagnostics,
            )

        geometry = parse_ffprobe_output(stdout)
        logger.info("Probed %s: %dx%d", path, geometry.width, geometry.height)
        return geometry


async def get_video_orientation(prober: MetadataProber, path: str | Path) -> Orientation:
    """Probe ``path`` and classify its orientation."""
    geometry = await prober.probe(path)
    return classify_orientation(geometry.width, geometry.height)
