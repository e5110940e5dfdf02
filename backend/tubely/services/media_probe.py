"""
Aspect ratio classification of staged videos.

Dimensions come from ``ffprobe``; the classification itself is a pure function
of width and height. ``FFprobeProber`` is one implementation of ``Prober`` and
tests substitute their own.
"""

import asyncio
import logging
import subprocess
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from tubely.config import Settings
from tubely.core.errors import ExternalToolError
from tubely.models.video import AspectRatio


logger = logging.getLogger(__name__)

ASPECT_RATIO_TOLERANCE = 0.05
LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16


# =============================================================================
# Probe output schema
# =============================================================================


class ProbeStream(BaseModel):
    """A single stream entry of ffprobe's ``-show_streams`` output."""

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class ProbeResult(BaseModel):
    """Decoded ffprobe output. Unknown keys are ignored."""

    streams: list[ProbeStream] = Field(default_factory=list)


# =============================================================================
# Probers
# =============================================================================


class Prober(Protocol):
    """Describes the media streams of a local file."""

    async def probe(self, path: Path) -> ProbeResult: ...


class FFprobeProber:
    """Runs ffprobe in a worker thread and decodes its JSON output."""

    def __init__(self, settings: Settings) -> None:
        self._executable = settings.ffprobe_path
        self._timeout = settings.ffprobe_timeout_seconds

    def build_command(self, path: Path) -> list[str]:
        return [
            self._executable,
            "-v",
            "error",
            "-select_streams",
            "v",
            "-print_format",
            "json",
            "-show_streams",
            str(path),
        ]

    async def probe(self, path: Path) -> ProbeResult:
        """
        Probe the video streams of ``path``.

        Raises:
            ExternalToolError: If ffprobe cannot be started, fails, times out or its
                output does not decode.
        """
        command = self.build_command(path)
        try:
            completed = await asyncio.to_thread(
                subprocess.run,
                command,
                capture_output=True,
                check=True,
                timeout=self._timeout,
            )
        except OSError as e:
            logger.exception("ffprobe could not be started: %s", self._executable)
            raise ExternalToolError("Couldn't get video aspect ratio") from e
        except subprocess.TimeoutExpired as e:
            logger.exception("ffprobe timed out after %s seconds on %s", self._timeout, path)
            raise ExternalToolError("Couldn't get video aspect ratio") from e
        except subprocess.CalledProcessError as e:
            logger.exception(
                "ffprobe exited with %d on %s: %s",
                e.returncode,
                path,
                (e.stderr or b"").decode("utf-8", errors="replace").strip(),
            )
            raise ExternalToolError("Couldn't get video aspect ratio") from e

        try:
            return ProbeResult.model_validate_json(completed.stdout)
        except ValidationError as e:
            logger.exception("Undecodable ffprobe output for %s", path)
            raise ExternalToolError("Couldn't get video aspect ratio") from e


# =============================================================================
# Classification
# =============================================================================


def classify_aspect_ratio(width: int, height: int) -> AspectRatio:
    """
    Bucket a width/height pair into an aspect ratio class.

    The windows around 16/9 and 9/16 are open intervals of half-width
    ``ASPECT_RATIO_TOLERANCE`` and do not overlap.

    Example:
        >>> classify_aspect_ratio(1920, 1080)
        <AspectRatio.LANDSCAPE: '16:9'>
    """
    ratio = width / height
    if abs(ratio - LANDSCAPE_RATIO) < ASPECT_RATIO_TOLERANCE:
        return AspectRatio.LANDSCAPE
    if abs(ratio - PORTRAIT_RATIO) < ASPECT_RATIO_TOLERANCE:
        return AspectRatio.PORTRAIT
    return AspectRatio.OTHER


class AspectRatioClassifier:
    """Probes a staged file and classifies its first video stream."""

    def __init__(self, prober: Prober) -> None:
        self._prober = prober

    async def classify(self, path: Path) -> AspectRatio:
        """
        Raises:
            ExternalToolError: If probing fails or no streams are reported.
        """
        result = await self._prober.probe(path)
        if not result.streams:
            logger.error("ffprobe reported no video streams for %s", path)
            raise ExternalToolError("Couldn't get video aspect ratio")

        stream = result.streams[0]
        aspect = classify_aspect_ratio(stream.width, stream.height)
        logger.debug(
            "Classified %s as %s (%dx%d)", path, aspect.value, stream.width, stream.height
        )
        return aspect


__all__ = [
    "ASPECT_RATIO_TOLERANCE",
    "AspectRatioClassifier",
    "FFprobeProber",
    "ProbeResult",
    "ProbeStream",
    "Prober",
    "classify_aspect_ratio",
]
