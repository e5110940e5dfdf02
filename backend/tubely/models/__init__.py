"""
Models Package for Tubely.

Pydantic models for video records, their object storage locators and the
aspect ratio classes used when naming stored objects.

Example Usage:
    ```python
    from tubely.models import Video, VideoLocator

    locator = VideoLocator.from_legacy_string("tubely-videos,landscape/abc.mp4")
    ```
"""

from tubely.models.video import AspectRatio, Video, VideoCreate, VideoLocator


__all__ = ["AspectRatio", "Video", "VideoCreate", "VideoLocator"]
