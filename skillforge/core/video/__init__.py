"""Video search lookup used to resolve real tutorial links."""

from skillforge.core.video.youtube import (
    VideoLookup,
    VideoResult,
    YouTubeSettings,
    YouTubeVideoLookup,
)

__all__ = ["VideoLookup", "VideoResult", "YouTubeSettings", "YouTubeVideoLookup"]
