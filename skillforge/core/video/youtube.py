"""
YouTube Data API v3 search lookup.

Resolves a free-text query to the first matching video. Lookups are best
effort: a missing API key, transport error, non-2xx response or empty result
all yield ``None`` and are logged. Callers fall back to a search URL.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from skillforge.core.config.config import Config
from skillforge.core.logging.logger import get_logger

logger = get_logger(__name__)

SEARCH_ENDPOINT = "https://www.googleapis.com/youtube/v3/search"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


@dataclass(frozen=True)
class VideoResult:
    title: str
    video_id: str

    @property
    def watch_url(self) -> str:
        return WATCH_URL.format(video_id=self.video_id)


class VideoLookup(Protocol):
    async def search(self, query: str) -> Optional[VideoResult]:
        ...


@dataclass(frozen=True)
class YouTubeSettings:
    api_key: str = ""
    timeout_seconds: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_config(cls) -> YouTubeSettings:
        return cls(
            api_key=Config.YOUTUBE_API_KEY or "",
            timeout_seconds=float(Config.YOUTUBE_TIMEOUT_SECONDS),
        )


class YouTubeVideoLookup:
    """
    ``VideoLookup`` over the YouTube search endpoint.

    The HTTP client is created lazily and owned by this object unless one is
    injected, in which case ``aclose`` leaves it open.
    """

    def __init__(
        self,
        settings: YouTubeSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout_seconds)
        return self._client

    async def search(self, query: str) -> Optional[VideoResult]:
        if not self._settings.enabled:
            logger.warning("YouTube API key not configured, skipping video lookup")
            return None

        params = {
            "part": "snippet",
            "q": query,
            "type": "video",
            "maxResults": 1,
            "key": self._settings.api_key,
        }

        try:
            response = await self.client.get(SEARCH_ENDPOINT, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "YouTube search returned error status",
                extra={"query": query, "status_code": e.response.status_code},
            )
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "YouTube search failed",
                extra={"query": query, "error_type": type(e).__name__, "error": str(e)},
            )
            return None

        items = data.get("items") or []
        if not items:
            logger.debug("YouTube search returned no results", extra={"query": query})
            return None

        first = items[0]
        video_id = (first.get("id") or {}).get("videoId")
        title = (first.get("snippet") or {}).get("title")
        if not video_id or not title:
            logger.warning("YouTube search result missing fields", extra={"query": query})
            return None

        return VideoResult(title=title, video_id=video_id)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
