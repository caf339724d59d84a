"""Thumbnail URL checks and replacements for catalog videos."""

import logging
from typing import Callable, List, Optional

import requests

from netescola.services.video_validation import extract_video_id
from netescola.utils.cache import DEFAULT_TTL_SECONDS, TTLCache

logger = logging.getLogger(__name__)

THUMBNAIL_SIZES = ['hqdefault', 'maxresdefault', 'mqdefault', 'sddefault', 'default']

# Grey 320x180 card with a play triangle and "Imagem Indisponível"
FALLBACK_THUMBNAIL = (
    'data:image/svg+xml;base64,PHN2ZyB3aWR0aD0iMzIwIiBoZWlnaHQ9IjE4MCIgdmlld0JveD0iMCAwIDMyMCAxODAiIGZpbGw9Im5vbmUiIHht'
    'bG5zPSJodHRwOi8vd3d3LnczLm9yZy8yMDAwL3N2ZyI+CjxyZWN0IHdpZHRoPSIzMjAiIGhlaWdodD0iMTgwIiBmaWxsPSIjRjNGNEY2Ii8+CjxwYXRo'
    'IGQ9Ik0xMzUuNSA2NUwxNTUuNSA4NUwxMzUuNSAxMDVWNjVaIiBmaWxsPSIjOTVBM0I3Ii8+Cjx0ZXh0IHg9IjE2MCIgeT0iMTAwIiBmb250LWZhbWls'
    'eT0iQXJpYWwiIGZvbnQtc2l6ZT0iMTQiIGZpbGw9IiM5NUEzQjciPkltYWdlbSBJbmRpc3BvbsOtdmVsPC90ZXh0Pgo8L3N2Zz4='
)


def alternative_thumbnails(video_url: str) -> List[str]:
    """Platform-generated thumbnail URLs for the video, best size first."""
    video_id = extract_video_id(video_url)
    if not video_id:
        return []
    return [f"https://img.youtube.com/vi/{video_id}/{size}.jpg" for size in THUMBNAIL_SIZES]


class ThumbnailChecker:
    """HEAD-checks thumbnail URLs, remembering each answer for the TTL."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        sleep: Optional[Callable[[float], None]] = None,
        delay: float = 0.0,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.cache: TTLCache[bool] = TTLCache(cache_ttl)
        self._sleep = sleep
        self.delay = delay

    def is_valid(self, url: str) -> bool:
        if url.startswith('data:'):
            return True

        cached = self.cache.get(url)
        if cached is not None:
            return cached

        try:
            response = self.session.head(url, timeout=self.timeout, allow_redirects=True)
            valid = response.ok
        except requests.RequestException as e:
            logger.debug(f"Thumbnail check failed for {url}: {e}")
            valid = False

        self.cache.set(url, valid)
        if self._sleep and self.delay:
            self._sleep(self.delay)
        return valid

    def repair(self, thumbnail_url: str, video_url: str) -> str:
        """Return ``thumbnail_url`` if it works, else a working alternative or the placeholder."""
        if self.is_valid(thumbnail_url):
            return thumbnail_url

        logger.info(f"Invalid thumbnail: {thumbnail_url}")
        for candidate in alternative_thumbnails(video_url):
            if self.is_valid(candidate):
                logger.info(f"Found working alternative: {candidate}")
                return candidate

        return FALLBACK_THUMBNAIL
