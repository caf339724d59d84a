"""Checks whether recommended videos can actually be embedded."""

import asyncio
import random
import re
import logging
from typing import Dict, List, Optional, Protocol

from netescola.models.video import ValidationResult, Video
from netescola.services.video_reports import ReportLog
from netescola.services.youtube_service import ChannelSearchService
from netescola.utils.cache import DEFAULT_TTL_SECONDS, TTLCache

logger = logging.getLogger(__name__)

ERROR_INVALID_URL = "invalid URL"
ERROR_REPORTED = "reported as problematic"
ERROR_UNAVAILABLE = "video unavailable"
ERROR_VALIDATION = "validation error"

EMBED_BASE = "https://www.youtube.com/embed"

_PLAYLIST_PAGE_RE = re.compile(r'youtube\.com/playlist\?list=([a-zA-Z0-9_-]+)')
_PLAYLIST_PARAM_RE = re.compile(r'[?&]list=([a-zA-Z0-9_-]+)')
_VIDEO_ID_RE = re.compile(
    r'(?:https?://)?(?:www\.)?'
    r'(?:youtube\.com/(?:[^/\n\s]+/\S+/|(?:v|e(?:mbed)?)/|\S*?[?&]v=)|youtu\.be/)'
    r'([a-zA-Z0-9_-]{11})'
)
_EMBED_ID_RE = re.compile(r'embed/([a-zA-Z0-9_-]{11})')


def extract_video_id(url: str) -> Optional[str]:
    """YouTube video id from a watch/short/embed URL, ignoring "videoseries"."""
    match = _VIDEO_ID_RE.search(url)
    if match and match.group(1) != 'videoseries':
        return match.group(1)
    return None


def youtube_embed_url(url: str) -> Optional[str]:
    """Derive an embeddable URL from a YouTube link.

    Playlist pages and ``v=videoseries`` links resolve to the playlist embed;
    plain video links to the video embed, keeping ``list`` when present.
    Returns None when neither a video id nor a playlist id can be found.
    """
    if not url:
        return None

    playlist_page = _PLAYLIST_PAGE_RE.search(url)
    if playlist_page:
        return f"{EMBED_BASE}/videoseries?list={playlist_page.group(1)}"

    playlist = _PLAYLIST_PARAM_RE.search(url)
    if 'v=videoseries' in url and playlist:
        return f"{EMBED_BASE}/videoseries?list={playlist.group(1)}"

    video_id = extract_video_id(url)
    if video_id:
        embed_url = f"{EMBED_BASE}/{video_id}"
        if playlist:
            embed_url += f"?list={playlist.group(1)}"
        return embed_url

    if playlist:
        return f"{EMBED_BASE}/videoseries?list={playlist.group(1)}"

    return None


def video_id_from_embed(embed_url: str) -> Optional[str]:
    """Video id of an embed URL; None for playlist (``videoseries``) embeds."""
    match = _EMBED_ID_RE.search(embed_url)
    if match and match.group(1) != 'videoseries':
        return match.group(1)
    return None


class AvailabilityProbe(Protocol):
    async def is_available(self, youtube_id: str) -> bool:
        ...


class YouTubeStatusProbe:
    """Live check through the YouTube Data API ``videos.list`` status."""

    def __init__(self, channel_search: ChannelSearchService):
        self.channel_search = channel_search

    async def is_available(self, youtube_id: str) -> bool:
        resource = await self.channel_search.fetch_video_status(youtube_id)
        if resource is None:
            logger.info(f"Video {youtube_id} not found on YouTube")
            return False

        status = resource.get('status') or {}
        if status.get('privacyStatus') == 'private':
            logger.info(f"Video {youtube_id} is private")
            return False
        if status.get('uploadStatus', 'processed') != 'processed':
            logger.info(f"Video {youtube_id} upload status: {status.get('uploadStatus')}")
            return False

        processing = resource.get('processingDetails') or {}
        if processing.get('processingStatus', 'succeeded') != 'succeeded':
            logger.info(f"Video {youtube_id} processing incomplete: {processing.get('processingStatus')}")
            return False

        return True


class SyntheticProbe:
    """Random stand-in for a live check, failing ``failure_rate`` of the time.

    Only used when no YouTube API key is configured.
    """

    def __init__(self, failure_rate: float = 0.05, rng: Optional[random.Random] = None):
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()

    async def is_available(self, youtube_id: str) -> bool:
        return self.rng.random() >= self.failure_rate


class VideoValidator:
    """Classifies videos as playable, caching each verdict for the TTL."""

    def __init__(
        self,
        report_log: ReportLog,
        probe: AvailabilityProbe,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
    ):
        self.report_log = report_log
        self.probe = probe
        self.cache: TTLCache[ValidationResult] = TTLCache(cache_ttl)
        # Bumped on every report so in-flight checks do not cache stale verdicts
        self._report_generation = 0

    @classmethod
    def from_config(cls, config: Dict, report_log: ReportLog, channel_search: ChannelSearchService) -> 'VideoValidator':
        if channel_search.is_configured:
            probe: AvailabilityProbe = YouTubeStatusProbe(channel_search)
        else:
            rate = config.get('synthetic_failure_rate', 0.05)
            logger.warning(f"No live video check configured, using synthetic probe ({rate:.0%} failure)")
            probe = SyntheticProbe(rate)
        return cls(report_log, probe, config.get('cache_ttl_seconds', DEFAULT_TTL_SECONDS))

    async def validate(self, video: Video) -> ValidationResult:
        cached = self.cache.get(video.id)
        if cached is not None:
            return cached

        generation = self._report_generation
        result = await self._check(video)
        if generation == self._report_generation:
            self.cache.set(video.id, result)
        return result

    async def _check(self, video: Video) -> ValidationResult:
        embed_url = youtube_embed_url(video.video_url)
        if not embed_url:
            return ValidationResult(playable=False, embed_url=None, error=ERROR_INVALID_URL)

        youtube_id = video_id_from_embed(embed_url)
        problematic = self.report_log.problematic_ids()
        if video.id in problematic or (youtube_id and youtube_id in problematic):
            return ValidationResult(playable=False, embed_url=None, error=ERROR_REPORTED)

        # Playlists have no single video to probe
        if youtube_id is None:
            return ValidationResult(playable=True, embed_url=embed_url)

        try:
            available = await self.probe.is_available(youtube_id)
        except Exception as e:
            logger.error(f"Error checking availability of {video.id}: {e}")
            return ValidationResult(playable=False, embed_url=None, error=ERROR_VALIDATION)

        if not available:
            return ValidationResult(playable=False, embed_url=None, error=ERROR_UNAVAILABLE)
        return ValidationResult(playable=True, embed_url=embed_url)

    async def filter_valid_videos(self, videos: List[Video]) -> List[Video]:
        """Validate all videos concurrently; keep playable ones in order."""
        results = await asyncio.gather(*(self.validate(video) for video in videos))
        valid = [video for video, result in zip(videos, results) if result.playable]
        if len(valid) < len(videos):
            logger.info(f"Filtered out {len(videos) - len(valid)} unplayable videos")
        return valid

    def mark_problematic(self, video_id: str, reason: str, user_id: Optional[str] = None) -> None:
        self.report_log.append(video_id, reason, user_id)
        self._report_generation += 1
        self.cache.evict(video_id)

    def cache_stats(self) -> Dict[str, int]:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()
