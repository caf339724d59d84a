"""YouTube Data API search over the curated GoiásTec channels."""

import asyncio
import functools
import logging
import threading
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from netescola.models.student import Bimester, SCHOOL_GRADES_OPTIONS, SchoolGrade
from netescola.models.video import Video, VideoSource
from netescola.utils.cache import DEFAULT_TTL_SECONDS, TTLCache
from netescola.utils.config import DEFAULT_CHANNEL_ID_EF, DEFAULT_CHANNEL_ID_EM

logger = logging.getLogger(__name__)

# Keep googleapiclient discovery chatter out of the console
logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)

DESCRIPTION_LIMIT = 300

# Titles are free text, so each subject needs many synonyms
SUBJECT_KEYWORDS: Dict[str, List[str]] = {
    'Matemática': ['matemática', 'matematica', 'álgebra', 'algebra', 'geometria', 'trigonometria', 'função', 'funcao', 'equação', 'equacao'],
    'Português': ['português', 'portugues', 'literatura', 'gramática', 'gramatica', 'redação', 'redacao', 'interpretação', 'interpretacao'],
    'Física': ['física', 'fisica', 'mecânica', 'mecanica', 'eletricidade', 'óptica', 'optica', 'termodinâmica', 'termodinamica'],
    'Química': ['química', 'quimica', 'orgânica', 'organica', 'inorgânica', 'inorganica', 'estequiometria', 'atomística', 'atomistica'],
    'Biologia': ['biologia', 'botânica', 'botanica', 'zoologia', 'genética', 'genetica', 'ecologia', 'citologia'],
    'Ciências': ['ciências', 'ciencias', 'corpo humano', 'ecossistema', 'matéria', 'materia'],
    'História': ['história', 'historia', 'brasil colônia', 'guerra', 'república', 'republica', 'idade média', 'idade media'],
    'Geografia': ['geografia', 'relevo', 'clima', 'população', 'populacao', 'urbanização', 'urbanizacao', 'cartografia'],
    'Filosofia': ['filosofia', 'ética', 'etica', 'lógica', 'logica', 'epistemologia', 'metafísica', 'metafisica'],
    'Sociologia': ['sociologia', 'sociedade', 'cultura', 'política', 'politica', 'antropologia'],
    'Inglês': ['inglês', 'ingles', 'english', 'grammar', 'vocabulary', 'conversation'],
}

GRADE_MARKERS: Dict[SchoolGrade, List[str]] = {
    SchoolGrade.ANO_9_EF: ['9º ano', '9 ano', 'nono ano'],
    SchoolGrade.SERIE_1_EM: ['1ª série', '1 série', 'primeiro ano', '1º ano'],
    SchoolGrade.SERIE_2_EM: ['2ª série', '2 série', 'segundo ano', '2º ano'],
    SchoolGrade.SERIE_3_EM: ['3ª série', '3 série', 'terceiro ano', '3º ano'],
}

ALL_GRADES: FrozenSet[SchoolGrade] = frozenset(SCHOOL_GRADES_OPTIONS)


def keywords_for(subject: str) -> List[str]:
    return SUBJECT_KEYWORDS.get(subject, [subject.lower()])


def identify_subject(title: str, description: str, preferred: Optional[str] = None) -> str:
    """Find the subject named in the text, checking ``preferred`` first.

    Falls back to ``preferred`` (or "Geral") when no keyword matches.
    """
    text = f"{title} {description}".lower()
    if preferred and any(keyword in text for keyword in keywords_for(preferred)):
        return preferred
    for subject, keywords in SUBJECT_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            return subject
    return preferred or 'Geral'


def determine_grade_levels(title: str, description: str) -> FrozenSet[SchoolGrade]:
    """Grades mentioned in the text; every grade when none is mentioned."""
    text = f"{title} {description}".lower()
    grades = frozenset(
        grade for grade, markers in GRADE_MARKERS.items()
        if any(marker in text for marker in markers)
    )
    return grades or ALL_GRADES


def truncate_description(description: str, limit: int = DESCRIPTION_LIMIT) -> str:
    if len(description) <= limit:
        return description
    return description[:limit] + '...'


class ChannelSearchService:
    """Searches the regional channel that matches a student's grade band."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        channel_ids: Optional[Dict[str, str]] = None,
        youtube: Any = None,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
    ):
        """Initialize the channel search service.

        Args:
            api_key: YouTube Data API key; without it searches return nothing
            channel_ids: Channel id per grade band, keys "ef" and "em"
            youtube: Prebuilt API resource shared by all threads (tests pass a fake)
            cache_ttl: Seconds a search result stays cached
        """
        self.api_key = api_key
        self.channel_ids = {'ef': DEFAULT_CHANNEL_ID_EF, 'em': DEFAULT_CHANNEL_ID_EM}
        self.channel_ids.update(channel_ids or {})
        self._youtube = youtube
        # httplib2 transports are not thread-safe, so each executor thread builds its own
        self._local = threading.local()
        self.cache: TTLCache[List[Video]] = TTLCache(cache_ttl)

    @classmethod
    def from_config(cls, config: Dict) -> 'ChannelSearchService':
        return cls(
            api_key=config.get('youtube_api_key'),
            channel_ids={
                'ef': config.get('youtube_channel_id_ef', DEFAULT_CHANNEL_ID_EF),
                'em': config.get('youtube_channel_id_em', DEFAULT_CHANNEL_ID_EM),
            },
            cache_ttl=config.get('cache_ttl_seconds', DEFAULT_TTL_SECONDS),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or self._youtube is not None

    @property
    def youtube(self) -> Any:
        if self._youtube is not None:
            return self._youtube
        resource = getattr(self._local, 'youtube', None)
        if resource is None:
            logger.debug(f"Building YouTube API client for thread {threading.current_thread().name}")
            resource = build('youtube', 'v3', developerKey=self.api_key, cache_discovery=False)
            self._local.youtube = resource
        return resource

    def channel_for(self, grade: SchoolGrade) -> str:
        return self.channel_ids['em'] if grade.is_ensino_medio else self.channel_ids['ef']

    def available_subjects(self) -> List[str]:
        return list(SUBJECT_KEYWORDS)

    def clear_cache(self) -> None:
        self.cache.clear()

    def _search_sync(self, channel_id: str, query: Optional[str], max_results: int, order: str) -> List[dict]:
        params = {
            'part': 'snippet',
            'channelId': channel_id,
            'type': 'video',
            'maxResults': min(max_results, 50),
            'order': order,
        }
        if query:
            params['q'] = query
        response = self.youtube.search().list(**params).execute()
        return response.get('items', [])

    async def _search(self, channel_id: str, query: Optional[str], max_results: int, order: str = 'relevance') -> List[dict]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self._search_sync, channel_id, query, max_results, order)
        )

    def _parse_item(self, item: dict, preferred_subject: Optional[str] = None) -> Optional[Video]:
        """Parse a search.list item into a Video."""
        video_id = (item.get('id') or {}).get('videoId')
        snippet = item.get('snippet') or {}
        if not video_id:
            return None

        title = snippet.get('title', 'Sem título')
        description = snippet.get('description', '')
        thumbnails = snippet.get('thumbnails') or {}
        thumbnail = next(
            (thumbnails[size]['url'] for size in ('high', 'medium', 'default') if size in thumbnails),
            '',
        )

        return Video(
            id=f"gt_{video_id}",
            title=title,
            description=truncate_description(description),
            thumbnail_url=thumbnail,
            video_url=f"https://www.youtube.com/watch?v={video_id}",
            subject=identify_subject(title, description, preferred_subject),
            grade_levels=determine_grade_levels(title, description),
            source=VideoSource.CURATED_CHANNEL,
        )

    async def search_videos_by_subject(
        self,
        subject: str,
        grade: SchoolGrade,
        max_results: int = 20,
        bimester: Optional[Bimester] = None,
    ) -> List[Video]:
        """Search the grade's channel for ``subject``, one request per keyword.

        Results are deduplicated by YouTube video id, restricted to videos that
        apply to ``grade`` and cut to ``max_results``. Failures are logged and
        yield an empty list.
        """
        cache_key = (subject, grade.value, max_results, bimester.value if bimester else None)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        if not self.is_configured:
            logger.debug("YouTube API key not configured, skipping channel search")
            return []

        channel_id = self.channel_for(grade)
        seen = set()
        videos: List[Video] = []

        logger.info(f"Searching channel {channel_id} for '{subject}' ({grade.value})")

        try:
            for keyword in keywords_for(subject):
                items = await self._search(channel_id, keyword, max_results)
                for item in items:
                    video = self._parse_item(item, preferred_subject=subject)
                    if video is None or video.id in seen:
                        continue
                    seen.add(video.id)
                    if grade in video.grade_levels:
                        videos.append(video)
                if len(videos) >= max_results:
                    break
        except HttpError as e:
            logger.error(f"YouTube search failed for '{subject}' (HTTP {e.resp.status}): {e.reason}")
            return []
        except Exception as e:
            logger.error(f"Channel search failed for '{subject}': {e}")
            return []

        videos = videos[:max_results]
        self.cache.set(cache_key, videos)
        logger.info(f"Found {len(videos)} channel videos for '{subject}'")
        return videos

    async def search_many(
        self,
        subjects: Iterable[str],
        grade: SchoolGrade,
        max_results: int = 20,
        bimester: Optional[Bimester] = None,
    ) -> List[Video]:
        """Run one search per subject concurrently and concatenate in subject order."""
        results = await asyncio.gather(*(
            self.search_videos_by_subject(subject, grade, max_results, bimester)
            for subject in subjects
        ))
        return [video for batch in results for video in batch]

    async def get_recent_videos(self, grade: SchoolGrade, max_results: int = 50) -> List[Video]:
        """Latest uploads of the grade's channel, subject inferred from the text."""
        cache_key = ('recent', grade.value, max_results)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        if not self.is_configured:
            return []

        try:
            items = await self._search(self.channel_for(grade), None, max_results, order='date')
        except Exception as e:
            logger.error(f"Failed to fetch recent channel videos: {e}")
            return []

        videos = [video for video in (self._parse_item(item) for item in items) if video]
        self.cache.set(cache_key, videos)
        return videos

    def _video_status_sync(self, youtube_id: str) -> Optional[dict]:
        response = self.youtube.videos().list(part='status,processingDetails', id=youtube_id).execute()
        items = response.get('items', [])
        return items[0] if items else None

    async def fetch_video_status(self, youtube_id: str) -> Optional[dict]:
        """Status resource for a video, or None when the video does not exist.

        Raises:
            HttpError: On API failures; the validator turns these into a
                not-playable result.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._video_status_sync, youtube_id)
