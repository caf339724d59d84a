"""Builds the list of recommended videos for an analyzed bimester."""

import logging
from typing import Iterable, List, Optional, Set, Tuple

from netescola.models.student import AnalysisData
from netescola.models.video import RecommendationSet, Video
from netescola.services.ai_service import AIService, DEFAULT_SUBJECT_PERFORMANCE_THRESHOLD
from netescola.services.catalog import VideoCatalog
from netescola.services.video_validation import VideoValidator
from netescola.services.youtube_service import ChannelSearchService

logger = logging.getLogger(__name__)

JUSTIFIED_VIDEO_COUNT = 3
FALLBACK_VIDEO_COUNT = 12
CHANNEL_RESULTS_PER_SUBJECT = 20

PLACEHOLDER_JUSTIFICATION = "Vídeo recomendado para complementar seus estudos."

TITLE_REFINED = "Resultados da Busca Refinada"
TITLE_REINFORCEMENT = "Recomendações de Reforço"
TITLE_EXPLORE = "Explore Vídeos para Estudo"

NOTICE_FALLBACK = (
    "Não foi possível montar recomendações personalizadas agora. "
    "Mostrando vídeos do catálogo da sua série."
)
NOTICE_EMPTY = "Nenhum vídeo disponível foi encontrado para os filtros escolhidos."


def dedupe_by_url(videos: Iterable[Video]) -> List[Video]:
    """Keep the first video for each source URL."""
    seen: Set[str] = set()
    unique = []
    for video in videos:
        if video.video_url in seen:
            continue
        seen.add(video.video_url)
        unique.append(video)
    return unique


def priority_key(video: Video, focus_subjects: Set[str]) -> Tuple[bool, bool, str]:
    """Focus subjects first, then curated channel videos, then title."""
    return (
        video.subject.lower() not in focus_subjects,
        not video.is_curated,
        video.title.casefold(),
    )


def sort_by_priority(videos: Iterable[Video], focus_subjects: Iterable[str]) -> List[Video]:
    focus = {subject.lower() for subject in focus_subjects}
    return sorted(videos, key=lambda video: priority_key(video, focus))


class RecommendationAssembler:
    """Merges channel and catalog videos, ranks, validates and justifies them."""

    def __init__(
        self,
        catalog: VideoCatalog,
        channel_search: ChannelSearchService,
        validator: VideoValidator,
        ai_service: AIService,
        threshold: float = DEFAULT_SUBJECT_PERFORMANCE_THRESHOLD,
    ):
        self.catalog = catalog
        self.channel_search = channel_search
        self.validator = validator
        self.ai_service = ai_service
        self.threshold = threshold

    async def assemble(
        self, analysis: AnalysisData, filter_subjects: Optional[Iterable[str]] = None
    ) -> RecommendationSet:
        """Recommendations for ``analysis``.

        Args:
            analysis: The analyzed bimester
            filter_subjects: Subjects the student picked; when given, only live
                channel content for them is shown

        Returns:
            RecommendationSet; on unexpected errors a catalog slice with a notice
        """
        selected = sorted(set(filter_subjects or []))
        weak_subjects = analysis.weak_subjects(self.threshold)

        try:
            return await self._assemble(analysis, selected, weak_subjects)
        except Exception as e:
            logger.error(f"Recommendation assembly failed, using catalog fallback: {e}")
            videos = self.catalog.for_grade(analysis.school_grade)[:FALLBACK_VIDEO_COUNT]
            return RecommendationSet(
                videos=videos,
                title=TITLE_REINFORCEMENT if weak_subjects else TITLE_EXPLORE,
                focus_subjects=weak_subjects,
                notice=NOTICE_FALLBACK,
            )

    async def _assemble(
        self, analysis: AnalysisData, selected: List[str], weak_subjects: List[str]
    ) -> RecommendationSet:
        grade = analysis.school_grade

        if selected:
            pool = await self.channel_search.search_many(
                selected, grade, CHANNEL_RESULTS_PER_SUBJECT, analysis.bimester
            )
            title = TITLE_REFINED
            focus = selected
        else:
            search_subjects = weak_subjects or [p.subject for p in analysis.performance]
            channel_videos = await self.channel_search.search_many(
                search_subjects, grade, CHANNEL_RESULTS_PER_SUBJECT, analysis.bimester
            )
            pool = channel_videos + self.catalog.for_grade(grade)
            title = TITLE_REINFORCEMENT if weak_subjects else TITLE_EXPLORE
            focus = weak_subjects

        ranked = sort_by_priority(dedupe_by_url(pool), weak_subjects)
        logger.info(f"Ranked {len(ranked)} candidate videos for {grade.value}")

        playable = await self.validator.filter_valid_videos(ranked)
        videos = await self._justify(playable, analysis)

        notice = NOTICE_EMPTY if selected and not videos else None
        return RecommendationSet(videos=videos, title=title, focus_subjects=focus, notice=notice)

    async def _justify(self, videos: List[Video], analysis: AnalysisData) -> List[Video]:
        """AI justification for the top videos only; the rest keep theirs or a placeholder."""
        justified = []
        for index, video in enumerate(videos):
            if index < JUSTIFIED_VIDEO_COUNT and analysis.performance:
                result = await self.ai_service.generate_video_justification(video, analysis)
                justified.append(video.with_justification(result.value))
            else:
                justified.append(video.with_justification(video.justification or PLACEHOLDER_JUSTIFICATION))
        return justified
