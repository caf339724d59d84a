"""Static catalog of curated educational videos."""

import json
from dataclasses import replace
import logging
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional

from netescola.models.student import SCHOOL_GRADES_OPTIONS, SchoolGrade
from netescola.models.video import Video, VideoSource

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).parent.parent / 'data' / 'videos.json'

ALLOWED_GRADES: FrozenSet[SchoolGrade] = frozenset(SCHOOL_GRADES_OPTIONS)

SUBJECTS_BY_GRADE: Dict[SchoolGrade, List[str]] = {
    SchoolGrade.ANO_9_EF: ["Português", "Matemática", "Ciências", "História", "Geografia", "Inglês", "Física", "Química", "Biologia"],
    SchoolGrade.SERIE_1_EM: ["Português", "Matemática", "Física", "Química", "Biologia", "História", "Geografia", "Filosofia", "Sociologia", "Inglês"],
    SchoolGrade.SERIE_2_EM: ["Português", "Matemática", "Física", "Química", "Biologia", "História", "Geografia", "Filosofia", "Sociologia", "Inglês"],
    SchoolGrade.SERIE_3_EM: ["Português", "Matemática", "Física", "Química", "Biologia", "História", "Geografia", "Filosofia", "Sociologia", "Inglês"],
}


def filter_by_allowed_grades(videos: Iterable[Video], allowed: FrozenSet[SchoolGrade] = ALLOWED_GRADES) -> List[Video]:
    """Restrict grade levels to ``allowed``; drop videos left without any."""
    filtered = []
    for video in videos:
        grades = video.grade_levels & allowed
        if not grades:
            logger.debug(f"Dropping catalog video {video.id}: no recognized grade level")
            continue
        if grades != video.grade_levels:
            video = replace(video, grade_levels=grades)
        filtered.append(video)
    return filtered


def load_catalog_file(path: Path = CATALOG_PATH) -> List[dict]:
    """Raw catalog entries as stored on disk."""
    with open(path, encoding='utf-8') as f:
        return json.load(f)


class VideoCatalog:
    """Curated videos, filtered at load time to recognized grades."""

    def __init__(self, videos: Optional[List[Video]] = None, path: Path = CATALOG_PATH):
        if videos is None:
            videos = [Video.from_dict(entry) for entry in load_catalog_file(path)]
        self._videos = filter_by_allowed_grades(videos)
        logger.debug(f"Loaded {len(self._videos)} catalog videos")

    def all_videos(self) -> List[Video]:
        return list(self._videos)

    def for_grade(self, grade: SchoolGrade) -> List[Video]:
        return [video for video in self._videos if grade in video.grade_levels]

    def by_subject(self, subject: str, source: Optional[VideoSource] = None) -> List[Video]:
        subject_lower = subject.lower()
        return [
            video for video in self._videos
            if video.subject.lower() == subject_lower and (source is None or video.source is source)
        ]

    def __len__(self) -> int:
        return len(self._videos)
