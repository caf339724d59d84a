"""Video-related data models."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, List, Optional

from netescola.models.student import SchoolGrade


class VideoSource(Enum):
    """Where a video comes from. Curated channel content is ranked first."""
    CURATED_CHANNEL = "GoiásTec"
    OTHER = "Outro"


@dataclass(frozen=True)
class Video:
    """A video recommendation candidate."""

    id: str
    title: str
    description: str
    thumbnail_url: str
    video_url: str
    subject: str
    grade_levels: FrozenSet[SchoolGrade]
    source: VideoSource = VideoSource.OTHER
    justification: Optional[str] = None

    @property
    def is_curated(self) -> bool:
        return self.source is VideoSource.CURATED_CHANNEL

    def with_justification(self, justification: str) -> 'Video':
        return replace(self, justification=justification)

    def to_dict(self) -> dict:
        """Convert to the catalog JSON layout."""
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'thumbnailUrl': self.thumbnail_url,
            'videoUrl': self.video_url,
            'subject': self.subject,
            'gradeLevel': [grade.value for grade in sorted(self.grade_levels, key=list(SchoolGrade).index)],
            'source': self.source.value,
        }
        if self.justification:
            data['justification'] = self.justification
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Video':
        """Build from the catalog JSON layout, dropping unknown grade labels."""
        known = {grade.value: grade for grade in SchoolGrade}
        grades = frozenset(known[label] for label in data.get('gradeLevel', []) if label in known)
        return cls(
            id=data['id'],
            title=data['title'],
            description=data.get('description', ''),
            thumbnail_url=data.get('thumbnailUrl', ''),
            video_url=data['videoUrl'],
            subject=data['subject'],
            grade_levels=grades,
            source=VideoSource(data.get('source', VideoSource.OTHER.value)),
            justification=data.get('justification'),
        )


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking whether a video can be embedded."""

    playable: bool
    embed_url: Optional[str] = None
    error: Optional[str] = None


@dataclass
class RecommendationSet:
    """Assembled recommendations plus the heading and any degraded-mode notice."""

    videos: List[Video] = field(default_factory=list)
    title: str = ""
    focus_subjects: List[str] = field(default_factory=list)
    notice: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.notice is not None
