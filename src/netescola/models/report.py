"""Video issue report model."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class IssueType(Enum):
    """Problem categories a student can report for a video."""
    UNAVAILABLE = "unavailable"
    PRIVATE = "private"
    DELETED = "deleted"
    NETWORK = "network"
    OTHER = "other"

    @property
    def label(self) -> str:
        return ISSUE_LABELS[self]


ISSUE_LABELS = {
    IssueType.UNAVAILABLE: "Vídeo indisponível",
    IssueType.PRIVATE: "Vídeo privado",
    IssueType.DELETED: "Vídeo removido",
    IssueType.NETWORK: "Problema de conexão",
    IssueType.OTHER: "Outro problema",
}


@dataclass(frozen=True)
class IssueReport:
    """One entry of the append-only report log."""

    video_id: str
    issue_type: str
    timestamp: datetime
    user_id: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert report to dictionary for storage."""
        data = {
            'videoId': self.video_id,
            'issueType': self.issue_type,
            'timestamp': self.timestamp.isoformat(),
        }
        if self.user_id:
            data['userId'] = self.user_id
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'IssueReport':
        """Create report from a stored dictionary."""
        return cls(
            video_id=data['videoId'],
            issue_type=data.get('issueType', IssueType.OTHER.value),
            timestamp=datetime.fromisoformat(data['timestamp']),
            user_id=data.get('userId'),
        )
