"""Append-only log of video issues reported by students."""

import json
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Set

from netescola.models.report import IssueReport
from netescola.utils.storage import LocalStore

logger = logging.getLogger(__name__)

REPORTS_KEY = "videoIssueReports"


class ReportLog:
    """Issue reports kept as one JSON list in the local store."""

    def __init__(self, store: LocalStore):
        self.store = store

    def _load_raw(self) -> List[dict]:
        raw = self.store.get_json(REPORTS_KEY, [])
        if not isinstance(raw, list):
            logger.warning(f"Ignoring malformed report log of type {type(raw).__name__}")
            return []
        return raw

    def append(self, video_id: str, issue_type: str, user_id: Optional[str] = None) -> IssueReport:
        report = IssueReport(
            video_id=video_id,
            issue_type=issue_type,
            timestamp=datetime.now(),
            user_id=user_id,
        )
        reports = self._load_raw()
        reports.append(report.to_dict())
        self.store.set_json(REPORTS_KEY, reports)
        logger.info(f"Video issue reported: {video_id} - {issue_type}")
        return report

    def all(self) -> List[IssueReport]:
        reports = []
        for entry in self._load_raw():
            try:
                reports.append(IssueReport.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable report entry {entry}: {e}")
        return reports

    def filter(self, issue_type: Optional[str] = None) -> List[IssueReport]:
        if not issue_type or issue_type == 'all':
            return self.all()
        return [report for report in self.all() if report.issue_type == issue_type]

    def problematic_ids(self) -> Set[str]:
        """Every video id that has at least one report."""
        return {report.video_id for report in self.all()}

    def counts_by_type(self) -> Dict[str, int]:
        return dict(Counter(report.issue_type for report in self.all()))

    def export(self, path: Path) -> int:
        """Write the reports as pretty JSON; returns how many were written."""
        reports = [report.to_dict() for report in self.all()]
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(reports, f, indent=2, ensure_ascii=False)
        return len(reports)

    def clear(self) -> None:
        self.store.remove(REPORTS_KEY)
        logger.info("Video issue reports cleared")
