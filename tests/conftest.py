"""Shared fakes for the Gemini SDK, the YouTube Data API and the local store."""

from types import SimpleNamespace
from typing import Callable, Dict, List, Optional

import pytest

from netescola.models.student import SchoolGrade
from netescola.models.video import Video, VideoSource
from netescola.services.ai_client import AIClient, AIContext, Credential, build_credentials
from netescola.services.ai_service import AIService
from netescola.services.video_reports import ReportLog
from netescola.utils.rate_limiter import ConcurrencyGate
from netescola.utils.storage import LocalStore


class FakeGenai:
    """Client factory standing in for ``google.genai.Client``.

    ``responder(credential, model, prompt)`` returns the response text or an
    exception to raise.
    """

    def __init__(self, responder: Callable[[Credential, str, str], object]):
        self.responder = responder
        self.created: List[Credential] = []
        self.calls: List[tuple] = []

    def __call__(self, credential: Credential):
        self.created.append(credential)
        return SimpleNamespace(models=_FakeModels(self, credential))


class _FakeModels:
    def __init__(self, owner: FakeGenai, credential: Credential):
        self.owner = owner
        self.credential = credential

    def generate_content(self, model, contents, config=None):
        self.owner.calls.append((self.credential.label, self.credential.api_version, model))
        outcome = self.owner.responder(self.credential, model, contents)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(text=outcome)


class _FakeRequest:
    def __init__(self, result):
        self.result = result

    def execute(self):
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeYouTube:
    """Minimal ``search().list()`` / ``videos().list()`` resource."""

    def __init__(self, items_by_query: Optional[Dict[str, list]] = None, statuses: Optional[Dict[str, dict]] = None,
                 error: Optional[Exception] = None):
        self.items_by_query = items_by_query or {}
        self.statuses = statuses or {}
        self.error = error
        self.search_calls: List[dict] = []
        self.status_calls: List[str] = []

    def search(self):
        return SimpleNamespace(list=self._search_list)

    def videos(self):
        return SimpleNamespace(list=self._videos_list)

    def _search_list(self, **params):
        self.search_calls.append(params)
        if self.error:
            return _FakeRequest(self.error)
        return _FakeRequest({'items': self.items_by_query.get(params.get('q'), [])})

    def _videos_list(self, part, id):
        self.status_calls.append(id)
        status = self.statuses.get(id)
        return _FakeRequest({'items': [status] if status else []})


class CountingProbe:
    """Availability probe that records every video id it is asked about."""

    def __init__(self, unavailable=()):
        self.unavailable = set(unavailable)
        self.calls: List[str] = []

    async def is_available(self, youtube_id: str) -> bool:
        self.calls.append(youtube_id)
        return youtube_id not in self.unavailable


def search_item(video_id: str, title: str, description: str = "") -> dict:
    return {
        'id': {'kind': 'youtube#video', 'videoId': video_id},
        'snippet': {
            'title': title,
            'description': description,
            'thumbnails': {'high': {'url': f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"}},
        },
    }


def make_video(video_id: str, subject: str, title: Optional[str] = None, curated: bool = False,
               grades=(SchoolGrade.SERIE_1_EM,), url: Optional[str] = None) -> Video:
    # Build an 11-character YouTube id from the test id
    youtube_id = (video_id.replace('_', '') + 'x' * 11)[:11]
    return Video(
        id=video_id,
        title=title or f"{subject} {video_id}",
        description="",
        thumbnail_url="",
        video_url=url or f"https://www.youtube.com/watch?v={youtube_id}",
        subject=subject,
        grade_levels=frozenset(grades),
        source=VideoSource.CURATED_CHANNEL if curated else VideoSource.OTHER,
    )


def make_context(fake: Optional[FakeGenai] = None, keys=("key-1",), versions=("v1beta",), models=("model-a",),
                 max_retries: int = 2) -> AIContext:
    credentials = build_credentials(list(keys) if fake else [], list(versions))
    client = AIClient(credentials, models=list(models), client_factory=fake or FakeGenai(lambda *_: "unused"))
    gate = ConcurrencyGate(max_concurrent=1, min_interval=0, poll_interval=0)
    return AIContext(client=client, gate=gate, max_retries=max_retries, base_delay=0)


@pytest.fixture
def store(tmp_path):
    return LocalStore(str(tmp_path / "netescola-test.db"))


@pytest.fixture
def report_log(store):
    return ReportLog(store)


@pytest.fixture
def offline_ai():
    """AI service with no keys: every generator returns its template."""
    return AIService(make_context())
