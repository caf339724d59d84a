import pytest

from netescola.models.student import AnalysisData, Bimester, SchoolGrade, SubjectPerformance
from netescola.services.catalog import VideoCatalog
from netescola.services.recommendations import (
    FALLBACK_VIDEO_COUNT,
    NOTICE_EMPTY,
    NOTICE_FALLBACK,
    PLACEHOLDER_JUSTIFICATION,
    TITLE_EXPLORE,
    TITLE_REFINED,
    TITLE_REINFORCEMENT,
    RecommendationAssembler,
    dedupe_by_url,
    sort_by_priority,
)
from netescola.services.video_validation import VideoValidator

from conftest import CountingProbe, make_video


class FakeChannelSearch:
    """Returns canned videos per subject and records what was asked."""

    def __init__(self, videos_by_subject=None, error=None):
        self.videos_by_subject = videos_by_subject or {}
        self.error = error
        self.requested = []

    async def search_many(self, subjects, grade, max_results=20, bimester=None):
        subjects = list(subjects)
        self.requested.append(subjects)
        if self.error:
            raise self.error
        return [video for subject in subjects for video in self.videos_by_subject.get(subject, [])]


def analysis_for(**grades) -> AnalysisData:
    return AnalysisData(
        school_grade=SchoolGrade.SERIE_1_EM,
        bimester=Bimester.BIM_1,
        performance=[SubjectPerformance(subject, grade) for subject, grade in grades.items()],
    )


MATH_AND_PORTUGUESE = {"Matemática": 40, "Português": 90}


@pytest.fixture
def catalog():
    return VideoCatalog([
        make_video("cat_port_other", "Português", title="A Crase"),
        make_video("cat_math_other", "Matemática", title="Álgebra básica"),
        make_video("cat_port_curated", "Português", title="Orações", curated=True),
        make_video("cat_math_curated", "Matemática", title="Bhaskara", curated=True),
        make_video("cat_ef_only", "Matemática", grades=(SchoolGrade.ANO_9_EF,)),
    ])


def assembler_with(catalog, offline_ai, report_log, channel=None, probe=None) -> RecommendationAssembler:
    validator = VideoValidator(report_log, probe or CountingProbe())
    return RecommendationAssembler(catalog, channel or FakeChannelSearch(), validator, offline_ai, threshold=60)


def test_sort_priority_weak_subject_then_curated_then_title():
    videos = [
        make_video("p_o", "Português", title="Zeugma"),
        make_video("m_o", "Matemática", title="Adição"),
        make_video("p_c", "Português", title="Crase", curated=True),
        make_video("m_c2", "Matemática", title="Polinômios", curated=True),
        make_video("m_c1", "Matemática", title="Frações", curated=True),
    ]
    ranked = sort_by_priority(videos, ["matemática"])
    assert [video.id for video in ranked] == ["m_c1", "m_c2", "m_o", "p_c", "p_o"]


def test_dedupe_keeps_first_per_url():
    first = make_video("a", "Física", url="https://www.youtube.com/watch?v=gXWXkS2t0sM")
    duplicate = make_video("b", "Física", url="https://www.youtube.com/watch?v=gXWXkS2t0sM")
    assert dedupe_by_url([first, duplicate]) == [first]


@pytest.mark.asyncio
async def test_weak_subject_videos_ranked_first(catalog, offline_ai, report_log):
    channel = FakeChannelSearch({"Matemática": [make_video("gt_math", "Matemática", title="Funções", curated=True)]})
    assembler = assembler_with(catalog, offline_ai, report_log, channel)

    result = await assembler.assemble(analysis_for(**MATH_AND_PORTUGUESE))

    subjects = [video.subject for video in result.videos]
    assert subjects == ["Matemática"] * 3 + ["Português"] * 2
    # Curated before other within each subject bucket
    assert [video.is_curated for video in result.videos] == [True, True, False, True, False]
    assert result.title == TITLE_REINFORCEMENT
    assert result.focus_subjects == ["Matemática"]
    assert channel.requested == [["Matemática"]]
    assert "cat_ef_only" not in {video.id for video in result.videos}


@pytest.mark.asyncio
async def test_only_top_three_get_ai_justification(catalog, offline_ai, report_log):
    assembler = assembler_with(catalog, offline_ai, report_log)

    result = await assembler.assemble(analysis_for(**MATH_AND_PORTUGUESE))

    justifications = [video.justification for video in result.videos]
    assert all(justifications)
    assert PLACEHOLDER_JUSTIFICATION not in justifications[:3]
    assert justifications[3:] == [PLACEHOLDER_JUSTIFICATION]


@pytest.mark.asyncio
async def test_no_weak_subjects_explores_all_subjects(catalog, offline_ai, report_log):
    channel = FakeChannelSearch()
    assembler = assembler_with(catalog, offline_ai, report_log, channel)

    result = await assembler.assemble(analysis_for(Matemática=80, Português=90))

    assert result.title == TITLE_EXPLORE
    assert channel.requested == [["Matemática", "Português"]]
    assert result.focus_subjects == []


@pytest.mark.asyncio
async def test_manual_filter_is_channel_only(catalog, offline_ai, report_log):
    channel = FakeChannelSearch({"Português": [make_video("gt_port", "Português", curated=True)]})
    assembler = assembler_with(catalog, offline_ai, report_log, channel)

    result = await assembler.assemble(analysis_for(**MATH_AND_PORTUGUESE), filter_subjects=["Português"])

    assert [video.id for video in result.videos] == ["gt_port"]
    assert result.title == TITLE_REFINED
    assert result.focus_subjects == ["Português"]
    assert result.notice is None


@pytest.mark.asyncio
async def test_manual_filter_with_no_results_sets_notice(catalog, offline_ai, report_log):
    assembler = assembler_with(catalog, offline_ai, report_log)

    result = await assembler.assemble(analysis_for(**MATH_AND_PORTUGUESE), filter_subjects=["Filosofia"])

    assert result.videos == []
    assert result.notice == NOTICE_EMPTY


@pytest.mark.asyncio
async def test_unplayable_videos_are_filtered(catalog, offline_ai, report_log):
    report_log.append("cat_math_curated", "unavailable")
    assembler = assembler_with(catalog, offline_ai, report_log)

    result = await assembler.assemble(analysis_for(**MATH_AND_PORTUGUESE))

    assert "cat_math_curated" not in {video.id for video in result.videos}


@pytest.mark.asyncio
async def test_unexpected_error_falls_back_to_catalog(catalog, offline_ai, report_log):
    channel = FakeChannelSearch(error=RuntimeError("boom"))
    assembler = assembler_with(catalog, offline_ai, report_log, channel)

    result = await assembler.assemble(analysis_for(**MATH_AND_PORTUGUESE))

    assert result.notice == NOTICE_FALLBACK
    assert result.degraded
    assert [video.id for video in result.videos] == [
        video.id for video in catalog.for_grade(SchoolGrade.SERIE_1_EM)[:FALLBACK_VIDEO_COUNT]
    ]
