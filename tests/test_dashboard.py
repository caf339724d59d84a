import asyncio

import pytest

from netescola.dashboard import (
    LOGIN_INVALID,
    LOGIN_MISSING_FIELDS,
    AnalysisStep,
    Dashboard,
    LoginError,
    QuizStatus,
    View,
    ViewState,
    authenticate,
)
from netescola.models.quiz import QuizDifficulty, QuizQuestion
from netescola.models.results import GenerationResult
from netescola.models.student import Bimester
from netescola.services.ai_service import AIService
from netescola.services.catalog import VideoCatalog
from netescola.services.recommendations import RecommendationAssembler
from netescola.services.video_validation import ERROR_REPORTED, SyntheticProbe, VideoValidator
from netescola.services.youtube_service import ChannelSearchService

from conftest import CountingProbe, make_context, make_video


class GatedQuizAI(AIService):
    """Quiz generation that waits until the test releases it, per video title."""

    def __init__(self):
        super().__init__(make_context())
        self.pending = {}

    async def generate_quiz_for_video(self, video_title, video_subject, difficulty):
        event = asyncio.Event()
        self.pending[video_title] = event
        await event.wait()
        return GenerationResult.ok([QuizQuestion(video_title, ["a", "b", "c", "d"], "a", "porque")])


def build_dashboard(ai_service, report_log, store) -> Dashboard:
    validator = VideoValidator(report_log, CountingProbe())
    assembler = RecommendationAssembler(VideoCatalog(), ChannelSearchService(), validator, ai_service)
    return Dashboard(ai_service, assembler, validator, report_log, store=store)


@pytest.fixture
def dashboard(offline_ai, report_log, store):
    return build_dashboard(offline_ai, report_log, store)


class TestLogin:

    def test_password_must_equal_matricula(self):
        assert authenticate("2024001", "2024001").nome == "Ana Beatriz Souza"

        with pytest.raises(LoginError, match=LOGIN_INVALID):
            authenticate("2024001", "senha")

    def test_missing_fields(self):
        with pytest.raises(LoginError, match=LOGIN_MISSING_FIELDS):
            authenticate("", "2024001")

    def test_unknown_student(self):
        with pytest.raises(LoginError, match=LOGIN_INVALID):
            authenticate("9999999", "9999999")

    def test_login_and_logout_navigation(self, dashboard):
        dashboard.start_login()
        assert dashboard.view.current is View.LOGIN

        dashboard.login(" 2024003 ", "2024003")
        assert dashboard.view.current is View.DASHBOARD
        assert dashboard.user.first_name == "Mariana"

        dashboard.logout()
        assert dashboard.view.current is View.HOME
        assert dashboard.user is None


def test_reentering_dashboard_remounts_it():
    view = ViewState()
    view.navigate(View.DASHBOARD)
    view.navigate(View.DASHBOARD)
    assert view.dashboard_key == 1


class TestAnalysisFlow:

    @pytest.mark.asyncio
    async def test_analyze_builds_report_with_fallback_summary(self, dashboard):
        dashboard.login("2024003", "2024003")

        analysis = await dashboard.analyze_bimester(Bimester.BIM_1)

        assert dashboard.state.step is AnalysisStep.REPORT
        assert [p.grade for p in analysis.performance] == pytest.approx([90.0, 40.0, 77.0, 81.0])
        assert "Mariana" in dashboard.state.summary
        assert dashboard.state.summary_is_fallback
        assert dashboard.has_low_grades

    @pytest.mark.asyncio
    async def test_bimester_without_grades(self, dashboard):
        dashboard.login("2024003", "2024003")

        analysis = await dashboard.analyze_bimester(Bimester.BIM_4)

        assert analysis.performance == []
        assert not dashboard.has_low_grades

    @pytest.mark.asyncio
    async def test_reinforcement_then_refine_then_back(self, dashboard):
        dashboard.login("2024003", "2024003")
        await dashboard.analyze_bimester(Bimester.BIM_1)

        recommendations = await dashboard.proceed_to_reinforcement()
        assert dashboard.state.step is AnalysisStep.REINFORCEMENT
        assert recommendations.videos
        assert recommendations.videos[0].subject == "Matemática"

        refined = await dashboard.refine_search(["Física"])
        assert dashboard.state.filter_subjects == ["Física"]
        # Channel search is not configured, so a manual filter finds nothing
        assert refined.videos == []

        dashboard.back_to_selection()
        assert dashboard.state.step is AnalysisStep.SELECTION
        assert dashboard.state.analysis is None

    @pytest.mark.asyncio
    async def test_reinforcement_requires_analysis(self, dashboard):
        dashboard.login("2024003", "2024003")
        with pytest.raises(RuntimeError):
            await dashboard.proceed_to_reinforcement()


class TestVideos:

    @pytest.mark.asyncio
    async def test_select_video_adds_justification(self, dashboard):
        dashboard.login("2024003", "2024003")
        await dashboard.analyze_bimester(Bimester.BIM_1)
        video = make_video("v1", "Matemática")

        validation = await dashboard.select_video(video)

        assert validation.playable
        assert dashboard.selected_video.justification

    @pytest.mark.asyncio
    async def test_report_issue_blocks_video(self, dashboard, report_log):
        dashboard.login("2024001", "2024001")
        video = make_video("v1", "Química")
        assert (await dashboard.select_video(video)).playable

        dashboard.report_issue(video.id, "private")

        assert report_log.all()[0].user_id == "2024001"
        result = await dashboard.validator.validate(video)
        assert result.error == ERROR_REPORTED

    @pytest.mark.asyncio
    async def test_quiz_unavailable_without_ai(self, dashboard):
        state = await dashboard.request_quiz(make_video("v1", "Física"), QuizDifficulty.INICIANTE)
        assert state.status is QuizStatus.UNAVAILABLE
        assert state.quiz is None

    @pytest.mark.asyncio
    async def test_stale_quiz_result_is_dropped(self, report_log, store):
        ai = GatedQuizAI()
        dashboard = build_dashboard(ai, report_log, store)
        first = make_video("v1", "Física", title="Primeiro")
        second = make_video("v2", "Química", title="Segundo")

        first_task = asyncio.ensure_future(dashboard.request_quiz(first, QuizDifficulty.INICIANTE))
        await asyncio.sleep(0)
        second_task = asyncio.ensure_future(dashboard.request_quiz(second, QuizDifficulty.AVANCADO))
        await asyncio.sleep(0)
        assert dashboard.quiz.status is QuizStatus.LOADING

        ai.pending["Segundo"].set()
        await second_task
        ai.pending["Primeiro"].set()
        await first_task

        assert dashboard.quiz.status is QuizStatus.READY
        assert dashboard.quiz.video is second
        assert dashboard.quiz.quiz.questions[0].question == "Segundo"


def test_from_config_degrades_without_keys(tmp_path):
    config = {
        'database_path': str(tmp_path / "netescola.db"),
        'youtube_channel_id_ef': 'ef',
        'youtube_channel_id_em': 'em',
        'synthetic_failure_rate': 0.05,
        'performance_threshold': 60,
    }
    dashboard = Dashboard.from_config(config)

    assert not dashboard.ai_service.is_configured
    assert isinstance(dashboard.validator.probe, SyntheticProbe)
    assert dashboard.store is not None


def test_from_config_rejects_invalid_values(tmp_path):
    with pytest.raises(ValueError):
        Dashboard.from_config({
            'database_path': str(tmp_path / "netescola.db"),
            'youtube_channel_id_ef': 'ef',
            'youtube_channel_id_em': 'em',
            'ai_max_concurrent': 0,
        })
