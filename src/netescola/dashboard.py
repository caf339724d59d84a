"""Dashboard orchestration: view and analysis state, quizzes and recommendations."""

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from netescola.models.quiz import Quiz, QuizDifficulty
from netescola.models.roster import GRADES, STUDENTS
from netescola.models.student import AnalysisData, Bimester, GradeRecord, Student, build_analysis
from netescola.models.video import RecommendationSet, ValidationResult, Video
from netescola.services.ai_client import AIContext
from netescola.services.ai_service import AIService
from netescola.services.catalog import VideoCatalog
from netescola.services.recommendations import RecommendationAssembler
from netescola.services.video_reports import ReportLog
from netescola.services.video_validation import VideoValidator
from netescola.services.youtube_service import ChannelSearchService
from netescola.utils.config import load_config, validate_config, is_fatal_config_error
from netescola.utils.storage import LocalStore

logger = logging.getLogger(__name__)

LOGIN_MISSING_FIELDS = "Por favor, preencha a matrícula e a senha."
LOGIN_INVALID = "Matrícula ou senha inválida."


class View(Enum):
    HOME = "home"
    LOGIN = "login"
    DASHBOARD = "dashboard"


class AnalysisStep(Enum):
    SELECTION = "selection"
    REPORT = "report"
    REINFORCEMENT = "reinforcement"


class QuizStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class LoginError(Exception):
    """Login rejected; the message is shown to the student."""


def authenticate(matricula: str, senha: str, students: Iterable[Student] = STUDENTS) -> Student:
    """The password is the matrícula itself."""
    matricula = (matricula or "").strip()
    senha = (senha or "").strip()
    if not matricula or not senha:
        raise LoginError(LOGIN_MISSING_FIELDS)
    if matricula != senha:
        raise LoginError(LOGIN_INVALID)

    student = next((s for s in students if s.matricula == matricula), None)
    if student is None:
        raise LoginError(LOGIN_INVALID)
    return student


class RequestTracker:
    """Hands out tokens so a late async result can tell it was superseded."""

    def __init__(self):
        self._counter = itertools.count(1)
        self.current: Optional[int] = None

    def issue(self) -> int:
        self.current = next(self._counter)
        return self.current

    def is_current(self, token: int) -> bool:
        return token == self.current

    def invalidate(self) -> None:
        self.current = None


@dataclass
class QuizState:
    video: Optional[Video] = None
    difficulty: Optional[QuizDifficulty] = None
    quiz: Optional[Quiz] = None
    status: QuizStatus = QuizStatus.IDLE

    def reset(self) -> None:
        self.video = None
        self.difficulty = None
        self.quiz = None
        self.status = QuizStatus.IDLE


@dataclass
class ViewState:
    """Top-level navigation between home, login and dashboard."""

    current: View = View.HOME
    dashboard_key: int = 0

    def navigate(self, view: View) -> None:
        # Re-entering the dashboard remounts it
        if view is View.DASHBOARD and self.current is View.DASHBOARD:
            self.dashboard_key += 1
        self.current = view


@dataclass
class AnalysisState:
    step: AnalysisStep = AnalysisStep.SELECTION
    bimester: Bimester = Bimester.BIM_1
    analysis: Optional[AnalysisData] = None
    summary: str = ""
    summary_is_fallback: bool = False
    recommendations: Optional[RecommendationSet] = None
    filter_subjects: List[str] = field(default_factory=list)

    def reset(self) -> None:
        self.step = AnalysisStep.SELECTION
        self.analysis = None
        self.summary = ""
        self.summary_is_fallback = False
        self.recommendations = None
        self.filter_subjects = []


class Dashboard:
    """Session orchestrator tying the roster, AI services and video pipeline together."""

    def __init__(
        self,
        ai_service: AIService,
        assembler: RecommendationAssembler,
        validator: VideoValidator,
        report_log: ReportLog,
        grades: Optional[List[GradeRecord]] = None,
        students: Optional[List[Student]] = None,
        threshold: float = 60,
        store: Optional[LocalStore] = None,
    ):
        self.ai_service = ai_service
        self.store = store
        self.assembler = assembler
        self.validator = validator
        self.report_log = report_log
        self.grades = GRADES if grades is None else grades
        self.students = STUDENTS if students is None else students
        self.threshold = threshold

        self.user: Optional[Student] = None
        self.view = ViewState()
        self.state = AnalysisState()
        self.quiz = QuizState()
        self.selected_video: Optional[Video] = None
        self._quiz_requests = RequestTracker()
        self._selection_requests = RequestTracker()

    @classmethod
    def from_config(cls, config: Optional[Dict] = None) -> 'Dashboard':
        """Build every service once for the session."""
        config = config or load_config()

        problems = validate_config(config)
        for problem in problems:
            logger.warning(problem)
        fatal = [p for p in problems if is_fatal_config_error(p)]
        if fatal:
            error_msg = "Configuration errors: " + "; ".join(fatal)
            logger.error(error_msg)
            raise ValueError(error_msg)

        threshold = config.get('performance_threshold', 60)
        store = LocalStore(config['database_path'])
        report_log = ReportLog(store)
        channel_search = ChannelSearchService.from_config(config)
        validator = VideoValidator.from_config(config, report_log, channel_search)
        ai_service = AIService(AIContext.from_config(config), threshold)
        assembler = RecommendationAssembler(
            VideoCatalog(), channel_search, validator, ai_service, threshold
        )

        dashboard = cls(ai_service, assembler, validator, report_log, threshold=threshold, store=store)
        logger.info("Dashboard initialized successfully")
        return dashboard

    # Navigation

    def start_login(self) -> None:
        self.view.navigate(View.LOGIN)

    def login(self, matricula: str, senha: str) -> Student:
        student = authenticate(matricula, senha, self.students)
        self.user = student
        self.state.reset()
        self.view.navigate(View.DASHBOARD)
        logger.info(f"Student {student.matricula} logged in")
        return student

    def logout(self) -> None:
        self.user = None
        self.state.reset()
        self.quiz.reset()
        self.selected_video = None
        self._quiz_requests.invalidate()
        self._selection_requests.invalidate()
        self.view.navigate(View.HOME)

    def _require_user(self) -> Student:
        if self.user is None:
            raise RuntimeError("No student logged in")
        return self.user

    # Analysis steps

    async def analyze_bimester(self, bimester: Bimester) -> AnalysisData:
        """Build the bimester view and, when there are grades, its summary."""
        student = self._require_user()
        self.state.reset()
        self.state.bimester = bimester

        analysis = build_analysis(student, bimester, self.grades)
        self.state.analysis = analysis
        self.state.step = AnalysisStep.REPORT

        if analysis.performance:
            result = await self.ai_service.generate_performance_summary(student, analysis)
            # The student may have gone back while the summary was pending
            if self.state.analysis is analysis:
                self.state.summary = result.value
                self.state.summary_is_fallback = result.is_fallback

        return analysis

    @property
    def has_low_grades(self) -> bool:
        analysis = self.state.analysis
        return analysis.has_low_grades(self.threshold) if analysis else False

    async def proceed_to_reinforcement(self) -> RecommendationSet:
        analysis = self.state.analysis
        if analysis is None or self.state.step is not AnalysisStep.REPORT:
            raise RuntimeError("Analyze a bimester before asking for recommendations")

        self.state.step = AnalysisStep.REINFORCEMENT
        self.state.filter_subjects = []
        recommendations = await self.assembler.assemble(analysis)
        if self.state.analysis is analysis:
            self.state.recommendations = recommendations
        return recommendations

    async def refine_search(self, subjects: Iterable[str]) -> RecommendationSet:
        analysis = self.state.analysis
        if analysis is None or self.state.step is not AnalysisStep.REINFORCEMENT:
            raise RuntimeError("Recommendations are not open")

        self.state.filter_subjects = sorted(set(subjects))
        recommendations = await self.assembler.assemble(analysis, self.state.filter_subjects or None)
        if self.state.analysis is analysis:
            self.state.recommendations = recommendations
        return recommendations

    def back_to_selection(self) -> None:
        self.state.reset()
        self.selected_video = None
        self._selection_requests.invalidate()

    # Videos and quizzes

    async def select_video(self, video: Video) -> ValidationResult:
        """Open a video; fills in a justification if it has none and is still selected."""
        self.selected_video = video
        token = self._selection_requests.issue()

        validation = await self.validator.validate(video)

        if not video.justification and self.state.analysis and self.state.analysis.performance:
            result = await self.ai_service.generate_video_justification(video, self.state.analysis)
            if self._selection_requests.is_current(token):
                self.selected_video = video.with_justification(result.value)
            else:
                logger.debug(f"Dropping stale justification for {video.id}")

        return validation

    def close_video(self) -> None:
        self.selected_video = None
        self._selection_requests.invalidate()

    async def request_quiz(self, video: Video, difficulty: QuizDifficulty) -> QuizState:
        """Generate a quiz; a result for a superseded request is discarded."""
        token = self._quiz_requests.issue()
        self.quiz.video = video
        self.quiz.difficulty = difficulty
        self.quiz.quiz = None
        self.quiz.status = QuizStatus.LOADING

        result = await self.ai_service.generate_quiz_for_video(video.title, video.subject, difficulty)

        if not self._quiz_requests.is_current(token):
            logger.debug(f"Dropping stale quiz for {video.id}")
            return self.quiz

        if result.value is None:
            self.quiz.status = QuizStatus.UNAVAILABLE
        else:
            self.quiz.quiz = Quiz(difficulty=difficulty, questions=result.value)
            self.quiz.status = QuizStatus.READY
        return self.quiz

    def report_issue(self, video_id: str, issue_type: str) -> None:
        user_id = self.user.matricula if self.user else None
        self.validator.mark_problematic(video_id, issue_type, user_id)
