"""Main application entry point for NetEscola+."""

import asyncio
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from netescola.dashboard import Dashboard, LoginError, QuizStatus, View
from netescola.models.quiz import QuizDifficulty
from netescola.models.report import IssueType
from netescola.models.student import BIMESTER_OPTIONS
from netescola.models.video import RecommendationSet, ValidationResult, Video
from netescola.scripts.reports import reports_table, summary_table
from netescola.services.ai_service import format_grade
from netescola.services.catalog import SUBJECTS_BY_GRADE
from netescola.utils.config import load_config, setup_logging

logger = logging.getLogger(__name__)

APP_NAME = "NetEscola+"
AI_OFFLINE_NOTICE = "ai-offline-notice"


class NetEscolaApp:
    """Terminal rendition of the student dashboard."""

    def __init__(self, dashboard: Dashboard, console: Optional[Console] = None):
        self.dashboard = dashboard
        self.console = console or Console()

    async def run(self) -> None:
        self.console.print(Panel.fit(f"[bold]{APP_NAME}[/bold]\nSeu reforço escolar personalizado"))
        self._show_ai_notice_once()

        while True:
            view = self.dashboard.view.current
            if view is View.HOME:
                if not Confirm.ask("Acessar o painel do aluno?", default=True):
                    return
                self.dashboard.start_login()
            elif view is View.LOGIN:
                self._login()
            elif view is View.DASHBOARD:
                await self._dashboard_loop()

    def _show_ai_notice_once(self) -> None:
        store = self.dashboard.store
        if self.dashboard.ai_service.is_configured or store is None or store.has_seen(AI_OFFLINE_NOTICE):
            return
        self.console.print(
            "[yellow]A IA está desativada: resumos, justificativas e quizzes usarão textos padrão.[/yellow]"
        )
        store.mark_seen(AI_OFFLINE_NOTICE)

    def _login(self) -> None:
        matricula = Prompt.ask("Login (Matrícula)")
        senha = Prompt.ask("Senha (Matrícula)", password=True)
        try:
            student = self.dashboard.login(matricula, senha)
        except LoginError as e:
            self.console.print(f"[red]{e}[/red]")
            return
        self.console.print(f"Bem-vindo(a), [bold]{student.nome}[/bold]!")

    async def _dashboard_loop(self) -> None:
        student = self.dashboard.user
        self.console.print(
            f"Matrícula: {student.matricula} | Turma: {student.turma} | Escola: {student.escola}"
        )

        choices = [str(i) for i in range(1, len(BIMESTER_OPTIONS) + 1)]
        for index, bimester in enumerate(BIMESTER_OPTIONS, start=1):
            self.console.print(f"  {index}. {bimester.value}")
        choice = Prompt.ask(
            "Selecione o bimestre ('p' pergunta, 'a' relatórios, 's' sair)",
            choices=choices + ['p', 'a', 's'],
            default='1',
        )
        if choice == 's':
            self.dashboard.logout()
            return
        if choice == 'p':
            await self._ask_question()
            return
        if choice == 'a':
            self._show_admin_panel()
            return

        bimester = BIMESTER_OPTIONS[int(choice) - 1]
        with self.console.status(f"Analisando desempenho do {bimester.value}..."):
            analysis = await self.dashboard.analyze_bimester(bimester)

        if not analysis.performance:
            self.console.print("[yellow]Nenhuma nota encontrada para este bimestre.[/yellow]")
            return

        self._render_performance()
        self.console.print(Panel(self.dashboard.state.summary, title="Análise do seu Desempenho"))

        label = "Buscar Reforço Escolar" if self.dashboard.has_low_grades else "Explorar Vídeos de Estudo"
        if not Confirm.ask(label + "?", default=True):
            self.dashboard.back_to_selection()
            return

        with self.console.status("Montando recomendações..."):
            recommendations = await self.dashboard.proceed_to_reinforcement()
        await self._recommendations_loop(recommendations)
        self.dashboard.back_to_selection()

    async def _ask_question(self) -> None:
        query = Prompt.ask("Sua dúvida")
        with self.console.status("Buscando resposta..."):
            result = await self.dashboard.ai_service.answer_question(query)
        self.console.print(Panel(result.value, title="Resposta"))

    def _show_admin_panel(self) -> None:
        report_log = self.dashboard.report_log
        self.console.print(summary_table(report_log.counts_by_type(), self.dashboard.validator.cache_stats()))
        self.console.print(reports_table(report_log.all()))
        if Confirm.ask("Limpar cache de validação?", default=False):
            self.dashboard.validator.clear_cache()

    def _render_performance(self) -> None:
        analysis = self.dashboard.state.analysis
        table = Table(title=f"Notas - {analysis.bimester.value}")
        table.add_column("Disciplina")
        table.add_column("Nota", justify="right")
        table.add_column("")
        for record in analysis.performance:
            color = "red" if record.grade < self.dashboard.threshold else "green"
            bar = "█" * int(record.grade // 5)
            table.add_row(record.subject, format_grade(record.grade), f"[{color}]{bar}[/{color}]")
        self.console.print(table)

    def _render_recommendations(self, recommendations: RecommendationSet) -> None:
        self.console.rule(recommendations.title)
        if recommendations.focus_subjects:
            self.console.print("Foco: " + ", ".join(recommendations.focus_subjects))
        if recommendations.notice:
            self.console.print(f"[yellow]{recommendations.notice}[/yellow]")
        for index, video in enumerate(recommendations.videos, start=1):
            self.console.print(f"{index:>2}. [bold]{video.title}[/bold] ({video.subject}, {video.source.value})")
            if video.justification:
                self.console.print(f"    {video.justification}")

    async def _recommendations_loop(self, recommendations: RecommendationSet) -> None:
        while True:
            self._render_recommendations(recommendations)
            choice = Prompt.ask("Número do vídeo, 'f' para filtrar ou 'v' para voltar", default='v')
            if choice == 'v':
                return
            if choice == 'f':
                recommendations = await self._refine()
                continue
            if choice.isdigit() and 1 <= int(choice) <= len(recommendations.videos):
                await self._open_video(recommendations.videos[int(choice) - 1])

    async def _refine(self) -> RecommendationSet:
        subjects = SUBJECTS_BY_GRADE[self.dashboard.state.analysis.school_grade]
        for index, subject in enumerate(subjects, start=1):
            self.console.print(f"  {index}. {subject}")
        raw = Prompt.ask("Disciplinas (números separados por vírgula, vazio para limpar)", default='')
        selected: List[str] = []
        for part in raw.split(','):
            part = part.strip()
            if part.isdigit() and 1 <= int(part) <= len(subjects):
                selected.append(subjects[int(part) - 1])

        with self.console.status("Refinando busca..."):
            return await self.dashboard.refine_search(selected)

    async def _open_video(self, video: Video) -> None:
        validation = await self.dashboard.select_video(video)
        video = self.dashboard.selected_video or video

        if not validation.playable:
            self._render_unavailable(video, validation)
            self.dashboard.close_video()
            return

        self.console.print(Panel(
            f"{video.description}\n\n[link={validation.embed_url}]{validation.embed_url}[/link]\n\n{video.justification or ''}",
            title=video.title,
        ))

        difficulties = list(QuizDifficulty)
        names = [d.value for d in difficulties]
        choice = Prompt.ask("Fazer quiz? Escolha o nível ou 'n'", choices=names + ['n'], default='n')
        if choice != 'n':
            await self._run_quiz(video, QuizDifficulty(choice))
        self.dashboard.close_video()

    def _render_unavailable(self, video: Video, validation: ValidationResult) -> None:
        self.console.print(Panel(
            "Este vídeo não pode ser reproduzido no momento. Isso pode acontecer se o vídeo "
            f"foi removido, está privado ou há problemas temporários. ({validation.error})\n\n"
            f"Tentar no YouTube: {video.video_url}",
            title="Vídeo indisponível",
            border_style="red",
        ))
        if not Confirm.ask("Reportar problema?", default=False):
            return
        issue_types = list(IssueType)
        for index, issue in enumerate(issue_types, start=1):
            self.console.print(f"  {index}. {issue.label}")
        number = IntPrompt.ask("Tipo de problema", choices=[str(i) for i in range(1, len(issue_types) + 1)])
        self.dashboard.report_issue(video.id, issue_types[number - 1].value)
        self.console.print("Obrigado! Seu relato ajuda a melhorar as recomendações.")

    async def _run_quiz(self, video: Video, difficulty: QuizDifficulty) -> None:
        with self.console.status("Gerando quiz..."):
            state = await self.dashboard.request_quiz(video, difficulty)

        if state.status is QuizStatus.UNAVAILABLE:
            self.console.print("[yellow]Não foi possível gerar o quiz agora. Tente novamente mais tarde.[/yellow]")
            return

        answers = []
        for number, question in enumerate(state.quiz.questions, start=1):
            self.console.print(f"\n[bold]{number}. {question.question}[/bold]")
            letters = "ABCD"[:len(question.options)]
            for letter, option in zip(letters, question.options):
                self.console.print(f"   {letter}) {option}")
            letter = Prompt.ask("Resposta", choices=list(letters) + [c.lower() for c in letters])
            answer = question.options[letters.index(letter.upper())]
            answers.append(answer)
            if question.is_correct(answer):
                self.console.print("[green]Correto![/green]")
            else:
                self.console.print(f"[red]Resposta correta: {question.correct_answer}[/red]")
            self.console.print(question.explanation)

        score = state.quiz.score(answers)
        self.console.print(f"\nVocê acertou {score} de {len(state.quiz.questions)}!")


def main():
    """Main entry point."""
    config = load_config()
    setup_logging(config.get('log_level', 'INFO'))

    try:
        dashboard = Dashboard.from_config(config)
    except Exception as e:
        logger.error(f"Failed to start application: {e}")
        sys.exit(1)

    app = NetEscolaApp(dashboard)

    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
