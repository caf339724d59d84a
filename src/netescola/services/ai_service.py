"""AI content generation: quizzes, video justifications and performance summaries."""

import json
import re
import logging
from typing import List, Optional

from netescola.models.quiz import QuizDifficulty, QuizQuestion, REQUIRED_QUESTION_FIELDS
from netescola.models.results import GenerationResult
from netescola.models.student import AnalysisData, Student, SubjectPerformance
from netescola.models.video import Video
from netescola.services.ai_client import AIContext
from netescola.utils.retry import AIErrorKind, AIServiceError

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT_PERFORMANCE_THRESHOLD = 60

QUIZ_QUESTION_COUNT = 3
QUIZ_OPTION_COUNT = 4

_FENCE_RE = re.compile(r'^```(\w*)?\s*\n?(.*?)\n?\s*```$', re.DOTALL)


def strip_markdown_code_blocks(text: str) -> str:
    """Strip a surrounding markdown code fence (any language tag) from AI output.

    Args:
        text: Raw text that may be wrapped in a code fence

    Returns:
        The fenced content, or the stripped text when there is no fence
    """
    text = text.strip()
    match = _FENCE_RE.match(text)
    if match and match.group(2):
        return match.group(2).strip()
    return text


def parse_quiz_questions(text: str) -> Optional[List[QuizQuestion]]:
    """Parse a JSON array of question objects; None when malformed."""
    try:
        data = json.loads(strip_markdown_code_blocks(text))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse quiz response as JSON: {e}")
        logger.debug(f"Raw response: {text}")
        return None

    if not isinstance(data, list) or not data:
        logger.error("Quiz response is not a non-empty list")
        return None

    for item in data:
        if not isinstance(item, dict) or not all(key in item for key in REQUIRED_QUESTION_FIELDS):
            logger.error(f"Invalid quiz question format: {item}")
            return None
        if not isinstance(item['options'], list):
            logger.error(f"Quiz question options are not a list: {item}")
            return None

    return [QuizQuestion.from_dict(item) for item in data]


def _failure_reason(error: Exception) -> str:
    if isinstance(error, AIServiceError):
        return error.kind.value
    return AIErrorKind.UNKNOWN.value


def format_grade(grade: float) -> str:
    """Render a 0-100 grade on the 0-10 scale students know."""
    return f"{grade / 10:.1f}"


def fallback_justification(video: Video, weak_subjects: List[str]) -> str:
    """Templated justification used when the AI cannot answer."""
    weak_lower = [subject.lower() for subject in weak_subjects]
    if video.subject.lower() in weak_lower:
        return (
            f"Este vídeo de {video.subject} foi escolhido para reforçar um ponto em que "
            f"você pode crescer. Assista com calma, anote suas dúvidas e faça o quiz "
            f"para fixar o conteúdo!"
        )
    return (
        f"Este vídeo de {video.subject} é recomendado para expandir seus conhecimentos "
        f"e complementar o que você já estuda em sala."
    )


def fallback_summary(student: Student, performance: List[SubjectPerformance], threshold: float) -> str:
    """Two-part summary computed straight from the grades, no AI involved."""
    first_name = student.first_name
    if not performance:
        return (
            f"Olá, {first_name}! Ainda não há notas lançadas para este bimestre. "
            f"Continue se dedicando, você está no caminho certo!"
        )

    ranked = sorted(performance, key=lambda p: p.grade, reverse=True)
    top = ranked[:3]
    below = sorted((p for p in performance if p.grade < threshold), key=lambda p: p.grade)[:2]

    highlights = ", ".join(f"{p.subject} ({format_grade(p.grade)})" for p in top)
    first = (
        f"Parabéns, {first_name}! Seu destaque neste bimestre foi em {highlights}. "
        f"Esse resultado mostra dedicação e bom domínio dos conteúdos."
    )

    if below:
        attention = " e ".join(f"{p.subject} ({format_grade(p.grade)})" for p in below)
        second = (
            f"Para o próximo passo, vale dedicar um pouco mais de atenção a {attention}. "
            f"Com foco e revisão constante, ótimos resultados virão. Você consegue!"
        )
    else:
        second = (
            "Todas as suas notas estão acima da média. Continue com essa rotina de "
            "estudos e siga desafiando a si mesmo!"
        )

    return f"{first}\n\n{second}"


class AIService:
    """AI call sites. Each returns a GenerationResult and never raises on AI failure."""

    def __init__(self, context: AIContext, threshold: float = DEFAULT_SUBJECT_PERFORMANCE_THRESHOLD):
        self.context = context
        self.threshold = threshold

    @property
    def is_configured(self) -> bool:
        return self.context.is_configured

    async def generate_quiz_for_video(
        self, video_title: str, video_subject: str, difficulty: QuizDifficulty
    ) -> GenerationResult[Optional[List[QuizQuestion]]]:
        """Generate a multiple-choice quiz about a video.

        Returns:
            Result whose value is the question list, or None when the quiz
            could not be generated
        """
        prompt = f"""Crie um quiz de nível {difficulty.value} sobre o tópico "{video_title}" da disciplina de {video_subject}.
O quiz deve ter {QUIZ_QUESTION_COUNT} perguntas de múltipla escolha, cada uma com {QUIZ_OPTION_COUNT} opções e apenas uma correta.
Inclua a resposta correta e uma breve explicação para cada pergunta.
Responda APENAS com um array JSON de objetos com os campos: "question" (string), "options" (array de {QUIZ_OPTION_COUNT} strings), "correctAnswer" (string, igual a uma das opções) e "explanation" (string).
Formato de uma pergunta:
{{"question": "Qual é a capital da França?", "options": ["Berlim", "Madri", "Paris", "Lisboa"], "correctAnswer": "Paris", "explanation": "Paris é a capital e maior cidade da França."}}"""

        if difficulty is QuizDifficulty.AVANCADO:
            prompt += "\nAs perguntas devem exigir pensamento crítico ou conhecimento mais profundo do tema."
        elif difficulty is QuizDifficulty.INICIANTE:
            prompt += "\nAs perguntas devem tratar dos conceitos fundamentais do tema."

        try:
            text = await self.context.generate(prompt)
        except AIServiceError as e:
            logger.error(f"Quiz generation failed for '{video_title}': {e}")
            return GenerationResult.fallback(None, _failure_reason(e))

        questions = parse_quiz_questions(text)
        if questions is None:
            return GenerationResult.fallback(None, AIErrorKind.INVALID_RESPONSE.value)

        logger.info(f"Generated {len(questions)} {difficulty.value} questions for '{video_title}'")
        return GenerationResult.ok(questions)

    async def generate_video_justification(self, video: Video, analysis: AnalysisData) -> GenerationResult[str]:
        """Explain in 2-3 sentences why ``video`` suits this student."""
        weak_subjects = analysis.weak_subjects(self.threshold)
        difficulties = ", ".join(weak_subjects) or "nenhuma dificuldade específica, buscando aprendizado geral"

        prompt = f"""O aluno está na {analysis.school_grade.value}, {analysis.bimester.value}.
Suas dificuldades (notas abaixo de {self.threshold:g}/100) são em: {difficulties}.
O vídeo recomendado é "{video.title}" sobre {video.subject}.
Escreva uma justificativa curta e motivadora (2-3 frases) explicando por que este vídeo é uma boa recomendação para este aluno, conectando com suas dificuldades ou com a relevância do tema para a série.
Seja amigável e encorajador."""

        try:
            text = await self.context.generate(prompt)
            return GenerationResult.ok(text.strip())
        except AIServiceError as e:
            logger.error(f"Justification failed for video {video.id}: {e}")
            return GenerationResult.fallback(fallback_justification(video, weak_subjects), _failure_reason(e))

    async def generate_performance_summary(self, student: Student, analysis: AnalysisData) -> GenerationResult[str]:
        """Two-paragraph pedagogical summary of the bimester grades."""
        grades_text = "\n".join(f"{p.subject}: {format_grade(p.grade)}/10" for p in analysis.performance)

        prompt = f"""Aja como um conselheiro pedagógico amigável e motivador.
O(A) aluno(a) se chama {student.first_name} e está na {student.serie.value}. Os resultados são do {analysis.bimester.value}.

Notas do(a) aluno(a):
{grades_text}

Com base nessas notas (escala de 0 a 10), escreva um resumo de desempenho em 2 parágrafos:
1. Comece com um elogio, destacando as 2-3 disciplinas com as notas mais altas.
2. De forma construtiva, aponte as 1-2 disciplinas que precisam de mais atenção (especialmente abaixo de {format_grade(self.threshold)}) e termine com uma frase motivacional.

Seja conciso, positivo e direto."""

        try:
            text = await self.context.generate(prompt)
            return GenerationResult.ok(text.strip())
        except AIServiceError as e:
            logger.error(f"Performance summary failed for {student.matricula}: {e}")
            return GenerationResult.fallback(
                fallback_summary(student, analysis.performance, self.threshold), _failure_reason(e)
            )

    async def answer_question(self, query: str) -> GenerationResult[str]:
        """Free-text answer for a study question."""
        if not query or not query.strip():
            return GenerationResult.fallback("Digite uma pergunta para continuar.", "empty_query")

        try:
            text = await self.context.generate(query)
            return GenerationResult.ok(text.strip())
        except AIServiceError as e:
            logger.error(f"Question answering failed: {e}")
            return GenerationResult.fallback(
                "Não foi possível buscar informações no momento.", _failure_reason(e)
            )
