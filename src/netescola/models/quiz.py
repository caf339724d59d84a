"""Quiz models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class QuizDifficulty(Enum):
    INICIANTE = "Iniciante"
    INTERMEDIARIO = "Intermediário"
    AVANCADO = "Avançado"


REQUIRED_QUESTION_FIELDS = ('question', 'options', 'correctAnswer', 'explanation')


@dataclass(frozen=True)
class QuizQuestion:
    """One multiple-choice question."""

    question: str
    options: List[str]
    correct_answer: str
    explanation: str

    @classmethod
    def from_dict(cls, data: dict) -> 'QuizQuestion':
        return cls(
            question=str(data['question']),
            options=[str(option) for option in data['options']],
            correct_answer=str(data['correctAnswer']),
            explanation=str(data['explanation']),
        )

    def is_correct(self, answer: str) -> bool:
        return answer == self.correct_answer


@dataclass
class Quiz:
    difficulty: QuizDifficulty
    questions: List[QuizQuestion] = field(default_factory=list)

    def score(self, answers: List[str]) -> int:
        """Number of correct answers, matched by position."""
        return sum(1 for question, answer in zip(self.questions, answers) if question.is_correct(answer))
