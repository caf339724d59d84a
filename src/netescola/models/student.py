"""Student, grade and per-bimester analysis models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SchoolGrade(Enum):
    """School year, using the labels shown to students."""
    ANO_9_EF = "9º Ano EF"
    SERIE_1_EM = "1ª Série EM"
    SERIE_2_EM = "2ª Série EM"
    SERIE_3_EM = "3ª Série EM"

    @property
    def is_ensino_medio(self) -> bool:
        return self is not SchoolGrade.ANO_9_EF


class Bimester(Enum):
    BIM_1 = "1º Bimestre"
    BIM_2 = "2º Bimestre"
    BIM_3 = "3º Bimestre"
    BIM_4 = "4º Bimestre"

    @property
    def number(self) -> int:
        return list(Bimester).index(self) + 1

    @classmethod
    def from_number(cls, number: int) -> 'Bimester':
        return list(cls)[number - 1]


SCHOOL_GRADES_OPTIONS = list(SchoolGrade)
BIMESTER_OPTIONS = list(Bimester)


@dataclass(frozen=True)
class Student:
    """Roster entry for one student."""

    matricula: str
    nome: str
    serie: SchoolGrade
    escola: str
    turma: str
    turno: str = "Matutino"
    municipio: str = "Goiânia"
    coord_regional: str = "Goiânia"
    codigo_mec: str = ""
    cod_turma: str = ""

    @property
    def first_name(self) -> str:
        return self.nome.split(' ')[0]


@dataclass(frozen=True)
class GradeRecord:
    """Raw grade as exported by the school system (0-10 scale)."""

    matricula: str
    disciplina: str
    bimestre: int
    nota: float
    cod_disciplina: str = ""


@dataclass(frozen=True)
class SubjectPerformance:
    """Grade for one subject on the 0-100 scale."""

    subject: str
    grade: float


@dataclass
class AnalysisData:
    """Derived view for one analyzed bimester. Rebuilt on every analysis."""

    school_grade: SchoolGrade
    bimester: Bimester
    performance: List[SubjectPerformance] = field(default_factory=list)
    file_uploaded_name: Optional[str] = None

    def weak_subjects(self, threshold: float) -> List[str]:
        return [p.subject for p in self.performance if p.grade < threshold]

    def has_low_grades(self, threshold: float) -> bool:
        return any(p.grade < threshold for p in self.performance)


def normalize_grade(nota: float) -> float:
    """Convert a 0-10 grade to the 0-100 scale."""
    return nota * 10


def build_analysis(student: Student, bimester: Bimester, records: List[GradeRecord]) -> AnalysisData:
    """Select the student's grades for ``bimester`` and normalize them once."""
    performance = [
        SubjectPerformance(subject=record.disciplina, grade=normalize_grade(record.nota))
        for record in records
        if record.matricula == student.matricula and record.bimestre == bimester.number
    ]
    return AnalysisData(school_grade=student.serie, bimester=bimester, performance=performance)
