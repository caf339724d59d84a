"""Static student roster and bimester grades (school export snapshot)."""

from typing import List, Optional

from netescola.models.student import GradeRecord, SchoolGrade, Student

ESCOLA = "Colégio Estadual Professor José Carlos de Almeida"
CODIGO_MEC = "52012345"

STUDENTS: List[Student] = [
    Student(
        matricula="2024001",
        nome="Ana Beatriz Souza",
        serie=SchoolGrade.SERIE_3_EM,
        escola=ESCOLA,
        turma="3ª Série A",
        codigo_mec=CODIGO_MEC,
        cod_turma="3A",
    ),
    Student(
        matricula="2024002",
        nome="Lucas Henrique Oliveira",
        serie=SchoolGrade.SERIE_2_EM,
        escola=ESCOLA,
        turma="2ª Série B",
        turno="Vespertino",
        codigo_mec=CODIGO_MEC,
        cod_turma="2B",
    ),
    Student(
        matricula="2024003",
        nome="Mariana Costa Lima",
        serie=SchoolGrade.SERIE_1_EM,
        escola=ESCOLA,
        turma="1ª Série A",
        codigo_mec=CODIGO_MEC,
        cod_turma="1A",
    ),
    Student(
        matricula="2024004",
        nome="Pedro Augusto Ferreira",
        serie=SchoolGrade.ANO_9_EF,
        escola=ESCOLA,
        turma="9º Ano C",
        codigo_mec=CODIGO_MEC,
        cod_turma="9C",
    ),
]


def _grades(matricula: str, bimestre: int, notas: dict) -> List[GradeRecord]:
    return [
        GradeRecord(matricula=matricula, disciplina=disciplina, bimestre=bimestre, nota=nota)
        for disciplina, nota in notas.items()
    ]


GRADES: List[GradeRecord] = [
    *_grades("2024001", 1, {
        "Português": 8.5, "Matemática": 5.2, "Física": 6.8, "Química": 4.9,
        "Biologia": 7.4, "História": 9.1, "Geografia": 5.8, "Inglês": 8.0,
    }),
    *_grades("2024001", 2, {
        "Português": 8.8, "Matemática": 6.1, "Física": 7.0, "Química": 5.5,
        "Biologia": 7.9, "História": 9.3, "Geografia": 6.4, "Inglês": 8.2,
    }),
    *_grades("2024002", 1, {
        "Português": 6.0, "Matemática": 7.5, "Física": 5.1, "Química": 6.3,
        "Biologia": 4.8, "História": 7.2, "Geografia": 6.6, "Filosofia": 8.4,
    }),
    *_grades("2024003", 1, {
        "Português": 9.0, "Matemática": 4.0, "Física": 7.7, "Química": 8.1,
    }),
    *_grades("2024004", 1, {
        "Português": 7.1, "Matemática": 6.9, "Ciências": 8.3, "História": 7.8,
        "Geografia": 8.6, "Inglês": 9.4,
    }),
]


def find_student(matricula: str) -> Optional[Student]:
    return next((s for s in STUDENTS if s.matricula == matricula), None)
