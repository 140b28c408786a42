from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.models.question import DifficultyEnum, Question
from app.utils.text_utils import normalize_category, normalize_chapter_name

DIFFICULTIES = [d.value for d in DifficultyEnum]


def _normalized_subject(subject: str) -> str:
    return " ".join(subject.replace("-", " ").lower().split())


def _subject_filter(subject: str):
    return func.lower(func.replace(Question.subject, '-', ' ')) == _normalized_subject(subject)


def get_question(db: Session, question_id: str) -> Optional[Question]:
    return db.query(Question).filter(Question.id == question_id).first()


def get_questions_by_ids(db: Session, question_ids: Iterable[str]) -> Dict[str, Question]:
    """
    Devuelve un dict id -> Question con las preguntas que existen.
    """
    ids = list(dict.fromkeys(question_ids))
    if not ids:
        return {}
    rows = db.query(Question).filter(Question.id.in_(ids)).all()
    return {row.id: row for row in rows}


def _chapter_query(db: Session, category: str, chapter: str, difficulty: Optional[str] = None):
    query = db.query(Question).filter(
        Question.category == normalize_category(category),
        Question.chapter_key == normalize_chapter_name(chapter),
    )
    if difficulty in DIFFICULTIES:
        query = query.filter(Question.difficulty == difficulty)
    return query


def get_chapter_questions(
    db: Session,
    category: str,
    chapter: str,
    difficulty: Optional[str] = None,
    skip: int = 0,
    limit: int = 10,
) -> Tuple[List[Question], int]:
    """
    Página de preguntas de un capítulo y el total que coincide con el filtro.
    """
    query = _chapter_query(db, category, chapter, difficulty)
    total = query.count()
    rows = query.order_by(Question.id).offset(skip).limit(limit).all()
    return rows, total


def count_chapter_by_difficulty(
    db: Session, category: str, chapter: str, difficulty: Optional[str] = None
) -> Dict[str, int]:
    """
    Conteo por dificultad de las preguntas de un capítulo.
    Si se pasa difficulty solo se cuenta esa dificultad.
    """
    query = _chapter_query(db, category, chapter, difficulty).with_entities(
        Question.difficulty, func.count(Question.id)
    ).group_by(Question.difficulty)
    counts = {d: 0 for d in DIFFICULTIES}
    for level, count in query.all():
        if level in counts:
            counts[level] = count
    return counts


def get_chapter_topics(db: Session, category: str, chapter: str) -> List[Tuple[str, Optional[str], Optional[str], int]]:
    """
    Temas de un capítulo: (topic, subject, chapter, número de preguntas).
    """
    return (
        _chapter_query(db, category, chapter)
        .filter(Question.topic.isnot(None))
        .with_entities(Question.topic, func.min(Question.subject), func.min(Question.chapter), func.count(Question.id))
        .group_by(Question.topic)
        .order_by(Question.topic)
        .all()
    )


def get_topic_questions(
    db: Session,
    category: str,
    topic: str,
    difficulty: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> Tuple[List[Question], int]:
    query = db.query(Question).filter(
        Question.category == normalize_category(category),
        Question.topic == topic,
    )
    if difficulty in DIFFICULTIES:
        query = query.filter(Question.difficulty == difficulty)
    total = query.count()
    rows = query.order_by(desc(Question.created_at), Question.id).offset(skip).limit(limit).all()
    return rows, total


def get_topic_subjects(db: Session, category: str, topic: str) -> List[str]:
    rows = (
        db.query(Question.subject)
        .filter(Question.category == normalize_category(category), Question.topic == topic)
        .filter(Question.subject.isnot(None))
        .distinct()
        .order_by(Question.subject)
        .all()
    )
    return [r[0] for r in rows]


def get_topic_years(db: Session, category: str, topic: str, difficulty: Optional[str] = None) -> List[str]:
    """
    Años distintos en los que aparece un tema, del más reciente al más antiguo.
    """
    query = db.query(Question.year).filter(
        Question.category == normalize_category(category),
        Question.topic == topic,
        Question.year.isnot(None),
        Question.year != '',
    )
    if difficulty in DIFFICULTIES:
        query = query.filter(Question.difficulty == difficulty)
    years = [r[0] for r in query.distinct().all()]
    return sorted(years, reverse=True)


def get_subject_topics(db: Session, category: str) -> Dict[str, List[str]]:
    """
    Materias de una categoría con sus temas.
    """
    rows = (
        db.query(Question.subject, Question.topic)
        .filter(Question.category == normalize_category(category))
        .filter(Question.subject.isnot(None), Question.topic.isnot(None))
        .distinct()
        .order_by(Question.subject, Question.topic)
        .all()
    )
    grouped: Dict[str, List[str]] = {}
    for subject, topic in rows:
        grouped.setdefault(subject, []).append(topic)
    return grouped


def get_subject_chapters(db: Session, category: str, subject: str) -> List[Tuple[str, Optional[str], int, int]]:
    """
    Capítulos de una materia: (chapter, subject, temas distintos, preguntas).
    """
    return (
        db.query(
            Question.chapter,
            func.min(Question.subject),
            func.count(func.distinct(Question.topic)),
            func.count(Question.id),
        )
        .filter(Question.category == normalize_category(category))
        .filter(_subject_filter(subject))
        .filter(Question.chapter.isnot(None))
        .group_by(Question.chapter)
        .order_by(Question.chapter)
        .all()
    )


def get_subject_questions(db: Session, category: str, subject: str) -> List[Question]:
    """
    Todas las preguntas de una materia en una categoría (para armar pruebas).
    """
    return (
        db.query(Question)
        .filter(Question.category == normalize_category(category))
        .filter(_subject_filter(subject))
        .order_by(Question.id)
        .all()
    )


def upsert_questions(db: Session, questions: List[dict]) -> int:
    """
    Inserta o actualiza preguntas por id. Devuelve cuántas se guardaron.
    """
    for data in questions:
        db.merge(Question(**data))
    db.commit()
    return len(questions)
