"""
Agregación de progreso por usuario.

Un ProgressRecord guarda, por (usuario, tema, área), los ids de preguntas
completadas, los ids respondidos correctamente y los puntos acumulados.
Este módulo combina esos registros en resúmenes por capítulo y por área.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.progress import ProgressRecord
from app.models.question import Question
from app.schemas.progress import (
    AreaProgress, ProgressSummary, ProgressUpdate, TopicProgress
)
from app.utils.text_utils import normalize_area, normalize_category, normalize_chapter_name

logger = logging.getLogger(__name__)

DEGRADED_NOTIFICATION = "Progress is temporarily unavailable. Your answers are still being saved."


def _ordered_union(*groups: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(qid for group in groups for qid in group))


@dataclass
class ProgressState:
    completed: List[str] = field(default_factory=list)
    correct: List[str] = field(default_factory=list)
    points: int = 0

    @classmethod
    def from_record(cls, record: Optional[ProgressRecord]) -> "ProgressState":
        if record is None:
            return cls()
        return cls(
            completed=list(record.completed_questions or []),
            correct=list(record.correct_answers or []),
            points=record.points or 0,
        )


def merge_progress(existing: ProgressState, updates: Sequence[ProgressUpdate]) -> ProgressState:
    """
    Combina el estado guardado con una secuencia de respuestas, en orden.

    - completed es la unión: nunca pierde ids.
    - correct es la unión, salvo que una respuesta posterior marque la misma
      pregunta como incorrecta (completada sin estar en correct).
    - points se suman.
    """
    completed = list(existing.completed)
    correct = list(existing.correct)
    points = existing.points

    for update in updates:
        answered_wrong = set(update.completed) - set(update.correct)
        completed = _ordered_union(completed, update.completed, update.correct)
        correct = _ordered_union(
            [qid for qid in correct if qid not in answered_wrong],
            update.correct,
        )
        points += update.points

    return ProgressState(completed=completed, correct=correct, points=points)


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round(part / whole * 100)


def summarize(records: Iterable[ProgressRecord], total_questions: int = 0) -> ProgressSummary:
    """
    Une los registros de varios temas en un solo resumen.
    """
    completed: set = set()
    correct: set = set()
    points = 0
    for record in records:
        completed.update(record.completed_questions or [])
        correct.update(record.correct_answers or [])
        points += record.points or 0

    return ProgressSummary(
        completed_count=len(completed),
        correct_count=len(correct),
        points=points,
        percent_complete=min(_percent(len(completed), total_questions), 100),
        accuracy=_percent(len(correct), len(completed)),
        total_questions=total_questions,
    )


class ProgressAggregator:
    """
    Lecturas de progreso. Ningún método lanza excepciones por fallos de base
    de datos: se devuelve un resumen en cero marcado como degradado.
    """

    def summarize_topics(
        self,
        db: Session,
        user_id: int,
        area: str,
        topics: Sequence[str],
        total_questions: int = 0,
    ) -> ProgressSummary:
        if not topics:
            return summarize([], total_questions)
        try:
            records = (
                db.query(ProgressRecord)
                .filter(
                    ProgressRecord.user_id == user_id,
                    ProgressRecord.area == normalize_area(area),
                    ProgressRecord.topic.in_(list(topics)),
                )
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching progress for user {user_id} in {area}: {e}",
                         extra={"user_id": user_id})
            db.rollback()
            return self._degraded(total_questions)
        return summarize(records, total_questions)

    def summarize_chapter(self, db: Session, user_id: int, category: str, chapter: str) -> ProgressSummary:
        """
        Resumen de un capítulo: los temas y el total de preguntas salen de la
        tabla de preguntas; el área es la categoría en minúsculas.
        """
        try:
            rows = (
                db.query(Question.topic, Question.id)
                .filter(
                    Question.category == normalize_category(category),
                    Question.chapter_key == normalize_chapter_name(chapter),
                )
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error resolving chapter '{chapter}' in {category}: {e}")
            db.rollback()
            return self._degraded(0)

        topics = sorted({topic for topic, _ in rows if topic})
        return self.summarize_topics(db, user_id, normalize_area(category), topics, total_questions=len(rows))

    def overview(self, db: Session, user_id: int) -> Optional[List[AreaProgress]]:
        """
        Progreso del usuario agrupado por área. Devuelve None si la base de
        datos falla.
        """
        try:
            records = (
                db.query(ProgressRecord)
                .filter(ProgressRecord.user_id == user_id)
                .order_by(ProgressRecord.area, ProgressRecord.topic)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching progress overview for user {user_id}: {e}",
                         extra={"user_id": user_id})
            db.rollback()
            return None

        by_area: Dict[str, List[TopicProgress]] = {}
        for record in records:
            area = normalize_area(record.area)
            if not area:
                continue
            completed = len(record.completed_questions or [])
            correct = len(record.correct_answers or [])
            by_area.setdefault(area, []).append(TopicProgress(
                topic=record.topic,
                completed_questions=completed,
                correct_answers=correct,
                points=record.points or 0,
                accuracy=_percent(correct, completed),
            ))

        result = []
        for area, topics in by_area.items():
            total_completed = sum(t.completed_questions for t in topics)
            total_correct = sum(t.correct_answers for t in topics)
            result.append(AreaProgress(
                area=area,
                topics=topics,
                total_completed=total_completed,
                total_correct=total_correct,
                total_points=sum(t.points for t in topics),
                topics_count=len(topics),
                overall_accuracy=_percent(total_correct, total_completed),
            ))
        return result

    @staticmethod
    def _degraded(total_questions: int) -> ProgressSummary:
        summary = summarize([], total_questions)
        summary.degraded = True
        summary.notification = DEGRADED_NOTIFICATION
        return summary


progress_aggregator = ProgressAggregator()


def get_progress_aggregator() -> ProgressAggregator:
    return progress_aggregator
