"""
Armado de pruebas simuladas.

- Modo manual: el administrador envía la lista exacta de preguntas (se
  respeta el orden).
- Modo auto: pesos por materia normalizados a 100; de cada materia se toma
  una muestra aleatoria y la lista completa se vuelve a barajar.

La creación es en dos pasos (cabecera y luego preguntas). Si el segundo paso
falla se borra la cabecera para no dejar pruebas vacías.
"""
import logging
import math
import random
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFoundError, PersistenceError, ValidationError
from app.crud import crud_mock_test, crud_question
from app.models.mock_test import MockTest, MockTestAttempt
from app.models.question import Question
from app.schemas.mock_test import MockTestCreate, MockTestUpdate
from app.utils.text_utils import normalize_category

logger = logging.getLogger(__name__)


def compute_distribution(weights: Dict[str, float], total_questions: int) -> Dict[str, int]:
    """
    Convierte pesos por materia en número de preguntas.
    Los pesos se normalizan a 100 y cada cuenta se redondea (mitad hacia arriba),
    así que la suma puede diferir del total en hasta len(weights) - 1.
    """
    if total_questions <= 0:
        raise ValidationError("total_questions must be greater than zero")
    if any(w < 0 for w in weights.values()):
        raise ValidationError("Subject weights cannot be negative")
    total_weight = sum(weights.values())
    if total_weight <= 0:
        raise ValidationError("Subject weights must add up to more than zero")

    distribution = {}
    for subject, weight in weights.items():
        percent = weight / total_weight * 100
        distribution[subject] = math.floor(percent / 100 * total_questions + 0.5)
    return distribution


def normalize_weights(weights: Dict[str, float]) -> Dict[str, float]:
    total_weight = sum(weights.values())
    return {subject: round(w / total_weight * 100, 2) for subject, w in weights.items()}


class MockTestComposer:

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def compose_manual(self, db: Session, question_ids: Sequence[str]) -> List[Question]:
        if not question_ids:
            raise ValidationError("At least one question is required")
        duplicates = sorted(qid for qid, n in Counter(question_ids).items() if n > 1)
        if duplicates:
            raise ValidationError("Duplicate questions in test", details={"duplicates": duplicates})

        found = crud_question.get_questions_by_ids(db, question_ids)
        missing = [qid for qid in question_ids if qid not in found]
        if missing:
            raise ValidationError("Unknown question ids", details={"missing": missing})
        return [found[qid] for qid in question_ids]

    def compose_auto(
        self, db: Session, category: str, weights: Dict[str, float], total_questions: int
    ) -> Tuple[List[Question], Dict[str, int], List[str]]:
        """
        Devuelve (preguntas, cuántas se tomaron por materia, advertencias).
        """
        distribution = compute_distribution(weights, total_questions)
        selected: List[Question] = []
        taken: Dict[str, int] = {}
        warnings: List[str] = []

        for subject, count in distribution.items():
            if count <= 0:
                continue
            pool = crud_question.get_subject_questions(db, category, subject)
            if not pool:
                message = f"No questions available for subject '{subject}'; skipped"
                logger.warning(message)
                warnings.append(message)
                continue
            if len(pool) < count:
                message = f"Only {len(pool)} questions available for '{subject}' ({count} requested)"
                logger.warning(message)
                warnings.append(message)
            self.rng.shuffle(pool)
            picked = pool[:count]
            selected.extend(picked)
            taken[subject] = len(picked)

        if not selected:
            raise ValidationError(
                "No questions found for the selected subjects",
                details={"warnings": warnings},
            )
        self.rng.shuffle(selected)
        return selected, taken, warnings

    def _persist(self, db: Session, header: dict, questions: List[Question]) -> MockTest:
        db_test = crud_mock_test.create_test_header(db, **header)
        try:
            crud_mock_test.add_test_questions(db, db_test.id, questions)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to insert questions for test {db_test.id}, removing header: {e}")
            try:
                crud_mock_test.delete_test(db, db_test.id)
            except SQLAlchemyError as cleanup_error:
                db.rollback()
                logger.critical(f"Could not remove orphan test header {db_test.id}: {cleanup_error}")
            raise PersistenceError("Failed to save test questions", details=str(e))
        db.refresh(db_test)
        return db_test

    def create_test(self, db: Session, data: MockTestCreate, created_by: Optional[str] = None) -> Tuple[MockTest, List[str]]:
        category = normalize_category(data.category)
        warnings: List[str] = []
        if data.creation_mode == "auto":
            questions, taken, warnings = self.compose_auto(db, category, data.weightage, data.total_questions)
            weightage_config = normalize_weights(data.weightage)
        else:
            questions = self.compose_manual(db, data.question_ids)
            taken = {}
            for q in questions:
                taken[q.subject or "Unknown"] = taken.get(q.subject or "Unknown", 0) + 1
            weightage_config = None

        header = {
            "name": data.name.strip(),
            "description": data.description,
            "category": category,
            "duration": data.duration,
            "difficulty": data.difficulty,
            "creation_mode": data.creation_mode,
            "weightage_config": weightage_config,
            "question_distribution": taken,
            "total_questions": len(questions),
            "created_by": created_by,
            "is_active": True,
        }
        try:
            db_test = self._persist(db, header, questions)
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("Failed to create test", details=str(e))
        logger.info(f"Mock test {db_test.id} created ({data.creation_mode}) with {len(questions)} questions")
        return db_test, warnings

    def update_test(self, db: Session, test_id: int, data: MockTestUpdate) -> MockTest:
        """
        Edición de administrador: campos de cabecera y, si se envía,
        reemplazo completo de la lista de preguntas.
        """
        db_test = crud_mock_test.get_test(db, test_id)
        if db_test is None:
            raise NotFoundError("Test not found")

        update_data = data.model_dump(exclude_unset=True)
        question_ids = update_data.pop("question_ids", None)
        questions = self.compose_manual(db, question_ids) if question_ids is not None else None

        for field, value in update_data.items():
            setattr(db_test, field, value)

        try:
            if questions is not None:
                crud_mock_test.delete_test_questions(db, test_id)
                db_test.total_questions = len(questions)
                distribution: Dict[str, int] = {}
                for q in questions:
                    distribution[q.subject or "Unknown"] = distribution.get(q.subject or "Unknown", 0) + 1
                db_test.question_distribution = distribution
                crud_mock_test.add_test_questions(db, test_id, questions)
            else:
                db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("Failed to update test", details=str(e))
        db.refresh(db_test)
        return db_test

    def submit_attempt(
        self, db: Session, test_id: int, user_id: int, answers: Dict[str, str], total_time_seconds: int = 0
    ) -> MockTestAttempt:
        """
        Corrige las respuestas contra la prueba y guarda el intento.
        score = correctas / total * 100.
        """
        db_test = crud_mock_test.get_test(db, test_id)
        if db_test is None or not db_test.is_active:
            raise NotFoundError("Test not found")
        test_questions = crud_mock_test.get_test_questions(db, test_id)
        if not test_questions:
            raise ValidationError("Test has no questions")

        unknown = [qid for qid in answers if qid not in {tq.question_id for tq in test_questions}]
        if unknown:
            raise ValidationError("Answers reference questions outside this test", details={"unknown": unknown})

        graded = {}
        subject_performance: Dict[str, Dict[str, float]] = {}
        difficulty_breakdown: Dict[str, Dict[str, int]] = {}
        correct_count = 0
        for tq in test_questions:
            selected = answers.get(tq.question_id)
            expected = (tq.question.correct_option or "").strip().upper() if tq.question else ""
            is_correct = bool(selected) and selected.strip().upper() == expected
            graded[tq.question_id] = {"selected": selected, "is_correct": is_correct}
            correct_count += is_correct

            subject = tq.subject or "Unknown"
            stats = subject_performance.setdefault(subject, {"correct": 0, "total": 0})
            stats["total"] += 1
            stats["correct"] += is_correct

            level = tq.difficulty or "unknown"
            breakdown = difficulty_breakdown.setdefault(level, {"correct": 0, "total": 0})
            breakdown["total"] += 1
            breakdown["correct"] += is_correct

        for stats in subject_performance.values():
            stats["accuracy"] = round(stats["correct"] / stats["total"] * 100) if stats["total"] else 0

        total = len(test_questions)
        attempted = sum(1 for g in graded.values() if g["selected"])
        score = round(correct_count / total * 100)
        analytics = {
            "total_questions": total,
            "attempted": attempted,
            "correct_answers": correct_count,
            "accuracy": round(correct_count / attempted * 100) if attempted else 0,
            "points": correct_count * settings.POINTS_PER_CORRECT_ANSWER,
            "total_time": total_time_seconds,
            "avg_time_per_question": round(total_time_seconds / total) if total else 0,
            "subject_performance": subject_performance,
            "difficulty_breakdown": difficulty_breakdown,
        }

        now = datetime.now(timezone.utc)
        try:
            return crud_mock_test.create_attempt(
                db,
                test_id=test_id,
                user_id=user_id,
                answers=graded,
                score=score,
                analytics=analytics,
                started_at=now - timedelta(seconds=total_time_seconds),
                completed_at=now,
            )
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("Failed to submit test", details=str(e))


def get_mock_test_composer() -> MockTestComposer:
    return MockTestComposer()
