import logging
from typing import List, Optional, Sequence
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.progress import ProgressRecord
from app.schemas.progress import ProgressUpdate
from app.services.progress_aggregator import ProgressState, merge_progress
from app.utils.text_utils import normalize_area

logger = logging.getLogger(__name__)


def get_progress(db: Session, user_id: int, topic: str, area: str) -> Optional[ProgressRecord]:
    """
    Obtiene el registro de progreso de un usuario en un tema.
    """
    return db.query(ProgressRecord).filter(
        ProgressRecord.user_id == user_id,
        ProgressRecord.topic == topic,
        ProgressRecord.area == normalize_area(area),
    ).first()


def get_user_progress(db: Session, user_id: int, area: Optional[str] = None) -> List[ProgressRecord]:
    query = db.query(ProgressRecord).filter(ProgressRecord.user_id == user_id)
    if area:
        query = query.filter(ProgressRecord.area == normalize_area(area))
    return query.order_by(ProgressRecord.area, ProgressRecord.topic).all()


def apply_updates(
    db: Session,
    user_id: int,
    topic: str,
    area: str,
    updates: Sequence[ProgressUpdate],
    email: Optional[str] = None,
) -> ProgressRecord:
    """
    Lee el último estado guardado del tema, lo combina con las respuestas
    nuevas y lo guarda (insert o update).
    Si otro proceso insertó la fila primero se reintenta una vez sobre ella.
    """
    area = normalize_area(area)
    for attempt in range(2):
        record = (
            db.query(ProgressRecord)
            .filter(
                ProgressRecord.user_id == user_id,
                ProgressRecord.topic == topic,
                ProgressRecord.area == area,
            )
            .with_for_update()
            .first()
        )
        merged = merge_progress(ProgressState.from_record(record), updates)

        if record is None:
            record = ProgressRecord(user_id=user_id, topic=topic, area=area)
            db.add(record)
        record.completed_questions = merged.completed
        record.correct_answers = merged.correct
        record.points = merged.points
        if email:
            record.email = email

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt == 0:
                logger.warning(f"Concurrent insert for user {user_id} topic '{topic}', retrying merge")
                continue
            raise
        db.refresh(record)
        return record
