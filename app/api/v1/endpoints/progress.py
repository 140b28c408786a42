import logging
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_admin, get_current_user, get_progress_buffer
from app.crud import crud_progress
from app.db.session import get_db
from app.models.user import User
from app.schemas.progress import (
    FlushResult, ProgressOverview, ProgressRecordOut, ProgressSaveRequest,
    ProgressSaveResponse, ProgressSummary
)
from app.services.progress_aggregator import (
    DEGRADED_NOTIFICATION, ProgressAggregator, get_progress_aggregator
)
from app.services.progress_buffer import ProgressKey, ProgressWriteBuffer

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ProgressSaveResponse, summary="Registrar respuestas de práctica")
def save_progress(
    progress_in: ProgressSaveRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    buffer: ProgressWriteBuffer = Depends(get_progress_buffer),
):
    """
    Encola las respuestas del usuario para su tema y área.
    Con immediate=true se escriben en este mismo request y se devuelve el
    registro resultante; si la escritura falla quedan en cola.
    Los puntos se recalculan a partir de las respuestas correctas.
    """
    key = ProgressKey(
        user_id=current_user.id,
        topic=progress_in.topic.strip(),
        area=progress_in.area,
        email=current_user.email,
    )
    for update in progress_in.updates:
        update.points = len(set(update.correct)) * settings.POINTS_PER_CORRECT_ANSWER
        buffer.enqueue(key, update)

    if not progress_in.immediate:
        return ProgressSaveResponse(queued=True)

    report = buffer.flush(user_id=current_user.id)
    record = crud_progress.get_progress(db, current_user.id, key.topic, key.area)
    return ProgressSaveResponse(
        queued=report.failed > 0,
        record=ProgressRecordOut.model_validate(record) if record else None,
    )


@router.get("", response_model=ProgressOverview, summary="Progreso del usuario por área")
def read_progress_overview(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    buffer: ProgressWriteBuffer = Depends(get_progress_buffer),
    aggregator: ProgressAggregator = Depends(get_progress_aggregator),
):
    buffer.flush(user_id=current_user.id)
    areas = aggregator.overview(db, current_user.id)
    if areas is None:
        return ProgressOverview(data=[], degraded=True, notification=DEGRADED_NOTIFICATION)
    return ProgressOverview(data=areas)


@router.get("/summary", response_model=ProgressSummary, summary="Resumen de progreso de un capítulo")
def read_chapter_summary(
    category: str = Query(...),
    chapter: str = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    buffer: ProgressWriteBuffer = Depends(get_progress_buffer),
    aggregator: ProgressAggregator = Depends(get_progress_aggregator),
):
    """
    Completadas, correctas, puntos y porcentajes del capítulo.
    Nunca falla por la base de datos: devuelve ceros con degraded=true.
    """
    buffer.flush(user_id=current_user.id)
    return aggregator.summarize_chapter(db, current_user.id, category, chapter)


@router.get("/topics", response_model=ProgressSummary, summary="Resumen de progreso de varios temas")
def read_topics_summary(
    area: str = Query(...),
    topics: List[str] = Query(...),
    total_questions: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    buffer: ProgressWriteBuffer = Depends(get_progress_buffer),
    aggregator: ProgressAggregator = Depends(get_progress_aggregator),
):
    buffer.flush(user_id=current_user.id)
    return aggregator.summarize_topics(db, current_user.id, area, topics, total_questions)


@router.post("/flush", response_model=FlushResult, summary="Forzar escritura del buffer de progreso")
def flush_progress(
    current_admin: User = Depends(get_current_admin),
    buffer: ProgressWriteBuffer = Depends(get_progress_buffer),
):
    report = buffer.flush()
    logger.info(f"Manual progress flush by admin {current_admin.id}: {report.flushed} keys")
    return FlushResult(flushed=report.flushed, failed=report.failed, pending=report.pending)
