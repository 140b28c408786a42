from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.schemas.question import (
    ChapterSummary, ChapterTopics, DifficultyCounts, QuestionPage,
    SubjectTopics, TopicOverview, TopicYears
)
from app.services.question_service import QuestionService, get_question_service

router = APIRouter()

DIFFICULTY_PATTERN = "^(easy|medium|hard)$"


@router.get("/chapter", response_model=QuestionPage, summary="Preguntas de un capítulo")
def read_chapter_questions(
    category: str = Query(..., description="Examen, p. ej. GATE-CSE"),
    chapter: str = Query(..., description="Nombre del capítulo (se normaliza)"),
    difficulty: Optional[str] = Query(None, pattern=DIFFICULTY_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    service: QuestionService = Depends(get_question_service),
):
    """
    Página de preguntas de un capítulo ordenadas por id.
    has_more es verdadero cuando la página viene completa.
    """
    return service.list_chapter_questions(db, category, chapter, difficulty, page, limit)


@router.get("/chapter/counts", response_model=DifficultyCounts, summary="Conteo por dificultad de un capítulo")
def read_chapter_counts(
    category: str = Query(...),
    chapter: str = Query(...),
    difficulty: Optional[str] = Query(None, pattern=DIFFICULTY_PATTERN),
    db: Session = Depends(get_db),
    service: QuestionService = Depends(get_question_service),
):
    return service.chapter_counts(db, category, chapter, difficulty)


@router.get("/topic", response_model=QuestionPage, summary="Preguntas de un tema")
def read_topic_questions(
    category: str = Query(...),
    topic: str = Query(...),
    difficulty: Optional[str] = Query(None, pattern=DIFFICULTY_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.MAX_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    service: QuestionService = Depends(get_question_service),
):
    return service.list_topic_questions(db, category, topic, difficulty, page, limit)


@router.get("/topic/overview", response_model=TopicOverview, summary="Resumen de un tema")
def read_topic_overview(
    category: str = Query(...),
    topic: str = Query(...),
    db: Session = Depends(get_db),
    service: QuestionService = Depends(get_question_service),
):
    return service.topic_overview(db, category, topic)


@router.get("/topic/years", response_model=TopicYears, summary="Años disponibles de un tema")
def read_topic_years(
    category: str = Query(...),
    topic: str = Query(...),
    difficulty: Optional[str] = Query(None, pattern=DIFFICULTY_PATTERN),
    db: Session = Depends(get_db),
    service: QuestionService = Depends(get_question_service),
):
    return service.topic_years(db, category, topic, difficulty)


@router.get("/subjects", response_model=List[SubjectTopics], summary="Materias y temas de un examen")
def read_subjects(
    category: str = Query(...),
    db: Session = Depends(get_db),
    service: QuestionService = Depends(get_question_service),
):
    return service.list_subjects(db, category)


@router.get("/chapters/by-subject", response_model=List[ChapterSummary], summary="Capítulos de una materia")
def read_chapters_by_subject(
    category: str = Query(...),
    subject: str = Query(...),
    db: Session = Depends(get_db),
    service: QuestionService = Depends(get_question_service),
):
    return service.chapters_by_subject(db, category, subject)


@router.get("/topics/by-chapter", response_model=ChapterTopics, summary="Temas de un capítulo")
def read_topics_by_chapter(
    category: str = Query(...),
    chapter: str = Query(...),
    db: Session = Depends(get_db),
    service: QuestionService = Depends(get_question_service),
):
    return service.topics_by_chapter(db, category, chapter)
