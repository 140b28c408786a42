import logging
import math
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.cache import TTLCache, get_question_cache
from app.core.errors import ValidationError
from app.crud import crud_question
from app.schemas.question import (
    ChapterSummary, ChapterTopic, ChapterTopics, DifficultyCounts, QuestionOut,
    QuestionPage, SubjectTopics, TopicOverview, TopicYears
)
from app.utils.text_utils import normalize_category, normalize_chapter_name

logger = logging.getLogger(__name__)


def _require(**params) -> None:
    missing = [name for name, value in params.items() if not value or not str(value).strip()]
    if missing:
        raise ValidationError(
            f"Missing required parameters: {', '.join(missing)}",
            details={"missing": missing},
        )


def _page(rows, total: int, page: int, limit: int) -> QuestionPage:
    return QuestionPage(
        questions=[QuestionOut.model_validate(r) for r in rows],
        has_more=len(rows) == limit,
        total_count=total,
        current_page=page,
        total_pages=math.ceil(total / limit) if limit else 0,
    )


class QuestionService:
    """
    Consultas de preguntas con cache TTL por combinación de filtros.
    """

    def __init__(self, cache: TTLCache):
        self.cache = cache

    def list_chapter_questions(
        self,
        db: Session,
        category: str,
        chapter: str,
        difficulty: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> QuestionPage:
        _require(category=category, chapter=chapter)
        key = ("chapter", normalize_category(category), normalize_chapter_name(chapter),
               difficulty or "all", page, limit)

        def fetch():
            rows, total = crud_question.get_chapter_questions(
                db, category, chapter, difficulty, skip=(page - 1) * limit, limit=limit
            )
            return _page(rows, total, page, limit)

        return self.cache.get_or_fetch(key, fetch)

    def chapter_counts(
        self, db: Session, category: str, chapter: str, difficulty: Optional[str] = None
    ) -> DifficultyCounts:
        _require(category=category, chapter=chapter)
        key = ("counts", normalize_category(category), normalize_chapter_name(chapter), difficulty or "all")

        def fetch():
            counts = crud_question.count_chapter_by_difficulty(db, category, chapter, difficulty)
            return DifficultyCounts(**counts, total=sum(counts.values()))

        return self.cache.get_or_fetch(key, fetch)

    def list_topic_questions(
        self,
        db: Session,
        category: str,
        topic: str,
        difficulty: Optional[str] = None,
        page: int = 1,
        limit: int = 100,
    ) -> QuestionPage:
        _require(category=category, topic=topic)
        key = ("topic", normalize_category(category), topic, difficulty or "all", page, limit)

        def fetch():
            rows, total = crud_question.get_topic_questions(
                db, category, topic, difficulty, skip=(page - 1) * limit, limit=limit
            )
            return _page(rows, total, page, limit)

        return self.cache.get_or_fetch(key, fetch)

    def topic_overview(self, db: Session, category: str, topic: str) -> TopicOverview:
        _require(category=category, topic=topic)
        key = ("topic-overview", normalize_category(category), topic)

        def fetch():
            _, total = crud_question.get_topic_questions(db, category, topic, limit=1)
            return TopicOverview(
                category=normalize_category(category),
                topic=topic,
                total=total,
                subjects=crud_question.get_topic_subjects(db, category, topic),
            )

        return self.cache.get_or_fetch(key, fetch)

    def topic_years(self, db: Session, category: str, topic: str, difficulty: Optional[str] = None) -> TopicYears:
        _require(category=category, topic=topic)
        key = ("years", normalize_category(category), topic, difficulty or "all")
        return self.cache.get_or_fetch(
            key, lambda: TopicYears(years=crud_question.get_topic_years(db, category, topic, difficulty))
        )

    def list_subjects(self, db: Session, category: str) -> list:
        _require(category=category)
        key = ("subjects", normalize_category(category))

        def fetch():
            grouped = crud_question.get_subject_topics(db, category)
            return [SubjectTopics(subject=s, topics=t) for s, t in grouped.items()]

        return self.cache.get_or_fetch(key, fetch)

    def chapters_by_subject(self, db: Session, category: str, subject: str) -> list:
        _require(category=category, subject=subject)
        key = ("chapters", normalize_category(category), subject.replace("-", " ").lower().strip())

        def fetch():
            rows = crud_question.get_subject_chapters(db, category, subject)
            return [
                ChapterSummary(chapter=chapter, subject=subj, topic_count=topics, question_count=count)
                for chapter, subj, topics, count in rows
            ]

        return self.cache.get_or_fetch(key, fetch)

    def topics_by_chapter(self, db: Session, category: str, chapter: str) -> ChapterTopics:
        _require(category=category, chapter=chapter)
        key = ("chapter-topics", normalize_category(category), normalize_chapter_name(chapter))

        def fetch():
            rows = crud_question.get_chapter_topics(db, category, chapter)
            topics = [
                ChapterTopic(title=topic, subject=subject, chapter=chap, count=count)
                for topic, subject, chap, count in rows
            ]
            return ChapterTopics(
                category=normalize_category(category),
                chapter=chapter,
                topics=topics,
                total_topics=len(topics),
                total_questions=sum(t.count for t in topics),
            )

        return self.cache.get_or_fetch(key, fetch)


def get_question_service(cache: TTLCache = Depends(get_question_cache)) -> QuestionService:
    return QuestionService(cache)
