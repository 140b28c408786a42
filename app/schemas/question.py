from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel


class QuestionOut(BaseModel):
    """
    Pregunta tal como la consume la página de práctica.
    """
    id: str
    question: str
    option_a: Optional[str] = None
    option_b: Optional[str] = None
    option_c: Optional[str] = None
    option_d: Optional[str] = None
    correct_option: Optional[str] = None
    solution: Optional[str] = None
    solution_text: Optional[str] = None
    question_image: Optional[str] = None
    difficulty: str
    year: Optional[str] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    chapter: Optional[str] = None
    category: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuestionPage(BaseModel):
    questions: List[QuestionOut]
    has_more: bool
    total_count: int
    current_page: int
    total_pages: int


class DifficultyCounts(BaseModel):
    easy: int = 0
    medium: int = 0
    hard: int = 0
    total: int = 0


class TopicOverview(BaseModel):
    category: str
    topic: str
    total: int
    subjects: List[str]


class TopicYears(BaseModel):
    years: List[str]


class SubjectTopics(BaseModel):
    subject: str
    topics: List[str]


class ChapterSummary(BaseModel):
    chapter: str
    subject: Optional[str] = None
    topic_count: int
    question_count: int


class ChapterTopic(BaseModel):
    title: str
    count: int
    subject: Optional[str] = None
    chapter: Optional[str] = None


class ChapterTopics(BaseModel):
    category: str
    chapter: str
    topics: List[ChapterTopic]
    total_topics: int
    total_questions: int


class CountsByDifficulty(BaseModel):
    counts: Dict[str, int]
