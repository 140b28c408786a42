# app/models/question.py
import enum

from sqlalchemy import Column, String, Text, TIMESTAMP, func
from sqlalchemy.orm import validates

from app.db.base import Base, JSONType
from app.utils.text_utils import normalize_category, normalize_chapter_name


class DifficultyEnum(str, enum.Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class Question(Base):
    """
    Pregunta de práctica. Se crea desde el importador del banco de preguntas
    y no se modifica después.
    """
    __tablename__ = 'examtracker'

    id = Column(String(64), primary_key=True)
    topic = Column(String(255), index=True)
    subject = Column(String(255), index=True)
    chapter = Column(String(255))
    chapter_key = Column(String(255), index=True)
    category = Column(String(100), nullable=False, index=True)
    difficulty = Column(String(10), nullable=False, default=DifficultyEnum.medium.value, index=True)
    year = Column(String(100))
    question = Column(Text, nullable=False)
    option_a = Column(Text)
    option_b = Column(Text)
    option_c = Column(Text)
    option_d = Column(Text)
    correct_option = Column(String(4))
    solution = Column(Text)
    solution_text = Column(Text)
    question_image = Column(String(500))
    topic_list = Column(JSONType)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    @validates('chapter')
    def _sync_chapter_key(self, key, value):
        self.chapter_key = normalize_chapter_name(value) or None
        return value

    @validates('category')
    def _upper_category(self, key, value):
        return normalize_category(value)

    def __repr__(self):
        return f"<Question(id='{self.id}', category='{self.category}', topic='{self.topic}')>"
