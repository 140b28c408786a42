from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from app.db.base import Base, JSONType


class ProgressRecord(Base):
    """
    Progreso de un usuario en un tema de un área (categoría de examen).
    completed_questions solo crece; correct_answers puede reclasificarse.
    """
    __tablename__ = "user_progress"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    topic = Column(String(255), nullable=False, index=True)
    area = Column(String(100), nullable=False, index=True)
    completed_questions = Column(JSONType, nullable=False, default=list)
    correct_answers = Column(JSONType, nullable=False, default=list)
    points = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('user_id', 'topic', 'area', name='uq_user_topic_area'),
    )

    def __repr__(self):
        return f"<ProgressRecord(user_id={self.user_id}, topic='{self.topic}', area='{self.area}', points={self.points})>"
