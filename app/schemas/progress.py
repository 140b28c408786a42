from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class ProgressUpdate(BaseModel):
    """
    Un evento de respuesta: ids completados, ids correctos y puntos ganados.
    """
    completed: List[str] = Field(default_factory=list)
    correct: List[str] = Field(default_factory=list)
    points: int = 0


class ProgressSaveRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=255)
    area: str = Field(..., min_length=1, max_length=100)
    updates: List[ProgressUpdate] = Field(..., min_length=1)
    immediate: bool = True

    @field_validator("area")
    @classmethod
    def lower_area(cls, v: str) -> str:
        return v.strip().lower()


class ProgressRecordOut(BaseModel):
    topic: str
    area: str
    completed_questions: List[str]
    correct_answers: List[str]
    points: int
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProgressSaveResponse(BaseModel):
    success: bool = True
    queued: bool
    record: Optional[ProgressRecordOut] = None


class ProgressSummary(BaseModel):
    completed_count: int = 0
    correct_count: int = 0
    points: int = 0
    percent_complete: int = 0
    accuracy: int = 0
    total_questions: int = 0
    degraded: bool = False
    notification: Optional[str] = None


class TopicProgress(BaseModel):
    topic: str
    completed_questions: int
    correct_answers: int
    points: int
    accuracy: int


class AreaProgress(BaseModel):
    area: str
    topics: List[TopicProgress]
    total_completed: int
    total_correct: int
    total_points: int
    topics_count: int
    overall_accuracy: int


class ProgressOverview(BaseModel):
    success: bool = True
    data: List[AreaProgress]
    degraded: bool = False
    notification: Optional[str] = None


class FlushResult(BaseModel):
    flushed: int
    failed: int
    pending: int
