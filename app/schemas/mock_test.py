from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, model_validator


class MockTestCreate(BaseModel):
    """
    Schema para crear una prueba simulada.
    En modo manual se envía question_ids; en modo auto, weightage y total_questions.
    """
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: str = Field(..., min_length=1, max_length=100)
    duration: int = Field(..., gt=0)
    difficulty: str = "mixed"
    creation_mode: Literal["manual", "auto"] = "manual"
    question_ids: List[str] = Field(default_factory=list)
    weightage: Dict[str, float] = Field(default_factory=dict)
    total_questions: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_mode(self):
        if self.creation_mode == "manual" and not self.question_ids:
            raise ValueError("question_ids is required in manual mode")
        if self.creation_mode == "auto" and (not self.weightage or not self.total_questions):
            raise ValueError("weightage and total_questions are required in auto mode")
        return self


class MockTestUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0)
    difficulty: Optional[str] = None
    is_active: Optional[bool] = None
    question_ids: Optional[List[str]] = None


class MockTestQuestionOut(BaseModel):
    question_id: str
    question_order: int
    subject: Optional[str] = None
    topic: Optional[str] = None
    difficulty: Optional[str] = None

    class Config:
        from_attributes = True


class MockTest(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: str
    duration: int
    difficulty: str
    creation_mode: str
    weightage_config: Optional[Dict[str, Any]] = None
    question_distribution: Optional[Dict[str, Any]] = None
    total_questions: int
    created_by: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MockTestCreated(BaseModel):
    success: bool = True
    test: MockTest
    warnings: List[str] = Field(default_factory=list)


class AttemptQuestion(BaseModel):
    """
    Pregunta de la prueba para el estudiante (sin respuesta correcta).
    """
    question_order: int
    question_id: str
    question: str
    option_a: Optional[str] = None
    option_b: Optional[str] = None
    option_c: Optional[str] = None
    option_d: Optional[str] = None
    question_image: Optional[str] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    difficulty: Optional[str] = None


class MockTestSubmit(BaseModel):
    answers: Dict[str, str]
    total_time_seconds: int = Field(0, ge=0)


class AttemptResult(BaseModel):
    id: int
    test_id: int
    score: int
    analytics: Optional[Dict[str, Any]] = None
    answers: Dict[str, Any]
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
