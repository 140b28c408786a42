from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class TestbankOption(BaseModel):
    model_config = ConfigDict(extra="ignore")
    value: str = ""


class TestbankLocalized(BaseModel):
    model_config = ConfigDict(extra="ignore")
    value: str = ""
    comp: str = ""
    options: List[TestbankOption] = Field(default_factory=list)


class TestbankSolution(BaseModel):
    model_config = ConfigDict(extra="ignore")
    en: Optional[TestbankLocalized] = None


class TestbankTitled(BaseModel):
    model_config = ConfigDict(extra="ignore")
    title: Optional[str] = None


class TestbankConcept(BaseModel):
    """Una entrada de globalConcept: materia (s), capítulo (c), tema (t), subtema (st)."""
    model_config = ConfigDict(extra="ignore")
    s: Optional[TestbankTitled] = None
    c: Optional[TestbankTitled] = None
    t: Optional[TestbankTitled] = None
    st: Optional[TestbankTitled] = None


class TestbankQuestion(BaseModel):
    """
    Pregunta tal como la entrega el banco de preguntas externo.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    id: str = Field(..., alias="_id")
    topic: Optional[str] = None
    course: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[str] = None
    title: Optional[str] = None
    year: Optional[str] = None
    subject: Optional[str] = None
    question: Optional[str] = None
    en: Optional[TestbankLocalized] = None
    sol: Optional[TestbankSolution] = None
    correct_option: Optional[Union[str, int]] = Field(None, alias="correctOption")
    solution: Optional[str] = None
    question_image: Optional[str] = Field(None, alias="questionImage")
    global_concept: List[TestbankConcept] = Field(default_factory=list, alias="globalConcept")


class TestbankSection(BaseModel):
    model_config = ConfigDict(extra="ignore")
    title: Optional[str] = None
    questions: List[Dict[str, Any]] = Field(default_factory=list)


class TestbankPaper(BaseModel):
    """Formato con secciones: cada sección es una materia."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)
    course: Optional[str] = None
    category: Optional[str] = None
    title: Optional[str] = None
    year: Optional[str] = None
    sections: List[TestbankSection]


class FetchRequest(BaseModel):
    url: HttpUrl
    api_key: Optional[str] = None


class NormalizedQuestion(BaseModel):
    id: str
    topic: str
    subject: str
    chapter: Optional[str] = None
    category: str
    difficulty: str
    year: str
    question: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_option: str
    solution: str
    solution_text: str
    question_image: Optional[str] = None
    topic_list: Optional[List[str]] = None


class FetchQuestionsResponse(BaseModel):
    success: bool = True
    questions: List[NormalizedQuestion]
    count: int


class FetchSolutionsResponse(BaseModel):
    success: bool = True
    solutions: Any
    count: int


class SaveQuestionsRequest(BaseModel):
    questions: List[NormalizedQuestion] = Field(..., min_length=1)


class SaveQuestionsResponse(BaseModel):
    success: bool = True
    saved_count: int
    message: str
