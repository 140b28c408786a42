import httpx
import logging
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import PersistenceError, UpstreamError, UpstreamTimeoutError, ValidationError
from app.crud import crud_question
from app.schemas.testbank import (
    NormalizedQuestion, TestbankConcept, TestbankPaper, TestbankQuestion
)
from app.utils.text_utils import decode_html_entities, slugify, upper_slug

logger = logging.getLogger(__name__)

OPTION_LETTERS = ["A", "B", "C", "D"]

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko)",
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
}


def _question_text(q: TestbankQuestion) -> str:
    value = q.en.value if q.en else ""
    comp = q.en.comp if q.en else ""
    if value and comp:
        return decode_html_entities(f"{value} {comp}")
    return decode_html_entities(value or comp or q.question or "")


def _option(q: TestbankQuestion, index: int) -> str:
    if q.en and len(q.en.options) > index:
        return decode_html_entities(q.en.options[index].value)
    return ""


def _correct_letter(value: Any) -> str:
    """
    El banco entrega la respuesta como letra ("B") o como posición ("2").
    """
    if value is None:
        return ""
    text = str(value).strip().upper()
    if text.isdigit() and 1 <= int(text) <= len(OPTION_LETTERS):
        return OPTION_LETTERS[int(text) - 1]
    return text


def _concept_titles(concept: Optional[TestbankConcept]) -> Optional[List[str]]:
    if concept is None:
        return None
    titles = [
        (concept.s.title if concept.s and concept.s.title else "Home"),
        concept.c.title if concept.c else "",
        concept.t.title if concept.t else "",
        concept.st.title if concept.st else "",
    ]
    return [t for t in titles if t]


def normalize_question(
    q: TestbankQuestion,
    category: Optional[str] = None,
    year: Optional[str] = None,
    section_title: Optional[str] = None,
) -> NormalizedQuestion:
    """
    Convierte una pregunta del banco externo al formato de examtracker.
    """
    concept = q.global_concept[0] if q.global_concept else None
    concept_topic = concept.t.title if concept and concept.t else None
    concept_subject = concept.c.title if concept and concept.c else None

    if section_title is not None:
        topic_source = q.topic or section_title
        subject = section_title or q.subject or ""
        topic_list = [t for t in (section_title, q.topic) if t]
    else:
        topic_source = q.topic or concept_topic
        subject = concept_subject or q.subject or ""
        topic_list = _concept_titles(concept)

    solution_text = ""
    if q.sol and q.sol.en:
        solution_text = q.sol.en.value

    return NormalizedQuestion(
        id=q.id,
        topic=slugify(topic_source),
        subject=subject,
        category=upper_slug(category or q.course or q.category),
        difficulty=q.difficulty if q.difficulty in ("easy", "medium", "hard") else "medium",
        year=slugify(year or q.title or q.year),
        question=_question_text(q),
        option_a=_option(q, 0),
        option_b=_option(q, 1),
        option_c=_option(q, 2),
        option_d=_option(q, 3),
        correct_option=_correct_letter(q.correct_option),
        solution=q.solution or "",
        solution_text=decode_html_entities(solution_text),
        question_image=q.question_image,
        topic_list=topic_list,
    )


def transform_payload(data: Any) -> List[NormalizedQuestion]:
    """
    Acepta los tres formatos del banco: lista de preguntas, objeto con
    "sections" (una materia por sección) u objeto de una sola pregunta.
    Las entradas sin _id se descartan.
    """
    transformed: List[NormalizedQuestion] = []
    try:
        if isinstance(data, list):
            for item in data:
                if isinstance(item, dict) and item.get("_id"):
                    transformed.append(normalize_question(TestbankQuestion.model_validate(item)))
        elif isinstance(data, dict) and "sections" in data:
            paper = TestbankPaper.model_validate(data)
            for section in paper.sections:
                for item in section.questions:
                    if item.get("_id"):
                        transformed.append(normalize_question(
                            TestbankQuestion.model_validate(item),
                            category=paper.course or paper.category,
                            year=paper.title or paper.year,
                            section_title=section.title or "",
                        ))
        elif isinstance(data, dict) and data.get("_id"):
            transformed.append(normalize_question(TestbankQuestion.model_validate(data)))
    except PydanticValidationError as e:
        raise UpstreamError("Test bank returned an unexpected payload", details=e.errors()[:5])

    if not transformed:
        logger.warning(f"No questions transformed from payload of type {type(data).__name__}")
    return transformed


class TestbankService:
    """
    Proxy hacia el banco de preguntas externo (evita CORS en el navegador).
    """

    def __init__(self, timeout: float = None, transport: httpx.AsyncBaseTransport = None):
        self.timeout = timeout or settings.TESTBANK_TIMEOUT_SECONDS
        self._transport = transport

    async def _get_json(self, url: str, api_key: Optional[str] = None) -> Any:
        headers = dict(DEFAULT_HEADERS)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, headers=headers)
        except httpx.TimeoutException:
            raise UpstreamTimeoutError("Test bank request timed out", details=url)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Failed to fetch from API: {str(e)}")

        if response.status_code >= 400:
            raise UpstreamError(f"HTTP error! status: {response.status_code}")
        try:
            return response.json()
        except ValueError:
            raise UpstreamError("Test bank returned invalid JSON")

    async def fetch_questions(self, url: str, api_key: Optional[str] = None) -> List[NormalizedQuestion]:
        data = await self._get_json(url, api_key)
        if isinstance(data, dict) and data.get("success") is False:
            raise UpstreamError(data.get("message") or "API response indicates failure")
        payload = (data.get("data") or data) if isinstance(data, dict) else data
        questions = transform_payload(payload)
        logger.info(f"Fetched {len(questions)} questions from test bank")
        return questions

    async def fetch_solutions(self, url: str, api_key: Optional[str] = None) -> Any:
        data = await self._get_json(url, api_key)
        if isinstance(data, dict) and data.get("success") is False and not data.get("data"):
            raise UpstreamError(data.get("message") or "API response format not recognized")
        return (data.get("data") or data) if isinstance(data, dict) else data

    def save_questions(self, db: Session, questions: List[NormalizedQuestion]) -> int:
        if not questions:
            raise ValidationError("No questions provided to save")
        try:
            saved = crud_question.upsert_questions(db, [q.model_dump() for q in questions])
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("Database insert failed", details=str(e))
        logger.info(f"Successfully saved {saved} questions to database")
        return saved


def get_testbank_service() -> TestbankService:
    return TestbankService()
