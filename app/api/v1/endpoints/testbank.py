from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.cache import TTLCache, get_question_cache
from app.core.deps import get_current_admin
from app.db.session import get_db
from app.models.user import User
from app.schemas.testbank import (
    FetchQuestionsResponse, FetchRequest, FetchSolutionsResponse,
    SaveQuestionsRequest, SaveQuestionsResponse
)
from app.services import testbank_service

router = APIRouter()


@router.post("/fetch-questions", response_model=FetchQuestionsResponse,
             summary="Traer y normalizar preguntas del banco externo")
async def fetch_questions(
    request_in: FetchRequest,
    current_admin: User = Depends(get_current_admin),
    service: testbank_service.TestbankService = Depends(testbank_service.get_testbank_service),
):
    """
    Proxy del banco de preguntas: acepta lista, objeto con sections u objeto
    único y devuelve las preguntas ya en el formato de examtracker.
    """
    questions = await service.fetch_questions(str(request_in.url), request_in.api_key)
    return FetchQuestionsResponse(questions=questions, count=len(questions))


@router.post("/fetch-solutions", response_model=FetchSolutionsResponse,
             summary="Traer soluciones del banco externo")
async def fetch_solutions(
    request_in: FetchRequest,
    current_admin: User = Depends(get_current_admin),
    service: testbank_service.TestbankService = Depends(testbank_service.get_testbank_service),
):
    solutions = await service.fetch_solutions(str(request_in.url), request_in.api_key)
    count = len(solutions) if isinstance(solutions, list) else 1
    return FetchSolutionsResponse(solutions=solutions, count=count)


@router.post("/save-questions", response_model=SaveQuestionsResponse,
             summary="Guardar preguntas normalizadas")
async def save_questions(
    request_in: SaveQuestionsRequest,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    service: testbank_service.TestbankService = Depends(testbank_service.get_testbank_service),
    cache: TTLCache = Depends(get_question_cache),
):
    """
    Inserta o actualiza por id. Limpia el cache de preguntas.
    """
    saved = await run_in_threadpool(service.save_questions, db, request_in.questions)
    cache.clear()
    return SaveQuestionsResponse(
        saved_count=saved,
        message=f"Successfully saved {saved} questions to database",
    )
