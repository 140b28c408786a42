"""
Endpoints del generador de artículos (solo administradores).

Cada etapa del pipeline se expone por separado para poder revisar el
resultado antes de guardar; POST /article-generation ejecuta las tres.
"""
import time
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.deps import get_current_admin
from app.db.session import get_db
from app.models.user import User
from app.schemas.generation import (
    CreateArticleRequest, CreateArticleResponse, CreatedArticle,
    GenerateArticleRequest, GenerateArticleResponse,
    SaveArticleRequest, SaveArticleResponse, SavedArticle,
    SearchFactsRequest, SearchFactsResponse
)
from app.services.article_generation import ArticleGenerationService, get_article_generation_service
from app.services.article_service import ArticleService, get_article_service
from app.services.steinhq_service import SteinHQService, get_steinhq_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _elapsed_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


def _saved(db_article, subreddit: str) -> SavedArticle:
    return SavedArticle(
        id=db_article.id,
        title=db_article.title,
        slug=db_article.slug,
        url=f"{settings.SITE_BASE_URL.rstrip('/')}/articles/{db_article.slug}",
        status=db_article.status,
        suggested_subreddit=subreddit,
    )


@router.post("/search-facts", response_model=SearchFactsResponse, summary="Etapa 1: búsqueda de hechos")
async def search_facts(
    request_in: SearchFactsRequest,
    current_admin: User = Depends(get_current_admin),
    generator: ArticleGenerationService = Depends(get_article_generation_service),
):
    start = time.time()
    notes = await generator.search_facts(request_in.headline)
    return SearchFactsResponse(factual_notes=notes, processing_time_ms=_elapsed_ms(start))


@router.post("/create-article", response_model=CreateArticleResponse, summary="Etapa 2: redacción y expansión")
async def create_article(
    request_in: CreateArticleRequest,
    current_admin: User = Depends(get_current_admin),
    generator: ArticleGenerationService = Depends(get_article_generation_service),
):
    """
    Redacta el artículo con las notas dadas y lo expande hasta el rango de
    palabras. Responde 422 si queda por debajo del mínimo.
    """
    start = time.time()
    generated = await generator.create_article(
        request_in.headline, request_in.factual_notes, expand=request_in.expand_to_word_count
    )
    return CreateArticleResponse(
        data=CreatedArticle(**generated.__dict__),
        processing_time_ms=_elapsed_ms(start),
    )


@router.post("/save-article", response_model=SaveArticleResponse,
             status_code=status.HTTP_201_CREATED, summary="Etapa 3: guardado")
async def save_article(
    request_in: SaveArticleRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    articles: ArticleService = Depends(get_article_service),
    steinhq: SteinHQService = Depends(get_steinhq_service),
):
    db_article, subreddit = await run_in_threadpool(
        articles.save_generated,
        db,
        title=request_in.title,
        article=request_in.article,
        category=request_in.category,
        description=request_in.description,
        image_url=request_in.image_url,
        status=request_in.status,
        author_email=current_admin.email,
        check_duplicate=request_in.check_duplicate,
    )
    background_tasks.add_task(
        steinhq.post_article_safely, db_article.title, db_article.slug,
        subreddit=subreddit, image_url=db_article.featured_image_url,
    )
    return SaveArticleResponse(data=_saved(db_article, subreddit))


@router.post("", response_model=GenerateArticleResponse,
             status_code=status.HTTP_201_CREATED, summary="Pipeline completo")
async def generate_article(
    request_in: GenerateArticleRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    generator: ArticleGenerationService = Depends(get_article_generation_service),
    articles: ArticleService = Depends(get_article_service),
    steinhq: SteinHQService = Depends(get_steinhq_service),
):
    """
    Titular -> notas -> artículo -> guardado. Se detiene en la primera etapa
    que falle; nada se guarda si el artículo no alcanza el mínimo de palabras.
    """
    start = time.time()
    notes = await generator.search_facts(request_in.headline)
    generated = await generator.create_article(request_in.headline, notes)

    db_article, subreddit = await run_in_threadpool(
        articles.save_generated,
        db,
        title=generated.title,
        article=generated.article,
        category=request_in.category,
        description=generated.description,
        image_url=request_in.image_url,
        status=request_in.status,
        author_email=current_admin.email,
    )
    background_tasks.add_task(
        steinhq.post_article_safely, db_article.title, db_article.slug,
        subreddit=subreddit, image_url=db_article.featured_image_url,
    )
    logger.info(
        f"Article pipeline finished for '{request_in.headline[:80]}' in {_elapsed_ms(start)}ms",
        extra={"user_id": current_admin.id},
    )
    return GenerateArticleResponse(
        data=_saved(db_article, subreddit),
        word_count=generated.word_count,
        processing_time_ms=_elapsed_ms(start),
    )
