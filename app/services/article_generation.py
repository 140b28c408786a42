"""
Generación de artículos a partir de un titular.

Etapas (cada una se puede llamar por separado):
    1. search_facts: búsqueda web con el LLM y notas verificadas.
    2. create_article: borrador JSON y expansión hasta el rango de palabras.
    3. guardado: ver ArticleService.save_generated.
"""
from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.errors import (
    InsufficientDataError, TrackerError, UpstreamError, ValidationError, WordCountError
)
from app.core.logging_config import get_service_logger
from app.schemas.generation import ArticleDraft
from app.services.llm_client import LLMClient, get_llm_client
from app.utils.article_text import (
    ModelOutputError, convert_to_html, count_words, safe_json_parse, validate_headline
)

logger = get_service_logger(__name__, "article_generation")

FACT_SEARCH_PROMPT = """
Search the web and extract ONLY VERIFIED information.

Topic:
"{headline}"

CRITICAL RULES:
- Use ONLY officially confirmed information
- If something is unconfirmed, clearly say:
  "As of {year}, no official confirmation exists."
- DO NOT infer deals, prices, approvals, or decisions
- DO NOT merge rumours or analyst speculation
- Keep facts short and clear
- Mention the year explicitly
- Cite sources when possible

OUTPUT:
Plain factual notes only (no storytelling)
"""

DRAFT_PROMPT = """
You are a responsible news editor who writes news in very easy to understand language.

Using ONLY the verified notes below, write a
clean, cautious, UI-friendly news article.

IMPORTANT:
- DO NOT present unconfirmed events as facts
- Do NOT add new facts
- Use ONLY the information provided in the verified notes

UI RULES:
- Short paragraphs (2-3 sentences)
- Blank line between paragraphs
- Bullet points for facts
- Clear headings using # or ##
- Professional, neutral tone

RETURN STRICT JSON ONLY:
{{
  "title": "",
  "description": "",
  "article": ""
}}

ARTICLE STRUCTURE:
- Introduction
- Key Highlights (bullets)
- Current Status
- Why It Matters
- Important Dates / Numbers
- Official Position

VERIFIED NOTES:
\"\"\"
{notes}
\"\"\"
"""

EXPAND_PROMPT = """
Expand the article below to BETWEEN {min_words} AND {max_words} WORDS.
Write in very easy to understand language.

STRICT RULES:
- Do NOT add new facts
- Do NOT invent numbers or events
- Expand explanation, background, and implications ONLY
- Keep short paragraphs and bullets
- Maintain neutral tone
- Use the same structure and style

RETURN ONLY THE UPDATED ARTICLE TEXT (no JSON, just the article text).

ARTICLE:
\"\"\"
{article}
\"\"\"
"""


@dataclass
class GeneratedArticle:
    title: str
    description: str
    article: str
    article_html: str
    word_count: int
    expansion_attempts: int = 0


class ArticleGenerationService:

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def search_facts(self, headline: str) -> str:
        """
        Etapa 1: notas factuales sobre el titular.
        Lanza InsufficientDataError si el proveedor devuelve muy poco texto.
        """
        error = validate_headline(headline)
        if error:
            raise ValidationError(error)

        notes = await self.llm.complete(
            FACT_SEARCH_PROMPT.format(headline=headline.strip(), year=datetime.now().year),
            model=settings.FACT_SEARCH_MODEL,
            max_output_tokens=settings.FACT_SEARCH_MAX_TOKENS,
            web_search=True,
            timeout=settings.FACT_SEARCH_TIMEOUT_SECONDS,
            operation="fact_search",
        )
        notes = notes.strip()
        if len(notes) < settings.MIN_FACTUAL_NOTES_LENGTH:
            raise InsufficientDataError(
                "Insufficient factual data found",
                details=f"Only {len(notes)} characters of notes returned",
            )
        logger.info(f"Fact search returned {len(notes)} characters")
        return notes

    async def draft(self, notes: str) -> ArticleDraft:
        raw = await self.llm.complete(
            DRAFT_PROMPT.format(notes=notes),
            model=settings.ARTICLE_MODEL,
            max_output_tokens=settings.ARTICLE_MAX_TOKENS,
            timeout=settings.ARTICLE_TIMEOUT_SECONDS,
            operation="draft",
        )
        try:
            return ArticleDraft.model_validate(safe_json_parse(raw))
        except ModelOutputError as e:
            raise UpstreamError("Failed to parse article response", details=str(e))
        except PydanticValidationError as e:
            raise UpstreamError(
                "Invalid article structure",
                details="Article must contain title and article fields",
            ) from e

    async def expand(self, article: str) -> tuple:
        """
        Re-pide el artículo más largo hasta MAX_EXPANSION_ATTEMPTS veces.
        Se detiene al entrar en el rango, al pasarse del máximo o cuando un
        intento no alarga el texto. Los intentos fallidos cuentan.
        Devuelve (texto, intentos).
        """
        words = count_words(article)
        attempts = 0
        while words < settings.WORD_COUNT_MIN and attempts < settings.MAX_EXPANSION_ATTEMPTS:
            attempts += 1
            try:
                expanded = await self.llm.complete(
                    EXPAND_PROMPT.format(
                        min_words=settings.WORD_COUNT_MIN,
                        max_words=settings.WORD_COUNT_MAX,
                        article=article,
                    ),
                    model=settings.ARTICLE_MODEL,
                    max_output_tokens=settings.EXPANSION_MAX_TOKENS,
                    timeout=settings.ARTICLE_TIMEOUT_SECONDS,
                    operation="expand",
                )
            except TrackerError as e:
                logger.warning(f"Expansion attempt {attempts} failed: {e.message}")
                continue

            expanded = (expanded or "").strip()
            if len(expanded) <= len(article):
                logger.warning(f"Expansion attempt {attempts} did not increase article length")
                break

            article = expanded
            words = count_words(article)
            if words > settings.WORD_COUNT_MAX:
                logger.warning(f"Article exceeded max word count: {words} words")
                break
        return article, attempts

    async def create_article(self, headline: str, notes: str, expand: bool = True) -> GeneratedArticle:
        """
        Etapa 2: borrador y expansión. Un artículo que queda por debajo del
        mínimo de palabras nunca se devuelve: se lanza WordCountError.
        """
        error = validate_headline(headline)
        if error:
            raise ValidationError(error)
        notes = (notes or "").strip()
        if len(notes) < settings.MIN_FACTUAL_NOTES_LENGTH:
            raise ValidationError(
                "Factual notes are too short",
                details=f"Factual notes must be at least {settings.MIN_FACTUAL_NOTES_LENGTH} characters",
            )

        draft = await self.draft(notes)
        article = draft.article
        attempts = 0
        if expand:
            article, attempts = await self.expand(article)

        words = count_words(article)
        if expand and words < settings.WORD_COUNT_MIN:
            raise WordCountError(
                "Word count out of range",
                details={
                    "word_count": words,
                    "min_required": settings.WORD_COUNT_MIN,
                    "expansion_attempts": attempts,
                },
            )

        description = draft.description or article[:200].strip() + "..."
        logger.info(f"Article created: {words} words after {attempts} expansion attempts")
        return GeneratedArticle(
            title=draft.title,
            description=description,
            article=article,
            article_html=convert_to_html(article),
            word_count=words,
            expansion_attempts=attempts,
        )


def get_article_generation_service(llm: LLMClient = Depends(get_llm_client)) -> ArticleGenerationService:
    return ArticleGenerationService(llm)
