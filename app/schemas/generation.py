from typing import Optional
from pydantic import BaseModel, Field, field_validator

from app.models.article import ArticleStatusEnum


class ArticleDraft(BaseModel):
    """
    Borrador devuelto por el modelo. title y article son obligatorios.
    """
    title: str
    description: str = ""
    article: str

    @field_validator("title", "article")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        return (v or "").strip()


class SearchFactsRequest(BaseModel):
    headline: str


class SearchFactsResponse(BaseModel):
    success: bool = True
    factual_notes: str
    processing_time_ms: int


class CreateArticleRequest(BaseModel):
    headline: str
    factual_notes: str
    expand_to_word_count: bool = True


class CreatedArticle(BaseModel):
    title: str
    description: str
    article: str
    article_html: str
    word_count: int
    expansion_attempts: int = 0


class CreateArticleResponse(BaseModel):
    success: bool = True
    data: CreatedArticle
    processing_time_ms: int


class SaveArticleRequest(BaseModel):
    title: str
    description: Optional[str] = None
    article: str
    category: str
    image_url: Optional[str] = None
    status: str = ArticleStatusEnum.published.value
    check_duplicate: bool = True


class SavedArticle(BaseModel):
    id: int
    title: str
    slug: str
    url: str
    status: str
    suggested_subreddit: Optional[str] = None


class SaveArticleResponse(BaseModel):
    success: bool = True
    message: str = "Article saved successfully"
    data: SavedArticle


class GenerateArticleRequest(BaseModel):
    """
    Pipeline completo: titular -> hechos -> artículo -> guardado.
    """
    headline: str
    category: str
    image_url: Optional[str] = None
    status: str = ArticleStatusEnum.published.value


class GenerateArticleResponse(BaseModel):
    success: bool = True
    data: SavedArticle
    word_count: int
    processing_time_ms: int
