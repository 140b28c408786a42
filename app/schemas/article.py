from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from app.models.article import ArticleStatusEnum


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None


class CategoryCreate(CategoryBase):
    """
    Schema para crear una categoría. Si no se envía slug se genera del nombre.
    """
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None


class Category(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ArticleBase(BaseModel):
    """
    Schema base para las propiedades compartidas de un artículo.
    """
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    tags: List[str] = Field(default_factory=list)
    featured_image_url: Optional[str] = None
    is_featured: bool = False
    social_media_embeds: List[dict] = Field(default_factory=list)
    status: ArticleStatusEnum = ArticleStatusEnum.draft


class ArticleCreate(ArticleBase):
    slug: Optional[str] = Field(None, max_length=255)


class ArticleUpdate(BaseModel):
    """
    Schema para actualizar un artículo. Solo se aplican los campos enviados.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    slug: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = None
    excerpt: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    featured_image_url: Optional[str] = None
    is_featured: Optional[bool] = None
    social_media_embeds: Optional[List[dict]] = None
    status: Optional[ArticleStatusEnum] = None


class Article(ArticleBase):
    id: int
    slug: str
    author_email: Optional[str] = None
    view_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ArticleList(BaseModel):
    articles: List[Article]
    has_more: bool
    limit: int
    offset: int
