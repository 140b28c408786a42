# app/models/article.py
import enum
from sqlalchemy import (
    Boolean, Column, Integer, String, Text, ForeignKey,
    TIMESTAMP, func
)
from sqlalchemy.orm import relationship

from app.db.base import Base, JSONType


class ArticleStatusEnum(str, enum.Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class ArticleCategory(Base):
    __tablename__ = 'article_categories'
    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    articles = relationship("Article", back_populates="category_ref")


class Article(Base):
    __tablename__ = 'articles'
    id = Column(Integer, primary_key=True)
    title = Column(String(500), unique=True, nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False)
    excerpt = Column(Text)
    category = Column(
        String(100),
        ForeignKey('article_categories.slug', ondelete='RESTRICT', onupdate='CASCADE'),
        nullable=False,
        index=True,
    )
    tags = Column(JSONType, nullable=False, default=list)
    featured_image_url = Column(String(500))
    is_featured = Column(Boolean, nullable=False, default=False, server_default='false')
    social_media_embeds = Column(JSONType, nullable=False, default=list)
    author_email = Column(String(255))
    status = Column(String(20), nullable=False, default=ArticleStatusEnum.draft.value,
                    server_default=ArticleStatusEnum.draft.value)
    view_count = Column(Integer, nullable=False, default=0, server_default='0')
    published_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now())
    deleted_at = Column(TIMESTAMP(timezone=True))
    category_ref = relationship("ArticleCategory", back_populates="articles")


class SubredditTracking(Base):
    """Guarda el índice del último subreddit sugerido (round-robin)."""
    __tablename__ = 'subreddit_tracking'
    id = Column(Integer, primary_key=True)
    last_index = Column(Integer, nullable=False, default=0)
