from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.models.article import Article, ArticleCategory, ArticleStatusEnum, SubredditTracking
from app.utils.text_utils import slugify


def get_article(db: Session, article_id: int, include_deleted: bool = False) -> Optional[Article]:
    """
    Obtiene un artículo por su ID.
    """
    query = db.query(Article).filter(Article.id == article_id)
    if not include_deleted:
        query = query.filter(Article.deleted_at.is_(None))
    return query.first()


def get_article_by_slug(db: Session, slug: str, include_deleted: bool = False) -> Optional[Article]:
    query = db.query(Article).filter(Article.slug == slug)
    if not include_deleted:
        query = query.filter(Article.deleted_at.is_(None))
    return query.first()


def get_article_by_title(db: Session, title: str) -> Optional[Article]:
    """
    Busca por título exacto, incluidos los archivados: el título es único en
    la tabla aunque el artículo esté borrado.
    """
    return db.query(Article).filter(Article.title == title.strip()).first()


def get_articles(
    db: Session,
    skip: int = 0,
    limit: int = 20,
    category: Optional[str] = None,
    published_only: bool = True,
) -> List[Article]:
    """
    Lista artículos no borrados: destacados primero, luego los más recientes.
    """
    query = db.query(Article).filter(Article.deleted_at.is_(None))
    if published_only:
        query = query.filter(Article.status == ArticleStatusEnum.published.value)
    if category:
        query = query.filter(Article.category == category)
    return (
        query.order_by(desc(Article.is_featured), desc(Article.created_at), desc(Article.id))
        .offset(skip)
        .limit(limit)
        .all()
    )


def unique_slug(db: Session, title: str, exclude_id: Optional[int] = None) -> str:
    """
    Genera un slug a partir del título; si existe agrega -2, -3, ...
    """
    base = slugify(title)[:240] or "article"
    slug = base
    suffix = 2
    while True:
        query = db.query(Article.id).filter(Article.slug == slug)
        if exclude_id is not None:
            query = query.filter(Article.id != exclude_id)
        if query.first() is None:
            return slug
        slug = f"{base}-{suffix}"
        suffix += 1


def build_article(db: Session, data: dict, author_email: Optional[str] = None) -> Article:
    """
    Crea el objeto Article (sin commit) con slug único y published_at.
    """
    data = dict(data)
    slug = data.pop("slug", None) or unique_slug(db, data["title"])
    db_article = Article(slug=slug, author_email=author_email, **data)
    if db_article.status == ArticleStatusEnum.published.value:
        db_article.published_at = datetime.now(timezone.utc)
    return db_article


def update_article(db: Session, db_article: Article, update_data: dict) -> Article:
    """
    Actualiza un artículo existente.
    """
    if (
        update_data.get("status") == ArticleStatusEnum.published.value
        and not db_article.published_at
    ):
        update_data["published_at"] = datetime.now(timezone.utc)

    for field, value in update_data.items():
        setattr(db_article, field, value)

    db.add(db_article)
    db.commit()
    db.refresh(db_article)
    return db_article


def soft_delete_article(db: Session, db_article: Article) -> Article:
    db_article.deleted_at = datetime.now(timezone.utc)
    db_article.status = ArticleStatusEnum.archived.value
    db.add(db_article)
    db.commit()
    db.refresh(db_article)
    return db_article


def increment_view_count(db: Session, db_article: Article) -> Article:
    db.query(Article).filter(Article.id == db_article.id).update(
        {Article.view_count: Article.view_count + 1}, synchronize_session=False
    )
    db.commit()
    db.refresh(db_article)
    return db_article


# --- Categorías ---

def get_categories(db: Session) -> List[ArticleCategory]:
    return db.query(ArticleCategory).order_by(ArticleCategory.name).all()


def get_category(db: Session, category_id: int) -> Optional[ArticleCategory]:
    return db.query(ArticleCategory).filter(ArticleCategory.id == category_id).first()


def get_category_by_slug(db: Session, slug: str) -> Optional[ArticleCategory]:
    return db.query(ArticleCategory).filter(ArticleCategory.slug == slug).first()


def get_category_by_name(db: Session, name: str) -> Optional[ArticleCategory]:
    return db.query(ArticleCategory).filter(func.lower(ArticleCategory.name) == name.strip().lower()).first()


def create_category(db: Session, name: str, slug: str, description: Optional[str] = None) -> ArticleCategory:
    db_category = ArticleCategory(name=name.strip(), slug=slug, description=description)
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category


def update_category(db: Session, db_category: ArticleCategory, update_data: dict) -> ArticleCategory:
    old_slug = db_category.slug
    for field, value in update_data.items():
        setattr(db_category, field, value)
    new_slug = db_category.slug
    if new_slug != old_slug:
        db.flush()
        # Motores sin ON UPDATE CASCADE (SQLite) necesitan el update explícito
        db.query(Article).filter(Article.category == old_slug).update(
            {Article.category: new_slug}, synchronize_session=False
        )
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category


def count_articles_in_category(db: Session, slug: str) -> int:
    return db.query(func.count(Article.id)).filter(Article.category == slug).scalar() or 0


def delete_category(db: Session, db_category: ArticleCategory) -> ArticleCategory:
    db.delete(db_category)
    db.commit()
    return db_category


# --- Round-robin de subreddits ---

def next_subreddit_index(db: Session, total: int) -> int:
    """
    Avanza el índice guardado en subreddit_tracking (fila id=1) y lo devuelve.
    La primera vez devuelve 0.
    """
    tracking = (
        db.query(SubredditTracking)
        .filter(SubredditTracking.id == 1)
        .with_for_update()
        .first()
    )
    if tracking is None:
        tracking = SubredditTracking(id=1, last_index=0)
        db.add(tracking)
        index = 0
    else:
        index = (tracking.last_index + 1) % total
        tracking.last_index = index
    db.commit()
    return index
