import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from app.crud import crud_article
from app.models.article import Article, ArticleCategory
from app.schemas.article import ArticleCreate, ArticleUpdate, CategoryCreate, CategoryUpdate
from app.utils.article_text import (
    VALID_STATUSES, build_excerpt, convert_to_html, is_valid_url,
    validate_category, validate_headline
)
from app.utils.text_utils import slugify

logger = logging.getLogger(__name__)

SUBREDDITS = [
    'r/delhi',
    'r/bangalore',
    'r/mumbai',
    'r/chennai',
    'r/hyderabad',
    'r/Kerala',
    'r/kolkata',
    'r/TamilNadu',
    'r/pune',
    'r/Maharashtra',
    'r/bihar',
    'r/ahmedabad',
    'r/lucknow',
    'r/Goa',
    'r/Uttarakhand',
    'r/assam',
    'r/gurgaon',
    'r/karnataka',
    'r/Rajasthan',
    'r/HimachalPradesh',
    'r/Chandigarh',
    'r/gujarat',
    'r/Odisha',
    'r/uttarpradesh',
    'r/Northeastindia',
    'r/indianews',
    'r/indiadiscussion',
]


def _integrity_kind(error: IntegrityError) -> str:
    """
    Distingue violaciones de unicidad y de llave foránea
    (códigos SQLSTATE de PostgreSQL o mensajes de SQLite).
    """
    code = getattr(error.orig, "pgcode", None)
    message = str(error.orig).lower()
    if code == "23505" or "unique" in message or "duplicate key" in message:
        return "unique"
    if code == "23503" or "foreign key" in message:
        return "foreign_key"
    return "other"


def _commit_article(db: Session, db_article: Article) -> Article:
    db.add(db_article)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        kind = _integrity_kind(e)
        logger.warning(f"Integrity error saving article '{db_article.title}': {kind}")
        if kind == "unique":
            raise ConflictError("Article with this title or slug already exists", details=str(e.orig))
        if kind == "foreign_key":
            raise ValidationError(
                "Invalid category reference",
                details="The category does not exist in the database",
            )
        raise PersistenceError("Failed to save article to database", details=str(e.orig))
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError("Failed to save article to database", details=str(e))
    db.refresh(db_article)
    return db_article


class ArticleService:
    """
    Reglas del CMS de artículos y guardado de artículos generados.
    """

    def _check_duplicate_title(self, db: Session, title: str, exclude_id: Optional[int] = None) -> None:
        existing = crud_article.get_article_by_title(db, title)
        if existing and existing.id != exclude_id:
            raise ConflictError(
                "Article with this title already exists",
                details={
                    "existing_id": existing.id,
                    "existing_slug": existing.slug,
                    "created_at": existing.created_at.isoformat() if existing.created_at else None,
                },
            )

    def _check_category(self, db: Session, category: str) -> None:
        if not crud_article.get_category_by_slug(db, category.strip()):
            raise ValidationError(
                f"Category '{category}' does not exist in database",
                details="Please use a valid category slug from article_categories",
            )

    def suggest_subreddit(self, db: Session) -> str:
        """
        Siguiente subreddit del round-robin. Nunca falla: ante cualquier error
        devuelve el primero de la lista.
        """
        try:
            return SUBREDDITS[crud_article.next_subreddit_index(db, len(SUBREDDITS))]
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error in subreddit round-robin: {e}")
            return SUBREDDITS[0]

    def save_generated(
        self,
        db: Session,
        title: str,
        article: str,
        category: str,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        status: str = "published",
        author_email: Optional[str] = None,
        check_duplicate: bool = True,
    ) -> Tuple[Article, str]:
        """
        Etapa 3 del pipeline: valida, convierte a HTML y guarda.
        Devuelve el artículo y el subreddit sugerido.
        """
        error = validate_headline(title)
        if error:
            raise ValidationError(f"Invalid title: {error}")
        error = validate_category(category)
        if error:
            raise ValidationError(f"Invalid category: {error}")
        if not article or not isinstance(article, str) or not article.strip():
            raise ValidationError("Article content is required and must be a non-empty string")
        if image_url and not is_valid_url(image_url):
            raise ValidationError("Invalid image URL format. Must be a valid HTTP/HTTPS URL")
        if status not in VALID_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")

        if check_duplicate:
            self._check_duplicate_title(db, title)
        self._check_category(db, category)

        article_html = convert_to_html(article.strip())
        if len(article_html) < 50:
            raise ValidationError("Failed to convert article to HTML or article is too short")

        db_article = crud_article.build_article(db, {
            "title": title.strip(),
            "content": article_html,
            "excerpt": build_excerpt(description, article, settings.MAX_EXCERPT_LENGTH),
            "category": category.strip(),
            "tags": [],
            "featured_image_url": image_url or None,
            "is_featured": False,
            "social_media_embeds": [],
            "status": status,
        }, author_email=author_email)
        db_article = _commit_article(db, db_article)
        logger.info(f"Generated article saved: id={db_article.id} slug={db_article.slug}")

        return db_article, self.suggest_subreddit(db)

    # --- CMS ---

    def list_public(self, db: Session, category: Optional[str], limit: int, offset: int) -> List[Article]:
        return crud_article.get_articles(db, skip=offset, limit=limit, category=category, published_only=True)

    def get_public(self, db: Session, id_or_slug: str) -> Article:
        """
        Busca por id numérico o por slug y suma una vista.
        """
        db_article = None
        if id_or_slug.isdigit():
            db_article = crud_article.get_article(db, int(id_or_slug))
        if db_article is None:
            db_article = crud_article.get_article_by_slug(db, id_or_slug)
        if db_article is None or db_article.status != "published":
            raise NotFoundError("Article not found")
        return crud_article.increment_view_count(db, db_article)

    def create(self, db: Session, data: ArticleCreate, author_email: Optional[str]) -> Article:
        self._check_duplicate_title(db, data.title)
        self._check_category(db, data.category)
        if data.featured_image_url and not is_valid_url(data.featured_image_url):
            raise ValidationError("Invalid image URL format. Must be a valid HTTP/HTTPS URL")

        payload = data.model_dump()
        payload["status"] = data.status.value
        if payload.get("slug"):
            payload["slug"] = slugify(payload["slug"])
            if crud_article.get_article_by_slug(db, payload["slug"], include_deleted=True):
                raise ConflictError("Slug already exists")
        payload["excerpt"] = build_excerpt(data.excerpt, data.content, settings.MAX_EXCERPT_LENGTH)
        return _commit_article(db, crud_article.build_article(db, payload, author_email=author_email))

    def update(self, db: Session, article_id: int, data: ArticleUpdate) -> Article:
        db_article = crud_article.get_article(db, article_id)
        if db_article is None:
            raise NotFoundError("Article not found")

        update_data = data.model_dump(exclude_unset=True)
        if "title" in update_data:
            self._check_duplicate_title(db, update_data["title"], exclude_id=article_id)
        if "category" in update_data:
            self._check_category(db, update_data["category"])
        if "status" in update_data and update_data["status"] is not None:
            update_data["status"] = update_data["status"].value
        if update_data.get("slug"):
            update_data["slug"] = slugify(update_data["slug"])
            existing = crud_article.get_article_by_slug(db, update_data["slug"], include_deleted=True)
            if existing and existing.id != article_id:
                raise ConflictError("Slug already exists")
        if update_data.get("excerpt"):
            update_data["excerpt"] = build_excerpt(update_data["excerpt"], "", settings.MAX_EXCERPT_LENGTH)

        try:
            return crud_article.update_article(db, db_article, update_data)
        except IntegrityError as e:
            db.rollback()
            raise ConflictError("Article with this title or slug already exists", details=str(e.orig))

    def delete(self, db: Session, article_id: int) -> Article:
        db_article = crud_article.get_article(db, article_id)
        if db_article is None:
            raise NotFoundError("Article not found")
        return crud_article.soft_delete_article(db, db_article)

    # --- Categorías ---

    def create_category(self, db: Session, data: CategoryCreate) -> ArticleCategory:
        slug = slugify(data.slug or data.name)
        if not slug:
            raise ValidationError("Category slug cannot be empty")
        if crud_article.get_category_by_slug(db, slug) or crud_article.get_category_by_name(db, data.name):
            raise ConflictError("Category already exists")
        return crud_article.create_category(db, data.name, slug, data.description)

    def update_category(self, db: Session, category_id: int, data: CategoryUpdate) -> ArticleCategory:
        db_category = crud_article.get_category(db, category_id)
        if db_category is None:
            raise NotFoundError("Category not found")
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("slug"):
            update_data["slug"] = slugify(update_data["slug"])
            existing = crud_article.get_category_by_slug(db, update_data["slug"])
            if existing and existing.id != category_id:
                raise ConflictError("Category slug already exists")
        try:
            return crud_article.update_category(db, db_category, update_data)
        except IntegrityError as e:
            db.rollback()
            raise ConflictError("Category name or slug already exists", details=str(e.orig))

    def delete_category(self, db: Session, category_id: int) -> ArticleCategory:
        db_category = crud_article.get_category(db, category_id)
        if db_category is None:
            raise NotFoundError("Category not found")
        in_use = crud_article.count_articles_in_category(db, db_category.slug)
        if in_use:
            raise ConflictError(
                "Category has articles and cannot be deleted",
                details={"article_count": in_use},
            )
        return crud_article.delete_category(db, db_category)


article_service = ArticleService()


def get_article_service() -> ArticleService:
    return article_service
