from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from datetime import datetime
from html import escape

from app.core.config import settings
from app.core.deps import get_current_admin
from app.crud import crud_article
from app.db.session import get_db
from app.models.user import User
from app.schemas.article import (
    Article, ArticleCreate, ArticleList, ArticleUpdate,
    Category, CategoryCreate, CategoryUpdate
)
from app.schemas.common import MessageResponse
from app.services.article_service import ArticleService, get_article_service

router = APIRouter()


@router.get("", response_model=ArticleList, summary="Lista pública de artículos")
def read_articles(
    category: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    service: ArticleService = Depends(get_article_service),
):
    """
    Artículos publicados: destacados primero, luego los más recientes.
    """
    articles = service.list_public(db, category, limit, offset)
    return ArticleList(articles=articles, has_more=len(articles) == limit, limit=limit, offset=offset)


@router.get("/admin/all", response_model=List[Article], summary="Todos los artículos (admin)")
def read_all_articles(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return crud_article.get_articles(db, skip=skip, limit=limit, category=category, published_only=False)


@router.get("/sitemap.xml", response_class=Response)
def generate_sitemap(db: Session = Depends(get_db)):
    """
    Genera el sitemap.xml de los artículos publicados.
    Este endpoint está disponible públicamente para search engines.
    """
    articles = crud_article.get_articles(db, skip=0, limit=1000, published_only=True)
    base_url = settings.SITE_BASE_URL.rstrip("/")

    sitemap_xml = '<?xml version="1.0" encoding="UTF-8"?>\n'
    sitemap_xml += '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9" '
    sitemap_xml += 'xmlns:image="http://www.google.com/schemas/sitemap-image/1.1">\n'

    sitemap_xml += '  <url>\n'
    sitemap_xml += f'    <loc>{base_url}/articles</loc>\n'
    sitemap_xml += f'    <lastmod>{datetime.now().strftime("%Y-%m-%d")}</lastmod>\n'
    sitemap_xml += '    <changefreq>daily</changefreq>\n'
    sitemap_xml += '    <priority>1.0</priority>\n'
    sitemap_xml += '  </url>\n'

    for article in articles:
        sitemap_xml += '  <url>\n'
        sitemap_xml += f'    <loc>{escape(f"{base_url}/articles/{article.slug}")}</loc>\n'
        last_mod = article.updated_at or article.published_at or article.created_at
        if last_mod:
            sitemap_xml += f'    <lastmod>{last_mod.strftime("%Y-%m-%d")}</lastmod>\n'
        sitemap_xml += '    <changefreq>weekly</changefreq>\n'
        sitemap_xml += f'    <priority>{"0.9" if article.is_featured else "0.8"}</priority>\n'
        if article.featured_image_url:
            sitemap_xml += '    <image:image>\n'
            sitemap_xml += f'      <image:loc>{escape(article.featured_image_url)}</image:loc>\n'
            sitemap_xml += f'      <image:title>{escape(article.title)}</image:title>\n'
            sitemap_xml += '    </image:image>\n'
        sitemap_xml += '  </url>\n'

    sitemap_xml += '</urlset>'

    return Response(
        content=sitemap_xml.encode('utf-8'),
        media_type="application/xml",
        headers={"Cache-Control": "public, max-age=3600"}
    )


# --- Categorías ---

@router.get("/categories", response_model=List[Category], summary="Lista de categorías")
def read_categories(db: Session = Depends(get_db)):
    return crud_article.get_categories(db)


@router.post("/categories", response_model=Category, status_code=status.HTTP_201_CREATED)
def create_category(
    category_in: CategoryCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    service: ArticleService = Depends(get_article_service),
):
    return service.create_category(db, category_in)


@router.put("/categories/{category_id}", response_model=Category)
def update_category(
    category_id: int,
    category_in: CategoryUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    service: ArticleService = Depends(get_article_service),
):
    """
    Si cambia el slug, los artículos de la categoría se actualizan con él.
    """
    return service.update_category(db, category_id, category_in)


@router.delete("/categories/{category_id}", response_model=MessageResponse)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    service: ArticleService = Depends(get_article_service),
):
    deleted = service.delete_category(db, category_id)
    return MessageResponse(message=f"Category '{deleted.slug}' deleted")


# --- Artículos ---

@router.get("/{id_or_slug}", response_model=Article, summary="Artículo por id o slug")
def read_article(
    id_or_slug: str,
    db: Session = Depends(get_db),
    service: ArticleService = Depends(get_article_service),
):
    """
    Obtiene un artículo publicado por id numérico o slug y suma una vista.
    """
    return service.get_public(db, id_or_slug)


@router.post("", response_model=Article, status_code=status.HTTP_201_CREATED)
def create_article(
    article_in: ArticleCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    service: ArticleService = Depends(get_article_service),
):
    """
    Crea un artículo. El slug se genera del título si no se envía.
    """
    return service.create(db, article_in, author_email=current_admin.email)


@router.put("/{article_id}", response_model=Article)
def update_article(
    article_id: int,
    article_in: ArticleUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    service: ArticleService = Depends(get_article_service),
):
    return service.update(db, article_id, article_in)


@router.delete("/{article_id}", response_model=Article)
def delete_article(
    article_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    service: ArticleService = Depends(get_article_service),
):
    """
    Borrado lógico: marca deleted_at y pasa el estado a archived.
    """
    return service.delete(db, article_id)
