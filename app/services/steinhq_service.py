import httpx
import logging
from typing import Any, Dict, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


class SteinHQServiceError(Exception):
    """Excepción personalizada para errores de la hoja de SteinHQ"""
    pass


class SteinHQService:
    """
    Publica una fila por artículo en la hoja de SteinHQ que alimenta la
    programación de posts en redes sociales.
    """

    def __init__(self, base_url: str = None, storage_id: str = None, sheet_name: str = None,
                 timeout: float = None, transport: httpx.AsyncBaseTransport = None):
        self.base_url = (base_url or settings.STEINHQ_API_URL).rstrip('/')
        self.storage_id = storage_id if storage_id is not None else settings.STEINHQ_STORAGE_ID
        self.sheet_name = sheet_name or settings.STEINHQ_SHEET_NAME
        self.timeout = timeout or settings.STEINHQ_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.storage_id)

    def build_row(self, title: str, slug: str, subreddit: Optional[str] = None,
                  flair_id: Optional[str] = None, image_url: Optional[str] = None) -> Dict[str, Any]:
        return {
            "Title": title,
            "Link": f"{settings.SITE_BASE_URL.rstrip('/')}/articles/{slug}",
            "Status": None,
            "Subreddit": subreddit,
            "FlairID": flair_id,
            "Imageurl": image_url,
        }

    async def post_article(self, title: str, slug: str, subreddit: Optional[str] = None,
                           flair_id: Optional[str] = None, image_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Agrega la fila del artículo a la hoja.
        Lanza SteinHQServiceError si la API responde con error.
        """
        if not self.enabled:
            raise SteinHQServiceError("STEINHQ_STORAGE_ID no configurado")

        url = f"{self.base_url}/v1/storages/{self.storage_id}/{self.sheet_name}"
        row = self.build_row(title, slug, subreddit, flair_id, image_url)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=[row])
        except httpx.HTTPError as e:
            raise SteinHQServiceError(f"Error de red con SteinHQ: {str(e)}")

        if response.status_code >= 400:
            raise SteinHQServiceError(f"SteinHQ API error: {response.status_code} - {response.text[:200]}")

        logger.info(f"Article posted to SteinHQ: {row['Link']}")
        return response.json()

    async def post_article_safely(self, title: str, slug: str, subreddit: Optional[str] = None,
                                  image_url: Optional[str] = None) -> bool:
        """
        Versión para tareas en segundo plano: registra el error y nunca lanza.
        """
        try:
            await self.post_article(title, slug, subreddit=subreddit, image_url=image_url)
            return True
        except SteinHQServiceError as e:
            logger.warning(f"SteinHQ post skipped for '{slug}': {str(e)}")
            return False
        except Exception as e:
            logger.error(f"Unexpected SteinHQ error for '{slug}': {str(e)}")
            return False


def get_steinhq_service() -> SteinHQService:
    """
    Dependency para obtener el servicio de SteinHQ
    """
    return SteinHQService()
