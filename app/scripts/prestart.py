# app/scripts/prestart.py
import logging
import sys
import time
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60
wait_seconds = 2


def wait_for_database() -> bool:
    """
    Espera a que la base de datos acepte conexiones.
    """
    db_uri_censored = make_url(settings.DATABASE_URI).render_as_string(hide_password=True)
    logger.info(f"Esperando a la base de datos en: {db_uri_censored}")

    engine = create_engine(settings.DATABASE_URI)
    for i in range(1, max_tries + 1):
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            logger.info("Conexión a la base de datos establecida")
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Intento {i}/{max_tries}: base de datos no está lista. Reintentando...")
            logger.debug(f"Error de conexión: {e}")
            time.sleep(wait_seconds)
    return False


if __name__ == "__main__":
    if not wait_for_database():
        logger.error("No se pudo conectar a la base de datos después de varios intentos. Saliendo.")
        sys.exit(1)
